"""Pydantic schemas for the catalog and the children collection."""

from portage.schemas.catalog import AREA_LABELS, DevelopmentalArea, Question
from portage.schemas.child import (
    Assessment,
    AssessmentStatus,
    Child,
    Gender,
    ResponseItem,
    ScoreValue,
    copy_collection,
    dump_collection,
    parse_collection,
)

__all__ = [
    "AREA_LABELS",
    "DevelopmentalArea",
    "Question",
    "Assessment",
    "AssessmentStatus",
    "Child",
    "Gender",
    "ResponseItem",
    "ScoreValue",
    "copy_collection",
    "dump_collection",
    "parse_collection",
]
