"""Scoring and aggregation of Portage checklist responses."""

from portage.scoring.aggregation import (
    AreaScore,
    area_started,
    compute_area_progress,
    compute_area_scores,
    compute_contributor_counts,
    compute_global_progress,
    count_answered,
    list_contributors,
)
from portage.scoring.responses import (
    NOTE_FALLBACK_RESPONDENT,
    IdentityMissingError,
    ScoringError,
    UnknownQuestionError,
    record_batch_score,
    record_note,
    record_score,
    set_respondent,
)

__all__ = [
    "AreaScore",
    "area_started",
    "compute_area_progress",
    "compute_area_scores",
    "compute_contributor_counts",
    "compute_global_progress",
    "count_answered",
    "list_contributors",
    "NOTE_FALLBACK_RESPONDENT",
    "IdentityMissingError",
    "ScoringError",
    "UnknownQuestionError",
    "record_batch_score",
    "record_note",
    "record_score",
    "set_respondent",
]
