"""Pydantic schemas for child records, assessments and item responses.

These models are the wire contract with the persistence service: field
names serialize in camelCase and scores travel as their ordinal (1, 0.5, 0).
"""

from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    field_validator,
)
from pydantic.alias_generators import to_camel

# Conditions that mean "no diagnosis" (the original client stored "Nenhum")
NO_CONDITION_LABELS = frozenset({"", "none", "nenhum"})


class ScoreValue(Enum):
    """Ordinal score of a single checklist item."""

    ACHIEVED = 1
    EMERGING = 0.5
    NOT_ACHIEVED = 0

    @property
    def points(self) -> float:
        """Numeric contribution of this score to an area total."""
        return float(self.value)

    @classmethod
    def from_ordinal(cls, value: Any) -> "ScoreValue":
        """Map a wire ordinal (1, 0.5, 0) to a score.

        Raises:
            ValueError: If the value is not one of the three ordinals.
        """
        if isinstance(value, cls):
            return value
        # bool is an int subclass; True must not pass as Achieved
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"Score must be 1, 0.5 or 0, got {value!r}")
        for member in cls:
            if member.value == value:
                return member
        raise ValueError(f"Score must be 1, 0.5 or 0, got {value!r}")


class AssessmentStatus(str, Enum):
    """Lifecycle status of an assessment."""

    DRAFT = "draft"
    COMPLETED = "completed"


class Gender(str, Enum):
    """Gender options recorded at registration."""

    MALE = "M"
    FEMALE = "F"
    OTHER = "Other"


class WireModel(BaseModel):
    """Base for models exchanged with the persistence service."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the JSON-compatible wire representation."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ResponseItem(WireModel):
    """Latest recorded response for one question.

    ``score`` is None only for note-only entries (a note written before the
    item was scored); such entries do not count as answered.
    """

    score: ScoreValue | None = None
    respondent_name: str
    answered_at: datetime | None = None
    notes: str | None = None

    @field_validator("score", mode="before")
    @classmethod
    def validate_score(cls, value: Any) -> ScoreValue | None:
        """Accept only the three enumerated ordinals."""
        if value is None:
            return None
        return ScoreValue.from_ordinal(value)

    @property
    def is_answered(self) -> bool:
        """Check whether the item has been explicitly scored."""
        return self.score is not None


class Assessment(WireModel):
    """One evaluation pass over the checklist for one child."""

    id: str = Field(..., min_length=1)
    date: datetime
    lead_professional_name: str = Field(
        default="",
        validation_alias=AliasChoices(
            "leadProfessionalName", "professionalName", "lead_professional_name"
        ),
    )
    lead_professional_role: str = Field(
        default="",
        validation_alias=AliasChoices(
            "leadProfessionalRole", "professionalRole", "lead_professional_role"
        ),
    )
    responses: dict[str, ResponseItem] = Field(default_factory=dict)
    status: AssessmentStatus = AssessmentStatus.DRAFT
    summary_notes: str = ""

    @property
    def is_completed(self) -> bool:
        """Check if the assessment has been finalized."""
        return self.status == AssessmentStatus.COMPLETED


class Child(WireModel):
    """A child under follow-up, owning its assessments."""

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    birth_date: date
    gender: Gender = Gender.OTHER
    guardian_name: str = ""
    condition: str = "None"
    clinical_history: str = ""
    assessments: list[Assessment] = Field(default_factory=list)

    @property
    def has_condition(self) -> bool:
        """Check if a diagnosis label is recorded."""
        return self.condition.strip().lower() not in NO_CONDITION_LABELS

    def find_assessment(self, assessment_id: str) -> Assessment | None:
        """Return the assessment with the given id, if any."""
        for assessment in self.assessments:
            if assessment.id == assessment_id:
                return assessment
        return None


_collection_adapter = TypeAdapter(list[Child])


def parse_collection(data: Any) -> list[Child]:
    """Validate a wire document (list of child dicts) into models.

    Raises:
        pydantic.ValidationError: If the document does not match the contract.
    """
    return _collection_adapter.validate_python(data)


def dump_collection(children: list[Child]) -> list[dict[str, Any]]:
    """Serialize a collection of children to its wire document."""
    return [child.to_wire() for child in children]


def copy_collection(children: list[Child]) -> list[Child]:
    """Deep copy a collection so later edits cannot leak into it."""
    return [child.model_copy(deep=True) for child in children]
