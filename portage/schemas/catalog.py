"""Question catalog schemas."""

from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class DevelopmentalArea(str, Enum):
    """Developmental areas of the Portage inventory."""

    SOCIALIZATION = "socialization"
    LANGUAGE = "language"
    SELF_HELP = "self_help"
    COGNITION = "cognition"
    MOTOR = "motor"
    INFANT_STIMULATION = "infant_stimulation"


# Display labels, in the order areas are presented
AREA_LABELS: dict[DevelopmentalArea, str] = {
    DevelopmentalArea.INFANT_STIMULATION: "Estimulação Infantil",
    DevelopmentalArea.SOCIALIZATION: "Socialização",
    DevelopmentalArea.LANGUAGE: "Linguagem",
    DevelopmentalArea.SELF_HELP: "Autocuidados",
    DevelopmentalArea.COGNITION: "Cognição",
    DevelopmentalArea.MOTOR: "Desenvolvimento Motor",
}


class Question(BaseModel):
    """A single scoring item of the checklist."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str = Field(..., min_length=1)
    area: DevelopmentalArea
    # Older documents call this "ageRange"
    age_range_label: str = Field(
        ...,
        validation_alias=AliasChoices("ageRangeLabel", "ageRange", "age_range_label"),
    )
    description: str
