"""Area and global aggregation of Portage responses.

Area scores sum the points of answered items (Achieved = 1, Emerging = 0.5,
Not achieved = 0) over the number of questions in the area, so partially
completed assessments are scored against the full area:

    percentage = score / total * 100     (0 when the area has no questions)

Global progress is the share of catalog items answered. Entries without a
score (note-only) and entries for ids outside the catalog are ignored.

All functions are pure and recomputed on every read.
"""

from collections import Counter
from collections.abc import Mapping
from dataclasses import asdict, dataclass
from typing import Any

from portage.catalog.loader import Catalog
from portage.schemas.catalog import DevelopmentalArea
from portage.schemas.child import ResponseItem

Responses = Mapping[str, ResponseItem]


@dataclass
class AreaScore:
    """Aggregated result for one developmental area."""

    area: DevelopmentalArea
    label: str
    score: float
    total: int
    percentage: float

    def to_dict(self) -> dict[str, Any]:
        """Serialize for reports and API responses."""
        data = asdict(self)
        data["area"] = self.area.value
        return data


def _percentage(part: float, whole: int) -> float:
    if whole <= 0:
        return 0.0
    return part / whole * 100


def compute_area_scores(catalog: Catalog, responses: Responses) -> list[AreaScore]:
    """Compute one AreaScore per catalog area, in catalog order."""
    results: list[AreaScore] = []

    for area in catalog.areas:
        questions = catalog.questions_in_area(area)
        score = 0.0
        for question in questions:
            item = responses.get(question.id)
            if item is not None and item.score is not None:
                score += item.score.points

        total = len(questions)
        results.append(
            AreaScore(
                area=area,
                label=catalog.label(area),
                score=score,
                total=total,
                percentage=_percentage(score, total),
            )
        )

    return results


def count_answered(catalog: Catalog, responses: Responses) -> int:
    """Number of catalog items with a recorded score."""
    return sum(
        1
        for question in catalog.questions
        if (item := responses.get(question.id)) is not None and item.score is not None
    )


def compute_global_progress(catalog: Catalog, responses: Responses) -> float:
    """Percentage of catalog items answered."""
    return _percentage(count_answered(catalog, responses), len(catalog))


def compute_area_progress(
    catalog: Catalog,
    responses: Responses,
    area: DevelopmentalArea,
) -> float:
    """Percentage of an area's items answered."""
    questions = catalog.questions_in_area(area)
    answered = sum(
        1
        for question in questions
        if (item := responses.get(question.id)) is not None and item.score is not None
    )
    return _percentage(answered, len(questions))


def area_started(catalog: Catalog, responses: Responses, area: DevelopmentalArea) -> bool:
    """Check if any item of the area has been answered."""
    return compute_area_progress(catalog, responses, area) > 0


def compute_contributor_counts(responses: Responses) -> dict[str, int]:
    """Count scored items per respondent."""
    counts = Counter(
        item.respondent_name for item in responses.values() if item.score is not None
    )
    return dict(counts)


def list_contributors(responses: Responses) -> list[str]:
    """Distinct respondents who scored at least one item, sorted by name."""
    return sorted(compute_contributor_counts(responses))
