"""Item response recording.

Every edit of an assessment's response map goes through these functions:

- ``record_score``: overwrite score, respondent and timestamp; keep notes
- ``record_batch_score``: the same for many items, all-or-nothing, one timestamp
- ``record_note``: merge a note; never touches score or respondent
- ``set_respondent``: reattribute an item without rescoring it

Scoring requires a respondent name. Callers resolve one (see
``portage.services.identity``) before calling; a blank name is refused with
``IdentityMissingError`` and leaves the map untouched.
"""

from collections.abc import Iterable, MutableMapping
from datetime import datetime
from typing import Any

from portage.schemas.child import ResponseItem, ScoreValue

# Respondent recorded on a note written before anyone scored the item
NOTE_FALLBACK_RESPONDENT = "Evaluator"

Responses = MutableMapping[str, ResponseItem]


class ScoringError(Exception):
    """Base exception for response recording errors."""

    pass


class IdentityMissingError(ScoringError):
    """Raised when a scoring action has no respondent name."""

    pass


class UnknownQuestionError(ScoringError):
    """Raised when a question id is not part of the catalog."""

    pass


def _require_respondent(respondent_name: str | None) -> str:
    name = (respondent_name or "").strip()
    if not name:
        raise IdentityMissingError("A respondent name is required to record a score")
    return name


def record_score(
    responses: Responses,
    question_id: str,
    score: ScoreValue | Any,
    respondent_name: str | None,
    now: datetime,
) -> ResponseItem:
    """Record a score for one item.

    Args:
        responses: Response map of the assessment being edited (mutated)
        question_id: Catalog id of the item
        score: ScoreValue or its ordinal (1, 0.5, 0)
        respondent_name: Who is scoring
        now: Timestamp of the action

    Returns:
        The stored ResponseItem

    Raises:
        IdentityMissingError: If respondent_name is blank
        ValueError: If score is not one of the enumerated ordinals
    """
    respondent = _require_respondent(respondent_name)
    value = ScoreValue.from_ordinal(score)

    previous = responses.get(question_id)
    item = ResponseItem(
        score=value,
        respondent_name=respondent,
        answered_at=now,
        notes=previous.notes if previous else None,
    )
    responses[question_id] = item
    return item


def record_batch_score(
    responses: Responses,
    question_ids: Iterable[str],
    score: ScoreValue | Any,
    respondent_name: str | None,
    now: datetime,
) -> dict[str, ResponseItem]:
    """Record the same score for several items with one shared timestamp.

    Preconditions are checked before the map is touched, so either every
    item is written or none is.

    Returns:
        Mapping of question id to the stored ResponseItem

    Raises:
        IdentityMissingError: If respondent_name is blank (nothing written)
        ValueError: If score is invalid (nothing written)
    """
    respondent = _require_respondent(respondent_name)
    value = ScoreValue.from_ordinal(score)

    staged: dict[str, ResponseItem] = {}
    for question_id in sorted(set(question_ids)):
        previous = responses.get(question_id)
        staged[question_id] = ResponseItem(
            score=value,
            respondent_name=respondent,
            answered_at=now,
            notes=previous.notes if previous else None,
        )

    responses.update(staged)
    return staged


def record_note(
    responses: Responses,
    question_id: str,
    note: str | None,
    respondent_name: str | None = None,
) -> ResponseItem:
    """Attach a note to an item.

    An existing entry keeps its score, respondent and timestamp. When the
    item has no entry yet a note-only entry is created with no score, so the
    item still counts as unanswered.
    """
    text = note or None
    previous = responses.get(question_id)

    if previous is not None:
        item = previous.model_copy(update={"notes": text})
    else:
        item = ResponseItem(
            score=None,
            respondent_name=(respondent_name or "").strip() or NOTE_FALLBACK_RESPONDENT,
            answered_at=None,
            notes=text,
        )

    responses[question_id] = item
    return item


def set_respondent(
    responses: Responses,
    question_id: str,
    respondent_name: str | None,
) -> ResponseItem:
    """Reattribute an item to another respondent.

    Score and timestamp are preserved.

    Raises:
        IdentityMissingError: If respondent_name is blank
    """
    respondent = _require_respondent(respondent_name)
    previous = responses.get(question_id)

    if previous is not None:
        item = previous.model_copy(update={"respondent_name": respondent})
    else:
        item = ResponseItem(respondent_name=respondent)

    responses[question_id] = item
    return item
