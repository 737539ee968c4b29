"""Assessment lifecycle: draft editing and finalization.

An assessment is created as a draft with no responses and is persisted
immediately, so its id is durable before any item is answered. Every edit
(score, batch score, note, respondent, summary, professional data) keeps the
current status and publishes an updated Child snapshot. ``finalize`` moves a
draft to completed once the lead professional name and role are filled in;
there is no way back.

The manager never talks to storage. Snapshots go to the ``publish`` callable,
which in the application is wired to the sync controller.
"""

import logging
from collections.abc import Callable, Iterable
from datetime import datetime
from uuid import uuid4

from portage.catalog.loader import Catalog
from portage.core.logging import audit_logger
from portage.schemas.catalog import DevelopmentalArea
from portage.schemas.child import (
    Assessment,
    AssessmentStatus,
    Child,
    ResponseItem,
    ScoreValue,
)
from portage.scoring import aggregation, responses
from portage.scoring.aggregation import AreaScore
from portage.scoring.responses import UnknownQuestionError
from portage.services.identity import SessionContext
from portage.utils.time import utc_now

logger = logging.getLogger(__name__)

ChildPublisher = Callable[[Child], None]
ChildLookup = Callable[[str], Child | None]


class LifecycleError(Exception):
    """Base exception for assessment lifecycle errors."""

    pass


class FinalizeRejectedError(LifecycleError):
    """Raised when a draft cannot be moved to completed."""

    pass


class AssessmentAlreadyCompletedError(FinalizeRejectedError):
    """Raised when finalizing an assessment that is already completed."""

    pass


class AssessmentNotFoundError(LifecycleError):
    """Raised when resuming an assessment the child does not own."""

    pass


class ChildRemovedError(LifecycleError):
    """Raised when saving an assessment whose child was deleted."""

    pass


def finalize_assessment(assessment: Assessment) -> Assessment:
    """Move a draft to completed.

    Args:
        assessment: Draft to finalize (mutated)

    Returns:
        The same assessment, now completed

    Raises:
        AssessmentAlreadyCompletedError: If it is already completed
        FinalizeRejectedError: If lead professional name or role is empty
    """
    if assessment.is_completed:
        raise AssessmentAlreadyCompletedError(
            f"Assessment {assessment.id} is already completed"
        )

    missing = []
    if not assessment.lead_professional_name.strip():
        missing.append("lead professional name")
    if not assessment.lead_professional_role.strip():
        missing.append("lead professional role")
    if missing:
        raise FinalizeRejectedError(
            f"Cannot finalize assessment {assessment.id}: missing {', '.join(missing)}"
        )

    assessment.status = AssessmentStatus.COMPLETED
    return assessment


def upsert_assessment(child: Child, assessment: Assessment) -> Child:
    """Return a copy of child with the assessment inserted or replaced by id.

    The embedded assessment is a deep copy, so later edits of the live
    response map do not leak into the snapshot.
    """
    snapshot = assessment.model_copy(deep=True)
    assessments = [a.model_copy(deep=True) for a in child.assessments]

    for index, existing in enumerate(assessments):
        if existing.id == snapshot.id:
            assessments[index] = snapshot
            break
    else:
        assessments.append(snapshot)

    return child.model_copy(update={"assessments": assessments})


class AssessmentSession:
    """Editing session over one assessment of one child.

    Holds the live response map; reads (scores, progress, contributors) are
    recomputed from it on every access.
    """

    def __init__(
        self,
        manager: "AssessmentLifecycleManager",
        child: Child,
        assessment: Assessment,
    ) -> None:
        self._manager = manager
        self.child = child
        self.assessment = assessment

    @property
    def catalog(self) -> Catalog:
        return self._manager.catalog

    @property
    def context(self) -> SessionContext:
        return self._manager.context

    @property
    def responses(self) -> dict[str, ResponseItem]:
        return self.assessment.responses

    @property
    def status(self) -> AssessmentStatus:
        return self.assessment.status

    # Persistence

    def _fill_professional_from_context(self, assessment: Assessment) -> None:
        if not assessment.lead_professional_name.strip() and self.context.has_identity:
            assessment.lead_professional_name = self.context.respondent_name.strip()
        if not assessment.lead_professional_role.strip() and self.context.professional_role:
            assessment.lead_professional_role = self.context.professional_role

    def _stage(self) -> Assessment:
        """Working copy for the next edit; adopted only once it is published."""
        staged = self.assessment.model_copy(deep=True)
        self._fill_professional_from_context(staged)
        return staged

    def _current_child(self) -> Child:
        if not self._manager.has_child_lookup:
            return self.child
        child = self._manager.lookup_child(self.child.id)
        if child is None:
            raise ChildRemovedError(
                f"Child {self.child.id} was removed; assessment {self.assessment.id} "
                "can no longer be saved"
            )
        return child

    def _publish(self, assessment: Assessment) -> Child:
        updated = upsert_assessment(self._current_child(), assessment)
        self._manager.publish(updated)
        self.child = updated
        self.assessment = assessment
        return updated

    def persist(self) -> Child:
        """Publish the current assessment embedded in its child.

        Raises:
            ChildRemovedError: If the child no longer exists
        """
        return self._publish(self._stage())

    def refresh(self, child: Child) -> None:
        """Reload the assessment from a child record (e.g. after a rollback).

        Raises:
            AssessmentNotFoundError: If the child no longer has the assessment
        """
        existing = child.find_assessment(self.assessment.id)
        if existing is None:
            raise AssessmentNotFoundError(
                f"Assessment {self.assessment.id} not found for child {child.id}"
            )
        self.child = child
        self.assessment = existing.model_copy(deep=True)

    # Edits

    def _check_question(self, question_id: str) -> None:
        if self.catalog.get(question_id) is None:
            raise UnknownQuestionError(f"Unknown question id: {question_id}")

    def record_score(
        self,
        question_id: str,
        score: ScoreValue,
        now: datetime | None = None,
    ) -> ResponseItem:
        """Score one item as the session respondent.

        Raises:
            UnknownQuestionError: If the id is not in the catalog
            IdentityMissingError: If no respondent could be identified
        """
        self._check_question(question_id)
        respondent = self.context.resolve_respondent()

        staged = self._stage()
        item = responses.record_score(
            staged.responses,
            question_id,
            score,
            respondent,
            now or self._manager.clock(),
        )
        self._publish(staged)

        audit_logger.log(
            action="assessment.score",
            actor=respondent,
            entity_type="assessment",
            entity_id=self.assessment.id,
            metadata={"question_id": question_id, "score": item.score.value},
        )
        return item

    def record_batch_score(
        self,
        question_ids: Iterable[str],
        score: ScoreValue,
        now: datetime | None = None,
    ) -> dict[str, ResponseItem]:
        """Score several items at once, all or nothing.

        A declined identification aborts the whole batch.
        """
        question_ids = set(question_ids)
        for question_id in question_ids:
            self._check_question(question_id)
        respondent = self.context.resolve_respondent()

        staged = self._stage()
        items = responses.record_batch_score(
            staged.responses,
            question_ids,
            score,
            respondent,
            now or self._manager.clock(),
        )
        self._publish(staged)

        audit_logger.log(
            action="assessment.batch_score",
            actor=respondent,
            entity_type="assessment",
            entity_id=self.assessment.id,
            metadata={"count": len(items), "score": ScoreValue.from_ordinal(score).value},
        )
        return items

    def record_note(self, question_id: str, note: str | None) -> ResponseItem:
        """Attach a note to an item; notes may precede scoring."""
        self._check_question(question_id)
        staged = self._stage()
        item = responses.record_note(
            staged.responses,
            question_id,
            note,
            respondent_name=self.context.respondent_name,
        )
        self._publish(staged)
        return item

    def set_respondent(self, question_id: str, respondent_name: str) -> ResponseItem:
        """Reattribute one item without rescoring it."""
        self._check_question(question_id)
        staged = self._stage()
        item = responses.set_respondent(staged.responses, question_id, respondent_name)
        self._publish(staged)
        return item

    def set_summary_notes(self, text: str) -> None:
        """Replace the free-text conclusion."""
        staged = self._stage()
        staged.summary_notes = text
        self._publish(staged)

    def set_professional(self, name: str | None = None, role: str | None = None) -> None:
        """Update the lead professional and the session identity."""
        staged = self._stage()
        if name is not None:
            self.context.set_respondent(name)
            staged.lead_professional_name = name.strip()
        if role is not None:
            self.context.set_role(role)
            staged.lead_professional_role = role.strip()
        self._publish(staged)

    def finalize(self) -> Assessment:
        """Complete the assessment.

        Raises:
            FinalizeRejectedError: If professional identification is missing;
                the status stays draft and nothing is published
        """
        staged = self._stage()
        finalize_assessment(staged)
        self._publish(staged)

        logger.info(
            f"Finalized assessment {staged.id}",
            extra={"child_id": self.child.id, "assessment_id": staged.id},
        )
        audit_logger.log(
            action="assessment.finalize",
            actor=self.assessment.lead_professional_name,
            entity_type="assessment",
            entity_id=self.assessment.id,
            metadata={
                "child_id": self.child.id,
                "answered": aggregation.count_answered(self.catalog, self.responses),
            },
        )
        return self.assessment

    # Derived reads

    @property
    def area_scores(self) -> list[AreaScore]:
        return aggregation.compute_area_scores(self.catalog, self.responses)

    @property
    def global_progress(self) -> float:
        return aggregation.compute_global_progress(self.catalog, self.responses)

    @property
    def contributor_counts(self) -> dict[str, int]:
        return aggregation.compute_contributor_counts(self.responses)

    def area_progress(self, area: DevelopmentalArea) -> float:
        return aggregation.compute_area_progress(self.catalog, self.responses, area)


class AssessmentLifecycleManager:
    """Creates and resumes assessment editing sessions."""

    def __init__(
        self,
        catalog: Catalog,
        publish: ChildPublisher,
        context: SessionContext | None = None,
        child_lookup: ChildLookup | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.catalog = catalog
        self.publish = publish
        self.context = context or SessionContext()
        self._child_lookup = child_lookup
        self.clock = clock

    @property
    def has_child_lookup(self) -> bool:
        return self._child_lookup is not None

    def lookup_child(self, child_id: str) -> Child | None:
        """Freshest copy of a child, when a lookup is wired."""
        if self._child_lookup is None:
            return None
        return self._child_lookup(child_id)

    def start_assessment(
        self,
        child: Child,
        assessment_id: str | None = None,
    ) -> AssessmentSession:
        """Create a draft assessment and persist it right away."""
        assessment = Assessment(
            id=assessment_id or str(uuid4()),
            date=self.clock(),
            lead_professional_name=self.context.respondent_name.strip(),
            lead_professional_role=self.context.professional_role.strip(),
            status=AssessmentStatus.DRAFT,
        )
        session = AssessmentSession(self, child, assessment)
        session.persist()

        logger.info(
            f"Started assessment {assessment.id} for child {child.id}",
            extra={"child_id": child.id, "assessment_id": assessment.id},
        )
        audit_logger.log(
            action="assessment.start",
            actor=self.context.respondent_name or "unidentified",
            entity_type="assessment",
            entity_id=assessment.id,
            metadata={"child_id": child.id},
        )
        return session

    def resume_assessment(self, child: Child, assessment_id: str) -> AssessmentSession:
        """Open an existing assessment for editing.

        Raises:
            AssessmentNotFoundError: If the child has no such assessment
        """
        existing = child.find_assessment(assessment_id)
        if existing is None:
            raise AssessmentNotFoundError(
                f"Assessment {assessment_id} not found for child {child.id}"
            )

        assessment = existing.model_copy(deep=True)
        if not assessment.lead_professional_role and self.context.professional_role:
            assessment.lead_professional_role = self.context.professional_role
        return AssessmentSession(self, child, assessment)

    def open_assessment(
        self,
        child: Child,
        assessment_id: str | None = None,
    ) -> AssessmentSession:
        """Resume when the assessment exists, otherwise start it with that id."""
        if assessment_id and child.find_assessment(assessment_id) is not None:
            return self.resume_assessment(child, assessment_id)
        return self.start_assessment(child, assessment_id)
