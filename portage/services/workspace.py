"""Client-side wiring of the assessment engine.

A ``Workspace`` connects the pieces an editing client needs: the sync
controller over a persistence backend, the child registry on top of it, the
session identity, and the lifecycle manager publishing snapshots into the
registry. Open editing sessions follow the collection: they are refreshed
after a reload or a rolled-back save and closed when their child or
assessment is gone.
"""

import logging
from collections.abc import Callable
from pathlib import Path

from portage.catalog.loader import Catalog, get_default_catalog
from portage.core.config import settings
from portage.schemas.child import Child
from portage.services.identity import (
    IdentityProvider,
    JsonFilePreferenceStore,
    PreferenceStore,
    SessionContext,
)
from portage.services.lifecycle import (
    AssessmentLifecycleManager,
    AssessmentNotFoundError,
    AssessmentSession,
)
from portage.services.narrative import NarrativeGenerator, ReportView
from portage.services.persistence import HttpPersistenceBackend, PersistenceBackend
from portage.services.registry import ChildRegistry
from portage.services.sync import SyncController, SyncError

logger = logging.getLogger(__name__)


class Workspace:
    """Everything one client session edits through."""

    def __init__(
        self,
        backend: PersistenceBackend | None = None,
        catalog: Catalog | None = None,
        identity_provider: IdentityProvider | None = None,
        preferences: PreferenceStore | None = None,
        debounce_seconds: float | None = None,
        on_error: Callable[[SyncError], None] | None = None,
    ) -> None:
        self.catalog = catalog or get_default_catalog()
        self.context = SessionContext(
            identity_provider=identity_provider,
            preferences=preferences or JsonFilePreferenceStore(Path(settings.preferences_file)),
        )
        self.sync = SyncController(
            backend or HttpPersistenceBackend(),
            debounce_seconds=debounce_seconds,
            on_error=on_error,
            on_rollback=self._on_rollback,
        )
        self.registry = ChildRegistry(self.sync)
        self.lifecycle = AssessmentLifecycleManager(
            self.catalog,
            publish=self.registry.upsert_child,
            context=self.context,
            child_lookup=self.registry.get_child,
        )
        self.sessions: list[AssessmentSession] = []

    async def load(self) -> list[Child]:
        children = await self.sync.load()
        self._reconcile_sessions(children, reason="reload")
        return children

    def open_assessment(self, child_id: str, assessment_id: str | None = None) -> AssessmentSession:
        """Start or resume an assessment of a registered child."""
        child = self.registry.require_child(child_id)
        session = self.lifecycle.open_assessment(child, assessment_id)
        self.sessions.append(session)
        return session

    def close_session(self, session: AssessmentSession) -> None:
        if session in self.sessions:
            self.sessions.remove(session)

    def delete_child(self, child_id: str) -> Child:
        """Delete a child and close the sessions editing its assessments.

        Raises:
            ChildNotFoundError: If the child is unknown
        """
        removed = self.registry.delete_child(child_id)
        for session in list(self.sessions):
            if session.child.id == child_id:
                self.sessions.remove(session)
        return removed

    def report_view(
        self,
        generator: NarrativeGenerator,
        child_id: str,
        assessment_id: str,
    ) -> ReportView:
        """Report screen for one assessment.

        Raises:
            ChildNotFoundError: If the child is unknown
            AssessmentNotFoundError: If the child has no such assessment
        """
        child = self.registry.require_child(child_id)
        assessment = child.find_assessment(assessment_id)
        if assessment is None:
            raise AssessmentNotFoundError(
                f"Assessment {assessment_id} not found for child {child_id}"
            )
        return ReportView(generator, self.catalog, child, assessment)

    async def aclose(self) -> None:
        await self.sync.aclose()

    def _on_rollback(self, children: list[Child]) -> None:
        self._reconcile_sessions(children, reason="rollback")

    def _reconcile_sessions(self, children: list[Child], reason: str) -> None:
        by_id = {child.id: child for child in children}
        for session in list(self.sessions):
            child = by_id.get(session.child.id)
            if child is None or child.find_assessment(session.assessment.id) is None:
                logger.warning(
                    f"Closing session for assessment {session.assessment.id}: "
                    f"no longer present after {reason}"
                )
                self.sessions.remove(session)
                continue
            session.refresh(child)
