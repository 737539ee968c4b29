"""Debounced synchronization of the children collection with the remote store.

The controller owns the local collection. ``save`` applies an update locally
right away and arms a quiet-period timer; every ``save`` inside the quiet
period replaces the pending snapshot, so a burst of edits becomes a single
write of the latest state. Writes never overlap: a snapshot whose quiet
period ends while another write is in flight is sent when that write
completes.

States:

    IDLE       nothing waiting, nothing in flight
    PENDING    a snapshot waits for its quiet period to end
    IN_FLIGHT  a write is outstanding (a newer snapshot may be waiting)

A failed write restores the last collection the store acknowledged, drops
the pending snapshot and reports ``SaveFailedError`` (carrying the rejected
collection) to ``on_error``. Until a ``load`` succeeds every ``save`` is
refused with ``NotLoadedError`` and nothing is written.
"""

import asyncio
import logging
from collections.abc import Callable
from enum import Enum

from portage.core.config import settings
from portage.schemas.child import Child, copy_collection
from portage.services.persistence import PersistenceBackend, PersistenceError

logger = logging.getLogger(__name__)


class SyncState(str, Enum):
    """State of the debounced writer."""

    IDLE = "idle"
    PENDING = "pending"
    IN_FLIGHT = "in_flight"


class SyncError(Exception):
    """Base exception for synchronization errors."""

    pass


class LoadFailedError(SyncError):
    """Raised when the collection could not be fetched."""

    pass


class NotLoadedError(SyncError):
    """Raised when saving before a successful load."""

    pass


class SaveFailedError(SyncError):
    """Reported when a write was rejected and local state rolled back.

    ``attempted`` is the local collection that failed to persist, so the
    caller can offer to retry it.
    """

    def __init__(self, message: str, attempted: list[Child]) -> None:
        super().__init__(message)
        self.attempted = attempted


ErrorCallback = Callable[[SyncError], None]
CollectionCallback = Callable[[list[Child]], None]


class SyncController:
    """Single-slot debounced writer over a ``PersistenceBackend``."""

    def __init__(
        self,
        backend: PersistenceBackend,
        debounce_seconds: float | None = None,
        on_error: ErrorCallback | None = None,
        on_rollback: CollectionCallback | None = None,
        on_saved: CollectionCallback | None = None,
    ) -> None:
        self.backend = backend
        self.debounce_seconds = (
            settings.sync_debounce_seconds if debounce_seconds is None else debounce_seconds
        )
        self.on_error = on_error
        self.on_rollback = on_rollback
        self.on_saved = on_saved
        self.last_error: SyncError | None = None

        self._children: list[Child] = []
        # Last collection acknowledged by the store; the rollback target
        self._confirmed: list[Child] = []
        self._loaded = False
        self._pending: list[Child] | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._inflight: asyncio.Task | None = None

    @property
    def state(self) -> SyncState:
        if self._inflight is not None:
            return SyncState.IN_FLIGHT
        if self._pending is not None:
            return SyncState.PENDING
        return SyncState.IDLE

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def children(self) -> list[Child]:
        """Current local collection, including unsaved edits."""
        return list(self._children)

    def get_child(self, child_id: str) -> Child | None:
        for child in self._children:
            if child.id == child_id:
                return child
        return None

    async def load(self) -> list[Child]:
        """Fetch the collection and make it the local and confirmed state.

        A write already in flight is allowed to finish first; a snapshot still
        waiting for its quiet period is discarded, since the fetched collection
        replaces it. On failure the controller is left not loaded and refuses
        saves.

        Raises:
            LoadFailedError: If the store could not be read
        """
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._pending is not None:
            logger.warning("Discarding unsent changes before reload")
            self._pending = None
        await self._drain()

        try:
            children = await self.backend.fetch_children()
        except PersistenceError as e:
            self._loaded = False
            error = LoadFailedError(f"Could not load children: {e}")
            self.last_error = error
            logger.error(str(error))
            raise error from e

        self._children = children
        self._confirmed = copy_collection(children)
        self._loaded = True
        self.last_error = None
        logger.info(f"Loaded {len(children)} children")
        return self.children

    def save(self, children: list[Child]) -> None:
        """Apply a new collection locally and schedule its write.

        Must be called from a running event loop.

        Raises:
            NotLoadedError: If no load has succeeded yet; nothing changes
        """
        if not self._loaded:
            error = NotLoadedError("Children were not loaded; refusing to save")
            self.last_error = error
            raise error

        self._children = list(children)
        self._pending = copy_collection(children)

        if self._timer is not None:
            self._timer.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.debounce_seconds, self._on_quiet_period)

    def retry(self, error: SaveFailedError | None = None) -> None:
        """Save the collection of a failed write again.

        Raises:
            SyncError: If there is no failed write to retry
        """
        error = error or self.last_error
        if not isinstance(error, SaveFailedError):
            raise SyncError("No failed save to retry")
        self.save(error.attempted)

    async def flush(self) -> None:
        """Send the pending snapshot now and wait until idle.

        Raises:
            SaveFailedError: If a write failed while flushing
        """
        previous_error = self.last_error

        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
            if self._inflight is None:
                self._start_write()

        await self._drain()

        if self.last_error is not previous_error and isinstance(
            self.last_error, SaveFailedError
        ):
            raise self.last_error

    async def aclose(self) -> None:
        """Flush outstanding edits and close the backend."""
        try:
            await self.flush()
        finally:
            await self.backend.aclose()

    # Internals

    async def _drain(self) -> None:
        while self._inflight is not None:
            await asyncio.wait({self._inflight})

    def _on_quiet_period(self) -> None:
        self._timer = None
        # A write in flight sends the pending snapshot when it completes
        if self._inflight is None:
            self._start_write()

    def _start_write(self) -> None:
        snapshot = self._pending
        self._pending = None
        if snapshot is None:
            return
        loop = asyncio.get_running_loop()
        self._inflight = loop.create_task(self._write(snapshot))

    async def _write(self, snapshot: list[Child]) -> None:
        try:
            await self.backend.replace_children(snapshot)
        except PersistenceError as e:
            self._inflight = None
            self._rollback(e)
            return
        except Exception as e:
            logger.exception("Unexpected error while saving children")
            self._inflight = None
            self._rollback(e)
            return

        self._inflight = None
        self._confirmed = snapshot
        logger.debug(f"Saved {len(snapshot)} children")
        if self.on_saved is not None:
            self.on_saved(copy_collection(snapshot))

        if self._pending is not None and self._timer is None:
            self._start_write()

    def _rollback(self, cause: Exception) -> None:
        attempted = copy_collection(self._children)

        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._pending = None
        self._children = copy_collection(self._confirmed)

        error = SaveFailedError(f"Could not save children: {cause}", attempted=attempted)
        self.last_error = error
        logger.warning(f"{error}; restored last saved state")

        if self.on_rollback is not None:
            self.on_rollback(self.children)
        if self.on_error is not None:
            self.on_error(error)
