"""Client side of the remote children store.

The remote store exposes exactly two operations over the whole collection:
fetch it and replace it. ``PersistenceBackend`` is the seam the sync
controller depends on; ``HttpPersistenceBackend`` talks to the persistence
service with httpx, ``InMemoryPersistenceBackend`` keeps the wire document in
process memory.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx
from pydantic import ValidationError

from portage.core.config import settings
from portage.schemas.child import Child, dump_collection, parse_collection

logger = logging.getLogger(__name__)

CHILDREN_PATH = "/api/v1/children"


class PersistenceError(Exception):
    """Raised when the remote store cannot be read or written."""

    pass


class PersistenceBackend(ABC):
    """Abstract whole-collection store."""

    @abstractmethod
    async def fetch_children(self) -> list[Child]:
        """Read the full collection.

        Raises:
            PersistenceError: On transport failure or an invalid document
        """
        pass

    @abstractmethod
    async def replace_children(self, children: list[Child]) -> None:
        """Replace the full collection.

        Raises:
            PersistenceError: If the store did not acknowledge the write
        """
        pass

    async def aclose(self) -> None:
        """Release transport resources."""
        return None


class HttpPersistenceBackend(PersistenceBackend):
    """Persistence over the HTTP children service."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
        path: str = CHILDREN_PATH,
    ) -> None:
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.path = path
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout if timeout is not None else settings.api_timeout_seconds,
        )

    async def fetch_children(self) -> list[Child]:
        try:
            response = await self._client.get(self.path)
            response.raise_for_status()
            document = response.json()
        except httpx.HTTPError as e:
            raise PersistenceError(f"Failed to fetch children: {e}") from e
        except ValueError as e:
            raise PersistenceError(f"Children document is not valid JSON: {e}") from e

        try:
            children = parse_collection(document)
        except ValidationError as e:
            raise PersistenceError(f"Children document is invalid: {e}") from e

        logger.debug(f"Fetched {len(children)} children from {self.base_url}")
        return children

    async def replace_children(self, children: list[Child]) -> None:
        try:
            response = await self._client.put(self.path, json=dump_collection(children))
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise PersistenceError(f"Failed to save children: {e}") from e

        logger.debug(f"Saved {len(children)} children to {self.base_url}")

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class InMemoryPersistenceBackend(PersistenceBackend):
    """Backend holding the wire document in memory.

    Documents go through the same serialization as the HTTP backend, so
    what is read back is exactly what a remote store would return.
    ``fail_fetches`` and ``fail_writes`` make the next N calls fail.
    """

    def __init__(self, document: list[dict[str, Any]] | None = None) -> None:
        self.document: list[dict[str, Any]] = list(document or [])
        self.writes: list[list[dict[str, Any]]] = []
        self.fetch_count = 0
        self.fail_fetches = 0
        self.fail_writes = 0

    @classmethod
    def with_children(cls, children: list[Child]) -> "InMemoryPersistenceBackend":
        return cls(dump_collection(children))

    async def fetch_children(self) -> list[Child]:
        self.fetch_count += 1
        if self.fail_fetches:
            self.fail_fetches -= 1
            raise PersistenceError("Simulated fetch failure")
        return parse_collection(self.document)

    async def replace_children(self, children: list[Child]) -> None:
        document = dump_collection(children)
        self.writes.append(document)
        if self.fail_writes:
            self.fail_writes -= 1
            raise PersistenceError("Simulated write failure")
        self.document = document
