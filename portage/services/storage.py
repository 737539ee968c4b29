"""Server-side storage of the children collection.

The collection is always read and replaced as a whole. Two backends:
a SQL table with one row per child, and a single JSON file.
"""

import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path

from pydantic import ValidationError
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from portage.models.child_record import ChildRecord
from portage.schemas.child import Child, dump_collection, parse_collection

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Base exception for storage errors."""

    pass


class ChildrenStore(ABC):
    """Abstract whole-collection store."""

    @abstractmethod
    async def load(self) -> list[Child]:
        """Return the stored collection (empty when nothing was stored).

        Raises:
            StorageError: If the stored data cannot be read
        """
        pass

    @abstractmethod
    async def replace(self, children: list[Child]) -> None:
        """Replace the stored collection atomically.

        Raises:
            StorageError: If the write failed; the previous data is kept
        """
        pass

    async def find_child(self, child_id: str) -> Child | None:
        for child in await self.load():
            if child.id == child_id:
                return child
        return None


class SqlChildrenStore(ChildrenStore):
    """Collection stored in the ``child_record`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def load(self) -> list[Child]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(
                    select(ChildRecord).order_by(ChildRecord.position)
                )
                documents = [record.payload for record in result.scalars().all()]
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read children: {e}") from e

        try:
            return parse_collection(documents)
        except ValidationError as e:
            raise StorageError(f"Stored children are invalid: {e}") from e

    async def replace(self, children: list[Child]) -> None:
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    await session.execute(delete(ChildRecord))
                    session.add_all(
                        ChildRecord(id=child.id, position=index, payload=child.to_wire())
                        for index, child in enumerate(children)
                    )
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to save children: {e}") from e

        logger.info(f"Stored {len(children)} children")


class JsonFileChildrenStore(ChildrenStore):
    """Collection stored as one JSON document on disk.

    A missing file is created holding an empty collection. Writes go to a
    temporary file that replaces the document, so readers never see a
    partial write.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def _ensure_file(self) -> None:
        if not self.path.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text("[]", encoding="utf-8")

    async def load(self) -> list[Child]:
        try:
            self._ensure_file()
            document = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read {self.path}: {e}") from e

        try:
            return parse_collection(document)
        except ValidationError as e:
            raise StorageError(f"Stored children are invalid: {e}") from e

    async def replace(self, children: list[Child]) -> None:
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        content = json.dumps(dump_collection(children), ensure_ascii=False, indent=2)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(content, encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StorageError(f"Failed to write {self.path}: {e}") from e

        logger.info(f"Stored {len(children)} children in {self.path}")
