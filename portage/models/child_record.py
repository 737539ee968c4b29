"""Stored child documents."""

from typing import Any

from sqlalchemy import JSON, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from portage.db.base import Base, TimestampMixin


class ChildRecord(Base, TimestampMixin):
    """One child of the collection, stored as its wire document.

    ``position`` keeps the collection order across a whole replace.
    """

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    def __repr__(self) -> str:
        return f"<ChildRecord(id={self.id}, position={self.position})>"
