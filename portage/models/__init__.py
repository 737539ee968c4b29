"""SQLAlchemy models."""

from portage.models.child_record import ChildRecord

__all__ = ["ChildRecord"]
