"""Child registry over the synchronized collection.

Every mutation builds a new collection and hands it to the sync controller,
so the registry has no state of its own.
"""

import logging
from datetime import date
from uuid import uuid4

from portage.core.logging import audit_logger
from portage.schemas.child import Assessment, Child, Gender
from portage.services.sync import SyncController

logger = logging.getLogger(__name__)

# Fields edited from the registration form; assessments are never touched
DEMOGRAPHIC_FIELDS = frozenset(
    {"name", "birth_date", "gender", "guardian_name", "condition"}
)


class RegistryError(Exception):
    """Base exception for registry errors."""

    pass


class ChildNotFoundError(RegistryError):
    """Raised when a child id is not in the collection."""

    pass


class DuplicateChildError(RegistryError):
    """Raised when adding a child whose id already exists."""

    pass


class ChildRegistry:
    """Create, edit, search and delete children."""

    def __init__(self, sync: SyncController, actor: str = "system") -> None:
        self.sync = sync
        self.actor = actor

    @property
    def children(self) -> list[Child]:
        return self.sync.children

    def get_child(self, child_id: str) -> Child | None:
        return self.sync.get_child(child_id)

    def require_child(self, child_id: str) -> Child:
        """Return a child or raise ChildNotFoundError."""
        child = self.get_child(child_id)
        if child is None:
            raise ChildNotFoundError(f"Child not found: {child_id}")
        return child

    def search(self, term: str) -> list[Child]:
        """Children whose name contains the term, ignoring case."""
        needle = term.strip().lower()
        return [c for c in self.children if needle in c.name.lower()]

    def register_child(
        self,
        name: str,
        birth_date: date,
        gender: Gender = Gender.OTHER,
        guardian_name: str = "",
        condition: str = "None",
    ) -> Child:
        """Create a new child with a generated id and no assessments."""
        child = Child(
            id=str(uuid4()),
            name=name,
            birth_date=birth_date,
            gender=gender,
            guardian_name=guardian_name,
            condition=condition,
        )
        return self.add_child(child)

    def add_child(self, child: Child) -> Child:
        """Append a child to the collection.

        Raises:
            DuplicateChildError: If the id is already taken
        """
        if self.get_child(child.id) is not None:
            raise DuplicateChildError(f"Child already exists: {child.id}")

        self.sync.save([*self.children, child])
        logger.info(f"Registered child {child.id}", extra={"child_id": child.id})
        audit_logger.log(
            action="child.create",
            actor=self.actor,
            entity_type="child",
            entity_id=child.id,
        )
        return child

    def update_child(self, child: Child) -> Child:
        """Replace a child by id.

        Raises:
            ChildNotFoundError: If the id is unknown
        """
        self.require_child(child.id)
        self.sync.save([child if c.id == child.id else c for c in self.children])
        return child

    def update_demographics(self, child_id: str, **fields) -> Child:
        """Edit registration data, keeping history and assessments.

        Raises:
            ChildNotFoundError: If the id is unknown
            ValueError: If a field is not a registration field
        """
        unknown = set(fields) - DEMOGRAPHIC_FIELDS
        if unknown:
            raise ValueError(f"Not editable from registration: {', '.join(sorted(unknown))}")

        current = self.require_child(child_id)
        updated = Child.model_validate({**current.model_dump(), **fields})
        return self.update_child(updated)

    def update_clinical_history(self, child_id: str, text: str) -> Child:
        """Replace the free-text clinical history of a child."""
        current = self.require_child(child_id)
        return self.update_child(current.model_copy(update={"clinical_history": text}))

    def upsert_child(self, child: Child) -> Child:
        """Replace a child by id or append it when new."""
        if self.get_child(child.id) is None:
            self.sync.save([*self.children, child])
            return child
        return self.update_child(child)

    def delete_child(self, child_id: str) -> Child:
        """Remove a child together with all of its assessments.

        Raises:
            ChildNotFoundError: If the id is unknown
        """
        child = self.require_child(child_id)
        self.sync.save([c for c in self.children if c.id != child_id])

        logger.info(
            f"Deleted child {child_id} with {len(child.assessments)} assessments",
            extra={"child_id": child_id},
        )
        audit_logger.log(
            action="child.delete",
            actor=self.actor,
            entity_type="child",
            entity_id=child_id,
            metadata={"assessments": len(child.assessments)},
        )
        return child

    def assessment_history(self, child_id: str) -> list[Assessment]:
        """Assessments of a child, most recent first."""
        child = self.require_child(child_id)
        return sorted(child.assessments, key=lambda a: a.date, reverse=True)

    def completed_assessments(self, child_id: str) -> list[Assessment]:
        """Completed assessments of a child, most recent first."""
        return [a for a in self.assessment_history(child_id) if a.is_completed]
