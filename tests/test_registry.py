"""Tests for the child registry."""

from collections.abc import Callable
from datetime import date, datetime, timedelta

import pytest

from portage.schemas.child import Assessment, AssessmentStatus, Child, Gender
from portage.services.persistence import InMemoryPersistenceBackend
from portage.services.registry import ChildNotFoundError, ChildRegistry, DuplicateChildError
from portage.services.sync import SyncController


@pytest.fixture
async def registry(backend: InMemoryPersistenceBackend) -> ChildRegistry:
    sync = SyncController(backend, debounce_seconds=10)
    await sync.load()
    return ChildRegistry(sync)


class TestRegistration:
    """Tests for adding and editing children."""

    @pytest.mark.asyncio
    async def test_register_child(self, registry: ChildRegistry, backend: InMemoryPersistenceBackend) -> None:
        child = registry.register_child("Pedro Lima", date(2020, 5, 2), Gender.MALE, "Rita Lima")

        assert child.id
        assert child.assessments == []
        assert child.clinical_history == ""
        assert registry.get_child(child.id) == child

        await registry.sync.flush()
        assert backend.document[0]["name"] == "Pedro Lima"

    @pytest.mark.asyncio
    async def test_duplicate_id_rejected(self, registry: ChildRegistry, make_child: Callable[..., Child]) -> None:
        registry.add_child(make_child())
        with pytest.raises(DuplicateChildError):
            registry.add_child(make_child())
        assert len(registry.children) == 1

    @pytest.mark.asyncio
    async def test_update_demographics_keeps_assessments(
        self, registry: ChildRegistry, completed_child: Child
    ) -> None:
        registry.add_child(completed_child)

        updated = registry.update_demographics(completed_child.id, name="Ana S. Lima", condition="TEA")

        assert updated.name == "Ana S. Lima"
        assert updated.condition == "TEA"
        assert updated.clinical_history == "Prematuro"
        assert [a.id for a in updated.assessments] == ["assess-1"]

    @pytest.mark.asyncio
    async def test_update_demographics_rejects_other_fields(
        self, registry: ChildRegistry, make_child: Callable[..., Child]
    ) -> None:
        registry.add_child(make_child())
        with pytest.raises(ValueError):
            registry.update_demographics("child-1", assessments=[])

    @pytest.mark.asyncio
    async def test_update_clinical_history(self, registry: ChildRegistry, make_child: Callable[..., Child]) -> None:
        registry.add_child(make_child())

        registry.update_clinical_history("child-1", "Parto a termo, sem intercorrências.")

        assert registry.get_child("child-1").clinical_history == "Parto a termo, sem intercorrências."

    @pytest.mark.asyncio
    async def test_update_unknown_child(self, registry: ChildRegistry, make_child: Callable[..., Child]) -> None:
        with pytest.raises(ChildNotFoundError):
            registry.update_child(make_child("ghost"))


class TestDeleteAndSearch:
    """Tests for deletion and lookup."""

    @pytest.mark.asyncio
    async def test_delete_cascades_assessments(
        self, registry: ChildRegistry, completed_child: Child, make_child: Callable[..., Child], backend: InMemoryPersistenceBackend
    ) -> None:
        registry.add_child(completed_child)
        registry.add_child(make_child("child-2", name="Bruno"))

        removed = registry.delete_child(completed_child.id)
        await registry.sync.flush()

        assert removed.id == completed_child.id
        assert [c.id for c in registry.children] == ["child-2"]
        assert all(c["id"] != completed_child.id for c in backend.document)

    @pytest.mark.asyncio
    async def test_delete_unknown(self, registry: ChildRegistry) -> None:
        with pytest.raises(ChildNotFoundError):
            registry.delete_child("ghost")

    @pytest.mark.asyncio
    async def test_search_is_case_insensitive(self, registry: ChildRegistry, make_child: Callable[..., Child]) -> None:
        registry.add_child(make_child("c1", name="Ana Souza"))
        registry.add_child(make_child("c2", name="Bruno Ananias"))
        registry.add_child(make_child("c3", name="Carlos"))

        assert [c.id for c in registry.search("ANA")] == ["c1", "c2"]
        assert len(registry.search("")) == 3


class TestHistory:
    """Tests for assessment history ordering."""

    @pytest.mark.asyncio
    async def test_history_most_recent_first(
        self, registry: ChildRegistry, make_child: Callable[..., Child], now: datetime
    ) -> None:
        assessments = [
            Assessment(id="old", date=now - timedelta(days=60), status=AssessmentStatus.COMPLETED),
            Assessment(id="new", date=now, status=AssessmentStatus.DRAFT),
            Assessment(id="mid", date=now - timedelta(days=30), status=AssessmentStatus.COMPLETED),
        ]
        registry.add_child(make_child(assessments=assessments))

        assert [a.id for a in registry.assessment_history("child-1")] == ["new", "mid", "old"]
        assert [a.id for a in registry.completed_assessments("child-1")] == ["mid", "old"]
