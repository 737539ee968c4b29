"""YAML question catalog loader with integrity verification."""

import hashlib
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable

import yaml
from pydantic import ValidationError

from portage.core.config import settings
from portage.schemas.catalog import AREA_LABELS, DevelopmentalArea, Question

# Bundled catalogs directory
CATALOG_DIR = Path(__file__).parent / "data"

# Age filter value meaning "every age band"
ALL_AGES = "all"


class CatalogError(ValueError):
    """Raised when a catalog document is structurally invalid."""

    pass


@dataclass(frozen=True, eq=False)
class Catalog:
    """Immutable question bank.

    ``areas`` fixes the display and aggregation order. An area may be
    declared without questions; it then aggregates to a zero total.
    """

    id: str
    version: str
    questions: tuple[Question, ...]
    areas: tuple[DevelopmentalArea, ...]
    labels: dict[DevelopmentalArea, str] = field(default_factory=dict)
    catalog_hash: str = ""

    def __len__(self) -> int:
        return len(self.questions)

    @classmethod
    def from_questions(
        cls,
        questions: Iterable[Question],
        areas: Iterable[DevelopmentalArea] | None = None,
        labels: dict[DevelopmentalArea, str] | None = None,
        catalog_id: str = "inline",
        version: str = "0",
    ) -> "Catalog":
        """Build a catalog in memory.

        When ``areas`` is omitted the order of first appearance is used.
        """
        questions = tuple(questions)
        if areas is None:
            areas = dict.fromkeys(q.area for q in questions)
        _check_unique_ids(questions)
        return cls(
            id=catalog_id,
            version=version,
            questions=questions,
            areas=tuple(areas),
            labels=dict(labels or {}),
        )

    @property
    def question_ids(self) -> frozenset[str]:
        """All question ids in the catalog."""
        return frozenset(q.id for q in self.questions)

    def get(self, question_id: str) -> Question | None:
        """Look up a question by id."""
        for question in self.questions:
            if question.id == question_id:
                return question
        return None

    def label(self, area: DevelopmentalArea) -> str:
        """Display label for an area."""
        return self.labels.get(area) or AREA_LABELS.get(area, area.value)

    def questions_in_area(self, area: DevelopmentalArea) -> list[Question]:
        """Questions of one area, in catalog order."""
        return [q for q in self.questions if q.area == area]

    def age_ranges(self, area: DevelopmentalArea) -> list[str]:
        """Distinct age band labels of an area, in catalog order."""
        return list(dict.fromkeys(q.age_range_label for q in self.questions_in_area(area)))

    def filter_questions(
        self,
        area: DevelopmentalArea,
        age_range: str = ALL_AGES,
    ) -> list[Question]:
        """Questions of an area, optionally restricted to one age band."""
        questions = self.questions_in_area(area)
        if age_range == ALL_AGES:
            return questions
        return [q for q in questions if q.age_range_label == age_range]


def compute_catalog_hash(content: str) -> str:
    """Compute SHA256 hash of catalog content.

    Recorded alongside reports so the question bank in use can be traced.

    Args:
        content: Raw YAML content string

    Returns:
        SHA256 hex digest
    """
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def _check_unique_ids(questions: tuple[Question, ...]) -> None:
    seen: set[str] = set()
    for question in questions:
        if question.id in seen:
            raise CatalogError(f"Duplicate question id: {question.id}")
        seen.add(question.id)


def parse_catalog(document: dict[str, Any], catalog_hash: str = "") -> Catalog:
    """Build a Catalog from a parsed YAML document.

    Raises:
        CatalogError: If areas or questions are invalid
    """
    if not isinstance(document, dict) or "questions" not in document:
        raise CatalogError("Catalog document must define 'questions'")

    labels: dict[DevelopmentalArea, str] = {}
    areas: list[DevelopmentalArea] = []
    for entry in document.get("areas") or []:
        try:
            area = DevelopmentalArea(entry["id"])
        except (KeyError, TypeError, ValueError) as e:
            raise CatalogError(f"Invalid area entry: {entry!r}") from e
        areas.append(area)
        if entry.get("label"):
            labels[area] = entry["label"]

    try:
        questions = tuple(Question.model_validate(q) for q in document["questions"])
    except ValidationError as e:
        raise CatalogError(f"Invalid question in catalog: {e}") from e

    _check_unique_ids(questions)

    # Questions may reference areas the header did not list
    for question in questions:
        if question.area not in areas:
            areas.append(question.area)

    return Catalog(
        id=str(document.get("id", "unknown")),
        version=str(document.get("version", "unknown")),
        questions=questions,
        areas=tuple(areas),
        labels=labels,
        catalog_hash=catalog_hash,
    )


def load_catalog(filename: str, catalog_dir: Path | None = None) -> Catalog:
    """Load a catalog YAML file and compute its hash.

    Args:
        filename: Name of the catalog file (e.g., "portage-v1.yaml")
        catalog_dir: Directory containing catalogs (defaults to bundled data)

    Returns:
        Parsed Catalog carrying the SHA256 of the file

    Raises:
        FileNotFoundError: If catalog file doesn't exist
        yaml.YAMLError: If YAML is invalid
        CatalogError: If the document is structurally invalid
    """
    if catalog_dir is None:
        catalog_dir = CATALOG_DIR

    filepath = catalog_dir / filename

    if not filepath.exists():
        raise FileNotFoundError(f"Catalog not found: {filepath}")

    content = filepath.read_text(encoding="utf-8")
    return parse_catalog(yaml.safe_load(content), compute_catalog_hash(content))


class CatalogLoader:
    """Stateful catalog loader with caching."""

    def __init__(self, catalog_dir: Path | None = None) -> None:
        self.catalog_dir = catalog_dir or CATALOG_DIR
        self._cache: dict[str, Catalog] = {}

    def load(self, filename: str, use_cache: bool = True) -> Catalog:
        """Load a catalog with optional caching."""
        if use_cache and filename in self._cache:
            return self._cache[filename]

        catalog = load_catalog(filename, self.catalog_dir)
        self._cache[filename] = catalog
        return catalog

    def clear_cache(self) -> None:
        """Clear the catalog cache."""
        self._cache.clear()

    def list_catalogs(self) -> list[str]:
        """List available catalog files."""
        return sorted(f.name for f in self.catalog_dir.glob("*.yaml"))

    def get_catalog_info(self, filename: str) -> dict[str, Any]:
        """Get metadata about a catalog."""
        catalog = self.load(filename)
        return {
            "filename": filename,
            "id": catalog.id,
            "version": catalog.version,
            "questions": len(catalog),
            "areas": [area.value for area in catalog.areas],
            "hash": catalog.catalog_hash,
        }


@lru_cache
def get_default_catalog() -> Catalog:
    """Load the configured catalog once per process."""
    return load_catalog(settings.catalog_file)
