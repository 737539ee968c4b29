"""Tests for catalog YAML loading."""

from pathlib import Path

import pytest
import yaml

from portage.catalog.loader import (
    ALL_AGES,
    CATALOG_DIR,
    Catalog,
    CatalogError,
    CatalogLoader,
    compute_catalog_hash,
    load_catalog,
    parse_catalog,
)
from portage.schemas.catalog import DevelopmentalArea


def test_catalog_directory_exists() -> None:
    """Test that bundled catalog directory exists."""
    assert CATALOG_DIR.exists()
    assert CATALOG_DIR.is_dir()


def test_load_bundled_catalog() -> None:
    """Test loading the bundled Portage catalog."""
    catalog = load_catalog("portage-v1.yaml")

    assert catalog.id == "portage-operacionalizado"
    assert catalog.version == "1.0.0"
    assert len(catalog) == 44
    assert len(catalog.question_ids) == 44
    assert len(catalog.catalog_hash) == 64


def test_catalog_hash_is_deterministic() -> None:
    """Test that the hash only depends on content."""
    content = (CATALOG_DIR / "portage-v1.yaml").read_text(encoding="utf-8")
    assert load_catalog("portage-v1.yaml").catalog_hash == compute_catalog_hash(content)


def test_missing_catalog() -> None:
    with pytest.raises(FileNotFoundError):
        load_catalog("does-not-exist.yaml")


class TestCatalogQueries:
    """Tests for area and age filtering."""

    def test_area_labels(self, catalog: Catalog) -> None:
        assert catalog.label(DevelopmentalArea.SELF_HELP) == "Autocuidados"

    def test_questions_in_area(self, catalog: Catalog) -> None:
        language = catalog.questions_in_area(DevelopmentalArea.LANGUAGE)
        assert language
        assert all(q.area == DevelopmentalArea.LANGUAGE for q in language)

    def test_age_ranges_in_catalog_order(self, catalog: Catalog) -> None:
        ranges = catalog.age_ranges(DevelopmentalArea.MOTOR)
        assert ranges[0] == "0-1"
        assert len(ranges) == len(set(ranges))

    def test_filter_all_ages(self, catalog: Catalog) -> None:
        area = DevelopmentalArea.COGNITION
        assert catalog.filter_questions(area, ALL_AGES) == catalog.questions_in_area(area)

    def test_filter_one_age_band(self, catalog: Catalog) -> None:
        questions = catalog.filter_questions(DevelopmentalArea.MOTOR, "0-1")
        assert questions
        assert all(q.age_range_label == "0-1" for q in questions)

    def test_get_unknown_question(self, catalog: Catalog) -> None:
        assert catalog.get("zzz") is None


class TestParseCatalog:
    """Tests for structural validation."""

    def test_duplicate_ids_rejected(self) -> None:
        document = {
            "questions": [
                {"id": "x", "area": "motor", "ageRangeLabel": "0-1", "description": "a"},
                {"id": "x", "area": "motor", "ageRangeLabel": "0-1", "description": "b"},
            ]
        }
        with pytest.raises(CatalogError):
            parse_catalog(document)

    def test_unknown_area_rejected(self) -> None:
        document = {
            "questions": [
                {"id": "x", "area": "music", "ageRangeLabel": "0-1", "description": "a"},
            ]
        }
        with pytest.raises(CatalogError):
            parse_catalog(document)

    def test_missing_questions_rejected(self) -> None:
        with pytest.raises(CatalogError):
            parse_catalog({"id": "empty"})

    def test_legacy_age_range_key(self) -> None:
        document = {
            "questions": [
                {"id": "x", "area": "motor", "ageRange": "2-3", "description": "a"},
            ]
        }
        assert parse_catalog(document).questions[0].age_range_label == "2-3"

    def test_header_order_then_unlisted_areas(self) -> None:
        document = {
            "areas": [{"id": "language", "label": "Linguagem"}, {"id": "cognition"}],
            "questions": [
                {"id": "m1", "area": "motor", "ageRangeLabel": "0-1", "description": "a"},
                {"id": "l1", "area": "language", "ageRangeLabel": "0-1", "description": "b"},
            ],
        }

        catalog = parse_catalog(document)

        assert catalog.areas == (
            DevelopmentalArea.LANGUAGE,
            DevelopmentalArea.COGNITION,
            DevelopmentalArea.MOTOR,
        )


class TestCatalogLoader:
    """Tests for the caching loader."""

    def test_caches_by_filename(self) -> None:
        loader = CatalogLoader()
        assert loader.load("portage-v1.yaml") is loader.load("portage-v1.yaml")

    def test_clear_cache(self) -> None:
        loader = CatalogLoader()
        first = loader.load("portage-v1.yaml")
        loader.clear_cache()
        assert loader.load("portage-v1.yaml") is not first

    def test_list_and_info(self, tmp_path: Path) -> None:
        document = {
            "id": "mini",
            "version": "2",
            "questions": [
                {"id": "m1", "area": "motor", "ageRangeLabel": "0-1", "description": "a"},
            ],
        }
        (tmp_path / "mini.yaml").write_text(yaml.safe_dump(document), encoding="utf-8")
        loader = CatalogLoader(tmp_path)

        assert loader.list_catalogs() == ["mini.yaml"]
        info = loader.get_catalog_info("mini.yaml")
        assert info["id"] == "mini"
        assert info["questions"] == 1
        assert info["areas"] == ["motor"]
