"""Tests for the printable report."""

from datetime import date

import pytest

from portage.catalog.loader import Catalog
from portage.schemas.child import Child
from portage.services.report_note import PDFExporter, ReportNoteGenerator, build_report_summary


@pytest.fixture
def summary(completed_child: Child, small_catalog: Catalog) -> dict:
    return build_report_summary(
        small_catalog,
        completed_child,
        completed_child.assessments[0],
        narrative="**Perfil Geral**: desenvolvimento <adequado> & estável",
        today=date(2024, 3, 15),
    )


class TestReportSummary:
    """Tests for the derived report figures."""

    def test_summary_figures(self, summary: dict) -> None:
        assert summary["child"]["age"] == "3 anos e 2 meses"
        assert [a["percentage"] for a in summary["area_scores"]] == [75, 0]
        assert summary["global_progress"] == 100
        assert summary["contributors"] == {"Dra. Carla": 2, "João TO": 1}
        assert summary["assessment"]["status"] == "completed"


class TestReportNoteGenerator:
    """Tests for the plain-text report."""

    def test_sections(self, summary: dict) -> None:
        note = ReportNoteGenerator(summary).generate_note()

        assert "RELATÓRIO DE AVALIAÇÃO - INVENTÁRIO PORTAGE" in note
        assert "Data da avaliação: 15/03/2024" in note
        assert "Linguagem: 75.0% (1.5/2)" in note
        assert "Progresso global: 100.0%" in note
        assert "Responsável técnico: Dra. Carla (Fonoaudióloga)" in note
        assert "João TO: 1 itens" in note
        assert "Evolução positiva." in note
        assert "ANÁLISE" in note

    def test_optional_sections_omitted(self, summary: dict) -> None:
        summary["narrative"] = None
        summary["assessment"]["summary_notes"] = ""

        note = ReportNoteGenerator(summary).generate_note()

        assert "ANÁLISE" not in note
        assert "CONCLUSÃO" not in note


class TestPDFExporter:
    """Tests for PDF rendering."""

    def test_generates_pdf_bytes(self, summary: dict) -> None:
        pdf = PDFExporter().generate_pdf(summary)

        assert pdf.startswith(b"%PDF")
        assert len(pdf) > 1000

    def test_handles_empty_sections(self, summary: dict) -> None:
        summary["narrative"] = None
        summary["area_scores"] = []
        summary["contributors"] = {}

        assert PDFExporter().generate_pdf(summary).startswith(b"%PDF")
