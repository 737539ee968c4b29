"""Printable assessment report.

``build_report_summary`` gathers everything a report shows into a plain
dict (also served as JSON by the API). ``ReportNoteGenerator`` renders it as
text and ``PDFExporter`` as a PDF document.
"""

from datetime import date, datetime, timezone
from io import BytesIO
from typing import Any
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import (
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from portage.catalog.loader import Catalog
from portage.schemas.child import Assessment, Child
from portage.scoring.aggregation import (
    compute_area_scores,
    compute_contributor_counts,
    compute_global_progress,
)
from portage.utils.time import describe_age, format_display_date

STATUS_LABELS = {
    "draft": "Rascunho",
    "completed": "Concluída",
}

GENDER_LABELS = {
    "M": "Masculino",
    "F": "Feminino",
    "Other": "Outro",
}


def build_report_summary(
    catalog: Catalog,
    child: Child,
    assessment: Assessment,
    narrative: str | None = None,
    today: date | None = None,
) -> dict[str, Any]:
    """Collect the derived figures and identifying data of a report.

    Area scores and progress are recomputed from the responses.
    """
    today = today or date.today()
    area_scores = compute_area_scores(catalog, assessment.responses)

    return {
        "child": {
            "id": child.id,
            "name": child.name,
            "birth_date": child.birth_date.isoformat(),
            "age": describe_age(child.birth_date, today),
            "gender": child.gender.value,
            "guardian_name": child.guardian_name,
            "condition": child.condition,
            "clinical_history": child.clinical_history,
        },
        "assessment": {
            "id": assessment.id,
            "date": assessment.date.isoformat(),
            "status": assessment.status.value,
            "lead_professional_name": assessment.lead_professional_name,
            "lead_professional_role": assessment.lead_professional_role,
            "summary_notes": assessment.summary_notes,
        },
        "catalog": {"id": catalog.id, "version": catalog.version},
        "area_scores": [s.to_dict() for s in area_scores],
        "global_progress": compute_global_progress(catalog, assessment.responses),
        "contributors": compute_contributor_counts(assessment.responses),
        "narrative": narrative,
    }


def _display_date(value: str | None) -> str:
    if not value:
        return "Não registrada"
    try:
        return format_display_date(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError:
        return value


class ReportNoteGenerator:
    """Generates the plain-text report."""

    def __init__(self, summary: dict[str, Any]) -> None:
        self.child = summary.get("child", {})
        self.assessment = summary.get("assessment", {})
        self.area_scores = summary.get("area_scores", [])
        self.global_progress = summary.get("global_progress", 0.0)
        self.contributors = summary.get("contributors", {})
        self.narrative = summary.get("narrative")

    def generate_note(self) -> str:
        """Render all sections separated by blank lines."""
        sections = [
            self._header_section(),
            self._child_section(),
            self._scores_section(),
            self._team_section(),
            self._conclusion_section(),
            self._narrative_section(),
        ]
        return "\n\n".join(s for s in sections if s)

    def _header_section(self) -> str:
        status = STATUS_LABELS.get(self.assessment.get("status", ""), "")
        return f"""RELATÓRIO DE AVALIAÇÃO - INVENTÁRIO PORTAGE
{'=' * 50}
Data da avaliação: {_display_date(self.assessment.get('date'))}
Situação: {status}"""

    def _child_section(self) -> str:
        gender = GENDER_LABELS.get(self.child.get("gender", ""), "")
        return f"""DADOS DA CRIANÇA
{'-' * 30}
Nome: {self.child.get('name', '')}
Idade: {self.child.get('age', '')}
Sexo: {gender}
Responsável: {self.child.get('guardian_name') or 'Não informado'}
Condição: {self.child.get('condition') or 'Não especificado'}"""

    def _scores_section(self) -> str:
        lines = ["RESULTADOS POR ÁREA", "-" * 30]
        for area in self.area_scores:
            lines.append(
                f"{area['label']}: {area['percentage']:.1f}% "
                f"({area['score']:g}/{area['total']})"
            )
        lines.append(f"\nProgresso global: {self.global_progress:.1f}%")
        return "\n".join(lines)

    def _team_section(self) -> str:
        lines = ["EQUIPE", "-" * 30]
        name = self.assessment.get("lead_professional_name") or "Não identificado"
        role = self.assessment.get("lead_professional_role")
        lines.append(f"Responsável técnico: {name}" + (f" ({role})" if role else ""))
        for respondent, count in sorted(self.contributors.items()):
            lines.append(f"  {respondent}: {count} itens")
        return "\n".join(lines)

    def _conclusion_section(self) -> str:
        notes = (self.assessment.get("summary_notes") or "").strip()
        if not notes:
            return ""
        return f"CONCLUSÃO\n{'-' * 30}\n{notes}"

    def _narrative_section(self) -> str:
        if not self.narrative:
            return ""
        return f"ANÁLISE\n{'-' * 30}\n{self.narrative}"


class PDFExporter:
    """Exports assessment reports to PDF format."""

    def __init__(self) -> None:
        self.styles = getSampleStyleSheet()
        self._setup_styles()

    def _setup_styles(self) -> None:
        """Setup custom paragraph styles."""
        self.styles.add(ParagraphStyle(
            name="ReportHeader",
            parent=self.styles["Heading1"],
            fontSize=16,
            spaceAfter=12,
        ))
        self.styles.add(ParagraphStyle(
            name="SectionHeader",
            parent=self.styles["Heading2"],
            fontSize=12,
            spaceAfter=8,
            textColor=colors.darkblue,
        ))
        self.styles.add(ParagraphStyle(
            name="ReportBody",
            parent=self.styles["Normal"],
            fontSize=10,
            spaceAfter=6,
        ))
        self.styles.add(ParagraphStyle(
            name="Footer",
            parent=self.styles["Normal"],
            fontSize=8,
            textColor=colors.grey,
        ))

    def _paragraphs(self, text: str) -> list[Paragraph]:
        return [
            Paragraph(escape(block).replace("\n", "<br/>"), self.styles["ReportBody"])
            for block in text.split("\n\n")
            if block.strip()
        ]

    def generate_pdf(self, summary: dict[str, Any]) -> bytes:
        """Render a report summary to PDF bytes."""
        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            leftMargin=20 * mm,
            rightMargin=20 * mm,
            topMargin=20 * mm,
            bottomMargin=20 * mm,
        )

        story = []
        child = summary.get("child", {})
        assessment = summary.get("assessment", {})
        area_scores = summary.get("area_scores", [])

        story.append(Paragraph("RELATÓRIO DE AVALIAÇÃO - INVENTÁRIO PORTAGE", self.styles["ReportHeader"]))
        story.append(Spacer(1, 5 * mm))

        child_data = [
            ["Nome:", child.get("name", "")],
            ["Idade:", child.get("age", "")],
            ["Responsável:", child.get("guardian_name") or "Não informado"],
            ["Condição:", child.get("condition") or "Não especificado"],
            ["Data:", _display_date(assessment.get("date"))],
            ["Situação:", STATUS_LABELS.get(assessment.get("status", ""), "")],
        ]
        child_table = Table(child_data, colWidths=[90, 290])
        child_table.setStyle(TableStyle([
            ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 10),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ]))
        story.append(child_table)
        story.append(Spacer(1, 8 * mm))

        story.append(Paragraph("RESULTADOS POR ÁREA", self.styles["SectionHeader"]))
        score_data = [["Área", "Pontos", "%"]]
        for area in area_scores:
            score_data.append([
                area["label"],
                f"{area['score']:g}/{area['total']}",
                f"{area['percentage']:.1f}%",
            ])
        score_table = Table(score_data, colWidths=[180, 80, 80])
        score_table.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 10),
            ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
            ("ALIGN", (1, 0), (-1, -1), "CENTER"),
        ]))
        story.append(score_table)
        story.append(Paragraph(
            f"Progresso global: {summary.get('global_progress', 0.0):.1f}%",
            self.styles["ReportBody"],
        ))
        story.append(Spacer(1, 6 * mm))

        story.append(Paragraph("EQUIPE", self.styles["SectionHeader"]))
        lead = assessment.get("lead_professional_name") or "Não identificado"
        role = assessment.get("lead_professional_role")
        story.append(Paragraph(
            escape(f"Responsável técnico: {lead}" + (f" ({role})" if role else "")),
            self.styles["ReportBody"],
        ))
        for respondent, count in sorted(summary.get("contributors", {}).items()):
            story.append(Paragraph(escape(f"• {respondent}: {count} itens"), self.styles["ReportBody"]))
        story.append(Spacer(1, 6 * mm))

        notes = (assessment.get("summary_notes") or "").strip()
        if notes:
            story.append(Paragraph("CONCLUSÃO", self.styles["SectionHeader"]))
            story.extend(self._paragraphs(notes))
            story.append(Spacer(1, 6 * mm))

        narrative = summary.get("narrative")
        if narrative:
            story.append(Paragraph("ANÁLISE", self.styles["SectionHeader"]))
            story.extend(self._paragraphs(narrative))

        story.append(Spacer(1, 10 * mm))
        catalog = summary.get("catalog", {})
        story.append(Paragraph(
            f"Inventário: {catalog.get('id', '')} v{catalog.get('version', '')} | "
            f"Gerado em: {datetime.now(timezone.utc).strftime('%d/%m/%Y %H:%M UTC')}",
            self.styles["Footer"],
        ))

        doc.build(story)

        return buffer.getvalue()
