"""Narrative report generation for completed assessments.

The narrative is best effort: a generator returns either the text or
``NARRATIVE_FAILURE_SENTINEL`` and never raises into scoring or saving.
Prompts are versioned templates; every generation logs the template
version, the model and a hash of the rendered prompt.
"""

import hashlib
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from datetime import date
from typing import Any

import httpx

from portage.catalog.loader import Catalog
from portage.core.config import settings
from portage.schemas.child import Assessment, Child
from portage.scoring.aggregation import (
    AreaScore,
    compute_area_scores,
    compute_global_progress,
    list_contributors,
)
from portage.utils.time import describe_age

logger = logging.getLogger(__name__)

NARRATIVE_FAILURE_SENTINEL = "Não foi possível gerar a análise automática no momento."

# Prompt templates with version tracking
PROMPT_TEMPLATES = {
    "portage_report": {
        "version": "1.0.0",
        "template": """Como um especialista sênior em desenvolvimento infantil e neurodiversidade, analise os resultados do Inventário Portage da criança abaixo:

Nome: {name}
Idade: {age}
Diagnóstico/Condição: {condition}
Histórico: {clinical_history}

{team_line}
{condition_context}

Resultados por Área:
{scores_data}

Por favor, forneça um relatório clínico detalhado seguindo esta estrutura:
1. **Perfil Geral**: Análise do desempenho atual frente à idade cronológica.
2. **Análise por Área**: Destaque o que foi alcançado e o que está em fase de emersão.
3. **Adaptações Específicas**: Como o diagnóstico influencia estes resultados? Que adaptações são necessárias?
4. **Plano de Estimulação**: 5 atividades práticas e lúdicas focando nas áreas de maior defasagem.

Responda em Português formatado em Markdown rico. Use negrito para dar ênfase.""",
    },
}


def compute_hash(content: str) -> str:
    """Compute SHA-256 hash."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def format_area_line(area_score: AreaScore) -> str:
    """One result line, e.g. ``Linguagem: 62.5% (5/8)``."""
    return (
        f"{area_score.label}: {area_score.percentage:.1f}% "
        f"({area_score.score:g}/{area_score.total})"
    )


def build_report_prompt(
    child: Child,
    area_scores: Iterable[AreaScore],
    contributors: Iterable[str],
    today: date | None = None,
) -> str:
    """Render the report prompt for a child and its area results."""
    template = PROMPT_TEMPLATES["portage_report"]["template"]
    contributors = list(contributors)

    team_line = ""
    if contributors:
        team_line = f"Equipe multiprofissional envolvida: {', '.join(contributors)}."

    condition_context = ""
    if child.has_condition:
        condition_context = (
            f"A criança possui o diagnóstico de: {child.condition}. "
            "Adapte suas sugestões e análise considerando as características "
            "típicas desta condição (ex: hipotonia muscular, atrasos na fala, "
            "ou forças específicas)."
        )

    return template.format(
        name=child.name,
        age=describe_age(child.birth_date, today or date.today()),
        condition=child.condition.strip() or "Não especificado",
        clinical_history=child.clinical_history,
        team_line=team_line,
        condition_context=condition_context,
        scores_data="\n".join(format_area_line(s) for s in area_scores),
    )


class NarrativeGenerator(ABC):
    """Produces the narrative section of a report."""

    @abstractmethod
    async def generate(
        self,
        child: Child,
        area_scores: list[AreaScore],
        contributors: list[str],
    ) -> str:
        """Return the narrative text or ``NARRATIVE_FAILURE_SENTINEL``."""
        pass


class GeminiNarrativeGenerator(NarrativeGenerator):
    """Narrative generator backed by the Gemini generateContent REST API."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.api_key = api_key or settings.gemini_api_key
        self.model = model or settings.gemini_model
        self.base_url = (base_url or settings.gemini_base_url).rstrip("/")
        self.prompt_version = PROMPT_TEMPLATES["portage_report"]["version"]
        self.today = today
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout if timeout is not None else settings.gemini_timeout_seconds
        )

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/{self.model}:generateContent"

    async def generate(
        self,
        child: Child,
        area_scores: list[AreaScore],
        contributors: list[str],
    ) -> str:
        if not self.api_key:
            logger.warning("Narrative generation skipped: no Gemini API key configured")
            return NARRATIVE_FAILURE_SENTINEL

        prompt = build_report_prompt(child, area_scores, contributors, self.today())
        logger.info(
            f"Generating narrative for child {child.id} "
            f"(prompt_version={self.prompt_version}, model={self.model}, "
            f"prompt_hash={compute_hash(prompt)[:12]})"
        )

        payload = {"contents": [{"parts": [{"text": prompt}]}]}
        try:
            response = await self._client.post(
                self.endpoint,
                params={"key": self.api_key},
                json=payload,
            )
            response.raise_for_status()
            text = self._extract_text(response.json())
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(f"Narrative request failed: {e}")
            return NARRATIVE_FAILURE_SENTINEL
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.error(f"Unexpected narrative response: {e}")
            return NARRATIVE_FAILURE_SENTINEL

        return text.strip() or NARRATIVE_FAILURE_SENTINEL

    @staticmethod
    def _extract_text(data: dict[str, Any]) -> str:
        parts = data["candidates"][0]["content"]["parts"]
        return "".join(part.get("text", "") for part in parts)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class NarrativeUnavailableError(Exception):
    """Raised when a narrative is requested for a draft assessment."""

    pass


class ReportView:
    """State of one report screen for a completed assessment.

    ``open`` generates the narrative automatically at most once per view. A
    failed generation leaves ``can_generate`` set so the user can ask again.
    """

    def __init__(
        self,
        generator: NarrativeGenerator,
        catalog: Catalog,
        child: Child,
        assessment: Assessment,
    ) -> None:
        self.generator = generator
        self.catalog = catalog
        self.child = child
        self.assessment = assessment
        self.narrative: str | None = None
        self.failed = False
        self.generating = False
        self._auto_attempted = False

    @property
    def area_scores(self) -> list[AreaScore]:
        return compute_area_scores(self.catalog, self.assessment.responses)

    @property
    def global_progress(self) -> float:
        return compute_global_progress(self.catalog, self.assessment.responses)

    @property
    def contributors(self) -> list[str]:
        return list_contributors(self.assessment.responses)

    @property
    def can_generate(self) -> bool:
        return (
            self.assessment.is_completed
            and not self.generating
            and (self.narrative is None or self.failed)
        )

    async def open(self) -> str | None:
        """Show the report, generating the narrative on first open."""
        if self.assessment.is_completed and not self._auto_attempted:
            self._auto_attempted = True
            return await self.generate()
        return self.narrative

    async def generate(self) -> str:
        """Generate the narrative on user request.

        Raises:
            NarrativeUnavailableError: If the assessment is still a draft
        """
        if not self.assessment.is_completed:
            raise NarrativeUnavailableError(
                f"Assessment {self.assessment.id} is not completed"
            )

        self.generating = True
        try:
            text = await self.generator.generate(
                self.child, self.area_scores, self.contributors
            )
        except Exception:
            logger.exception(
                f"Narrative generation failed for assessment {self.assessment.id}"
            )
            text = NARRATIVE_FAILURE_SENTINEL
        finally:
            self.generating = False

        self.narrative = text
        self.failed = text == NARRATIVE_FAILURE_SENTINEL
        return text
