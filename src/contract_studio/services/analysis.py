"""
Analysis Orchestrator

Sends a document's text to the configured AI backend, parses the structured
risk assessment out of the reply, and drives the document to a terminal state.
"""

import asyncio
import json
from typing import Any

import pydantic
import structlog

from contract_studio.config import Settings
from contract_studio.exceptions import (
    AnalysisError,
    ProviderError,
    UpstreamError,
    ValidationError,
)
from contract_studio.models.document import AnalysisResult, AnalyzingDocument, RiskLevel
from contract_studio.services.lifecycle import (
    PROGRESS_DISPATCHED,
    PROGRESS_RECEIVED,
    PROGRESS_STARTED,
    LifecycleCoordinator,
)
from contract_studio.services.providers import ProviderRegistry
from contract_studio.services.risk import is_consistent

logger = structlog.get_logger(__name__)


ANALYSIS_SYSTEM_PROMPT = """You are a legal document analysis expert. Analyze the provided legal document and extract the following information:
1. Key findings (list of potential issues, non-standard clauses, or areas of concern)
2. Risk level (low, medium, or high)
3. Risk score (a number between 0 and 100)
4. Recommendations for improvement

Return the results in JSON format with the following structure:
{
  "findings": ["Finding 1", "Finding 2", ...],
  "riskLevel": "low|medium|high",
  "riskScore": number,
  "recommendations": "text with recommendations"
}"""

REQUIRED_KEYS = frozenset({"findings", "riskLevel", "riskScore", "recommendations"})

FALLBACK_FINDING = "Could not properly analyze document"
FALLBACK_RECOMMENDATIONS = (
    "Please review the document manually or try again with a clearer document."
)


def fallback_result() -> AnalysisResult:
    """Result used whenever the backend reply cannot be parsed."""
    return AnalysisResult(
        findings=[FALLBACK_FINDING],
        risk_level=RiskLevel.MEDIUM,
        risk_score=50,
        recommendations=FALLBACK_RECOMMENDATIONS,
    )


def extract_json_object(text: str) -> dict[str, Any] | None:
    """Return the first well-formed JSON object embedded in text, if any."""
    decoder = json.JSONDecoder()
    index = text.find("{")
    while index != -1:
        try:
            value, _ = decoder.raw_decode(text, index)
        except json.JSONDecodeError:
            index = text.find("{", index + 1)
            continue
        if isinstance(value, dict):
            return value
        index = text.find("{", index + 1)
    return None


def parse_analysis(text: str) -> AnalysisResult:
    """
    Parse a backend reply into an AnalysisResult.

    Never raises: unparseable replies and replies with missing or malformed
    fields yield the fallback result.
    """
    payload = extract_json_object(text or "")
    if payload is None:
        logger.warning("analysis_parse_failed", reason="no_json_object")
        return fallback_result()

    if not REQUIRED_KEYS <= payload.keys():
        logger.warning(
            "analysis_parse_failed",
            reason="missing_fields",
            missing=sorted(REQUIRED_KEYS - payload.keys()),
        )
        return fallback_result()

    try:
        return AnalysisResult.model_validate(payload)
    except pydantic.ValidationError as e:
        logger.warning("analysis_parse_failed", reason="invalid_fields", errors=e.error_count())
        return fallback_result()


class AnalysisOrchestrator:
    """Runs the analyze workflow for one document at a time."""

    def __init__(
        self,
        settings: Settings,
        providers: ProviderRegistry,
        lifecycle: LifecycleCoordinator,
    ):
        self.settings = settings
        self.providers = providers
        self.lifecycle = lifecycle

    async def analyze(
        self,
        document_id: str,
        content: str,
        owner_id: str | None = None,
    ) -> AnalysisResult:
        """
        Analyze a document and persist the outcome.

        Raises ValidationError before contacting the backend when content is
        empty or the document is not analyzing, and AnalysisError after
        moving the document to error when the backend cannot be used.
        """
        if not content or not content.strip():
            raise ValidationError("Document content is required")

        document = await self.lifecycle.get_document(document_id, owner_id)
        if not isinstance(document, AnalyzingDocument):
            raise ValidationError(
                f"Document {document_id} is not awaiting analysis (status: {document.status})"
            )

        log = logger.bind(document_id=document_id, ai_model=self.settings.analysis_ai_model)
        log.info("analysis_started", chars=len(content))
        await self.lifecycle.report_progress(document_id, PROGRESS_STARTED)

        try:
            provider = self.providers.get(self.settings.analysis_ai_model)
            await self.lifecycle.report_progress(document_id, PROGRESS_DISPATCHED)
            reply = await asyncio.wait_for(
                provider.complete(
                    ANALYSIS_SYSTEM_PROMPT,
                    content,
                    model=self._analysis_model(provider.key),
                ),
                timeout=self.settings.analysis_timeout_seconds,
            )
        except asyncio.TimeoutError:
            error = UpstreamError(
                f"Analysis timed out after {self.settings.analysis_timeout_seconds:g}s",
                provider=self.settings.analysis_ai_model,
            )
            await self.lifecycle.fail(document_id, error.message)
            log.error("analysis_failed", error=error.message)
            raise AnalysisError(error.message, cause=error) from error
        except (ProviderError, ValidationError) as e:
            await self.lifecycle.fail(document_id, e.message)
            log.error("analysis_failed", error=e.message)
            cause = e if isinstance(e, ProviderError) else None
            raise AnalysisError(e.message, cause=cause) from e

        await self.lifecycle.report_progress(document_id, PROGRESS_RECEIVED)
        result = parse_analysis(reply)

        if not is_consistent(result.risk_level, result.risk_score):
            # Stored as returned; the level is never recomputed from the score
            log.warning(
                "risk_band_mismatch",
                risk_level=result.risk_level.value,
                risk_score=result.risk_score,
            )

        await self.lifecycle.complete(document_id, result, body=content)
        log.info("analysis_completed", risk_level=result.risk_level.value, risk_score=result.risk_score)
        return result

    async def analyze_in_background(self, document_id: str, content: str) -> None:
        """Fire-and-forget entry point; failures are already recorded on the document."""
        try:
            await self.analyze(document_id, content)
        except AnalysisError as e:
            logger.debug("background_analysis_failed", document_id=document_id, error=e.message)
        except Exception as e:
            logger.error("background_analysis_crashed", document_id=document_id, error=str(e))
            try:
                await self.lifecycle.fail(document_id, f"Analysis failed: {e}")
            except Exception as persist_error:
                logger.error(
                    "background_analysis_unrecorded",
                    document_id=document_id,
                    error=str(persist_error),
                )

    def _analysis_model(self, provider_key: str) -> str | None:
        # The dedicated analysis model only applies to the OpenAI route
        if provider_key == "openai":
            return self.settings.analysis_model
        return None
