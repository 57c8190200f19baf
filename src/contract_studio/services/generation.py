"""
Contract Generator

Builds the drafting instruction from contract parameters and dispatches it to
the backend selected by ``aiModel``. No retries and no fallback provider: a
failed call is reported as is and no content is ever fabricated.
"""

import re
from typing import Any

import pydantic
import structlog

from contract_studio.config import Settings
from contract_studio.exceptions import (
    GenerationError,
    PersistenceError,
    ProviderError,
    UpstreamError,
    ValidationError,
)
from contract_studio.models.contract import Contract, GenerationParams, Intensity
from contract_studio.services.lifecycle import LifecycleCoordinator
from contract_studio.services.providers import ProviderRegistry

logger = structlog.get_logger(__name__)


CONTRACT_SYSTEM_PROMPT = (
    "You are a legal expert who drafts professional contracts in clean HTML format. "
    "Return only the HTML, no explanations or preamble."
)

PROTECTION_LEVELS: dict[Intensity, str] = {
    Intensity.LIGHT: "minimal protection, focusing on simple and straightforward terms",
    Intensity.MODERATE: "standard legal protection with balanced terms for both parties",
    Intensity.AGGRESSIVE: (
        "strong legal protection favoring the first party with comprehensive safeguards"
    ),
}

_FENCE_RE = re.compile(r"^\s*```[a-zA-Z]*\s*\n(.*?)\n?\s*```\s*$", re.DOTALL)


def build_params(data: dict[str, Any]) -> GenerationParams:
    """Validate raw input into GenerationParams."""
    try:
        return GenerationParams.model_validate(data)
    except pydantic.ValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'input'}: {err['msg']}"
            for err in e.errors()
        )
        raise ValidationError(f"Invalid contract parameters: {details}") from e


def build_prompt(params: GenerationParams) -> str:
    """Interpolate every parameter into the drafting instruction."""
    protection_level = PROTECTION_LEVELS[params.intensity]
    jurisdiction = params.jurisdiction or ""

    return f"""Generate a professional, legally-sound {params.contract_type.value} in HTML format.

Contract Details:
- First Party: {params.first_party.name}
- First Party Address: {params.first_party.address or ""}
- Second Party: {params.second_party.name}
- Second Party Address: {params.second_party.address or ""}
- Jurisdiction: {jurisdiction}
- Description: {params.description or ""}
- Key Terms: {params.key_terms or ""}
- Protection Level: {protection_level}

Instructions:
1. Format the contract professionally with proper sections and clauses
2. Include all standard clauses required for this type of agreement
3. Add appropriate legal language based on the jurisdiction
4. Structure with clear headings, numbered sections, and proper spacing
5. Include signature blocks at the end
6. Output in clean HTML with appropriate tags (<h1>, <h2>, <p>, etc.)
7. Use professional legal terminology
8. Create a contract that would be recognized as valid in {jurisdiction or "the appropriate jurisdiction"}
9. Format dates as Month Day, Year (e.g., June 1, 2023)
10. Only return the HTML for the contract, properly formatted
"""


def strip_code_fence(markup: str) -> str:
    """Remove a Markdown fence wrapped around the whole reply."""
    match = _FENCE_RE.match(markup)
    return match.group(1).strip() if match else markup.strip()


class ContractGenerator:
    """Generates contract markup through a pluggable AI backend."""

    def __init__(
        self,
        settings: Settings,
        providers: ProviderRegistry,
        lifecycle: LifecycleCoordinator | None = None,
    ):
        self.settings = settings
        self.providers = providers
        self.lifecycle = lifecycle

    async def generate(self, params: GenerationParams) -> str:
        """
        Generate contract markup.

        Raises ValidationError for an unknown aiModel (before any upstream call)
        and GenerationError wrapping the ConfigurationError or UpstreamError of
        the selected route.
        """
        provider = self.providers.get(params.ai_model)
        prompt = build_prompt(params)

        log = logger.bind(ai_model=provider.key, contract_type=params.contract_type.value)
        log.info("contract_generation_started", intensity=params.intensity.value)

        try:
            markup = await provider.complete(
                CONTRACT_SYSTEM_PROMPT,
                prompt,
                temperature=self._temperature(provider.key),
            )
        except ProviderError as e:
            log.error("contract_generation_failed", error=e.message)
            raise GenerationError(e.message, cause=e) from e

        markup = strip_code_fence(markup)
        if not markup:
            error = UpstreamError(f"Empty contract returned by {provider.label}", provider=provider.key)
            log.error("contract_generation_failed", error=error.message)
            raise GenerationError(error.message, cause=error)

        log.info("contract_generation_completed", chars=len(markup))
        return markup

    async def generate_contract(self, contract_id: str, owner_id: str | None = None) -> Contract:
        """
        Run generation for a stored contract and record the outcome.

        On failure the contract moves to failed with no content stored and the
        GenerationError is re-raised. A PersistenceError while recording the
        result also moves it to failed when the store allows.
        """
        if self.lifecycle is None:
            raise RuntimeError("ContractGenerator was built without a lifecycle coordinator")

        contract = await self.lifecycle.get_contract(contract_id, owner_id)
        params = contract.to_params()
        # Unknown backends are rejected while the contract is still a draft
        self.providers.get(params.ai_model)

        await self.lifecycle.begin_generation(contract_id, owner_id)
        try:
            markup = await self.generate(params)
        except GenerationError as e:
            await self.lifecycle.record_failure(contract_id, e.message)
            raise

        try:
            return await self.lifecycle.record_generated(contract_id, markup)
        except PersistenceError as e:
            logger.error("contract_result_unrecorded", contract_id=contract_id, error=e.message)
            try:
                await self.lifecycle.record_failure(contract_id, e.message)
            except PersistenceError as rollback_error:
                # Left generating; begin_generation restarts it once stale
                logger.error(
                    "contract_failure_unrecorded",
                    contract_id=contract_id,
                    error=rollback_error.message,
                )
            raise

    def _temperature(self, provider_key: str) -> float:
        if provider_key == "gemini":
            return self.settings.gemini_temperature
        return self.settings.generation_temperature
