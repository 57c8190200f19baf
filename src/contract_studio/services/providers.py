"""
AI backend providers.

One provider per hosted completion service, selected at runtime by its
``aiModel`` key through ``ProviderRegistry``. Each provider owns its credential
lookup and its request/response translation. Calls are single-shot: SDK-level
retries are disabled and failures surface as ``UpstreamError``.
"""

from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Any

import anthropic
import google.generativeai as genai
import openai
import structlog
from google.api_core import exceptions as google_exceptions

from contract_studio.config import Settings, get_settings
from contract_studio.exceptions import ConfigurationError, UpstreamError, ValidationError

logger = structlog.get_logger(__name__)


class AIProvider(ABC):
    """A hosted LLM completion service."""

    key: str = ""
    label: str = ""
    credential_env: str = ""

    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    @abstractmethod
    def api_key(self) -> str:
        """Credential for this route, empty when unconfigured."""

    @property
    @abstractmethod
    def default_model(self) -> str:
        """Model used when the caller does not name one."""

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def require_credential(self) -> str:
        if not self.api_key:
            raise ConfigurationError(
                f"{self.label} API key not found. Set {self.credential_env}.",
                provider=self.key,
                credential=self.credential_env,
            )
        return self.api_key

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """
        Run one chat completion and return the response text.

        Raises ConfigurationError when the credential is missing and
        UpstreamError for any transport, status, or payload failure.
        """
        api_key = self.require_credential()
        model = model or self.default_model
        max_tokens = max_tokens or self.settings.llm_max_tokens

        logger.debug("provider_request", provider=self.key, model=model)
        try:
            text = await self._complete(
                api_key, model, system_prompt, user_prompt, temperature, max_tokens
            )
        except UpstreamError:
            raise
        except Exception as e:
            raise self._translate_error(e) from e

        if not text or not text.strip():
            raise UpstreamError(f"Empty response from {self.label}", provider=self.key)

        logger.info("provider_completed", provider=self.key, model=model, chars=len(text))
        return text

    @abstractmethod
    async def _complete(
        self,
        api_key: str,
        model: str,
        system_prompt: str,
        user_prompt: str,
        temperature: float | None,
        max_tokens: int,
    ) -> str:
        ...

    def _translate_error(self, exc: Exception) -> UpstreamError:
        return UpstreamError(f"{self.label} API error: {exc}", provider=self.key)


# =============================================================================
# OpenAI-compatible providers
# =============================================================================


class OpenAIProvider(AIProvider):
    """OpenAI chat completions."""

    key = "openai"
    label = "OpenAI"
    credential_env = "OPENAI_API_KEY"
    base_url: str | None = None

    def __init__(self, settings: Settings):
        super().__init__(settings)
        self._client: openai.AsyncOpenAI | None = None

    @property
    def api_key(self) -> str:
        return self.settings.openai_api_key

    @property
    def default_model(self) -> str:
        return self.settings.openai_model

    def client(self, api_key: str) -> openai.AsyncOpenAI:
        if self._client is None:
            self._client = openai.AsyncOpenAI(
                api_key=api_key,
                base_url=self.base_url,
                max_retries=0,
            )
        return self._client

    async def _complete(
        self,
        api_key: str,
        model: str,
        system_prompt: str,
        user_prompt: str,
        temperature: float | None,
        max_tokens: int,
    ) -> str:
        kwargs: dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        }
        if temperature is not None:
            kwargs["temperature"] = temperature

        response = await self.client(api_key).chat.completions.create(**kwargs)
        if not response.choices:
            raise UpstreamError(f"No response from {self.label}", provider=self.key)
        return response.choices[0].message.content or ""

    def _translate_error(self, exc: Exception) -> UpstreamError:
        if isinstance(exc, openai.APIStatusError):
            return UpstreamError(
                f"{self.label} API error ({exc.status_code}): {exc.message}",
                provider=self.key,
                upstream_status=exc.status_code,
            )
        if isinstance(exc, openai.APIConnectionError):
            return UpstreamError(f"Could not reach {self.label}: {exc}", provider=self.key)
        return super()._translate_error(exc)


class GrokProvider(OpenAIProvider):
    """xAI Grok through its OpenAI-compatible endpoint."""

    key = "grok"
    label = "Grok"
    credential_env = "GROK_API_KEY"

    def __init__(self, settings: Settings):
        super().__init__(settings)
        self.base_url = settings.grok_base_url

    @property
    def api_key(self) -> str:
        return self.settings.grok_api_key

    @property
    def default_model(self) -> str:
        return self.settings.grok_model


# =============================================================================
# Google Gemini
# =============================================================================


class GeminiProvider(AIProvider):
    """Google Gemini generateContent."""

    key = "gemini"
    label = "Gemini"
    credential_env = "GEMINI_API_KEY"

    @property
    def api_key(self) -> str:
        return self.settings.gemini_api_key

    @property
    def default_model(self) -> str:
        return self.settings.gemini_model

    async def _complete(
        self,
        api_key: str,
        model: str,
        system_prompt: str,
        user_prompt: str,
        temperature: float | None,
        max_tokens: int,
    ) -> str:
        genai.configure(api_key=api_key)
        generative_model = genai.GenerativeModel(
            model,
            system_instruction=system_prompt or None,
            generation_config={
                "temperature": (
                    temperature if temperature is not None else self.settings.gemini_temperature
                ),
                "max_output_tokens": max_tokens,
            },
        )
        response = await generative_model.generate_content_async(user_prompt)
        try:
            return response.text
        except ValueError as e:
            # Raised when the candidate was blocked or carries no text parts
            raise UpstreamError(f"Gemini returned no content: {e}", provider=self.key) from e

    def _translate_error(self, exc: Exception) -> UpstreamError:
        if isinstance(exc, google_exceptions.GoogleAPICallError):
            return UpstreamError(
                f"Gemini API error: {exc.message}",
                provider=self.key,
                upstream_status=exc.code,
            )
        return super()._translate_error(exc)


# =============================================================================
# Anthropic Claude
# =============================================================================


class ClaudeProvider(AIProvider):
    """Anthropic Claude messages."""

    key = "claude"
    label = "Claude"
    credential_env = "ANTHROPIC_API_KEY"

    def __init__(self, settings: Settings):
        super().__init__(settings)
        self._client: anthropic.AsyncAnthropic | None = None

    @property
    def api_key(self) -> str:
        return self.settings.anthropic_api_key

    @property
    def default_model(self) -> str:
        return self.settings.claude_model

    def client(self, api_key: str) -> anthropic.AsyncAnthropic:
        if self._client is None:
            self._client = anthropic.AsyncAnthropic(api_key=api_key, max_retries=0)
        return self._client

    async def _complete(
        self,
        api_key: str,
        model: str,
        system_prompt: str,
        user_prompt: str,
        temperature: float | None,
        max_tokens: int,
    ) -> str:
        kwargs: dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "system": system_prompt,
            "messages": [{"role": "user", "content": user_prompt}],
        }
        if temperature is not None:
            kwargs["temperature"] = temperature

        response = await self.client(api_key).messages.create(**kwargs)
        return "".join(getattr(block, "text", "") for block in response.content)

    def _translate_error(self, exc: Exception) -> UpstreamError:
        if isinstance(exc, anthropic.APIStatusError):
            return UpstreamError(
                f"{self.label} API error ({exc.status_code}): {exc.message}",
                provider=self.key,
                upstream_status=exc.status_code,
            )
        if isinstance(exc, anthropic.APIConnectionError):
            return UpstreamError(f"Could not reach {self.label}: {exc}", provider=self.key)
        return super()._translate_error(exc)


# =============================================================================
# Routing table
# =============================================================================


PROVIDER_CLASSES: tuple[type[AIProvider], ...] = (
    OpenAIProvider,
    GeminiProvider,
    GrokProvider,
    ClaudeProvider,
)


class ProviderRegistry:
    """Routing table from ``aiModel`` key to provider."""

    def __init__(self, providers: list[AIProvider]):
        self._providers = {provider.key: provider for provider in providers}

    @classmethod
    def from_settings(cls, settings: Settings) -> "ProviderRegistry":
        return cls([provider_cls(settings) for provider_cls in PROVIDER_CLASSES])

    @property
    def keys(self) -> list[str]:
        return list(self._providers)

    def get(self, key: str) -> AIProvider:
        """Look up a provider; unknown keys are a validation failure."""
        normalized = (key or "").strip().lower()
        try:
            return self._providers[normalized]
        except KeyError:
            raise ValidationError(
                f"Unknown AI model '{key}'. Expected one of: {', '.join(self.keys)}"
            ) from None

    def health_check(self) -> dict[str, bool]:
        """Which routes have credentials configured."""
        return {key: provider.configured for key, provider in self._providers.items()}


@lru_cache()
def get_provider_registry() -> ProviderRegistry:
    """Get cached provider registry."""
    return ProviderRegistry.from_settings(get_settings())
