"""Shared pytest fixtures and fakes for the Contract Studio test suite."""

import asyncio
import json

import pytest

from contract_studio.config import Settings
from contract_studio.models.contract import ContractType, Intensity, Party
from contract_studio.services.analysis import AnalysisOrchestrator
from contract_studio.services.generation import ContractGenerator
from contract_studio.services.lifecycle import LifecycleCoordinator
from contract_studio.services.providers import AIProvider, ProviderRegistry
from contract_studio.storage import InMemoryStore


# ---------------------------------------------------------------------------
# Singleton cache clearing (autouse)
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def clear_singletons():
    """Clear all @lru_cache singletons between tests."""
    from contract_studio.config import get_settings
    from contract_studio.services import (
        get_analysis_orchestrator,
        get_contract_generator,
        get_lifecycle,
    )
    from contract_studio.services.providers import get_provider_registry
    from contract_studio.storage import get_store

    for getter in (
        get_settings,
        get_store,
        get_provider_registry,
        get_lifecycle,
        get_analysis_orchestrator,
        get_contract_generator,
    ):
        getter.cache_clear()
    yield


# ---------------------------------------------------------------------------
# Fake AI backend
# ---------------------------------------------------------------------------

class FakeProvider(AIProvider):
    """Provider that records prompts and returns a scripted reply or raises."""

    def __init__(self, settings, key="openai", reply="", error=None, delay=0.0):
        super().__init__(settings)
        self.key = key
        self.label = key.title()
        self.credential_env = f"{key.upper()}_API_KEY"
        self.reply = reply
        self.error = error
        self.delay = delay
        self.calls = []

    @property
    def api_key(self):
        return "fake-key"

    @property
    def default_model(self):
        return "fake-model"

    async def _complete(self, api_key, model, system_prompt, user_prompt, temperature, max_tokens):
        self.calls.append(
            {
                "model": model,
                "system_prompt": system_prompt,
                "user_prompt": user_prompt,
                "temperature": temperature,
                "max_tokens": max_tokens,
            }
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.reply


# ---------------------------------------------------------------------------
# Settings and service fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def settings():
    """Settings isolated from any local .env file."""
    return Settings(
        _env_file=None,
        openai_api_key="test-key",
        gemini_api_key="",
        grok_api_key="",
        anthropic_api_key="",
        database_url=None,
        analysis_ai_model="openai",
        analysis_timeout_seconds=5.0,
    )


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def lifecycle(store):
    return LifecycleCoordinator(store)


@pytest.fixture
def analysis_reply():
    return json.dumps(
        {
            "findings": ["x"],
            "riskLevel": "low",
            "riskScore": 20,
            "recommendations": "none",
        }
    )


@pytest.fixture
def fake_provider(settings, analysis_reply):
    return FakeProvider(settings, reply=analysis_reply)


@pytest.fixture
def registry(fake_provider):
    return ProviderRegistry([fake_provider])


@pytest.fixture
def orchestrator(settings, registry, lifecycle):
    return AnalysisOrchestrator(settings, registry, lifecycle)


@pytest.fixture
def generator(settings, registry, lifecycle):
    return ContractGenerator(settings, registry, lifecycle)


# ---------------------------------------------------------------------------
# Sample data fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def contract_fields():
    """Keyword arguments for a draft NDA."""
    return {
        "title": "Acme / Beta NDA",
        "contract_type": ContractType.NDA,
        "first_party": Party(name="Acme Corp", address="1 Main St, Springfield"),
        "second_party": Party(name="Beta LLC", address="9 Elm Ave, Shelbyville"),
        "jurisdiction": "Delaware",
        "description": "Mutual confidentiality for a product evaluation",
        "key_terms": "Two year term; return of materials on request",
        "intensity": Intensity.MODERATE,
        "ai_model": "openai",
    }


@pytest.fixture
def minimal_document_text():
    """Short agreement used as analysis input."""
    return """MUTUAL NON-DISCLOSURE AGREEMENT

This Agreement is entered into as of June 1, 2023 between Acme Corp and Beta LLC.

1. CONFIDENTIAL INFORMATION
Each party shall keep the other party's Confidential Information in strict confidence.

2. TERM
This Agreement remains in effect for two (2) years from the Effective Date.

3. GOVERNING LAW
This Agreement shall be governed by the laws of the State of Delaware.
"""


@pytest.fixture
def make_provider(settings):
    """Factory for FakeProvider instances bound to the test settings."""

    def _make(key="openai", reply="", error=None, delay=0.0, provider_settings=None):
        return FakeProvider(provider_settings or settings, key=key, reply=reply, error=error, delay=delay)

    return _make
