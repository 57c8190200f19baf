"""
Business logic services for Contract Studio.
"""

from datetime import timedelta
from functools import lru_cache

from contract_studio.config import get_settings
from contract_studio.services.analysis import AnalysisOrchestrator
from contract_studio.services.generation import ContractGenerator
from contract_studio.services.lifecycle import LifecycleCoordinator
from contract_studio.services.providers import (
    AIProvider,
    ProviderRegistry,
    get_provider_registry,
)
from contract_studio.storage import get_store


@lru_cache()
def get_lifecycle() -> LifecycleCoordinator:
    """Get cached lifecycle coordinator bound to the configured store."""
    settings = get_settings()
    return LifecycleCoordinator(
        get_store(),
        generation_stale_after=timedelta(minutes=settings.stale_generation_minutes),
    )


@lru_cache()
def get_analysis_orchestrator() -> AnalysisOrchestrator:
    """Get cached analysis orchestrator."""
    return AnalysisOrchestrator(get_settings(), get_provider_registry(), get_lifecycle())


@lru_cache()
def get_contract_generator() -> ContractGenerator:
    """Get cached contract generator."""
    return ContractGenerator(get_settings(), get_provider_registry(), get_lifecycle())


__all__ = [
    "AIProvider",
    "AnalysisOrchestrator",
    "ContractGenerator",
    "LifecycleCoordinator",
    "ProviderRegistry",
    "get_analysis_orchestrator",
    "get_contract_generator",
    "get_lifecycle",
    "get_provider_registry",
]
