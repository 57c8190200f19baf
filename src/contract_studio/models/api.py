"""
API request and response models.
"""

from pydantic import Field

from contract_studio.models.contract import (
    ContractType,
    GenerationParams,
    Intensity,
    Party,
)
from contract_studio.models.document import AnalysisResult, CamelModel


# =============================================================================
# Analysis Models
# =============================================================================


class AnalyzeRequest(CamelModel):
    """Request to analyze an existing document."""

    document_id: str = Field(..., min_length=1)
    # Emptiness is checked by the orchestrator so it fails before any upstream call
    content: str


class AnalyzeResponse(CamelModel):
    """Successful analysis response."""

    success: bool = True
    analysis: AnalysisResult


# =============================================================================
# Generation Models
# =============================================================================


class GenerateContractRequest(CamelModel):
    """Flat request body of the contract generation endpoint."""

    contract_type: ContractType
    first_party: str = Field(..., min_length=2)
    first_party_address: str | None = None
    second_party: str = Field(..., min_length=2)
    second_party_address: str | None = None
    jurisdiction: str | None = None
    description: str | None = None
    key_terms: str | None = None
    intensity: Intensity
    ai_model: str = Field(..., min_length=1)

    def to_params(self) -> GenerationParams:
        return GenerationParams(
            contract_type=self.contract_type,
            first_party=Party(name=self.first_party, address=self.first_party_address),
            second_party=Party(name=self.second_party, address=self.second_party_address),
            jurisdiction=self.jurisdiction,
            description=self.description,
            key_terms=self.key_terms,
            intensity=self.intensity,
            ai_model=self.ai_model,
        )


class GenerateContractResponse(CamelModel):
    """Generated contract markup."""

    contract_text: str


# =============================================================================
# Library Models
# =============================================================================


class DocumentCreateRequest(CamelModel):
    """Submit a document for background analysis."""

    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)


class ContractCreateRequest(CamelModel):
    """Capture contract parameters as a draft."""

    title: str = Field(..., min_length=2)
    contract_type: ContractType
    first_party: Party
    second_party: Party
    jurisdiction: str | None = None
    description: str | None = None
    key_terms: str | None = None
    intensity: Intensity = Intensity.MODERATE
    ai_model: str = "openai"


class CatalogResponse(CamelModel):
    """Enumerated choices offered to the contract form."""

    contract_types: list[str]
    jurisdictions: list[str]
    intensities: list[str]
    ai_models: list[str]


class DeleteResponse(CamelModel):
    id: str
    status: str = "deleted"


class ErrorResponse(CamelModel):
    error: str
