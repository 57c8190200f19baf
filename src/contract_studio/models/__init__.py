"""
Pydantic models for Contract Studio.

- Document models: analysis status variants and risk assessment
- Contract models: generation inputs, catalogs, and stored records
- API models: request/response schemas
"""

from contract_studio.models.document import (
    AnalysisResult,
    AnalyzingDocument,
    CompletedDocument,
    Document,
    DocumentStatus,
    ErrorDocument,
    RiskLevel,
    document_adapter,
)
from contract_studio.models.contract import (
    JURISDICTIONS,
    Contract,
    ContractStatus,
    ContractType,
    GenerationParams,
    Intensity,
    Party,
)
from contract_studio.models.api import (
    AnalyzeRequest,
    AnalyzeResponse,
    CatalogResponse,
    ContractCreateRequest,
    DeleteResponse,
    DocumentCreateRequest,
    ErrorResponse,
    GenerateContractRequest,
    GenerateContractResponse,
)

__all__ = [
    # Document models
    "AnalysisResult",
    "AnalyzingDocument",
    "CompletedDocument",
    "Document",
    "DocumentStatus",
    "ErrorDocument",
    "RiskLevel",
    "document_adapter",
    # Contract models
    "JURISDICTIONS",
    "Contract",
    "ContractStatus",
    "ContractType",
    "GenerationParams",
    "Intensity",
    "Party",
    # API models
    "AnalyzeRequest",
    "AnalyzeResponse",
    "CatalogResponse",
    "ContractCreateRequest",
    "DeleteResponse",
    "DocumentCreateRequest",
    "ErrorResponse",
    "GenerateContractRequest",
    "GenerateContractResponse",
]
