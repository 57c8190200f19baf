"""
Analyze and Generate Contract endpoints.
"""

import structlog
from fastapi import APIRouter, Depends

from contract_studio.api.dependencies import get_current_user
from contract_studio.models.api import (
    AnalyzeRequest,
    AnalyzeResponse,
    ErrorResponse,
    GenerateContractRequest,
    GenerateContractResponse,
)
from contract_studio.services import get_analysis_orchestrator, get_contract_generator
from contract_studio.services.analysis import AnalysisOrchestrator
from contract_studio.services.generation import ContractGenerator

logger = structlog.get_logger(__name__)
router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


@router.post("/analyze-document", response_model=AnalyzeResponse, responses=ERROR_RESPONSES)
async def analyze_document(
    request: AnalyzeRequest,
    user_id: str = Depends(get_current_user),
    orchestrator: AnalysisOrchestrator = Depends(get_analysis_orchestrator),
) -> AnalyzeResponse:
    """
    Analyze a document that is awaiting analysis.

    The document ends in completed or error before this returns.
    """
    analysis = await orchestrator.analyze(request.document_id, request.content, owner_id=user_id)
    return AnalyzeResponse(success=True, analysis=analysis)


@router.post(
    "/generate-contract",
    response_model=GenerateContractResponse,
    responses=ERROR_RESPONSES,
)
async def generate_contract(
    request: GenerateContractRequest,
    user_id: str = Depends(get_current_user),
    generator: ContractGenerator = Depends(get_contract_generator),
) -> GenerateContractResponse:
    """Generate contract markup without storing it."""
    logger.info("generate_contract_requested", user_id=user_id, ai_model=request.ai_model)
    markup = await generator.generate(request.to_params())
    return GenerateContractResponse(contract_text=markup)
