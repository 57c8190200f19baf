"""
Document library routes.
"""

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, Query

from contract_studio.api.dependencies import get_current_user
from contract_studio.exceptions import ValidationError
from contract_studio.models.api import DeleteResponse, DocumentCreateRequest
from contract_studio.models.document import Document, DocumentStatus, RiskLevel
from contract_studio.services import get_analysis_orchestrator, get_lifecycle
from contract_studio.services.analysis import AnalysisOrchestrator
from contract_studio.services.lifecycle import LifecycleCoordinator

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post("", response_model=Document, status_code=202)
async def submit_document(
    request: DocumentCreateRequest,
    background_tasks: BackgroundTasks,
    user_id: str = Depends(get_current_user),
    lifecycle: LifecycleCoordinator = Depends(get_lifecycle),
    orchestrator: AnalysisOrchestrator = Depends(get_analysis_orchestrator),
) -> Document:
    """
    Submit a document for analysis.

    The record is stored in analyzing state and returned immediately; the
    analysis itself runs after the response is sent.
    """
    if not request.content.strip():
        raise ValidationError("Document content is required")

    document = await lifecycle.create_document(user_id, request.title, request.content)
    background_tasks.add_task(orchestrator.analyze_in_background, document.id, request.content)
    logger.info("document_submitted", document_id=document.id, user_id=user_id)
    return document


@router.get("", response_model=list[Document])
async def list_documents(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    q: str | None = Query(None, description="Case-insensitive title search"),
    status: DocumentStatus | None = None,
    risk_level: RiskLevel | None = Query(None, description="Matches completed documents only"),
    user_id: str = Depends(get_current_user),
    lifecycle: LifecycleCoordinator = Depends(get_lifecycle),
) -> list[Document]:
    """List the caller's documents, newest first."""
    return await lifecycle.store.list_documents(
        user_id,
        limit=limit,
        offset=offset,
        query=q,
        status=status,
        risk_level=risk_level,
    )


@router.get("/{document_id}", response_model=Document)
async def get_document(
    document_id: str,
    user_id: str = Depends(get_current_user),
    lifecycle: LifecycleCoordinator = Depends(get_lifecycle),
) -> Document:
    return await lifecycle.get_document(document_id, user_id)


@router.delete("/{document_id}", response_model=DeleteResponse)
async def delete_document(
    document_id: str,
    user_id: str = Depends(get_current_user),
    lifecycle: LifecycleCoordinator = Depends(get_lifecycle),
) -> DeleteResponse:
    await lifecycle.delete_document(document_id, user_id)
    return DeleteResponse(id=document_id)
