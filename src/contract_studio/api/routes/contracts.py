"""
Contract library routes.
"""

import structlog
from fastapi import APIRouter, Depends, Query

from contract_studio.api.dependencies import get_current_user
from contract_studio.models.api import ContractCreateRequest, DeleteResponse
from contract_studio.models.contract import Contract, ContractStatus
from contract_studio.services import get_contract_generator, get_lifecycle
from contract_studio.services.generation import ContractGenerator
from contract_studio.services.lifecycle import LifecycleCoordinator

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post("", response_model=Contract, status_code=201)
async def create_contract(
    request: ContractCreateRequest,
    user_id: str = Depends(get_current_user),
    lifecycle: LifecycleCoordinator = Depends(get_lifecycle),
) -> Contract:
    """Capture contract parameters as a draft."""
    return await lifecycle.create_contract(user_id, **request.model_dump())


@router.get("", response_model=list[Contract])
async def list_contracts(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    q: str | None = Query(None, description="Case-insensitive title search"),
    status: ContractStatus | None = None,
    user_id: str = Depends(get_current_user),
    lifecycle: LifecycleCoordinator = Depends(get_lifecycle),
) -> list[Contract]:
    """List the caller's contracts, newest first."""
    return await lifecycle.store.list_contracts(
        user_id, limit=limit, offset=offset, query=q, status=status
    )


@router.get("/{contract_id}", response_model=Contract)
async def get_contract(
    contract_id: str,
    user_id: str = Depends(get_current_user),
    lifecycle: LifecycleCoordinator = Depends(get_lifecycle),
) -> Contract:
    return await lifecycle.get_contract(contract_id, user_id)


@router.post("/{contract_id}/generate", response_model=Contract)
async def generate_contract(
    contract_id: str,
    user_id: str = Depends(get_current_user),
    generator: ContractGenerator = Depends(get_contract_generator),
) -> Contract:
    """
    Generate content for a draft or failed contract.

    Waits for the backend; the busy state is visible to other readers as
    ``generating`` in the meantime.
    """
    return await generator.generate_contract(contract_id, user_id)


@router.post("/{contract_id}/save", response_model=Contract)
async def save_contract(
    contract_id: str,
    user_id: str = Depends(get_current_user),
    lifecycle: LifecycleCoordinator = Depends(get_lifecycle),
) -> Contract:
    """Keep a generated contract in the library."""
    return await lifecycle.save_contract(contract_id, user_id)


@router.delete("/{contract_id}", response_model=DeleteResponse)
async def delete_contract(
    contract_id: str,
    user_id: str = Depends(get_current_user),
    lifecycle: LifecycleCoordinator = Depends(get_lifecycle),
) -> DeleteResponse:
    await lifecycle.delete_contract(contract_id, user_id)
    return DeleteResponse(id=contract_id)
