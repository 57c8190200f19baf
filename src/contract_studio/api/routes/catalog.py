"""
Catalog route: the choices offered by the contract form.
"""

from fastapi import APIRouter, Depends

from contract_studio.models.api import CatalogResponse
from contract_studio.models.contract import JURISDICTIONS, ContractType, Intensity
from contract_studio.services.providers import ProviderRegistry, get_provider_registry

router = APIRouter()


@router.get("", response_model=CatalogResponse)
async def get_catalog(
    providers: ProviderRegistry = Depends(get_provider_registry),
) -> CatalogResponse:
    return CatalogResponse(
        contract_types=[contract_type.value for contract_type in ContractType],
        jurisdictions=list(JURISDICTIONS),
        intensities=[intensity.value for intensity in Intensity],
        ai_models=providers.keys,
    )
