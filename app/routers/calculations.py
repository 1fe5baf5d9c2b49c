"""
Commission calculation endpoints
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException

from app.config import settings
from app.dependencies import get_calculation_service, get_owner_key
from app.models.commission_models import (
    CalculationRequest,
    CalculationResponse,
    StoredCalculationResponse,
    CalculationHistoryResponse,
    MigrationRequest,
    MigrationResponse,
)
from app.services.calculation_service import CalculationService
from calculations.exceptions import InputError, SchemeNotFound, StorageFailure

logger = logging.getLogger(__name__)
router = APIRouter(tags=["calculations"])


@router.post("/calculate", response_model=CalculationResponse)
async def calculate_commissions(request: CalculationRequest,
                                owner_key: str = Depends(get_owner_key),
                                service: CalculationService = Depends(get_calculation_service)):
    """
    Calculate commissions for a scheme and publish the result as the owner's latest calculation.

    A run that hits the internal processing budget still succeeds; check
    processing.timed_out and processing.processed_ratio.
    """
    scheme_id = request.scheme_id.strip()
    if not scheme_id:
        raise HTTPException(status_code=400, detail="scheme_id is required and cannot be empty")

    try:
        result = await asyncio.wait_for(
            service.calculate(owner_key, scheme_id),
            timeout=settings.REQUEST_TIMEOUT
        )
        return CalculationResponse(success=True, **result)

    except SchemeNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StorageFailure as e:
        logger.error(f"Storage failure for scheme {scheme_id}: {e}")
        raise HTTPException(status_code=500, detail=e.to_dict())
    except asyncio.TimeoutError:
        logger.warning(f"⏰ Calculation for scheme {scheme_id} exceeded {settings.REQUEST_TIMEOUT}s")
        raise HTTPException(
            status_code=504,
            detail=f"Calculation for scheme {scheme_id} did not finish within {settings.REQUEST_TIMEOUT}s; retry later"
        )


def _stored_response(retrieved) -> StoredCalculationResponse:
    data = retrieved.to_dict()
    return StoredCalculationResponse(
        success=True,
        calculations=data.pop("results"),
        **data
    )


@router.get("/calculations/latest", response_model=StoredCalculationResponse)
async def get_latest_calculation(owner_key: str = Depends(get_owner_key),
                                 service: CalculationService = Depends(get_calculation_service)):
    """Reassemble the owner's most recently published calculation."""
    retrieved = await service.get_latest(owner_key)
    if retrieved is None:
        raise HTTPException(status_code=404, detail="No calculations found")
    return _stored_response(retrieved)


@router.get("/calculations", response_model=CalculationHistoryResponse)
async def list_calculations(owner_key: str = Depends(get_owner_key),
                            service: CalculationService = Depends(get_calculation_service)):
    return CalculationHistoryResponse(success=True, calculations=await service.list_calculations(owner_key))


@router.get("/calculations/{calculation_id}", response_model=StoredCalculationResponse)
async def get_calculation(calculation_id: str,
                          owner_key: str = Depends(get_owner_key),
                          service: CalculationService = Depends(get_calculation_service)):
    retrieved = await service.get_calculation(owner_key, calculation_id)
    if retrieved is None:
        raise HTTPException(status_code=404, detail=f"Calculation {calculation_id} not found")
    return _stored_response(retrieved)


@router.post("/maintenance/migrate-legacy", response_model=MigrationResponse)
async def migrate_legacy_key(request: MigrationRequest,
                             owner_key: str = Depends(get_owner_key),
                             service: CalculationService = Depends(get_calculation_service)):
    """Move a global key (e.g. the old shared distributors list) into the owner's namespace."""
    report = await service.migrate_legacy(owner_key, request.legacy_key, delete_legacy=request.delete_legacy)
    return MigrationResponse(success=True, report=report)
