"""Farmer registration endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from agritrust.core.dependencies import get_farmer_service
from agritrust.modules.farmers.schemas import Farmer, FarmerCreateRequest
from agritrust.modules.farmers.service import (
    FarmerIdGenerationError,
    FarmerNotFoundError,
    FarmerService,
)

router = APIRouter()

FarmerServiceDep = Annotated[FarmerService, Depends(get_farmer_service)]


@router.post("", response_model=Farmer, status_code=status.HTTP_201_CREATED)
async def register_farmer(body: FarmerCreateRequest, service: FarmerServiceDep) -> Farmer:
    """Register a farmer and return the record with its generated id."""
    try:
        return await service.register(body)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        ) from exc
    except FarmerIdGenerationError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)
        ) from exc


@router.get("/{farmer_id}", response_model=Farmer)
async def get_farmer(farmer_id: str, service: FarmerServiceDep) -> Farmer:
    try:
        return await service.get(farmer_id)
    except FarmerNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
