"""Service catalog administration."""

from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.api import deps
from marketplace.schemas.catalog import ServiceCreate, ServiceRead, ServiceUpdate
from marketplace.services import catalog_service

router = APIRouter(
    prefix="/admin/services", dependencies=[Depends(deps.require_admin)]
)


@router.get("", response_model=list[ServiceRead], summary="List services")
async def list_services(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    include_inactive: bool = True,
) -> list[ServiceRead]:
    services = await catalog_service.list_services(
        session, include_inactive=include_inactive
    )
    return [ServiceRead.model_validate(service) for service in services]


@router.post(
    "",
    response_model=ServiceRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create service",
)
async def create_service(
    payload: ServiceCreate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> ServiceRead:
    service = await catalog_service.create_service(session, payload=payload)
    return ServiceRead.model_validate(service)


@router.get("/{service_id}", response_model=ServiceRead, summary="Get service")
async def get_service(
    service_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> ServiceRead:
    service = await catalog_service.get_service(session, service_id)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Service not found"
        )
    return ServiceRead.model_validate(service)


@router.patch("/{service_id}", response_model=ServiceRead, summary="Update service")
async def update_service(
    service_id: uuid.UUID,
    payload: ServiceUpdate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> ServiceRead:
    service = await catalog_service.get_service(session, service_id)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Service not found"
        )
    updated = await catalog_service.update_service(
        session, service=service, payload=payload
    )
    return ServiceRead.model_validate(updated)


@router.delete(
    "/{service_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete service"
)
async def delete_service(
    service_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> None:
    service = await catalog_service.get_service(session, service_id)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Service not found"
        )
    await catalog_service.delete_service(session, service=service)
    return None
