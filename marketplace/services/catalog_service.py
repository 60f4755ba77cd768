"""Catalog lookups for pricing plus service administration."""

from __future__ import annotations

import uuid
from collections.abc import Iterable

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.models import Service, ServicePriceVariant
from marketplace.schemas.catalog import PriceVariantIn, ServiceCreate, ServiceUpdate
from marketplace.services.pricing_engine import (
    PriceTier,
    ServicePriceRecord,
    to_decimal,
)


def to_price_record(service: Service) -> ServicePriceRecord:
    """Project an ORM service onto the fields the pricing engine reads."""

    return ServicePriceRecord(
        id=service.id,
        name=service.name,
        price=to_decimal(service.price),
        discounted_price=(
            to_decimal(service.discounted_price)
            if service.discounted_price is not None
            else None
        ),
        is_tax_inclusive=service.is_tax_inclusive,
        tax_percent=(
            to_decimal(service.tax_percent) if service.tax_percent is not None else None
        ),
        has_price_variants=service.has_price_variants,
        price_variants=tuple(
            PriceTier(
                from_quantity=variant.from_quantity,
                to_quantity=variant.to_quantity,
                price=to_decimal(variant.price),
            )
            for variant in service.price_variants
        ),
    )


async def get_service(
    session: AsyncSession, service_id: uuid.UUID
) -> Service | None:
    return await session.get(Service, service_id)


async def load_price_records(
    session: AsyncSession, service_ids: Iterable[uuid.UUID]
) -> dict[uuid.UUID, ServicePriceRecord]:
    """Resolve a catalog snapshot for the given ids.

    Unknown and deactivated services are absent from the result.
    """

    ids = set(service_ids)
    if not ids:
        return {}
    stmt: Select[tuple[Service]] = select(Service).where(
        Service.id.in_(ids), Service.is_active.is_(True)
    )
    result = await session.execute(stmt)
    return {service.id: to_price_record(service) for service in result.scalars()}


async def list_services(
    session: AsyncSession, *, include_inactive: bool = False
) -> list[Service]:
    stmt = select(Service)
    if not include_inactive:
        stmt = stmt.where(Service.is_active.is_(True))
    stmt = stmt.order_by(Service.name.asc())
    result = await session.execute(stmt)
    return list(result.scalars().unique().all())


def _build_variants(variants: list[PriceVariantIn]) -> list[ServicePriceVariant]:
    return [
        ServicePriceVariant(
            from_quantity=variant.from_quantity,
            to_quantity=variant.to_quantity,
            price=variant.price,
        )
        for variant in sorted(variants, key=lambda item: item.from_quantity)
    ]


async def create_service(session: AsyncSession, *, payload: ServiceCreate) -> Service:
    data = payload.model_dump(exclude={"price_variants"})
    service = Service(**data)
    service.price_variants = _build_variants(payload.price_variants)
    session.add(service)
    await session.commit()
    await session.refresh(service, attribute_names=["price_variants"])
    return service


async def update_service(
    session: AsyncSession, *, service: Service, payload: ServiceUpdate
) -> Service:
    data = payload.model_dump(exclude_unset=True, exclude={"price_variants"})
    for key, value in data.items():
        setattr(service, key, value)
    if payload.price_variants is not None:
        service.price_variants = _build_variants(payload.price_variants)
    await session.commit()
    await session.refresh(service, attribute_names=["price_variants"])
    return service


async def delete_service(session: AsyncSession, *, service: Service) -> None:
    await session.delete(service)
    await session.commit()
