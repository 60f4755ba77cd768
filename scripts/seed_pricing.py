"""Seed a starter catalog, a welcome promo, platform fees and the minimum booking policy."""

from __future__ import annotations

import asyncio
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import select

from marketplace.db.session import get_sessionmaker
from marketplace.models import (
    DiscountType,
    FeeType,
    MinimumBookingSetting,
    PlatformFee,
    PromoCode,
    Service,
    ServicePriceVariant,
)

PROMO_CODE = "WELCOME10"
POLICY_DESCRIPTION = (
    "Orders below ₹{MINIMUM_BOOKING_AMOUNT} include a visiting charge of "
    "₹{VISITING_CHARGE}."
)

_SERVICES = [
    {
        "name": "AC Service",
        "slug": "ac-service",
        "price": Decimal("599"),
        "discounted_price": Decimal("499"),
        "is_tax_inclusive": True,
        "tax_percent": Decimal("18"),
    },
    {
        "name": "Fan Installation",
        "slug": "fan-installation",
        "price": Decimal("199"),
        "is_tax_inclusive": False,
        "tax_percent": Decimal("18"),
        "has_price_variants": True,
        "variants": [
            (1, 2, Decimal("199")),
            (3, 5, Decimal("179")),
            (6, None, Decimal("159")),
        ],
    },
    {
        "name": "Bathroom Cleaning",
        "slug": "bathroom-cleaning",
        "price": Decimal("399"),
        "is_tax_inclusive": True,
        "tax_percent": Decimal("18"),
    },
]


async def seed_pricing() -> None:
    sessionmaker = get_sessionmaker()
    async with sessionmaker() as session:
        services_created = 0
        existing_slugs = set(
            (await session.execute(select(Service.slug))).scalars().all()
        )
        for entry in _SERVICES:
            if entry["slug"] in existing_slugs:
                continue
            variants = entry.get("variants", [])
            service = Service(
                name=entry["name"],
                slug=entry["slug"],
                price=entry["price"],
                discounted_price=entry.get("discounted_price"),
                is_tax_inclusive=entry["is_tax_inclusive"],
                tax_percent=entry["tax_percent"],
                has_price_variants=entry.get("has_price_variants", False),
                is_active=True,
            )
            service.price_variants = [
                ServicePriceVariant(
                    from_quantity=start, to_quantity=end, price=price
                )
                for start, end, price in variants
            ]
            session.add(service)
            services_created += 1

        promo_exists = (
            await session.execute(select(PromoCode).where(PromoCode.code == PROMO_CODE))
        ).scalar_one_or_none()
        promos_created = 0
        if promo_exists is None:
            session.add(
                PromoCode(
                    code=PROMO_CODE,
                    description="10% off your first booking",
                    discount_type=DiscountType.PERCENTAGE,
                    discount_value=Decimal("10"),
                    min_booking_amount=Decimal("300"),
                    max_uses_per_user=1,
                    uses_count=0,
                    valid_from=date.today(),
                    valid_until=date.today() + timedelta(days=365),
                    is_active=True,
                    is_hidden=False,
                )
            )
            promos_created += 1

        fees_created = 0
        if (await session.execute(select(PlatformFee.id))).first() is None:
            session.add(
                PlatformFee(
                    name="Platform Fee",
                    fee_type=FeeType.FIXED,
                    value=Decimal("29"),
                    fee_tax_rate_percent=Decimal("18"),
                    is_active=True,
                    position=0,
                )
            )
            fees_created += 1

        policy_created = 0
        if await session.get(MinimumBookingSetting, 1) is None:
            session.add(
                MinimumBookingSetting(
                    id=1,
                    enabled=True,
                    minimum_booking_amount=Decimal("500"),
                    visiting_charge_amount=Decimal("99"),
                    is_tax_inclusive=True,
                    tax_percent=Decimal("18"),
                    tax_on_charge_enabled=True,
                    description=POLICY_DESCRIPTION,
                )
            )
            policy_created += 1

        if services_created or promos_created or fees_created or policy_created:
            await session.commit()

        print(
            f"Seeded {services_created} service(s), {promos_created} promo code(s), "
            f"{fees_created} platform fee(s) and {policy_created} policy row(s)."
        )


def main() -> None:
    asyncio.run(seed_pricing())


if __name__ == "__main__":
    main()
