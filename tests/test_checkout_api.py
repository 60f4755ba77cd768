"""API tests for the checkout draft workflow."""

from __future__ import annotations

import uuid
from decimal import Decimal

import pytest
from httpx import AsyncClient

from marketplace.db.session import get_sessionmaker
from marketplace.models import DiscountType, PromoCode, Service

pytestmark = pytest.mark.asyncio


async def _seed(db_url: str) -> uuid.UUID:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        service = Service(
            name="AC Service",
            price=Decimal("599"),
            is_tax_inclusive=False,
            tax_percent=Decimal("18"),
        )
        session.add_all(
            [
                service,
                PromoCode(
                    code="FLAT100",
                    discount_type=DiscountType.FIXED,
                    discount_value=Decimal("100"),
                    min_booking_amount=Decimal("1000"),
                    max_uses=1,
                ),
            ]
        )
        await session.commit()
        return service.id


async def test_guest_checkout_flow(client: AsyncClient, db_url: str) -> None:
    service_id = await _seed(db_url)

    created = await client.post(
        "/api/v1/checkout/drafts",
        json={"items": [{"service_id": str(service_id), "quantity": 2}]},
    )
    assert created.status_code == 201, created.text
    draft = created.json()
    draft_id = draft["id"]
    assert draft["status"] == "open"
    assert Decimal(draft["breakdown"]["grand_total"]) == Decimal("1413.64")

    applied = await client.post(
        f"/api/v1/checkout/drafts/{draft_id}/promo-code", json={"code": "flat100"}
    )
    assert applied.status_code == 200, applied.text
    body = applied.json()
    assert body["evaluation"]["rejection_reason"] is None
    assert body["draft"]["promo_code"] == "FLAT100"
    assert Decimal(body["draft"]["breakdown"]["discount_amount"]) == Decimal("100")
    assert Decimal(body["draft"]["breakdown"]["grand_total"]) == Decimal("1313.64")

    method = await client.put(
        f"/api/v1/checkout/drafts/{draft_id}/payment-method",
        json={"payment_method": "online"},
    )
    assert method.status_code == 200
    assert method.json()["payment_method"] == "online"

    placed = await client.post(f"/api/v1/checkout/drafts/{draft_id}/booking")
    assert placed.status_code == 201, placed.text
    booking = placed.json()
    assert booking["status"] == "pending_payment"
    assert booking["discount_code"] == "FLAT100"
    assert Decimal(booking["total_amount"]) == Decimal("1313.64")
    assert booking["amount_minor_units"] == 131364
    assert booking["items"][0]["quantity"] == 2

    fetched = await client.get(f"/api/v1/checkout/bookings/{booking['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["reference"] == booking["reference"]

    again = await client.post(f"/api/v1/checkout/drafts/{draft_id}/booking")
    assert again.status_code == 409

    closed = await client.put(
        f"/api/v1/checkout/drafts/{draft_id}/cart",
        json={"items": [{"service_id": str(service_id), "quantity": 1}]},
    )
    assert closed.status_code == 409


async def test_exhausted_promo_rejected_for_next_draft(
    client: AsyncClient, db_url: str
) -> None:
    service_id = await _seed(db_url)
    items = {"items": [{"service_id": str(service_id), "quantity": 2}]}

    first = (await client.post("/api/v1/checkout/drafts", json=items)).json()
    await client.post(
        f"/api/v1/checkout/drafts/{first['id']}/promo-code", json={"code": "FLAT100"}
    )
    await client.put(
        f"/api/v1/checkout/drafts/{first['id']}/payment-method",
        json={"payment_method": "pay_after_service"},
    )
    placed = await client.post(f"/api/v1/checkout/drafts/{first['id']}/booking")
    assert placed.json()["status"] == "confirmed"

    second = (await client.post("/api/v1/checkout/drafts", json=items)).json()
    rejected = await client.post(
        f"/api/v1/checkout/drafts/{second['id']}/promo-code", json={"code": "FLAT100"}
    )

    assert rejected.status_code == 200
    assert rejected.json()["evaluation"]["rejection_reason"] == "global_limit_reached"
    assert rejected.json()["draft"]["promo_code"] is None


async def test_remove_promo_and_shrink_cart(client: AsyncClient, db_url: str) -> None:
    service_id = await _seed(db_url)
    draft = (
        await client.post(
            "/api/v1/checkout/drafts",
            json={"items": [{"service_id": str(service_id), "quantity": 2}]},
        )
    ).json()
    await client.post(
        f"/api/v1/checkout/drafts/{draft['id']}/promo-code", json={"code": "FLAT100"}
    )

    removed = await client.delete(f"/api/v1/checkout/drafts/{draft['id']}/promo-code")
    assert removed.status_code == 200
    assert removed.json()["promo_code"] is None
    assert Decimal(removed.json()["breakdown"]["discount_amount"]) == Decimal("0")

    await client.post(
        f"/api/v1/checkout/drafts/{draft['id']}/promo-code", json={"code": "FLAT100"}
    )
    shrunk = await client.put(
        f"/api/v1/checkout/drafts/{draft['id']}/cart",
        json={"items": [{"service_id": str(service_id), "quantity": 1}]},
    )
    assert shrunk.status_code == 200
    assert shrunk.json()["promo_code"] is None
    assert shrunk.json()["notices"][0]["code"] == "promo_removed"


async def test_booking_without_payment_method_is_rejected(
    client: AsyncClient, db_url: str
) -> None:
    service_id = await _seed(db_url)
    draft = (
        await client.post(
            "/api/v1/checkout/drafts",
            json={"items": [{"service_id": str(service_id), "quantity": 1}]},
        )
    ).json()

    response = await client.post(f"/api/v1/checkout/drafts/{draft['id']}/booking")
    assert response.status_code == 400


async def test_user_draft_hidden_from_other_callers(
    client: AsyncClient, db_url: str, auth_headers
) -> None:
    service_id = await _seed(db_url)
    owner = auth_headers("user-1")
    created = await client.post(
        "/api/v1/checkout/drafts",
        json={"items": [{"service_id": str(service_id), "quantity": 1}]},
        headers=owner,
    )
    draft_id = created.json()["id"]
    assert created.json()["user_id"] == "user-1"

    assert (await client.get(f"/api/v1/checkout/drafts/{draft_id}")).status_code == 404
    other = await client.get(
        f"/api/v1/checkout/drafts/{draft_id}", headers=auth_headers("user-2")
    )
    assert other.status_code == 404
    mine = await client.get(f"/api/v1/checkout/drafts/{draft_id}", headers=owner)
    assert mine.status_code == 200


async def test_unknown_draft_returns_404(client: AsyncClient) -> None:
    response = await client.get(f"/api/v1/checkout/drafts/{uuid.uuid4()}")
    assert response.status_code == 404


async def test_promo_exhausted_before_placement_returns_conflict(
    client: AsyncClient, db_url: str
) -> None:
    service_id = await _seed(db_url)
    items = {"items": [{"service_id": str(service_id), "quantity": 2}]}

    drafts = []
    for _ in range(2):
        draft = (await client.post("/api/v1/checkout/drafts", json=items)).json()
        await client.post(
            f"/api/v1/checkout/drafts/{draft['id']}/promo-code", json={"code": "FLAT100"}
        )
        await client.put(
            f"/api/v1/checkout/drafts/{draft['id']}/payment-method",
            json={"payment_method": "online"},
        )
        drafts.append(draft["id"])

    first = await client.post(f"/api/v1/checkout/drafts/{drafts[0]}/booking")
    assert first.status_code == 201
    assert first.json()["discount_code"] == "FLAT100"

    second = await client.post(f"/api/v1/checkout/drafts/{drafts[1]}/booking")
    assert second.status_code == 409

    repriced = (await client.get(f"/api/v1/checkout/drafts/{drafts[1]}")).json()
    assert repriced["status"] == "open"
    assert repriced["promo_code"] is None
    assert Decimal(repriced["breakdown"]["grand_total"]) == Decimal("1413.64")
    assert [notice["code"] for notice in repriced["notices"]] == ["promo_removed"]

    confirmed = await client.post(f"/api/v1/checkout/drafts/{drafts[1]}/booking")
    assert confirmed.status_code == 201
    assert confirmed.json()["amount_minor_units"] == 141364
