import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import (
    CannotCancelCompletedError,
    ConflictError,
    NotFoundError,
    TransactionStateError,
)
from src.models.user import User
from src.services import payment as payment_service
from src.utils.constants import TransactionMethod, TransactionStatus


async def balance_of(db_session: AsyncSession, user_id: int) -> int:
    user = await db_session.get(User, user_id, populate_existing=True)
    return user.balance


@pytest.mark.asyncio
async def test_default_packages_are_seeded(client: AsyncClient):
    response = await client.get("/api/v1/payments/packages")
    assert response.status_code == 200
    packages = {p["id"]: p for p in response.json()}
    assert set(packages) == {"basic-60", "standard-150", "premium-300"}
    assert packages["basic-60"]["minutes"] == 60
    assert packages["basic-60"]["price"] == 60
    assert packages["standard-150"]["minutes"] == 150
    assert packages["standard-150"]["price"] == 135
    assert packages["standard-150"]["popular"] is True
    assert packages["premium-300"]["minutes"] == 300
    assert packages["premium-300"]["price"] == 240

    # Seeding happens once
    again = await client.get("/api/v1/payments/packages")
    assert len(again.json()) == 3


@pytest.mark.asyncio
async def test_transfer_purchase_waits_for_confirmation(
    client: AsyncClient, db_session: AsyncSession, client_user: dict
):
    response = await client.post(
        "/api/v1/payments/purchase",
        json={"package_id": "basic-60", "method": "transfer", "reference": " TRX-1 "},
        headers=client_user["headers"],
    )
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "pending"
    assert data["type"] == "purchase"
    assert data["method"] == "transfer"
    assert data["minutes"] == 60
    assert data["amount"] == 60
    assert data["reference"] == "TRX-1"
    assert data["package_id"] == "basic-60"
    assert data["metadata"] == {"package": "basic-60"}
    assert data["description"] == "Purchase of 60 minutes - Básico"
    assert data["completed_at"] is None

    assert await balance_of(db_session, client_user["id"]) == 100


@pytest.mark.asyncio
@pytest.mark.parametrize("method", ["cash", "card"])
async def test_counter_purchase_completes_immediately(
    client: AsyncClient, db_session: AsyncSession, client_user: dict, admin_user: dict, method: str
):
    response = await client.post(
        "/api/v1/payments/purchase",
        json={"package_id": "standard-150", "method": method, "user_id": client_user["id"]},
        headers=admin_user["headers"],
    )
    assert response.status_code == 200
    assert response.json()["status"] == "completed"
    assert response.json()["completed_at"] is not None
    assert response.json()["processed_by"] == admin_user["id"]

    assert await balance_of(db_session, client_user["id"]) == 250


@pytest.mark.asyncio
@pytest.mark.parametrize("method", ["cash", "card"])
async def test_client_cannot_self_credit_counter_purchase(
    client: AsyncClient, db_session: AsyncSession, client_user: dict, method: str
):
    for payload in (
        {"package_id": "premium-300", "method": method},
        {"package_id": "premium-300", "method": method, "user_id": client_user["id"]},
    ):
        response = await client.post(
            "/api/v1/payments/purchase", json=payload, headers=client_user["headers"]
        )
        assert response.status_code == 403

    assert await balance_of(db_session, client_user["id"]) == 100
    mine = await client.get("/api/v1/payments/me", headers=client_user["headers"])
    assert mine.json() == []


@pytest.mark.asyncio
async def test_confirm_credits_exactly_once(
    client: AsyncClient, db_session: AsyncSession, client_user: dict, admin_user: dict
):
    created = await client.post(
        "/api/v1/payments/purchase",
        json={"package_id": "basic-60", "method": "transfer"},
        headers=client_user["headers"],
    )
    transaction_id = created.json()["id"]

    first = await client.post(
        f"/api/v1/payments/{transaction_id}/confirm", headers=admin_user["headers"]
    )
    assert first.status_code == 200
    assert first.json()["status"] == "completed"
    assert first.json()["processed_by"] == admin_user["id"]

    second = await client.post(
        f"/api/v1/payments/{transaction_id}/confirm", headers=admin_user["headers"]
    )
    assert second.status_code == 200
    assert second.json()["status"] == "completed"

    assert await balance_of(db_session, client_user["id"]) == 160


@pytest.mark.asyncio
async def test_only_admins_confirm(client: AsyncClient, client_user: dict, guard_user: dict):
    created = await client.post(
        "/api/v1/payments/purchase",
        json={"package_id": "basic-60", "method": "transfer"},
        headers=client_user["headers"],
    )
    transaction_id = created.json()["id"]

    for user in (client_user, guard_user):
        response = await client.post(
            f"/api/v1/payments/{transaction_id}/confirm", headers=user["headers"]
        )
        assert response.status_code == 403


@pytest.mark.asyncio
async def test_cancel_pending_purchase(
    client: AsyncClient, db_session: AsyncSession, client_user: dict
):
    created = await client.post(
        "/api/v1/payments/purchase",
        json={"package_id": "basic-60", "method": "transfer"},
        headers=client_user["headers"],
    )
    transaction_id = created.json()["id"]

    response = await client.post(
        f"/api/v1/payments/{transaction_id}/cancel",
        json={"reason": "wrong package"},
        headers=client_user["headers"],
    )
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "cancelled"
    assert data["metadata"]["cancellation_reason"] == "wrong package"
    assert data["metadata"]["package"] == "basic-60"

    # Cancelling twice is a no-op
    again = await client.post(
        f"/api/v1/payments/{transaction_id}/cancel", json={}, headers=client_user["headers"]
    )
    assert again.status_code == 200
    assert again.json()["status"] == "cancelled"

    assert await balance_of(db_session, client_user["id"]) == 100


@pytest.mark.asyncio
async def test_completed_purchase_cannot_be_cancelled(
    client: AsyncClient, db_session: AsyncSession, client_user: dict, guard_user: dict
):
    created = await client.post(
        "/api/v1/payments/purchase",
        json={"package_id": "basic-60", "method": "cash", "user_id": client_user["id"]},
        headers=guard_user["headers"],
    )
    transaction_id = created.json()["id"]

    response = await client.post(
        f"/api/v1/payments/{transaction_id}/cancel", json={}, headers=client_user["headers"]
    )
    assert response.status_code == 409
    assert response.json()["detail"] == "Cannot cancel a completed transaction"

    stored = await payment_service.get_transaction_by_id(db_session, transaction_id)
    assert stored.status == TransactionStatus.COMPLETED
    assert await balance_of(db_session, client_user["id"]) == 160


@pytest.mark.asyncio
async def test_cancelled_purchase_cannot_be_confirmed(db_session: AsyncSession, client_user: dict):
    created = await payment_service.process_purchase_transaction(
        db_session, client_user["id"], "basic-60", TransactionMethod.TRANSFER
    )
    await payment_service.cancel_transaction(db_session, created.id)

    with pytest.raises(TransactionStateError):
        await payment_service.confirm_transaction(db_session, created.id)
    assert await balance_of(db_session, client_user["id"]) == 100


@pytest.mark.asyncio
async def test_cancel_completed_raises(db_session: AsyncSession, client_user: dict):
    created = await payment_service.process_purchase_transaction(
        db_session, client_user["id"], "premium-300", TransactionMethod.CASH
    )
    with pytest.raises(CannotCancelCompletedError):
        await payment_service.cancel_transaction(db_session, created.id)


@pytest.mark.asyncio
async def test_unknown_package_and_user(db_session: AsyncSession, client_user: dict):
    with pytest.raises(NotFoundError):
        await payment_service.process_purchase_transaction(
            db_session, client_user["id"], "gold-999", TransactionMethod.CASH
        )
    with pytest.raises(NotFoundError):
        await payment_service.process_purchase_transaction(
            db_session, 9999, "basic-60", TransactionMethod.CASH
        )
    with pytest.raises(NotFoundError):
        await payment_service.confirm_transaction(db_session, 9999)


@pytest.mark.asyncio
async def test_inactive_package_cannot_be_bought(
    client: AsyncClient, client_user: dict, admin_user: dict
):
    await client.get("/api/v1/payments/packages")
    disabled = await client.put(
        "/api/v1/payments/packages/basic-60",
        json={"is_active": False},
        headers=admin_user["headers"],
    )
    assert disabled.status_code == 200
    assert disabled.json()["is_active"] is False

    listing = await client.get("/api/v1/payments/packages")
    assert "basic-60" not in {p["id"] for p in listing.json()}

    response = await client.post(
        "/api/v1/payments/purchase",
        json={"package_id": "basic-60", "method": "transfer"},
        headers=client_user["headers"],
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_admin_creates_package(client: AsyncClient, admin_user: dict, client_user: dict):
    payload = {
        "id": "night-600",
        "name": "Nocturno",
        "minutes": 600,
        "price": 400,
        "cost_per_minute": 0.67,
        "description": "Toda la noche",
    }
    forbidden = await client.post(
        "/api/v1/payments/packages", json=payload, headers=client_user["headers"]
    )
    assert forbidden.status_code == 403

    created = await client.post(
        "/api/v1/payments/packages", json=payload, headers=admin_user["headers"]
    )
    assert created.status_code == 200
    assert created.json()["is_active"] is True

    duplicate = await client.post(
        "/api/v1/payments/packages", json=payload, headers=admin_user["headers"]
    )
    assert duplicate.status_code == 409


@pytest.mark.asyncio
async def test_guard_records_purchase_for_client(
    client: AsyncClient, db_session: AsyncSession, client_user: dict, guard_user: dict
):
    response = await client.post(
        "/api/v1/payments/purchase",
        json={"package_id": "basic-60", "method": "cash", "user_id": client_user["id"]},
        headers=guard_user["headers"],
    )
    assert response.status_code == 200
    assert response.json()["user_id"] == client_user["id"]
    assert response.json()["processed_by"] == guard_user["id"]
    assert await balance_of(db_session, client_user["id"]) == 160


@pytest.mark.asyncio
async def test_client_cannot_purchase_for_others(
    client: AsyncClient, client_user: dict, make_user
):
    other = await make_user()
    response = await client.post(
        "/api/v1/payments/purchase",
        json={"package_id": "basic-60", "method": "cash", "user_id": other["id"]},
        headers=client_user["headers"],
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_card_payment_completion(
    client: AsyncClient, db_session: AsyncSession, client_user: dict, admin_user: dict
):
    created = await client.post(
        "/api/v1/payments/card",
        json={
            "package_id": "premium-300",
            "payment_intent_id": "pi_123",
            "payment_method_id": "pm_456",
        },
        headers=client_user["headers"],
    )
    assert created.status_code == 200
    data = created.json()
    assert data["status"] == "pending"
    assert data["method"] == "card"
    assert data["payment_intent_id"] == "pi_123"
    assert data["description"].endswith("(card)")

    duplicate = await client.post(
        "/api/v1/payments/card",
        json={
            "package_id": "premium-300",
            "payment_intent_id": "pi_123",
            "payment_method_id": "pm_456",
        },
        headers=client_user["headers"],
    )
    assert duplicate.status_code == 409

    for _ in range(2):
        completed = await client.post(
            "/api/v1/payments/card/pi_123/complete", headers=admin_user["headers"]
        )
        assert completed.status_code == 200
        assert completed.json()["status"] == "completed"

    assert await balance_of(db_session, client_user["id"]) == 400


@pytest.mark.asyncio
async def test_card_payment_failure(
    client: AsyncClient, db_session: AsyncSession, client_user: dict, admin_user: dict
):
    await client.post(
        "/api/v1/payments/card",
        json={
            "package_id": "basic-60",
            "payment_intent_id": "pi_fail",
            "payment_method_id": "pm_1",
        },
        headers=client_user["headers"],
    )

    failed = await client.post(
        "/api/v1/payments/card/pi_fail/fail",
        json={"error_message": "card_declined"},
        headers=admin_user["headers"],
    )
    assert failed.status_code == 200
    assert failed.json()["status"] == "failed"
    assert failed.json()["metadata"]["error_message"] == "card_declined"

    late = await client.post(
        "/api/v1/payments/card/pi_fail/complete", headers=admin_user["headers"]
    )
    assert late.status_code == 409
    assert await balance_of(db_session, client_user["id"]) == 100


@pytest.mark.asyncio
async def test_unknown_payment_intent(db_session: AsyncSession):
    with pytest.raises(NotFoundError):
        await payment_service.complete_card_payment(db_session, "pi_missing")


@pytest.mark.asyncio
async def test_duplicate_intent_in_service(db_session: AsyncSession, client_user: dict):
    await payment_service.create_card_payment_transaction(
        db_session, client_user["id"], "basic-60", "pi_dup", "pm_1"
    )
    with pytest.raises(ConflictError):
        await payment_service.create_card_payment_transaction(
            db_session, client_user["id"], "basic-60", "pi_dup", "pm_1"
        )


@pytest.mark.asyncio
async def test_transaction_listings(
    client: AsyncClient, client_user: dict, admin_user: dict, make_user
):
    other = await make_user()
    await client.post(
        "/api/v1/payments/purchase",
        json={"package_id": "basic-60", "method": "transfer"},
        headers=client_user["headers"],
    )
    await client.post(
        "/api/v1/payments/purchase",
        json={"package_id": "basic-60", "method": "cash", "user_id": client_user["id"]},
        headers=admin_user["headers"],
    )
    await client.post(
        "/api/v1/payments/purchase",
        json={"package_id": "basic-60", "method": "transfer"},
        headers=other["headers"],
    )

    mine = await client.get("/api/v1/payments/me", headers=client_user["headers"])
    assert mine.status_code == 200
    assert [t["method"] for t in mine.json()] == ["cash", "transfer"]

    pending = await client.get("/api/v1/payments/pending", headers=admin_user["headers"])
    assert len(pending.json()) == 2
    assert all(t["status"] == "pending" for t in pending.json())

    everything = await client.get("/api/v1/payments", headers=admin_user["headers"])
    assert len(everything.json()) == 3

    forbidden = await client.get("/api/v1/payments", headers=client_user["headers"])
    assert forbidden.status_code == 403


@pytest.mark.asyncio
async def test_transaction_detail_is_private(client: AsyncClient, client_user: dict, make_user):
    other = await make_user()
    created = await client.post(
        "/api/v1/payments/purchase",
        json={"package_id": "basic-60", "method": "transfer"},
        headers=other["headers"],
    )
    transaction_id = created.json()["id"]

    own = await client.get(f"/api/v1/payments/{transaction_id}", headers=other["headers"])
    assert own.status_code == 200

    foreign = await client.get(
        f"/api/v1/payments/{transaction_id}", headers=client_user["headers"]
    )
    assert foreign.status_code == 404

    cancel = await client.post(
        f"/api/v1/payments/{transaction_id}/cancel", json={}, headers=client_user["headers"]
    )
    assert cancel.status_code == 404
