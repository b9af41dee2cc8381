from datetime import UTC, datetime, timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.manual_entry import ManualEntry

ENTRY = {
    "license_plate": " hab-1234 ",
    "driver_name": "Carlos Pérez",
    "driver_id_number": "0801-1990-12345",
    "driver_phone": "+50495551234",
    "vehicle_model": "Toyota Corolla",
}


@pytest.mark.asyncio
async def test_guard_registers_manual_entry(client: AsyncClient, guard_user: dict):
    response = await client.post(
        "/api/v1/manual-entries", json=ENTRY, headers=guard_user["headers"]
    )
    assert response.status_code == 200
    data = response.json()
    assert data["license_plate"] == "HAB-1234"
    assert data["status"] == "active"
    assert data["guard_id"] == guard_user["id"]
    assert data["guard_name"] == "Guardia Uno"
    assert data["exit_time"] is None


@pytest.mark.asyncio
async def test_clients_cannot_register_entries(client: AsyncClient, client_user: dict):
    response = await client.post(
        "/api/v1/manual-entries", json=ENTRY, headers=client_user["headers"]
    )
    assert response.status_code == 403


@pytest.mark.asyncio
@pytest.mark.parametrize("plate", ["   ", "X" * 21])
async def test_license_plate_validation(client: AsyncClient, guard_user: dict, plate: str):
    response = await client.post(
        "/api/v1/manual-entries",
        json={**ENTRY, "license_plate": plate},
        headers=guard_user["headers"],
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_complete_manual_entry(
    client: AsyncClient, db_session: AsyncSession, guard_user: dict
):
    created = await client.post(
        "/api/v1/manual-entries", json=ENTRY, headers=guard_user["headers"]
    )
    entry_id = created.json()["id"]

    entry = await db_session.get(ManualEntry, entry_id, populate_existing=True)
    entry.entry_time = datetime.now(UTC) - timedelta(minutes=44, seconds=50)
    await db_session.commit()

    response = await client.post(
        f"/api/v1/manual-entries/{entry_id}/complete",
        json={"payment_method": "cash", "notes": "Pagó exacto"},
        headers=guard_user["headers"],
    )
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "completed"
    assert data["duration"] == 45
    assert data["cost"] == 45.0
    assert data["payment_method"] == "cash"
    assert data["notes"] == "Pagó exacto"

    again = await client.post(
        f"/api/v1/manual-entries/{entry_id}/complete",
        json={"payment_method": "cash"},
        headers=guard_user["headers"],
    )
    assert again.status_code == 409


@pytest.mark.asyncio
async def test_active_entries_filter_by_guard(
    client: AsyncClient, guard_user: dict, admin_user: dict
):
    await client.post("/api/v1/manual-entries", json=ENTRY, headers=guard_user["headers"])
    await client.post(
        "/api/v1/manual-entries",
        json={**ENTRY, "license_plate": "PDA-0001"},
        headers=admin_user["headers"],
    )

    everyone = await client.get("/api/v1/manual-entries/active", headers=guard_user["headers"])
    assert len(everyone.json()) == 2

    mine = await client.get(
        "/api/v1/manual-entries/active", params={"mine": True}, headers=guard_user["headers"]
    )
    assert [e["license_plate"] for e in mine.json()] == ["HAB-1234"]


@pytest.mark.asyncio
async def test_complete_unknown_entry(client: AsyncClient, guard_user: dict):
    response = await client.post(
        "/api/v1/manual-entries/999/complete",
        json={"payment_method": "transfer"},
        headers=guard_user["headers"],
    )
    assert response.status_code == 404
