from __future__ import annotations

import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from congregate.db.models import Community
from congregate.testing.factories import create_community, create_member


@pytest.mark.asyncio
async def test_community_crud(client: AsyncClient) -> None:
    r = await client.post(
        "/communities", json={"name": "Emaús Sur", "city": "Monterrey", "country": "MX"}
    )
    assert r.status_code == 201
    created = r.json()
    assert created["name"] == "Emaús Sur"
    community_id = created["id"]

    r = await client.get("/communities")
    assert r.status_code == 200
    assert [(c["id"], c["member_count"], c["meeting_count"]) for c in r.json()] == [
        (community_id, 0, 0)
    ]

    r = await client.patch(f"/communities/{community_id}", json={"description": "Jueves"})
    assert r.status_code == 200
    assert r.json()["description"] == "Jueves"
    assert r.json()["city"] == "Monterrey"

    r = await client.get(f"/communities/{community_id}")
    assert r.status_code == 200
    assert r.json()["description"] == "Jueves"

    r = await client.delete(f"/communities/{community_id}")
    assert r.status_code == 204

    r = await client.get(f"/communities/{community_id}")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_community_validation_errors(client: AsyncClient, community: Community) -> None:
    r = await client.post("/communities", json={"city": "Monterrey"})
    assert r.status_code == 422

    r = await client.patch(f"/communities/{community.id}", json={"name": None})
    assert r.status_code == 400

    r = await client.delete(f"/communities/{uuid.uuid4()}")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_member_management(
    client: AsyncClient, db_session: AsyncSession, community: Community
) -> None:
    r = await client.post(
        f"/communities/{community.id}/members/create",
        json={"first_name": "Ana", "last_name": "Garza"},
    )
    assert r.status_code == 201
    created = r.json()
    assert (created["first_name"], created["state"]) == ("Ana", "active_member")
    member_id = created["id"]

    other = await create_community(db_session)
    r = await client.post(
        f"/communities/{other.id}/members", json={"participant_id": created["participant_id"]}
    )
    assert r.status_code == 201
    added = r.json()
    assert added["community_id"] == str(other.id)

    r = await client.post(
        f"/communities/{other.id}/members", json={"participant_id": created["participant_id"]}
    )
    assert r.status_code == 201
    assert r.json()["id"] == added["id"]

    r = await client.put(
        f"/communities/{community.id}/members/{member_id}", json={"state": "another_group"}
    )
    assert r.status_code == 200
    assert r.json()["state"] == "another_group"

    r = await client.patch(
        f"/communities/{community.id}/members/{member_id}/notes", json={"notes": "Se mudó"}
    )
    assert r.status_code == 200
    assert r.json()["notes"] == "Se mudó"

    r = await client.get(f"/communities/{community.id}/members/{member_id}")
    assert r.status_code == 200
    assert (r.json()["state"], r.json()["notes"]) == ("another_group", "Se mudó")

    r = await client.delete(f"/communities/{community.id}/members/{member_id}")
    assert r.status_code == 204

    r = await client.get(f"/communities/{community.id}/members/{member_id}")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_member_state_update_checks_membership(
    client: AsyncClient, db_session: AsyncSession, community: Community
) -> None:
    other = await create_community(db_session)
    outsider = await create_member(db_session, other.id)

    r = await client.put(
        f"/communities/{community.id}/members/{outsider.id}", json={"state": "active_member"}
    )
    assert r.status_code == 404

    r = await client.put(
        f"/communities/{community.id}/members/{uuid.uuid4()}", json={"state": "active_member"}
    )
    assert r.status_code == 404

    r = await client.put(
        f"/communities/{other.id}/members/{outsider.id}", json={"state": "retired"}
    )
    assert r.status_code == 422
