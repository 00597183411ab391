"""Admin Routes — catalog seeding and visit overrides require the admin claim."""

from sqlalchemy import select

from waypoint.models.place import Place
from tests.services.exploration_helpers import USER_ID


def _district(name, province, count, lat=6.0, lon=80.0):
    return {
        "district": name,
        "province": province,
        "attractions": [
            {"name": f"{name} {i}", "type": "temple", "lat": lat + i * 0.01, "lon": lon}
            for i in range(count)
        ],
    }


async def test_seed_inserts_then_updates(client, admin_headers, test_db):
    payload = {"districts": [_district("Galle", "Southern", 3)]}

    res = await client.post("/api/v1/admin/places/seed", json=payload, headers=admin_headers)
    assert res.status_code == 200
    assert res.json() == {
        "message": "Places seeded", "inserted": 3, "updated": 0, "districts": 1,
    }

    res = await client.post("/api/v1/admin/places/seed", json=payload, headers=admin_headers)
    assert res.json()["inserted"] == 0
    assert res.json()["updated"] == 3

    places = (await test_db.execute(select(Place))).scalars().all()
    assert len(places) == 3
    assert {p.type for p in places} == {"temple"}


async def test_seed_underfilled_district_rejected_and_not_persisted(
    client, admin_headers, test_db,
):
    payload = {"districts": [
        _district("Galle", "Southern", 3),
        _district("Matara", "Southern", 2),
    ]}
    res = await client.post("/api/v1/admin/places/seed", json=payload, headers=admin_headers)

    assert res.status_code == 400
    error = res.json()["error"]
    assert error["code"] == "CATALOG_UNDERFILLED"
    assert error["details"]["districts"] == [{"district": "matara", "count": 2}]
    places = (await test_db.execute(select(Place))).scalars().all()
    assert places == []


async def test_seed_counts_district_spellings_together(client, admin_headers):
    payload = {"districts": [
        _district("Kandy", "Central", 2),
        _district("kandy ", "Central", 2, lat=7.0),
    ]}
    res = await client.post("/api/v1/admin/places/seed", json=payload, headers=admin_headers)

    assert res.status_code == 200
    assert res.json()["inserted"] == 4


async def test_seed_requires_admin(client):
    res = await client.post(
        "/api/v1/admin/places/seed",
        json={"districts": [_district("Galle", "Southern", 3)]},
    )
    assert res.status_code == 403
    assert res.json()["error"]["code"] == "FORBIDDEN"


async def test_seed_rejects_out_of_range_coordinates(client, admin_headers):
    bad = _district("Galle", "Southern", 3, lat=95.0)
    res = await client.post(
        "/api/v1/admin/places/seed", json={"districts": [bad]}, headers=admin_headers,
    )
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_override_marks_visit(client, admin_headers, seed_catalog):
    await client.post(
        "/api/v1/exploration/initialize", json={"hometown_district": "Colombo"},
    )
    assignments = (await client.get("/api/v1/exploration/assignments")).json()
    location = next(
        a for a in assignments["assignments"] if a["district"] == "Gampaha"
    )["locations"][0]

    res = await client.post(
        "/api/v1/admin/exploration/override",
        json={"user_id": USER_ID, "place_id": location["id"], "reason": "GPS outage"},
        headers=admin_headers,
    )
    assert res.status_code == 200
    assert res.json()["applied"] is True

    profile = (await client.get("/api/v1/exploration/profile")).json()
    assert profile["stats"]["total_visited"] == 1
    assert profile["xp_total"] == 0
    assert profile["cooldown_remaining_seconds"] == 0


async def test_override_for_uninitialized_user_returns_404(
    client, admin_headers, seed_catalog,
):
    res = await client.post(
        "/api/v1/admin/exploration/override",
        json={
            "user_id": "nobody",
            "place_id": str(seed_catalog["Kandy"][0].id),
            "reason": "GPS outage",
        },
        headers=admin_headers,
    )
    assert res.status_code == 404
