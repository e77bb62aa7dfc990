"""HTTP surface tests.

Each registry failure must reach clients as problem+json with its own status,
and successful calls return the documented message bodies.
"""

import pytest
from fastapi.testclient import TestClient

import character_registry.main as app_main
from character_registry import ingest
from character_registry.errors import UpstreamUnavailable


def _assert_problem(resp, status, title):
    assert resp.status_code == status
    assert resp.headers.get("content-type", "").startswith("application/problem+json")
    body = resp.json()
    assert body["status"] == status
    assert body["title"] == title
    return body


@pytest.mark.asyncio
async def test_root_redirects_to_docs(test_client):
    r = await test_client.get("/", follow_redirects=False)
    assert r.status_code == 307
    assert r.headers["location"] == "/docs"


@pytest.mark.asyncio
async def test_characters_empty_is_404(test_client):
    r = await test_client.get("/characters")
    body = _assert_problem(r, 404, "Not Found")
    assert "populate" in body["detail"]
    assert body["instance"] == "/characters"


@pytest.mark.asyncio
async def test_population_then_characters(monkeypatch, test_client, character):
    async def fake_fetch():
        return [character(1), character(2)]

    monkeypatch.setattr(ingest.api, "fetch_characters", fake_fetch)

    r = await test_client.get("/population")
    assert r.status_code == 200
    assert r.json() == {"message": "characters fetched", "count": 2}

    r = await test_client.get("/characters")
    assert r.status_code == 200
    body = r.json()
    assert [c["id"] for c in body] == [1, 2]
    assert body[0]["origin"] == character(1)["origin"]


@pytest.mark.asyncio
async def test_population_upstream_down_is_424(monkeypatch, test_client, seeded):
    async def down():
        raise UpstreamUnavailable("Upstream API unreachable")

    monkeypatch.setattr(ingest.api, "fetch_characters", down)
    r = await test_client.get("/population")
    body = _assert_problem(r, 424, "Failed Dependency")
    assert body["detail"] == "Upstream API unreachable"
    assert seeded.count() == 0


@pytest.mark.asyncio
async def test_create_success_and_duplicate(test_client, registry, character):
    r = await test_client.post("/create", json=character(5))
    assert r.status_code == 201
    assert r.json() == {"message": "character created"}
    assert registry.get(5)["name"] == "Rick Sanchez"

    r = await test_client.post("/create", json=character(5))
    _assert_problem(r, 409, "Conflict")
    assert registry.count() == 1


@pytest.mark.asyncio
async def test_create_validation_lists_errors(test_client, registry, character):
    bad = character(5, origin={"name": "X"})
    del bad["gender"]
    r = await test_client.post("/create", json=bad)
    body = _assert_problem(r, 400, "Bad Request")
    assert body["errors"] == [
        "missing field 'gender'",
        "field 'origin' must be an object with 'name' and 'url'",
    ]
    assert registry.count() == 0


@pytest.mark.asyncio
async def test_create_non_object_body_is_422(test_client):
    r = await test_client.post("/create", json=[1, 2])
    _assert_problem(r, 422, "Unprocessable Entity")


@pytest.mark.asyncio
async def test_update_routes(test_client, seeded):
    r = await test_client.patch("/update/2", json={"name": "Morty Smith"})
    assert r.status_code == 200
    assert r.json() == {"message": "character updated"}
    assert seeded.get(2)["name"] == "Morty Smith"

    r = await test_client.patch("/update/2", json={"id": 99})
    _assert_problem(r, 403, "Forbidden")

    r = await test_client.patch("/update/404", json={"name": "x"})
    _assert_problem(r, 404, "Not Found")

    r = await test_client.patch("/update/2", json={"origin": "Earth"})
    body = _assert_problem(r, 400, "Bad Request")
    assert len(body["errors"]) == 1


@pytest.mark.asyncio
async def test_update_non_integer_id_is_422(test_client, seeded):
    r = await test_client.patch("/update/abc", json={"name": "x"})
    _assert_problem(r, 422, "Unprocessable Entity")


@pytest.mark.asyncio
async def test_delete_twice(test_client, seeded):
    r = await test_client.delete("/delete/3")
    assert r.status_code == 200
    assert r.json() == {"message": "character deleted"}

    r = await test_client.delete("/delete/3")
    _assert_problem(r, 404, "Not Found")
    assert [c["id"] for c in seeded.list_all()] == [1, 2]


@pytest.mark.asyncio
async def test_healthz_reports_count(test_client, seeded):
    r = await test_client.get("/healthz")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"
    assert r.json()["character_count"] == 3


@pytest.mark.asyncio
async def test_metrics_count_registry_outcomes(test_client, seeded):
    await test_client.delete("/delete/1")
    await test_client.delete("/delete/1")

    r = await test_client.get("/metrics")
    assert r.status_code == 200
    text = r.text
    assert 'registry_operations_total{op="delete",outcome="ok"}' in text
    assert 'registry_operations_total{op="delete",outcome="NotFound"}' in text


def test_lifespan_populates_when_enabled(monkeypatch):
    calls = {"n": 0}

    async def fake_populate(reg):
        calls["n"] += 1
        return 0

    monkeypatch.setattr(app_main.settings, "POPULATE_ON_STARTUP", True)
    monkeypatch.setattr(ingest, "populate", fake_populate)

    with TestClient(app_main.app):
        pass

    assert calls["n"] == 1


def test_lifespan_survives_upstream_failure(monkeypatch):
    async def failing_populate(reg):
        raise UpstreamUnavailable()

    monkeypatch.setattr(app_main.settings, "POPULATE_ON_STARTUP", True)
    monkeypatch.setattr(ingest, "populate", failing_populate)

    with TestClient(app_main.app) as client:
        assert client.get("/healthz").status_code == 200


def test_lifespan_skips_population_by_default(monkeypatch):
    async def boom(reg):
        raise AssertionError("should not populate")

    monkeypatch.setattr(app_main.settings, "POPULATE_ON_STARTUP", False)
    monkeypatch.setattr(ingest, "populate", boom)

    with TestClient(app_main.app):
        pass


@pytest.mark.asyncio
async def test_create_string_id_rejected_int_id_deletable(test_client, registry, character):
    r = await test_client.post("/create", json=character("7"))
    body = _assert_problem(r, 400, "Bad Request")
    assert body["errors"] == ["field 'id' must be an integer"]

    r = await test_client.post("/create", json=character(7))
    assert r.status_code == 201
    r = await test_client.delete("/delete/7")
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_population_malformed_payload_is_424(monkeypatch, test_client, seeded, character):
    async def malformed():
        return [character(1), "not a character"]

    monkeypatch.setattr(ingest.api, "fetch_characters", malformed)
    r = await test_client.get("/population")
    _assert_problem(r, 424, "Failed Dependency")
    assert seeded.count() == 0


@pytest.mark.asyncio
async def test_metrics_record_gauge_follows_mutations(test_client, seeded, character):
    await test_client.post("/create", json=character(10))
    r = await test_client.get("/metrics")
    assert "registry_records 4.0" in r.text

    await test_client.delete("/delete/1")
    await test_client.delete("/delete/2")
    r = await test_client.get("/metrics")
    assert "registry_records 2.0" in r.text
