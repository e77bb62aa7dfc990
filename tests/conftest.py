# --- keep this shim at the very top ---
import os
import sys

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
# --------------------------------------

import copy

import httpx
import pytest
import pytest_asyncio

from character_registry.registry import Registry
import character_registry.main as app_main


RICK = {
    "id": 1,
    "name": "Rick Sanchez",
    "status": "Alive",
    "species": "Human",
    "type": "",
    "gender": "Male",
    "origin": {
        "name": "Earth (C-137)",
        "url": "https://rickandmortyapi.com/api/location/1",
    },
    "location": {
        "name": "Citadel of Ricks",
        "url": "https://rickandmortyapi.com/api/location/3",
    },
    "image": "https://rickandmortyapi.com/api/character/avatar/1.jpeg",
    "episode": ["https://rickandmortyapi.com/api/episode/1"],
    "url": "https://rickandmortyapi.com/api/character/1",
    "created": "2017-11-04T18:48:46.250Z",
}


def make_character(cid=1, **overrides):
    """Return a complete, valid character record (deep copy of Rick)."""
    c = copy.deepcopy(RICK)
    c["id"] = cid
    c["url"] = f"https://rickandmortyapi.com/api/character/{cid}"
    c.update(overrides)
    return c


@pytest.fixture
def character():
    return make_character


@pytest.fixture
def registry():
    """A fresh, empty registry per test."""
    return Registry()


@pytest.fixture
def seeded(registry):
    """Registry holding characters 1..3 from a population."""
    registry.replace_population([make_character(i) for i in (1, 2, 3)])
    return registry


@pytest.fixture(autouse=True)
def registry_override(registry):
    """Route handlers use the per-test registry instead of the process one."""
    app_main.app.dependency_overrides[app_main.get_registry] = lambda: registry
    yield
    app_main.app.dependency_overrides.pop(app_main.get_registry, None)


@pytest_asyncio.fixture
async def test_client():
    transport = httpx.ASGITransport(app=app_main.app)
    async with httpx.AsyncClient(
        transport=transport, base_url="http://testserver"
    ) as c:
        yield c
