"""
Test configuration.
Provides the shared fixtures: settings, an in-memory backend with no
latency, the mock enhancer, and storefronts in guest or signed-in mode.
"""

import asyncio
import os

import pytest

# Before any bistro import: main.py reads settings at import time.
os.environ["ENV_MODE"] = "development"
os.environ["MOCK_MIN_LATENCY"] = "0"
os.environ["MOCK_MAX_LATENCY"] = "0"
os.environ["MOCK_FAILURE_RATE"] = "0"

from bistro.core.config import get_settings
from bistro.schemas import Category, MenuItem, PersistedId, Session, TemporaryId
from bistro.services.backend import MockBackend, reset_backend
from bistro.services.enhancer import MockMenuEnhancer, reset_enhancer
from bistro.services.history_export import HistoryExporter
from bistro.state import AppState
from bistro.storefront import Storefront

CHEF_EMAIL = "chef@example.com"
CHEF_PASSWORD = "secret123"
CHEF_NAME = "Dhruv Sharma"


@pytest.fixture(autouse=True)
def fresh_settings(tmp_path, monkeypatch):
    """Every test gets its own data directory and fresh service caches."""
    monkeypatch.setenv("DATA_DIRECTORY", str(tmp_path / "data"))
    get_settings.cache_clear()
    reset_backend()
    reset_enhancer()
    yield get_settings()
    get_settings.cache_clear()
    reset_backend()
    reset_enhancer()


@pytest.fixture
def backend():
    return MockBackend()


@pytest.fixture
def enhancer():
    return MockMenuEnhancer()


@pytest.fixture
def exporter(tmp_path):
    return HistoryExporter(data_dir=tmp_path / "exports", filename="history.xlsx", lock_timeout=1)


@pytest.fixture
def storefront(backend, enhancer, exporter):
    """A started storefront in guest mode."""
    storefront = Storefront(backend=backend, enhancer=enhancer, exporter=exporter)
    asyncio.run(storefront.start())
    yield storefront
    asyncio.run(storefront.close())


@pytest.fixture
def signed_in(storefront):
    """The storefront after a brand-new account signed up (menu seeded)."""
    asyncio.run(storefront.sign_up(CHEF_EMAIL, CHEF_PASSWORD, CHEF_NAME))
    storefront.state.notifications.clear()
    return storefront


@pytest.fixture
def session():
    return Session(user_id="user-1", name="Chef", email="chef@example.com")


@pytest.fixture
def signed_in_state(session):
    return AppState(session=session, is_loading=False)


@pytest.fixture
def item_a():
    return MenuItem(
        id=PersistedId(store_id="a"),
        name="Item A",
        price=100.0,
        category=Category.MAIN_COURSE,
    )


@pytest.fixture
def item_b():
    return MenuItem(
        id=PersistedId(store_id="b"),
        name="Item B",
        price=80.0,
        half_price=40.0,
        category=Category.STARTERS,
    )


@pytest.fixture
def new_dish():
    return MenuItem(
        id=TemporaryId.mint(),
        name="Paneer Tikka",
        description="Char-grilled cottage cheese",
        price=12.0,
        half_price=7.0,
        category=Category.STARTERS,
    )
