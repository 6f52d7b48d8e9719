"""Shared test fixtures for the NearBuy conversation engine test suite."""

import asyncio
import os
from datetime import datetime, timedelta

import pytest
import pytz

# Valores de entorno antes de importar la configuración
os.environ.setdefault("META_BOT_TOKEN", "test-token")
os.environ.setdefault("META_NUMBER_ID", "1234567890")
os.environ.setdefault("META_VERIFY_TOKEN", "verify-me")
os.environ.setdefault("NEARBUY_TIMEZONE", "Asia/Kolkata")

from nearbuy.core.config import SessionConfig  # noqa: E402
from nearbuy.models.shop import Shop, ShopCategory  # noqa: E402
from nearbuy.services.catalog import InMemoryShopCatalog  # noqa: E402
from nearbuy.services.conversation.flow_router import FlowRouter  # noqa: E402
from nearbuy.services.conversation.flows import MainMenuFlow, OfferBrowseFlow  # noqa: E402
from nearbuy.services.session import (  # noqa: E402
    InMemorySessionStore,
    InMemoryUserDirectory,
    SessionManager,
)

PHONE = "919876543210"


class FakeClock:
    """Reloj controlable para probar tiempos de espera."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, minutes: float = 0, days: float = 0) -> datetime:
        self.current += timedelta(minutes=minutes, days=days)
        return self.current


def make_shops(count: int, category: ShopCategory = ShopCategory.GROCERY, prefix: str = "g"):
    return [
        Shop(
            id=f"{prefix}{i:02d}",
            name=f"{category.value.title()} Shop {i:02d}",
            category=category,
            address="MG Road, Kochi",
            latitude=9.9312,
            longitude=76.2673,
            distance_km=i * 0.5,
            offer_count=i % 4,
        )
        for i in range(1, count + 1)
    ]


@pytest.fixture(scope="session")
def event_loop():
    """Use a single event loop for the entire test session."""
    loop = asyncio.new_event_loop()
    yield loop
    loop.close()


@pytest.fixture
def clock():
    start = pytz.timezone("Asia/Kolkata").localize(datetime(2026, 1, 15, 10, 0))
    return FakeClock(start)


@pytest.fixture
def store():
    return InMemorySessionStore()


@pytest.fixture
def users():
    return InMemoryUserDirectory()


@pytest.fixture
def sessions(store, users, clock):
    return SessionManager(store, users=users, config=SessionConfig(), clock=clock)


@pytest.fixture
def catalog():
    shops = make_shops(23)
    # Tienda sin ubicación compartida
    shops.append(Shop(id="e01", name="Volt Electronics", category=ShopCategory.ELECTRONICS, offer_count=2))
    return InMemoryShopCatalog(shops)


@pytest.fixture
def router(sessions, catalog):
    return FlowRouter(sessions, [MainMenuFlow(sessions), OfferBrowseFlow(sessions, catalog)])
