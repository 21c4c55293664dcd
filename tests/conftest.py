"""Shared fixtures: backend on sys.path, one SQLite file per test."""
import asyncio
import os
import sys
from pathlib import Path

import pytest

BACKEND_DIR = Path(__file__).resolve().parent.parent / "backend"
sys.path.insert(0, str(BACKEND_DIR))

os.environ.setdefault("STORAGE_RACKS", "")
os.environ.setdefault("ALLOWED_ORIGINS", "http://localhost:5173")
os.environ.setdefault("AUTH_URL", "http://identity.invalid")

import db  # noqa: E402
from constants import OrderType  # noqa: E402
from schemas import CleaningItemInput, OrderCreate, PressingItemsInput  # noqa: E402
from services import storage_service  # noqa: E402
from services.storage_service import RackLayout  # noqa: E402


@pytest.fixture
def database(tmp_path):
    """Bind the app to an empty database file under tmp_path."""
    engine = db.configure_database(f"sqlite:///{tmp_path / 'laundry.db'}")
    db.init_db()
    yield engine
    engine.dispose()


@pytest.fixture
def seed(database):
    """Return a helper that creates racks from (number, capacity, from, to) tuples."""

    def _seed(*racks):
        return storage_service.seed_racks(
            [RackLayout(number, capacity, start, end) for number, capacity, start, end in racks]
        )

    return _seed


def run(coro):
    return asyncio.run(coro)


def pressing_order(quantity: int, **overrides) -> OrderCreate:
    return OrderCreate(
        type=OrderType.PRESSING,
        customer_id=overrides.pop("customer_id", "customer-1"),
        items=PressingItemsInput(quantity=quantity),
        **overrides,
    )


def cleaning_order(*lines, **overrides) -> OrderCreate:
    return OrderCreate(
        type=OrderType.CLEANING,
        customer_id=overrides.pop("customer_id", "customer-1"),
        items=[
            CleaningItemInput(name=name, price=price, quantity=quantity)
            for name, price, quantity in lines
        ],
        **overrides,
    )
