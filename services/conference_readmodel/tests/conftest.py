"""Pytest configuration and shared fixtures."""

import os

# main.py reads DATABASE_URL at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

from datetime import datetime
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from app import projections, schema
from app.events import (
    ConferenceCreated,
    ConferenceInfo,
    ConferenceOwner,
    ReservationItem,
    SeatsReserved,
    SeatTypeAdded,
    SeatTypeInfo,
)


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'readmodel.db'}")
    await schema.create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def project(session_factory):
    """Apply events one at a time, each on its own session, like the subscriber does."""

    async def _project(*events):
        for event in events:
            async with session_factory() as session:
                await projections.handle_event(session, event)

    return _project


@pytest.fixture
def seat_type_row(session_factory):
    async def _fetch(seat_type_id: UUID):
        async with session_factory() as session:
            result = await session.execute(
                select(schema.seat_type).where(schema.seat_type.c.id == seat_type_id)
            )
            return result.fetchone()

    return _fetch


@pytest.fixture
def conference_row(session_factory):
    async def _fetch(conference_id: UUID):
        async with session_factory() as session:
            result = await session.execute(
                select(schema.conference).where(schema.conference.c.id == conference_id)
            )
            return result.fetchone()

    return _fetch


@pytest.fixture
def holds(session_factory):
    async def _fetch(conference_id: UUID, reservation_id: UUID):
        async with session_factory() as session:
            result = await session.execute(
                select(schema.reservation_item).where(
                    schema.reservation_item.c.conference_id == conference_id,
                    schema.reservation_item.c.reservation_id == reservation_id,
                )
            )
            return result.fetchall()

    return _fetch


@pytest.fixture
def assert_seat_counts_in_range(session_factory):
    """0 <= available_quantity <= quantity for every seat type row."""

    async def _check():
        async with session_factory() as session:
            result = await session.execute(select(schema.seat_type))
            for row in result.fetchall():
                assert 0 <= row.available_quantity <= row.quantity, row

    return _check


def make_conference_info(**overrides) -> ConferenceInfo:
    fields = {
        "access_code": "ABC123",
        "owner": ConferenceOwner(name="Jane Doe", email="jane@example.com"),
        "slug": "pycon-2026",
        "name": "PyCon 2026",
        "description": "Annual Python conference",
        "location": "Tokyo",
        "tagline": "Code together",
        "twitter_search": "#pycon2026",
        "start_date": datetime(2026, 11, 1, 9, 0),
        "end_date": datetime(2026, 11, 3, 18, 0),
    }
    fields.update(overrides)
    return ConferenceInfo(**fields)


@pytest.fixture
def conference_id() -> UUID:
    return uuid4()


@pytest.fixture
def conference_created(conference_id):
    return ConferenceCreated(conference_id=conference_id, info=make_conference_info())


@pytest.fixture
def add_seat_type(conference_id):
    def _add(quantity: int, name: str = "General", price: float = 100.0) -> SeatTypeAdded:
        return SeatTypeAdded(
            conference_id=conference_id,
            seat_type_id=uuid4(),
            info=SeatTypeInfo(name=name, description=f"{name} admission", price=price),
            quantity=quantity,
        )

    return _add


@pytest.fixture
def seats_reserved(conference_id):
    def _reserve(reservation_id: UUID, *items: tuple[UUID, int]) -> SeatsReserved:
        return SeatsReserved(
            conference_id=conference_id,
            reservation_id=reservation_id,
            reservation_items=[
                ReservationItem(seat_type_id=seat_type_id, quantity=quantity)
                for seat_type_id, quantity in items
            ],
        )

    return _reserve


@pytest.fixture
def conference_info():
    return make_conference_info
