"""
Tests for the conference and seat type projections.

Run with: pytest services/conference_readmodel/tests/test_projections.py -v
"""

from datetime import datetime
from unittest.mock import AsyncMock

import pytest

from app import projections
from app.events import (
    ConferencePublished,
    ConferenceUnpublished,
    ConferenceUpdated,
    DomainEvent,
    SeatTypeAdded,
    SeatTypeInfo,
    SeatTypeQuantityChanged,
    SeatTypeRemoved,
    SeatTypeUpdated,
)


@pytest.mark.asyncio
class TestConferenceProjection:
    """Tests for conference lifecycle events."""

    async def test_created_inserts_unpublished_row(
        self, project, conference_id, conference_created, conference_row
    ):
        await project(conference_created)

        row = await conference_row(conference_id)
        assert row.slug == "pycon-2026"
        assert row.owner_name == "Jane Doe"
        assert row.owner_email == "jane@example.com"
        assert row.access_code == "ABC123"
        assert row.start_date == datetime(2026, 11, 1, 9, 0)
        assert row.is_published is False

    async def test_redelivered_created_keeps_single_row(
        self, project, conference_id, conference_created, conference_row
    ):
        await project(conference_created, ConferencePublished(conference_id=conference_id))

        await project(conference_created)

        row = await conference_row(conference_id)
        assert row.is_published is True

    async def test_publish_and_unpublish(
        self, project, conference_id, conference_created, conference_row
    ):
        await project(conference_created, ConferencePublished(conference_id=conference_id))
        assert (await conference_row(conference_id)).is_published is True

        await project(ConferenceUnpublished(conference_id=conference_id))
        assert (await conference_row(conference_id)).is_published is False

    async def test_updated_overwrites_fields_and_unpublishes(
        self, project, conference_id, conference_created, conference_info, conference_row
    ):
        await project(conference_created, ConferencePublished(conference_id=conference_id))

        await project(
            ConferenceUpdated(
                conference_id=conference_id,
                info=conference_info(name="PyCon JP 2026", location="Osaka", tagline=None),
            )
        )

        row = await conference_row(conference_id)
        assert row.name == "PyCon JP 2026"
        assert row.location == "Osaka"
        assert row.tagline is None
        assert row.is_published is False


@pytest.mark.asyncio
class TestSeatTypeProjection:
    """Tests for seat type events."""

    async def test_added_sets_available_to_quantity(
        self, project, conference_id, conference_created, add_seat_type, seat_type_row
    ):
        general = add_seat_type(100, price=250.0)

        await project(conference_created, general)

        row = await seat_type_row(general.seat_type_id)
        assert row.conference_id == conference_id
        assert row.quantity == 100
        assert row.available_quantity == 100
        assert row.price == 250.0

    async def test_redelivered_added_does_not_reset_counters(
        self, project, conference_id, conference_created, add_seat_type, seat_type_row
    ):
        general = add_seat_type(100)
        await project(
            conference_created,
            general,
            SeatTypeQuantityChanged(
                conference_id=conference_id,
                seat_type_id=general.seat_type_id,
                quantity=80,
                available_quantity=70,
            ),
        )

        await project(general)

        row = await seat_type_row(general.seat_type_id)
        assert (row.quantity, row.available_quantity) == (80, 70)

    async def test_updated_leaves_quantities_untouched(
        self, project, conference_id, conference_created, add_seat_type, seat_type_row
    ):
        general = add_seat_type(100)
        await project(conference_created, general)

        await project(
            SeatTypeUpdated(
                conference_id=conference_id,
                seat_type_id=general.seat_type_id,
                info=SeatTypeInfo(name="Early Bird", description="Discounted", price=80.0),
            )
        )

        row = await seat_type_row(general.seat_type_id)
        assert (row.name, row.description, row.price) == ("Early Bird", "Discounted", 80.0)
        assert (row.quantity, row.available_quantity) == (100, 100)

    async def test_quantity_changed_overwrites_both_counters(
        self, project, conference_id, conference_created, add_seat_type, seat_type_row
    ):
        general = add_seat_type(100)
        await project(conference_created, general)

        await project(
            SeatTypeQuantityChanged(
                conference_id=conference_id,
                seat_type_id=general.seat_type_id,
                quantity=150,
                available_quantity=140,
            )
        )

        row = await seat_type_row(general.seat_type_id)
        assert (row.quantity, row.available_quantity) == (150, 140)

    async def test_removed_deletes_row(
        self, project, conference_id, conference_created, add_seat_type, seat_type_row
    ):
        general = add_seat_type(100)
        await project(conference_created, general)

        await project(
            SeatTypeRemoved(conference_id=conference_id, seat_type_id=general.seat_type_id)
        )

        assert await seat_type_row(general.seat_type_id) is None


@pytest.mark.asyncio
class TestHandleEvent:
    """Tests for event dispatch."""

    async def test_every_event_type_has_a_handler(self):
        from app.events import EVENT_TYPES

        assert set(projections.HANDLERS) == set(EVENT_TYPES.values())

    async def test_unknown_event_is_ignored(self, session_factory):
        class SomethingElseHappened(DomainEvent):
            pass

        async with session_factory() as session:
            await projections.handle_event(session, SomethingElseHappened())

    async def test_handler_error_propagates_unchanged(
        self, session_factory, conference_id, monkeypatch
    ):
        error = RuntimeError("connection reset")
        failing = AsyncMock(side_effect=error)
        monkeypatch.setitem(projections.HANDLERS, ConferencePublished, failing)

        async with session_factory() as session:
            with pytest.raises(RuntimeError) as exc_info:
                await projections.handle_event(
                    session, ConferencePublished(conference_id=conference_id)
                )

        assert exc_info.value is error
        failing.assert_awaited_once()
