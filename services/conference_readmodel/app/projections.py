"""
Conference Read Model — イベント投影 (Projection)

CQRS の Read 側: Conference 集約のイベントを
クエリに最適化された conference / seat_type テーブルに投影する。

予約関連(SeatsReserved など)の投影は reservations.py に委譲する。
"""

import logging
from collections.abc import Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from . import reservations, store
from .events import (
    ConferenceCreated,
    ConferenceInfo,
    ConferencePublished,
    ConferenceUnpublished,
    ConferenceUpdated,
    DomainEvent,
    SeatsReservationCancelled,
    SeatsReservationCommitted,
    SeatsReserved,
    SeatTypeAdded,
    SeatTypeQuantityChanged,
    SeatTypeRemoved,
    SeatTypeUpdated,
)
from .schema import conference, seat_type

logger = logging.getLogger(__name__)

Handler = Callable[[AsyncSession, DomainEvent], Awaitable[None]]


async def handle_event(session: AsyncSession, event: DomainEvent) -> None:
    """
    イベントの型に応じた投影ハンドラを 1 トランザクション内で呼び出す。

    成功すればコミット、例外が出ればロールバックして例外をそのまま送出する。
    """
    handler = HANDLERS.get(type(event))
    if handler is None:
        logger.debug("No projection for %s", type(event).__name__)
        return
    async with session.begin():
        await handler(session, event)


# ── Conference ───────────────────────────────────


def _conference_fields(info: ConferenceInfo) -> dict:
    return {
        "access_code": info.access_code,
        "owner_name": info.owner.name,
        "owner_email": info.owner.email,
        "slug": info.slug,
        "name": info.name,
        "description": info.description,
        "location": info.location,
        "tagline": info.tagline,
        "twitter_search": info.twitter_search,
        "start_date": info.start_date,
        "end_date": info.end_date,
    }


async def _project_conference_created(session: AsyncSession, event: ConferenceCreated) -> None:
    await store.insert(
        session,
        conference,
        {"id": event.conference_id, **_conference_fields(event.info), "is_published": False},
        ignore_conflict=True,
    )


async def _project_conference_updated(session: AsyncSession, event: ConferenceUpdated) -> None:
    # 更新のたびに非公開へ戻す（再公開が必要）
    await store.update(
        session,
        conference,
        {**_conference_fields(event.info), "is_published": False},
        {"id": event.conference_id},
    )


async def _project_conference_published(session: AsyncSession, event: ConferencePublished) -> None:
    await store.update(session, conference, {"is_published": True}, {"id": event.conference_id})


async def _project_conference_unpublished(
    session: AsyncSession, event: ConferenceUnpublished
) -> None:
    await store.update(session, conference, {"is_published": False}, {"id": event.conference_id})


# ── 席種 ────────────────────────────────────────


async def _project_seat_type_added(session: AsyncSession, event: SeatTypeAdded) -> None:
    await store.insert(
        session,
        seat_type,
        {
            "id": event.seat_type_id,
            "conference_id": event.conference_id,
            "name": event.info.name,
            "description": event.info.description,
            "quantity": event.quantity,
            "available_quantity": event.quantity,
            "price": event.info.price,
        },
        ignore_conflict=True,
    )


async def _project_seat_type_updated(session: AsyncSession, event: SeatTypeUpdated) -> None:
    await store.update(
        session,
        seat_type,
        {
            "name": event.info.name,
            "description": event.info.description,
            "price": event.info.price,
        },
        {"id": event.seat_type_id},
    )


async def _project_seat_type_quantity_changed(
    session: AsyncSession, event: SeatTypeQuantityChanged
) -> None:
    await store.update(
        session,
        seat_type,
        {"quantity": event.quantity, "available_quantity": event.available_quantity},
        {"id": event.seat_type_id},
    )


async def _project_seat_type_removed(session: AsyncSession, event: SeatTypeRemoved) -> None:
    await store.delete(session, seat_type, {"id": event.seat_type_id})


HANDLERS: dict[type[DomainEvent], Handler] = {
    ConferenceCreated: _project_conference_created,
    ConferenceUpdated: _project_conference_updated,
    ConferencePublished: _project_conference_published,
    ConferenceUnpublished: _project_conference_unpublished,
    SeatTypeAdded: _project_seat_type_added,
    SeatTypeUpdated: _project_seat_type_updated,
    SeatTypeQuantityChanged: _project_seat_type_quantity_changed,
    SeatTypeRemoved: _project_seat_type_removed,
    SeatsReserved: reservations.reserve_seats,
    SeatsReservationCommitted: reservations.commit_reservation,
    SeatsReservationCancelled: reservations.cancel_reservation,
}
