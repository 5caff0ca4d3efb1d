"""
Conference Read Model — クエリハンドラ (CQRS Read 側)
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .schema import conference, reservation_item, seat_type


def _conference_dict(row) -> dict:
    return {
        "id": str(row.id),
        "access_code": row.access_code,
        "owner_name": row.owner_name,
        "owner_email": row.owner_email,
        "slug": row.slug,
        "name": row.name,
        "description": row.description,
        "location": row.location,
        "tagline": row.tagline,
        "twitter_search": row.twitter_search,
        "start_date": row.start_date.isoformat(),
        "end_date": row.end_date.isoformat(),
        "is_published": row.is_published,
    }


async def list_published_conferences(session: AsyncSession) -> list[dict]:
    """公開中のカンファレンス一覧(開始日順)"""
    result = await session.execute(
        select(conference)
        .where(conference.c.is_published.is_(True))
        .order_by(conference.c.start_date)
    )
    return [_conference_dict(row) for row in result.fetchall()]


async def get_conference(session: AsyncSession, conference_id: UUID) -> dict | None:
    result = await session.execute(select(conference).where(conference.c.id == conference_id))
    row = result.fetchone()
    if not row:
        return None
    return _conference_dict(row)


async def list_seat_types(session: AsyncSession, conference_id: UUID) -> list[dict]:
    """カンファレンスの席種と残数"""
    result = await session.execute(
        select(seat_type)
        .where(seat_type.c.conference_id == conference_id)
        .order_by(seat_type.c.name)
    )
    return [
        {
            "id": str(row.id),
            "conference_id": str(row.conference_id),
            "name": row.name,
            "description": row.description,
            "quantity": row.quantity,
            "available_quantity": row.available_quantity,
            "price": float(row.price),
        }
        for row in result.fetchall()
    ]


async def list_reservation_holds(
    session: AsyncSession, conference_id: UUID, reservation_id: UUID
) -> list[dict]:
    """未確定の予約ホールド(確定/取消されると消える)"""
    result = await session.execute(
        select(reservation_item).where(
            reservation_item.c.conference_id == conference_id,
            reservation_item.c.reservation_id == reservation_id,
        )
    )
    return [
        {
            "seat_type_id": str(row.seat_type_id),
            "quantity": row.quantity,
        }
        for row in result.fetchall()
    ]
