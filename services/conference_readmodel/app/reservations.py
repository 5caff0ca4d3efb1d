"""
Conference Read Model — 予約在庫コーディネーター

SeatsReserved / SeatsReservationCommitted / SeatsReservationCancelled を
seat_type のカウンタと reservation_item のホールド行に反映する。

各ハンドラは呼び出し側(projections.handle_event)のトランザクション内で実行される。
途中で例外が出ればトランザクション全体がロールバックされ、例外はそのまま伝播する。

ホールドの状態遷移:
    なし → held (Reserve) → committed (Commit) | released (Cancel) → なし

カウンタは「読んで書き戻す」のではなく、条件付きの相対 UPDATE で更新する。
分離レベルに依存せず 0 <= available_quantity <= quantity を守るため。
"""

import logging
from collections import Counter
from uuid import UUID

from sqlalchemy import Row
from sqlalchemy.ext.asyncio import AsyncSession

from . import store
from .errors import InsufficientSeatsError, SeatCountOutOfRangeError, SeatTypeNotFoundError
from .events import SeatsReservationCancelled, SeatsReservationCommitted, SeatsReserved
from .schema import reservation_item, seat_type

logger = logging.getLogger(__name__)


async def reserve_seats(session: AsyncSession, event: SeatsReserved) -> None:
    """
    SeatsReserved の投影:
    1. 席種ごとに reservation_item を INSERT（既に存在すれば適用済みとしてスキップ）
    2. 同じ席種の available_quantity を減らす

    ホールド行の複合キーが冪等性のガードになるため、
    再配信された SeatsReserved が二重に在庫を減らすことはない。
    """
    # 同じ席種が複数回含まれていれば合算する
    quantities: Counter[UUID] = Counter()
    for item in event.reservation_items:
        quantities[item.seat_type_id] += item.quantity

    for seat_type_id, quantity in quantities.items():
        inserted = await store.insert(
            session,
            reservation_item,
            {
                "conference_id": event.conference_id,
                "reservation_id": event.reservation_id,
                "seat_type_id": seat_type_id,
                "quantity": quantity,
            },
            ignore_conflict=True,
        )
        if not inserted:
            logger.info(
                "Hold already exists, skipping: reservation=%s seat_type=%s",
                event.reservation_id,
                seat_type_id,
            )
            continue

        updated = await store.update(
            session,
            seat_type,
            {"available_quantity": seat_type.c.available_quantity - quantity},
            {"conference_id": event.conference_id, "id": seat_type_id},
            guard=seat_type.c.available_quantity >= quantity,
        )
        if not updated:
            await _ensure_seat_type_exists(session, event.conference_id, seat_type_id)
            raise InsufficientSeatsError(seat_type_id, quantity)


async def commit_reservation(session: AsyncSession, event: SeatsReservationCommitted) -> None:
    """
    SeatsReservationCommitted の投影:
    ホールドを削除し、その分の quantity を恒久的に減らす。
    available_quantity は予約時に減らし済みなので触らない。
    """
    holds = await _take_holds(session, event.conference_id, event.reservation_id)
    for hold in holds:
        updated = await store.update(
            session,
            seat_type,
            {"quantity": seat_type.c.quantity - hold.quantity},
            {"conference_id": event.conference_id, "id": hold.seat_type_id},
            guard=seat_type.c.quantity - hold.quantity >= seat_type.c.available_quantity,
        )
        if not updated:
            await _ensure_seat_type_exists(session, event.conference_id, hold.seat_type_id)
            raise SeatCountOutOfRangeError(hold.seat_type_id, hold.quantity)


async def cancel_reservation(session: AsyncSession, event: SeatsReservationCancelled) -> None:
    """
    SeatsReservationCancelled の投影:
    ホールドを削除し、その分の available_quantity を戻す。
    """
    holds = await _take_holds(session, event.conference_id, event.reservation_id)
    for hold in holds:
        updated = await store.update(
            session,
            seat_type,
            {"available_quantity": seat_type.c.available_quantity + hold.quantity},
            {"conference_id": event.conference_id, "id": hold.seat_type_id},
            guard=seat_type.c.available_quantity + hold.quantity <= seat_type.c.quantity,
        )
        if not updated:
            await _ensure_seat_type_exists(session, event.conference_id, hold.seat_type_id)
            raise SeatCountOutOfRangeError(hold.seat_type_id, hold.quantity)


async def _take_holds(
    session: AsyncSession, conference_id: UUID, reservation_id: UUID
) -> list[Row]:
    """予約のホールド行を取得してから削除する。"""
    where = {"conference_id": conference_id, "reservation_id": reservation_id}
    holds = await store.query(session, reservation_item, where)
    if not holds:
        # 確定/取消の再配信: 既に適用済み
        logger.info("No holds for reservation %s, nothing to apply", reservation_id)
        return []

    await store.delete(session, reservation_item, where)
    return holds


async def _ensure_seat_type_exists(
    session: AsyncSession, conference_id: UUID, seat_type_id: UUID
) -> None:
    rows = await store.query(
        session, seat_type, {"conference_id": conference_id, "id": seat_type_id}
    )
    if not rows:
        raise SeatTypeNotFoundError(conference_id, seat_type_id)
