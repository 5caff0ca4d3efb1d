"""
Conference Read Model — テーブル定義

イベントから投影される非正規化テーブル。
このサービスだけが書き込む(他のライターは存在しない)。

  conference        … カンファレンス 1 件につき 1 行
  seat_type         … 席種ごとの総数 (quantity) と残数 (available_quantity)
  reservation_item  … 未確定の予約ホールド。確定/取消で削除される
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    Uuid,
)
from sqlalchemy.ext.asyncio import AsyncEngine

from . import config

metadata = MetaData()

conference = Table(
    config.CONFERENCE_TABLE,
    metadata,
    Column("id", Uuid, primary_key=True),
    Column("access_code", String(6), nullable=False),
    Column("owner_name", String(255), nullable=False),
    Column("owner_email", String(255), nullable=False),
    Column("slug", String(255), nullable=False, index=True),
    Column("name", String(255), nullable=False),
    Column("description", Text, nullable=False),
    Column("location", String(255), nullable=False),
    Column("tagline", String(255)),
    Column("twitter_search", String(255)),
    Column("start_date", DateTime(timezone=True), nullable=False),
    Column("end_date", DateTime(timezone=True), nullable=False),
    Column("is_published", Boolean, nullable=False, default=False),
)

seat_type = Table(
    config.SEAT_TYPE_TABLE,
    metadata,
    Column("id", Uuid, primary_key=True),
    Column("conference_id", Uuid, nullable=False, index=True),
    Column("name", String(255), nullable=False),
    Column("description", Text, nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("available_quantity", Integer, nullable=False),
    Column("price", Float, nullable=False),
)

# (conference_id, reservation_id, seat_type_id) の複合キーが
# SeatsReserved 再配信時の二重適用を防ぐ
reservation_item = Table(
    config.RESERVATION_ITEM_TABLE,
    metadata,
    Column("conference_id", Uuid, primary_key=True),
    Column("reservation_id", Uuid, primary_key=True),
    Column("seat_type_id", Uuid, primary_key=True),
    Column("quantity", Integer, nullable=False),
)


async def create_tables(engine: AsyncEngine) -> None:
    """存在しないテーブルだけを作成する。"""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all, checkfirst=True)
