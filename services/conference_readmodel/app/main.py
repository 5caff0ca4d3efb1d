"""
Conference Read Model — FastAPI エントリーポイント

カンファレンス・席種のリードモデルの Query API を提供する。
Redis Streams で conference_events ストリームを購読し、
バックグラウンドでイベントをリードモデルに投影する。

このサービスは CQRS の Read 側のみ。Command エンドポイントは持たない。

┌───────────────────┐  conference_events  ┌──────────────────────┐
│ Conference 集約    │ ────── Redis ─────▶ │ Conference Read Model│
│ (Write 側)        │      Streams        │ (Read 側のみ)         │
└───────────────────┘                     └──────────┬───────────┘
                                                     │
                                          ┌──────────▼───────────┐
                                          │ conference / seat_type│
                                          │ / reservation_item    │
                                          └──────────────────────┘
"""

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from uuid import UUID

from fastapi import FastAPI, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from . import config, queries, schema
from .subscriber import run_subscriber

DATABASE_URL = os.environ["DATABASE_URL"]
REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379")

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

engine = create_async_engine(DATABASE_URL, echo=False)
async_session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """起動時にテーブルを用意し、Redis サブスクライバをバックグラウンドタスクとして開始する。"""
    await schema.create_tables(engine)
    shutdown_event = asyncio.Event()
    subscriber_task = asyncio.create_task(
        run_subscriber(REDIS_URL, async_session, shutdown_event)
    )
    yield
    shutdown_event.set()
    subscriber_task.cancel()
    try:
        await subscriber_task
    except asyncio.CancelledError:
        pass
    except Exception:
        logger.exception("Subscriber task exited with an error")
    await engine.dispose()


app = FastAPI(title="Conference Read Model Service", lifespan=lifespan)


# ── Query Endpoints (Read 側のみ) ─────────────────


@app.get("/queries/conferences")
async def query_published_conferences():
    """公開中のカンファレンス一覧"""
    async with async_session() as session:
        return await queries.list_published_conferences(session)


@app.get("/queries/conferences/{conference_id}")
async def query_conference(conference_id: UUID):
    """指定カンファレンスをリードモデルから取得"""
    async with async_session() as session:
        result = await queries.get_conference(session, conference_id)
        if not result:
            raise HTTPException(404, "Conference not found")
        return result


@app.get("/queries/conferences/{conference_id}/seat-types")
async def query_seat_types(conference_id: UUID):
    """席種ごとの総数と残数"""
    async with async_session() as session:
        return await queries.list_seat_types(session, conference_id)


@app.get("/queries/conferences/{conference_id}/reservations/{reservation_id}")
async def query_reservation_holds(conference_id: UUID, reservation_id: UUID):
    """予約の未確定ホールド"""
    async with async_session() as session:
        return await queries.list_reservation_holds(session, conference_id, reservation_id)


@app.get("/health")
async def health():
    return {"status": "ok", "service": "conference-readmodel-service"}
