"""
Conference Read Model — Redis Streams サブスクライバー

conference_events ストリームをコンシューマーグループで購読し、
受信したイベントをリードモデルに投影(Projection)する。

Pub/Sub と違い、Streams は at-least-once で配信される:
  - 投影に成功したエントリだけを XACK する
  - ストレージエラーで失敗したエントリは pending のまま残り、
    新しいエントリより先に再処理される(集約ごとの順序を保つ)
  - 何度再試行しても成功しないエントリ(不正なペイロードなど)は
    デッドレターストリームへ移してから XACK する
  - 起動時に他のコンシューマーが残した pending エントリを XAUTOCLAIM で引き取る
  - Redis のエラーではループを止めず、待ってから再試行する
"""

import asyncio
import json
import logging

import redis.asyncio as aioredis
from pydantic import ValidationError
from redis.exceptions import RedisError, ResponseError
from sqlalchemy.orm import sessionmaker

from . import config, events, projections
from .errors import ProjectionError

logger = logging.getLogger(__name__)

# 新着エントリ / 自分の pending エントリ
NEW_ENTRIES = ">"
PENDING_ENTRIES = "0"


async def run_subscriber(
    redis_url: str,
    async_session_factory: sessionmaker,
    shutdown_event: asyncio.Event,
) -> None:
    """
    イベントストリームを購読し、イベントをリードモデルに投影する。
    shutdown_event がセットされるまで無限ループで待機する。
    """
    redis_conn = aioredis.from_url(redis_url, decode_responses=True)
    ready = False

    try:
        while not shutdown_event.is_set():
            try:
                if not ready:
                    await ensure_consumer_group(redis_conn)
                    await claim_stale_entries(redis_conn)
                    ready = True
                    logger.info(
                        "Consuming %s as %s/%s",
                        config.EVENT_STREAM,
                        config.CONSUMER_GROUP,
                        config.CONSUMER_NAME,
                    )
                # 失敗したエントリが残っていれば、新着より先に再処理する
                if not await consume(redis_conn, async_session_factory, PENDING_ENTRIES):
                    await asyncio.sleep(config.RETRY_DELAY_SECONDS)
                    continue
                if not await consume(
                    redis_conn, async_session_factory, NEW_ENTRIES, block=config.READ_BLOCK_MS
                ):
                    await asyncio.sleep(config.RETRY_DELAY_SECONDS)
            except RedisError:
                # ACK 前のエントリは pending のまま残り、再接続後に再処理される
                logger.exception(
                    "Redis error, retrying in %.1fs", config.RETRY_DELAY_SECONDS
                )
                await asyncio.sleep(config.RETRY_DELAY_SECONDS)
    finally:
        await redis_conn.aclose()


async def ensure_consumer_group(redis_conn: aioredis.Redis) -> None:
    """
    コンシューマーグループを作成する。

    ストリームの先頭から読むので、新しいリードモデルは履歴全体から再構築される。
    """
    try:
        await redis_conn.xgroup_create(
            config.EVENT_STREAM, config.CONSUMER_GROUP, id="0", mkstream=True
        )
    except ResponseError as e:
        if "BUSYGROUP" not in str(e):
            raise


async def claim_stale_entries(redis_conn: aioredis.Redis) -> int:
    """
    他のコンシューマーに残された pending エントリを自分に付け替える。

    再起動でコンシューマー名(ホスト名)が変わっても、失敗したまま
    ACK されていないエントリが取り残されないようにする。
    付け替えたエントリは次の pending 読み込みで順番どおりに再処理される。
    """
    start_id = "0-0"
    claimed = 0
    while True:
        response = await redis_conn.xautoclaim(
            config.EVENT_STREAM,
            config.CONSUMER_GROUP,
            config.CONSUMER_NAME,
            min_idle_time=config.CLAIM_MIN_IDLE_MS,
            start_id=start_id,
            count=config.READ_BATCH_SIZE,
        )
        start_id, entries = response[0], response[1]
        claimed += len(entries)
        if start_id == "0-0":
            break

    if claimed:
        logger.info("Claimed %d stale pending entries", claimed)
    return claimed


async def consume(
    redis_conn: aioredis.Redis,
    async_session_factory: sessionmaker,
    last_id: str,
    block: int | None = None,
) -> bool:
    """
    1 バッチ分のエントリを順番に処理する。

    失敗したエントリがあればそこで止めて False を返す。
    後続のエントリは pending のまま残り、次回順番どおりに再処理される。
    """
    response = await redis_conn.xreadgroup(
        config.CONSUMER_GROUP,
        config.CONSUMER_NAME,
        {config.EVENT_STREAM: last_id},
        count=config.READ_BATCH_SIZE,
        block=block,
    )
    for _stream, entries in response or []:
        for entry_id, fields in entries:
            if not await process_entry(redis_conn, async_session_factory, entry_id, fields):
                return False
    return True


async def process_entry(
    redis_conn: aioredis.Redis,
    async_session_factory: sessionmaker,
    entry_id: str,
    fields: dict,
) -> bool:
    """
    ストリームエントリ 1 件を投影する。

    XACK してよい(成功・スキップ・デッドレター)なら True、
    再配信が必要なら False を返す。
    """
    event_type = fields.get("event_type", "")
    try:
        event = events.parse_event(event_type, json.loads(fields.get("data", "{}")))
        if event is None:
            logger.debug("Skipping unhandled event type %s (%s)", event_type, entry_id)
        else:
            async with async_session_factory() as session:
                await projections.handle_event(session, event)
            logger.info("Projected event: %s (%s)", event_type, entry_id)
    except (json.JSONDecodeError, ValidationError, ProjectionError) as e:
        logger.error("Dead-lettering event %s (%s): %s", event_type, entry_id, e)
        await redis_conn.xadd(
            config.DEAD_LETTER_STREAM,
            {**fields, "entry_id": entry_id, "error": str(e)},
        )
    except Exception:
        logger.exception("Failed to project event %s (%s), will retry", event_type, entry_id)
        return False

    await redis_conn.xack(config.EVENT_STREAM, config.CONSUMER_GROUP, entry_id)
    return True
