"""
Conference Read Model — 設定

環境変数から読み込む。DATABASE_URL / REDIS_URL はエントリーポイント(main.py)側で読む。
"""

import os
import socket

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

# 論理テーブル名 → 物理テーブル名
CONFERENCE_TABLE = os.environ.get("CONFERENCE_TABLE", "conference")
SEAT_TYPE_TABLE = os.environ.get("SEAT_TYPE_TABLE", "seat_type")
RESERVATION_ITEM_TABLE = os.environ.get("RESERVATION_ITEM_TABLE", "reservation_item")

# Redis Streams
EVENT_STREAM = os.environ.get("EVENT_STREAM", "conference_events")
DEAD_LETTER_STREAM = os.environ.get("DEAD_LETTER_STREAM", f"{EVENT_STREAM}:dead")
CONSUMER_GROUP = os.environ.get("CONSUMER_GROUP", "conference-readmodel")
CONSUMER_NAME = os.environ.get("CONSUMER_NAME", socket.gethostname())
READ_BATCH_SIZE = int(os.environ.get("READ_BATCH_SIZE", "100"))
READ_BLOCK_MS = int(os.environ.get("READ_BLOCK_MS", "1000"))
RETRY_DELAY_SECONDS = float(os.environ.get("RETRY_DELAY_SECONDS", "1.0"))
# この時間(ms)以上 ACK されていない他コンシューマーの pending エントリを起動時に引き取る
CLAIM_MIN_IDLE_MS = int(os.environ.get("CLAIM_MIN_IDLE_MS", "60000"))
