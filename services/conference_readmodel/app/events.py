"""
Conference Read Model — イベント定義

Conference 集約(Write 側)が発行するイベントのうち、このサービスが投影するもの。
イベントは過去形で命名し、不変(immutable)として扱う。
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator


class DomainEvent(BaseModel):
    model_config = ConfigDict(frozen=True)


# ── 値オブジェクト ────────────────────────────────


class ConferenceOwner(DomainEvent):
    name: str
    email: str


class ConferenceInfo(DomainEvent):
    access_code: str
    owner: ConferenceOwner
    slug: str
    name: str
    description: str
    location: str
    tagline: str | None = None
    twitter_search: str | None = None
    start_date: datetime
    end_date: datetime


class SeatTypeInfo(DomainEvent):
    name: str
    description: str
    price: float


class ReservationItem(DomainEvent):
    seat_type_id: UUID
    quantity: int = Field(gt=0)


# ── Conference ───────────────────────────────────


class ConferenceCreated(DomainEvent):
    """カンファレンスが作成された"""
    conference_id: UUID
    info: ConferenceInfo


class ConferenceUpdated(DomainEvent):
    """カンファレンス情報が更新された"""
    conference_id: UUID
    info: ConferenceInfo


class ConferencePublished(DomainEvent):
    """カンファレンスが公開された"""
    conference_id: UUID


class ConferenceUnpublished(DomainEvent):
    """カンファレンスが非公開にされた"""
    conference_id: UUID


# ── 席種 ────────────────────────────────────────


class SeatTypeAdded(DomainEvent):
    """席種が追加された"""
    conference_id: UUID
    seat_type_id: UUID
    info: SeatTypeInfo
    quantity: int = Field(ge=0)


class SeatTypeUpdated(DomainEvent):
    """席種の名前・説明・価格が更新された"""
    conference_id: UUID
    seat_type_id: UUID
    info: SeatTypeInfo


class SeatTypeQuantityChanged(DomainEvent):
    """席種の数量が変更された（Write 側で計算済みの値を運ぶ）"""
    conference_id: UUID
    seat_type_id: UUID
    quantity: int = Field(ge=0)
    available_quantity: int = Field(ge=0)

    @model_validator(mode="after")
    def _available_within_quantity(self) -> "SeatTypeQuantityChanged":
        if self.available_quantity > self.quantity:
            raise ValueError("available_quantity must not exceed quantity")
        return self


class SeatTypeRemoved(DomainEvent):
    """席種が削除された"""
    conference_id: UUID
    seat_type_id: UUID


# ── 予約 ────────────────────────────────────────


class SeatsReserved(DomainEvent):
    """予約のために席が確保(ホールド)された"""
    conference_id: UUID
    reservation_id: UUID
    reservation_items: list[ReservationItem]


class SeatsReservationCommitted(DomainEvent):
    """予約が確定され、ホールドしていた席が消費された"""
    conference_id: UUID
    reservation_id: UUID


class SeatsReservationCancelled(DomainEvent):
    """予約が取り消され、ホールドしていた席が解放された"""
    conference_id: UUID
    reservation_id: UUID


EVENT_TYPES: dict[str, type[DomainEvent]] = {
    cls.__name__: cls
    for cls in (
        ConferenceCreated,
        ConferenceUpdated,
        ConferencePublished,
        ConferenceUnpublished,
        SeatTypeAdded,
        SeatTypeUpdated,
        SeatTypeQuantityChanged,
        SeatTypeRemoved,
        SeatsReserved,
        SeatsReservationCommitted,
        SeatsReservationCancelled,
    )
}


def parse_event(event_type: str, data: dict) -> DomainEvent | None:
    """
    イベントタイプ名とペイロードからイベントを復元する。

    このサービスが投影しないイベントタイプには None を返す。
    ペイロードが不正な場合は pydantic.ValidationError を送出する。
    """
    event_cls = EVENT_TYPES.get(event_type)
    if event_cls is None:
        return None
    return event_cls.model_validate(data)
