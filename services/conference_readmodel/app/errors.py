"""
Conference Read Model — 投影エラー

リトライしても成功しないイベントを表す。サブスクライバはこれらをデッドレターに送る。
"""

from enum import Enum
from uuid import UUID


class ErrorCode(Enum):
    """投影エラーのコード"""

    SEAT_TYPE_NOT_FOUND = "SEAT_TYPE_NOT_FOUND"
    INSUFFICIENT_SEATS = "INSUFFICIENT_SEATS"
    SEAT_COUNT_OUT_OF_RANGE = "SEAT_COUNT_OUT_OF_RANGE"


class ProjectionError(Exception):
    """
    リードモデルに適用できないイベントの基底エラー。

    同じイベントを再試行しても結果は変わらないため、サブスクライバはデッドレターに送る。
    """

    def __init__(self, code: ErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class SeatTypeNotFoundError(ProjectionError):
    """予約が参照する席種の行が存在しない"""

    def __init__(self, conference_id: UUID, seat_type_id: UUID) -> None:
        super().__init__(
            code=ErrorCode.SEAT_TYPE_NOT_FOUND,
            message=f"Seat type {seat_type_id} not found in conference {conference_id}",
        )
        self.conference_id = conference_id
        self.seat_type_id = seat_type_id


class InsufficientSeatsError(ProjectionError):
    """確保すると available_quantity が負になる"""

    def __init__(self, seat_type_id: UUID, requested: int) -> None:
        super().__init__(
            code=ErrorCode.INSUFFICIENT_SEATS,
            message=f"Cannot hold {requested} seats of seat type {seat_type_id}",
        )
        self.seat_type_id = seat_type_id
        self.requested = requested


class SeatCountOutOfRangeError(ProjectionError):
    """確定・解放すると 0 <= available_quantity <= quantity が崩れる"""

    def __init__(self, seat_type_id: UUID, quantity: int) -> None:
        super().__init__(
            code=ErrorCode.SEAT_COUNT_OUT_OF_RANGE,
            message=f"Applying a hold of {quantity} seats leaves seat type {seat_type_id} out of range",
        )
        self.seat_type_id = seat_type_id
        self.quantity = quantity
