"""account-service 도메인 예외.

서비스 레이어는 HTTP 를 모르고 이 예외만 던진다. HTTP 응답으로의 변환은
api/errors.py 의 exception handler 가 담당한다.
"""

from __future__ import annotations

from enum import StrEnum


class AccountServiceError(Exception):
    """Base exception for all account-service errors."""

    message = "Beklenmeyen bir hata oluştu"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        self.message = message or self.message


class InsufficientBalanceError(AccountServiceError):
    """잔액(크레딧/CV 채팅 토큰)이 작업 비용보다 적다."""

    def __init__(self, kind: str, required: int, available: int) -> None:
        super().__init__("Yetersiz bakiye")
        self.kind = kind
        self.required = required
        self.available = available


class CouponInvalidReason(StrEnum):
    NOT_FOUND = "NOT_FOUND"
    INACTIVE = "INACTIVE"
    OUT_OF_WINDOW = "OUT_OF_WINDOW"
    USAGE_EXCEEDED = "USAGE_EXCEEDED"
    PLAN_MISMATCH = "PLAN_MISMATCH"


_COUPON_MESSAGES: dict[CouponInvalidReason, str] = {
    CouponInvalidReason.NOT_FOUND: "Geçersiz kupon kodu",
    CouponInvalidReason.INACTIVE: "Bu kupon aktif değil",
    CouponInvalidReason.OUT_OF_WINDOW: "Bu kupon şu anda geçerli değil",
    CouponInvalidReason.USAGE_EXCEEDED: "Bu kuponun kullanım limiti dolmuş",
    CouponInvalidReason.PLAN_MISMATCH: "Bu kupon seçilen plan için geçerli değil",
}


class CouponInvalidError(AccountServiceError):
    """쿠폰을 적용할 수 없다. reason 으로 원인을 구분한다."""

    def __init__(self, reason: CouponInvalidReason) -> None:
        super().__init__(_COUPON_MESSAGES[reason])
        self.reason = reason


class UpstreamServiceError(AccountServiceError):
    """외부 AI 서비스 호출 실패. 과금하지 않는다."""

    message = "AI servisi şu anda yanıt vermiyor, lütfen daha sonra tekrar deneyin"


class ValidationError(AccountServiceError):
    """입력값 검증 실패."""

    message = "Geçersiz istek"


class PriceMismatchError(ValidationError):
    """클라이언트가 보낸 원가가 요금제 정가와 다르다."""

    message = "Plan fiyatı güncel değil, lütfen sayfayı yenileyin"


class NotFoundError(AccountServiceError):
    message = "Kayıt bulunamadı"


class PermissionDeniedError(AccountServiceError):
    message = "Bu işlem için yetkiniz yok"


class ConflictError(AccountServiceError):
    message = "İşlem mevcut durumla çakışıyor"


class RoomClosedError(ConflictError):
    """CLOSED 상태의 상담 채팅방에는 메시지를 보낼 수 없다."""

    message = "Bu sohbet kapatılmış"


class QuotaExceededError(AccountServiceError):
    """요금제 수량 한도(CV 개수 등) 초과."""

    def __init__(self, message: str, *, limit: int, current: int) -> None:
        super().__init__(message)
        self.limit = limit
        self.current = current
