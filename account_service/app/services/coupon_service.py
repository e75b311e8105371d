"""쿠폰 서비스.

검증(validate)은 순수 조회라 usage_count 를 건드리지 않는다. 사용 횟수 증가는
주문 생성 트랜잭션(OrderService.checkout)에서만 일어난다.
"""

from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from fastapi import Depends
from pymongo.database import Database

from common.mongo.client import get_database
from common.types.datetime import as_utc, utcnow

from ..exceptions import (
    ConflictError,
    CouponInvalidError,
    CouponInvalidReason,
    NotFoundError,
    PriceMismatchError,
    ValidationError,
)
from ..models.coupon import Coupon, CouponQuote, CouponStats, DiscountType
from ..models.plan import PlanId
from ..repositories.coupon_repository import CouponRepository
from ..repositories.interfaces import CouponRepositoryInterface
from .settings_service import SettingsService, get_settings_service


def round_half_up(value: Decimal) -> Decimal:
    """0.5 는 올림하는 정수 반올림 (은행가 반올림이 아님)."""
    return value.quantize(Decimal("1"), rounding=ROUND_HALF_UP)


def evaluate_coupon(
    coupon: Coupon, plan: PlanId, now: datetime
) -> CouponInvalidReason | None:
    """쿠폰 사용 가능 여부. 불가하면 첫 번째로 걸린 사유를 반환한다.

    검사 순서: 비활성 -> 유효기간 -> 사용 한도 -> 요금제 제한
    """
    if not coupon.is_active:
        return CouponInvalidReason.INACTIVE
    if coupon.valid_from is not None and now < as_utc(coupon.valid_from):
        return CouponInvalidReason.OUT_OF_WINDOW
    if coupon.valid_until is not None and now > as_utc(coupon.valid_until):
        return CouponInvalidReason.OUT_OF_WINDOW
    if coupon.max_usage is not None and coupon.usage_count >= coupon.max_usage:
        return CouponInvalidReason.USAGE_EXCEEDED
    if coupon.plan_restriction is not None and coupon.plan_restriction != plan:
        return CouponInvalidReason.PLAN_MISMATCH
    return None


def compute_quote(coupon: Coupon, original_price: float) -> CouponQuote:
    original = Decimal(str(original_price))
    value = Decimal(str(coupon.discount_value))

    if coupon.discount_type is DiscountType.PERCENT:
        discount = original * value / Decimal(100)
    else:
        discount = min(value, original)

    final_price = max(Decimal(0), round_half_up(original - discount))
    return CouponQuote(
        original_price=float(original),
        discount_amount=float(discount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)),
        final_price=float(final_price),
        is_free=final_price == 0,
    )


class CouponService:
    def __init__(
        self,
        coupon_repo: CouponRepositoryInterface,
        settings: SettingsService,
    ) -> None:
        self._coupon_repo = coupon_repo
        self._settings = settings

    def check_price(self, plan: PlanId, original_price: float) -> float:
        """클라이언트가 보낸 원가가 요금제 정가와 같은지 확인하고 정가를 반환한다."""
        canonical = self._settings.get_plan(plan).price
        if Decimal(str(original_price)) != Decimal(str(canonical)):
            raise PriceMismatchError()
        return canonical

    def resolve(
        self,
        code: str,
        plan: PlanId,
        original_price: float,
        now: datetime | None = None,
    ) -> tuple[Coupon, CouponQuote]:
        """쿠폰을 찾아 검증하고 견적을 계산한다. 어떤 상태도 바꾸지 않는다."""
        coupon = self._coupon_repo.find_by_code(code)
        if coupon is None:
            raise CouponInvalidError(CouponInvalidReason.NOT_FOUND)

        reason = evaluate_coupon(coupon, plan, now or utcnow())
        if reason is not None:
            raise CouponInvalidError(reason)

        return coupon, compute_quote(coupon, original_price)

    def validate(
        self, code: str, plan: PlanId, original_price: float
    ) -> tuple[Coupon, CouponQuote]:
        price = self.check_price(plan, original_price)
        return self.resolve(code, plan, price)

    # 관리자 -------------------------------------------------------------
    def create(self, coupon: Coupon) -> Coupon:
        created = self._coupon_repo.insert(coupon)
        if created is None:
            raise ConflictError("Bu kupon kodu zaten mevcut")
        return created

    def update(self, coupon_id: str, fields: dict[str, Any]) -> Coupon:
        current = self._coupon_repo.find_by_id(coupon_id)
        if current is None:
            raise NotFoundError("Kupon bulunamadı")

        # 변경 후 상태가 유효한지 도메인 모델로 먼저 검증한다.
        try:
            merged = Coupon.model_validate({**current.model_dump(), **fields})
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

        stored_fields = {
            key: value
            for key, value in merged.model_dump(mode="python").items()
            if key in fields
        }
        for key in ("discount_type", "plan_restriction"):
            if key in stored_fields and stored_fields[key] is not None:
                stored_fields[key] = stored_fields[key].value

        updated = self._coupon_repo.update(coupon_id, stored_fields)
        if updated is None:
            raise NotFoundError("Kupon bulunamadı")
        return updated

    def delete(self, coupon_id: str) -> None:
        if not self._coupon_repo.delete(coupon_id):
            raise NotFoundError("Kupon bulunamadı")

    def list_with_stats(self) -> tuple[list[Coupon], CouponStats]:
        return self._coupon_repo.list_all(), self._coupon_repo.stats()


def get_coupon_repository(
    db: Database = Depends(get_database),
) -> CouponRepositoryInterface:
    """FastAPI DI용 CouponRepository 팩토리."""

    return CouponRepository(db)


def get_coupon_service(
    coupon_repo: CouponRepositoryInterface = Depends(get_coupon_repository),
    settings: SettingsService = Depends(get_settings_service),
) -> CouponService:
    """FastAPI DI용 CouponService 팩토리."""

    return CouponService(coupon_repo=coupon_repo, settings=settings)
