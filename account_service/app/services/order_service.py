"""주문(구매) 서비스.

결제는 계좌이체 수동 확인 방식이다. 100% 할인 쿠폰처럼 최종 금액이 0 이면
결제 단계를 건너뛰고 즉시 구독을 활성화한다.
"""

from __future__ import annotations

import logging
import secrets

from fastapi import Depends
from pymongo.database import Database

from common.mongo.client import get_database
from common.types.datetime import utcnow

from ..constants import (
    ORDER_CODE_ALPHABET,
    ORDER_CODE_LENGTH,
    ORDER_CODE_PREFIX,
    SUBSCRIPTION_MONTHS,
)
from ..exceptions import (
    ConflictError,
    CouponInvalidError,
    CouponInvalidReason,
    NotFoundError,
    ValidationError,
)
from ..models.order import (
    CheckoutResult,
    Order,
    OrderFilter,
    OrderStatus,
    PaymentMethod,
    SalesStats,
)
from ..models.plan import PlanId
from ..repositories.interfaces import OrderRepositoryInterface
from ..repositories.order_repository import OrderRepository
from .coupon_service import CouponService, get_coupon_service
from .entitlement_service import EntitlementService, get_entitlement_service
from .settings_service import SettingsService, get_settings_service


logger = logging.getLogger(__name__)


def generate_order_code() -> str:
    suffix = "".join(secrets.choice(ORDER_CODE_ALPHABET) for _ in range(ORDER_CODE_LENGTH))
    return f"{ORDER_CODE_PREFIX}{suffix}"


class OrderService:
    def __init__(
        self,
        order_repo: OrderRepositoryInterface,
        coupons: CouponService,
        entitlements: EntitlementService,
        settings: SettingsService,
    ) -> None:
        self._order_repo = order_repo
        self._coupons = coupons
        self._entitlements = entitlements
        self._settings = settings

    def checkout(
        self,
        user_code: str,
        plan: PlanId,
        original_price: float,
        coupon_code: str | None = None,
    ) -> CheckoutResult:
        if plan is PlanId.FREE:
            raise ValidationError("Ücretsiz plan satın alınamaz")

        # 계정이 없으면 NotFoundError
        self._entitlements.get_account(user_code)

        price = self._coupons.check_price(plan, original_price)
        amount = price
        discount = 0.0
        normalized_code: str | None = None
        if coupon_code and coupon_code.strip():
            coupon, quote = self._coupons.resolve(coupon_code, plan, price)
            normalized_code = coupon.code
            amount = quote.final_price
            discount = quote.discount_amount

        is_free = amount == 0
        now = utcnow()
        order = Order(
            order_code=generate_order_code(),
            user_code=user_code,
            plan=plan,
            original_price=price,
            discount_amount=discount,
            amount=amount,
            coupon_code=normalized_code,
            status=OrderStatus.COMPLETED if is_free else OrderStatus.PENDING,
            payment_method=PaymentMethod.COUPON if is_free else PaymentMethod.BANK_TRANSFER,
            completed_at=now if is_free else None,
            created_at=now,
            updated_at=now,
        )

        created = self._order_repo.create(order, redeem_coupon_code=normalized_code)
        if created is None:
            # 검증 이후 다른 주문이 마지막 사용 횟수를 가져갔다.
            raise CouponInvalidError(CouponInvalidReason.USAGE_EXCEEDED)

        logger.info(
            "order created order_code=%s user_code=%s plan=%s amount=%s coupon=%s",
            created.order_code,
            user_code,
            plan,
            amount,
            normalized_code,
        )

        if is_free:
            activated = self._activate(created.order_code)
            return CheckoutResult(order=activated, subscription_activated=True)

        return CheckoutResult(
            order=created,
            subscription_activated=False,
            payment=self._settings.get_payment(),
        )

    def confirm(self, order_code: str) -> Order:
        """관리자 입금 확인: PENDING -> COMPLETED 후 구독 활성화.

        COMPLETED 이지만 구독 활성화가 실패한 채 남은 주문(activated_at 없음)은
        다시 confirm 하면 활성화만 이어서 수행한다.
        """
        updated = self._order_repo.transition(
            order_code, OrderStatus.PENDING, OrderStatus.COMPLETED, utcnow()
        )
        if updated is None:
            existing = self._order_repo.find_by_code(order_code)
            if existing is None:
                raise NotFoundError("Sipariş bulunamadı")
            if existing.status is not OrderStatus.COMPLETED or existing.activated_at is not None:
                raise ConflictError("Sipariş zaten sonuçlandırılmış")
            logger.warning("retrying subscription activation order_code=%s", order_code)
        return self._activate(order_code)

    def _activate(self, order_code: str) -> Order:
        # 지급은 activated_at 선점에 성공한 호출에서 한 번만 일어난다.
        claimed = self._order_repo.claim_activation(order_code, utcnow())
        if claimed is None:
            raise ConflictError("Sipariş zaten sonuçlandırılmış")
        try:
            self._entitlements.activate_subscription(
                claimed.user_code, claimed.plan, SUBSCRIPTION_MONTHS, claimed.order_code
            )
        except Exception:
            self._order_repo.release_activation(order_code)
            logger.exception("subscription activation failed order_code=%s", order_code)
            raise
        return claimed

    def reject(self, order_code: str) -> Order:
        return self._transition(order_code, OrderStatus.CANCELLED)

    def _transition(self, order_code: str, to_status: OrderStatus) -> Order:
        updated = self._order_repo.transition(
            order_code, OrderStatus.PENDING, to_status, utcnow()
        )
        if updated is not None:
            return updated

        if self._order_repo.find_by_code(order_code) is None:
            raise NotFoundError("Sipariş bulunamadı")
        raise ConflictError("Sipariş zaten sonuçlandırılmış")

    def list_for_user(self, user_code: str, limit: int = 20) -> list[Order]:
        return self._order_repo.list_by_user(user_code, limit)

    def search(
        self, order_filter: OrderFilter, page: int, page_size: int
    ) -> tuple[list[Order], int, SalesStats]:
        items, total = self._order_repo.search(order_filter, page, page_size)
        return items, total, self._order_repo.stats(order_filter)


def get_order_repository(
    db: Database = Depends(get_database),
) -> OrderRepositoryInterface:
    """FastAPI DI용 OrderRepository 팩토리."""

    return OrderRepository(db)


def get_order_service(
    order_repo: OrderRepositoryInterface = Depends(get_order_repository),
    coupons: CouponService = Depends(get_coupon_service),
    entitlements: EntitlementService = Depends(get_entitlement_service),
    settings: SettingsService = Depends(get_settings_service),
) -> OrderService:
    """FastAPI DI용 OrderService 팩토리."""

    return OrderService(
        order_repo=order_repo,
        coupons=coupons,
        entitlements=entitlements,
        settings=settings,
    )
