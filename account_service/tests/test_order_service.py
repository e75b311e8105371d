from __future__ import annotations

from dataclasses import dataclass

import pytest

from account_service.app.exceptions import (
    ConflictError,
    CouponInvalidError,
    CouponInvalidReason,
    NotFoundError,
    ValidationError,
)
from account_service.app.models.account import SubscriptionStatus
from account_service.app.models.order import OrderStatus, PaymentMethod
from account_service.app.models.plan import PlanId
from account_service.app.services.coupon_service import CouponService
from account_service.app.services.entitlement_service import EntitlementService
from account_service.app.services.order_service import OrderService, generate_order_code
from account_service.app.services.settings_service import SettingsService
from account_service.tests.fakes import (
    FakeAccountRepository,
    FakeCouponRepository,
    FakeOrderRepository,
    FakeSettingsRepository,
    build_account,
    build_coupon,
)


@dataclass
class OrderServiceFixture:
    service: OrderService
    account_repo: FakeAccountRepository
    coupon_repo: FakeCouponRepository
    order_repo: FakeOrderRepository
    settings_repo: FakeSettingsRepository
    entitlements: EntitlementService


def _build_fixture(*coupons) -> OrderServiceFixture:
    account_repo = FakeAccountRepository(build_account(credits=10, cv_chat_tokens=25))
    coupon_repo = FakeCouponRepository(*coupons)
    order_repo = FakeOrderRepository(coupon_repo)
    settings_repo = FakeSettingsRepository(
        {"payment": {"bank_name": "Ziraat", "iban": "TR00 0000", "account_holder": "Kariyer"}}
    )
    settings = SettingsService(settings_repo)
    entitlements = EntitlementService(account_repo=account_repo, settings=settings)
    service = OrderService(
        order_repo=order_repo,
        coupons=CouponService(coupon_repo=coupon_repo, settings=settings),
        entitlements=entitlements,
        settings=settings,
    )
    return OrderServiceFixture(
        service=service,
        account_repo=account_repo,
        coupon_repo=coupon_repo,
        order_repo=order_repo,
        settings_repo=settings_repo,
        entitlements=entitlements,
    )


def test_generate_order_code_uses_prefix_and_unambiguous_alphabet() -> None:
    code = generate_order_code()

    assert code.startswith("KK-")
    assert len(code) == 9
    assert not set(code[3:]) & set("IO01")


def test_paid_checkout_stays_pending_and_returns_payment_info() -> None:
    fixture = _build_fixture()

    result = fixture.service.checkout("user-001", PlanId.BASIC, 79)

    assert result.subscription_activated is False
    assert result.order.status is OrderStatus.PENDING
    assert result.order.payment_method is PaymentMethod.BANK_TRANSFER
    assert result.order.amount == 79
    assert result.payment is not None
    assert result.payment.bank_name == "Ziraat"
    assert fixture.account_repo.accounts["user-001"].subscription is None


def test_checkout_with_coupon_discounts_and_redeems_once() -> None:
    fixture = _build_fixture(build_coupon(code="SPRING", discount_value=50))

    result = fixture.service.checkout("user-001", PlanId.PREMIUM, 149, coupon_code="spring")

    assert result.order.amount == 75
    assert result.order.discount_amount == 74.5
    assert result.order.coupon_code == "SPRING"
    assert fixture.coupon_repo.coupons["SPRING"].usage_count == 1


def test_free_checkout_completes_and_activates_subscription() -> None:
    fixture = _build_fixture(build_coupon(code="FULL", discount_value=100))

    result = fixture.service.checkout("user-001", PlanId.BASIC, 79, coupon_code="FULL")

    assert result.subscription_activated is True
    assert result.payment is None
    assert result.order.status is OrderStatus.COMPLETED
    assert result.order.payment_method is PaymentMethod.COUPON
    assert result.order.completed_at is not None

    account = fixture.account_repo.accounts["user-001"]
    assert account.subscription is not None
    assert account.subscription.plan is PlanId.BASIC
    assert account.subscription.status is SubscriptionStatus.ACTIVE
    assert account.subscription.order_code == result.order.order_code
    assert account.credits == 10 + 100
    assert account.cv_chat_tokens == 25 + 100


def test_checkout_loses_race_for_last_coupon_use() -> None:
    fixture = _build_fixture(build_coupon(code="LAST", max_usage=1))
    stale = fixture.coupon_repo.find_by_code("LAST")
    fixture.coupon_repo.coupons["LAST"].usage_count = 1
    fixture.coupon_repo.find_by_code = lambda code: stale  # type: ignore[method-assign]

    with pytest.raises(CouponInvalidError) as exc_info:
        fixture.service.checkout("user-001", PlanId.BASIC, 79, coupon_code="LAST")

    assert exc_info.value.reason is CouponInvalidReason.USAGE_EXCEEDED
    assert fixture.order_repo.orders == {}
    assert fixture.coupon_repo.coupons["LAST"].usage_count == 1


def test_checkout_rejects_free_plan_and_unknown_user() -> None:
    fixture = _build_fixture()

    with pytest.raises(ValidationError):
        fixture.service.checkout("user-001", PlanId.FREE, 0)
    with pytest.raises(NotFoundError):
        fixture.service.checkout("ghost", PlanId.BASIC, 79)


def test_confirm_activates_subscription_and_cannot_run_twice() -> None:
    fixture = _build_fixture()
    order = fixture.service.checkout("user-001", PlanId.PREMIUM, 149).order

    confirmed = fixture.service.confirm(order.order_code)

    assert confirmed.status is OrderStatus.COMPLETED
    account = fixture.account_repo.accounts["user-001"]
    assert account.subscription is not None
    assert account.subscription.plan is PlanId.PREMIUM
    assert account.credits == 10 + 500

    with pytest.raises(ConflictError):
        fixture.service.confirm(order.order_code)
    with pytest.raises(ConflictError):
        fixture.service.reject(order.order_code)
    assert fixture.account_repo.accounts["user-001"].credits == 10 + 500


def test_reject_cancels_pending_order_without_granting() -> None:
    fixture = _build_fixture()
    order = fixture.service.checkout("user-001", PlanId.BASIC, 79).order

    rejected = fixture.service.reject(order.order_code)

    assert rejected.status is OrderStatus.CANCELLED
    assert fixture.account_repo.accounts["user-001"].subscription is None


def test_transition_of_unknown_order_raises_not_found() -> None:
    fixture = _build_fixture()

    with pytest.raises(NotFoundError):
        fixture.service.confirm("KK-XXXXXX")


def _fail_activation_once(fixture: OrderServiceFixture, monkeypatch: pytest.MonkeyPatch) -> None:
    original = fixture.entitlements.activate_subscription
    calls = {"count": 0}

    def flaky(*args, **kwargs):
        calls["count"] += 1
        if calls["count"] == 1:
            raise RuntimeError("mongo unavailable")
        return original(*args, **kwargs)

    monkeypatch.setattr(fixture.entitlements, "activate_subscription", flaky)


def test_confirm_retries_activation_after_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    fixture = _build_fixture()
    order = fixture.service.checkout("user-001", PlanId.PREMIUM, 149).order
    _fail_activation_once(fixture, monkeypatch)

    with pytest.raises(RuntimeError):
        fixture.service.confirm(order.order_code)

    stuck = fixture.order_repo.orders[order.order_code]
    assert stuck.status is OrderStatus.COMPLETED
    assert stuck.activated_at is None
    assert fixture.account_repo.accounts["user-001"].subscription is None

    confirmed = fixture.service.confirm(order.order_code)

    assert confirmed.activated_at is not None
    account = fixture.account_repo.accounts["user-001"]
    assert account.subscription is not None
    assert account.subscription.order_code == order.order_code
    assert account.credits == 10 + 500

    with pytest.raises(ConflictError):
        fixture.service.confirm(order.order_code)
    assert fixture.account_repo.accounts["user-001"].credits == 10 + 500


def test_free_checkout_activation_failure_can_be_completed_by_confirm(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    fixture = _build_fixture(build_coupon(code="FULL", discount_value=100))
    _fail_activation_once(fixture, monkeypatch)

    with pytest.raises(RuntimeError):
        fixture.service.checkout("user-001", PlanId.BASIC, 79, coupon_code="FULL")

    (order,) = fixture.order_repo.orders.values()
    assert order.status is OrderStatus.COMPLETED
    assert order.activated_at is None

    fixture.service.confirm(order.order_code)

    account = fixture.account_repo.accounts["user-001"]
    assert account.subscription is not None
    assert account.subscription.plan is PlanId.BASIC
    assert account.credits == 10 + 100
