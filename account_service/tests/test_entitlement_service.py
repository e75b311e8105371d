from __future__ import annotations

from dataclasses import dataclass

import pytest

from account_service.app.exceptions import NotFoundError, ValidationError
from account_service.app.models.account import SubscriptionStatus
from account_service.app.models.plan import PlanDefinition, PlanId
from account_service.app.services.entitlement_service import EntitlementService
from account_service.app.services.settings_service import SettingsService
from account_service.tests.fakes import (
    FakeAccountRepository,
    FakeSettingsRepository,
    build_account,
)
from common.models.user import Identity, Role


@dataclass
class EntitlementFixture:
    service: EntitlementService
    settings: SettingsService
    account_repo: FakeAccountRepository
    settings_repo: FakeSettingsRepository


def _build_fixture(*accounts) -> EntitlementFixture:
    account_repo = FakeAccountRepository(*accounts)
    settings_repo = FakeSettingsRepository()
    settings = SettingsService(settings_repo)
    return EntitlementFixture(
        service=EntitlementService(account_repo=account_repo, settings=settings),
        settings=settings,
        account_repo=account_repo,
        settings_repo=settings_repo,
    )


def test_ensure_account_creates_free_account_with_plan_grants() -> None:
    fixture = _build_fixture()

    account = fixture.service.ensure_account(
        Identity(user_code="new-user"), "new@example.com", "Yeni Kullanıcı"
    )

    assert account.credits == 10
    assert account.cv_chat_tokens == 25
    assert account.subscription is None
    assert fixture.service.plan_of(account).id is PlanId.FREE


def test_ensure_account_only_updates_profile_for_existing_account() -> None:
    fixture = _build_fixture(build_account(credits=3))

    account = fixture.service.ensure_account(
        Identity(user_code="user-001"), "changed@example.com", "Yeni Ad"
    )

    assert account.email == "changed@example.com"
    assert account.name == "Yeni Ad"
    assert account.credits == 3


def test_activate_subscription_adds_plan_grants_on_top_of_balance() -> None:
    fixture = _build_fixture(build_account(credits=3, cv_chat_tokens=1))

    account = fixture.service.activate_subscription("user-001", PlanId.BASIC, 1, "KK-ABC234")

    assert account.credits == 103
    assert account.cv_chat_tokens == 101
    assert account.subscription is not None
    assert account.subscription.status is SubscriptionStatus.ACTIVE
    assert account.subscription.order_code == "KK-ABC234"
    assert fixture.service.plan_of(account).id is PlanId.BASIC


def test_activate_subscription_validates_input() -> None:
    fixture = _build_fixture(build_account())

    with pytest.raises(ValidationError):
        fixture.service.activate_subscription("user-001", PlanId.BASIC, 0, None)
    with pytest.raises(NotFoundError):
        fixture.service.activate_subscription("ghost", PlanId.BASIC, 1, None)


def test_update_account_sets_absolute_balances_and_role() -> None:
    fixture = _build_fixture(build_account(credits=3))

    account = fixture.service.update_account(
        "user-001", credits=50, cv_chat_tokens=0, role=Role.MODERATOR
    )

    assert account.credits == 50
    assert account.cv_chat_tokens == 0
    assert account.role is Role.MODERATOR


def test_update_account_rejects_negative_balance() -> None:
    fixture = _build_fixture(build_account())

    with pytest.raises(ValidationError):
        fixture.service.update_account("user-001", credits=-1)


def test_update_account_to_free_plan_removes_subscription() -> None:
    fixture = _build_fixture(build_account(plan=PlanId.PREMIUM))

    account = fixture.service.update_account("user-001", plan=PlanId.FREE)

    assert account.subscription is None


def test_reset_chat_tokens_caps_balances_at_plan_grant() -> None:
    fixture = _build_fixture(
        build_account(user_code="free-heavy", cv_chat_tokens=40),
        build_account(user_code="free-light", cv_chat_tokens=5),
        build_account(user_code="basic", cv_chat_tokens=150, plan=PlanId.BASIC),
    )

    reset, skipped, limits = fixture.service.reset_chat_tokens()

    assert (reset, skipped) == (2, 1)
    assert limits == {"FREE": 25, "BASIC": 100, "PREMIUM": 500}
    assert fixture.account_repo.accounts["free-heavy"].cv_chat_tokens == 25
    assert fixture.account_repo.accounts["free-light"].cv_chat_tokens == 5
    assert fixture.account_repo.accounts["basic"].cv_chat_tokens == 100


def test_chat_limits_follow_effective_plan() -> None:
    fixture = _build_fixture(
        build_account(user_code="free"),
        build_account(user_code="premium", plan=PlanId.PREMIUM),
    )
    fixture.account_repo.accounts["free"].cv_applications_used = 2

    free_limits = fixture.service.get_chat_limits("free")
    premium_limits = fixture.service.get_chat_limits("premium")

    assert free_limits.session_limit == 20
    assert free_limits.token_cost == 2
    assert free_limits.cv_applications_remaining == 1
    assert premium_limits.session_limit == 100
    assert premium_limits.cv_applications_remaining == -1


def test_stored_plan_overrides_are_merged_with_defaults() -> None:
    fixture = _build_fixture()
    basic = fixture.settings.get_plan(PlanId.BASIC).model_copy(update={"price": 99})

    plans = fixture.settings.update_plans([basic])

    assert [plan.id for plan in plans] == [PlanId.FREE, PlanId.BASIC, PlanId.PREMIUM]
    assert fixture.settings.get_plan(PlanId.BASIC).price == 99
    assert fixture.settings.get_plan(PlanId.PREMIUM).price == 149


def test_corrupt_plan_setting_falls_back_to_defaults() -> None:
    fixture = _build_fixture()
    fixture.settings_repo.set("subscription_plans", [{"id": "BASIC"}])

    assert fixture.settings.get_plan(PlanId.BASIC).price == 79


def test_duplicate_plan_ids_are_rejected() -> None:
    fixture = _build_fixture()
    basic: PlanDefinition = fixture.settings.get_plan(PlanId.BASIC)

    with pytest.raises(ValidationError):
        fixture.settings.update_plans([basic, basic])
