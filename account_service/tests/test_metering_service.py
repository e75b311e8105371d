from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import pytest

from account_service.app.exceptions import (
    InsufficientBalanceError,
    NotFoundError,
    UpstreamServiceError,
    ValidationError,
)
from account_service.app.models.account import Consumption, ResourceKind
from account_service.app.models.plan import PlanId
from account_service.app.services.metering_service import (
    ConsumptionLedger,
    MeteredOperationRunner,
    MeteringGate,
)
from account_service.app.services.settings_service import SettingsService
from account_service.tests.fakes import (
    NOW,
    FakeAccountRepository,
    FakeConsumptionRepository,
    FakeSettingsRepository,
    build_account,
)


@dataclass
class MeteringFixture:
    gate: MeteringGate
    ledger: ConsumptionLedger
    runner: MeteredOperationRunner
    account_repo: FakeAccountRepository
    consumption_repo: FakeConsumptionRepository
    settings_repo: FakeSettingsRepository


def _build_fixture(*accounts) -> MeteringFixture:
    account_repo = FakeAccountRepository(*(accounts or (build_account(),)))
    consumption_repo = FakeConsumptionRepository()
    settings_repo = FakeSettingsRepository()
    settings = SettingsService(settings_repo)
    gate = MeteringGate(account_repo=account_repo, settings=settings)
    ledger = ConsumptionLedger(
        account_repo=account_repo,
        consumption_repo=consumption_repo,
        settings=settings,
    )
    return MeteringFixture(
        gate=gate,
        ledger=ledger,
        runner=MeteredOperationRunner(gate=gate, ledger=ledger),
        account_repo=account_repo,
        consumption_repo=consumption_repo,
        settings_repo=settings_repo,
    )


def _unlimited_plans() -> list[dict]:
    return [
        {
            "id": "PREMIUM",
            "name": "Premium",
            "price": 149,
            "credits": 500,
            "cv_chat_tokens": 500,
            "chat_session_limit": 100,
            "has_consultant_access": True,
            "is_unlimited": True,
        }
    ]


def test_gate_allows_when_balance_covers_cost() -> None:
    fixture = _build_fixture(build_account(credits=5))

    decision = fixture.gate.check("user-001", ResourceKind.CREDITS, 5)

    assert decision.allowed is True
    assert decision.available == 5
    assert decision.required == 5


def test_gate_denies_without_changing_balance() -> None:
    fixture = _build_fixture(build_account(credits=4))

    with pytest.raises(InsufficientBalanceError) as exc_info:
        fixture.gate.require("user-001", ResourceKind.CREDITS, 5)

    assert exc_info.value.kind == "credits"
    assert exc_info.value.required == 5
    assert exc_info.value.available == 4
    assert fixture.account_repo.accounts["user-001"].credits == 4


def test_gate_rejects_non_positive_amount() -> None:
    fixture = _build_fixture()

    with pytest.raises(ValidationError):
        fixture.gate.check("user-001", ResourceKind.CREDITS, 0)


def test_gate_raises_not_found_for_unknown_user() -> None:
    fixture = _build_fixture()

    with pytest.raises(NotFoundError):
        fixture.gate.check("ghost", ResourceKind.CREDITS, 1)


def test_gate_checks_chat_tokens_independently_of_credits() -> None:
    fixture = _build_fixture(build_account(credits=0, cv_chat_tokens=2))

    assert fixture.gate.check("user-001", ResourceKind.CV_CHAT_TOKENS, 2).allowed is True
    assert fixture.gate.check("user-001", ResourceKind.CREDITS, 1).allowed is False


def test_unlimited_plan_is_allowed_and_never_debited() -> None:
    fixture = _build_fixture(build_account(credits=0, plan=PlanId.PREMIUM))
    fixture.settings_repo.set("subscription_plans", _unlimited_plans())

    decision = fixture.gate.check("user-001", ResourceKind.CREDITS, 50)
    result = fixture.ledger.record("user-001", ResourceKind.CREDITS, 50, "job_analyze")

    assert decision.allowed is True
    assert decision.unlimited is True
    assert result.unlimited is True
    assert result.amount == 0
    assert fixture.account_repo.accounts["user-001"].credits == 0
    assert fixture.consumption_repo.items == []


def test_expired_subscription_falls_back_to_free_plan() -> None:
    fixture = _build_fixture(
        build_account(
            credits=0,
            plan=PlanId.PREMIUM,
            expires_at=datetime.now(timezone.utc) - timedelta(days=1),
        )
    )
    fixture.settings_repo.set("subscription_plans", _unlimited_plans())

    assert fixture.gate.check("user-001", ResourceKind.CREDITS, 1).allowed is False


def test_record_debits_and_writes_history() -> None:
    fixture = _build_fixture(build_account(credits=10))

    result = fixture.ledger.record("user-001", ResourceKind.CREDITS, 3, "job_analyze")

    assert result.amount == 3
    assert result.balance == 7
    assert result.underflow is False
    assert fixture.account_repo.accounts["user-001"].credits == 7
    assert len(fixture.consumption_repo.items) == 1
    entry = fixture.consumption_repo.items[0]
    assert entry.reason == "job_analyze"
    assert entry.balance_after == 7


def test_record_clamps_to_zero_and_flags_underflow() -> None:
    fixture = _build_fixture(build_account(credits=2))

    result = fixture.ledger.record("user-001", ResourceKind.CREDITS, 5, "job_analyze")

    assert result.underflow is True
    assert result.balance == 0
    assert fixture.account_repo.accounts["user-001"].credits == 0
    assert fixture.consumption_repo.items[0].underflow is True


def test_record_with_same_idempotency_key_debits_once() -> None:
    fixture = _build_fixture(build_account(credits=10))

    first = fixture.ledger.record(
        "user-001", ResourceKind.CREDITS, 4, "job_analyze", idempotency_key="req-1"
    )
    second = fixture.ledger.record(
        "user-001", ResourceKind.CREDITS, 4, "job_analyze", idempotency_key="req-1"
    )

    assert first.replayed is False
    assert second.replayed is True
    assert second.balance == first.balance == 6
    assert fixture.account_repo.accounts["user-001"].credits == 6
    assert len(fixture.consumption_repo.items) == 1


def test_runner_does_not_debit_when_operation_fails() -> None:
    fixture = _build_fixture(build_account(credits=10))

    def failing() -> str:
        raise UpstreamServiceError()

    with pytest.raises(UpstreamServiceError):
        fixture.runner.run("user-001", ResourceKind.CREDITS, 5, "job_analyze", failing)

    assert fixture.account_repo.accounts["user-001"].credits == 10
    assert fixture.consumption_repo.items == []


def test_runner_does_not_call_operation_when_gate_denies() -> None:
    fixture = _build_fixture(build_account(credits=1))
    calls: list[str] = []

    with pytest.raises(InsufficientBalanceError):
        fixture.runner.run(
            "user-001",
            ResourceKind.CREDITS,
            5,
            "job_analyze",
            lambda: calls.append("called"),
        )

    assert calls == []


def test_runner_returns_operation_result_with_consumption() -> None:
    fixture = _build_fixture(build_account(credits=10))

    result, consumption = fixture.runner.run(
        "user-001", ResourceKind.CREDITS, 5, "job_analyze", lambda: "ok"
    )

    assert result == "ok"
    assert consumption.balance == 5


def test_record_losing_idempotency_race_after_clamp_restores_only_debited_amount(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    fixture = _build_fixture(build_account(credits=3))
    repo = fixture.consumption_repo
    repo.items.append(
        Consumption(
            id="cons-twin",
            user_code="user-001",
            kind=ResourceKind.CREDITS,
            amount=5,
            balance_after=0,
            reason="job_analyze",
            underflow=True,
            idempotency_key="k",
            created_at=NOW,
            updated_at=NOW,
        )
    )
    original_find = repo.find_by_idempotency_key
    lookups = {"count": 0}

    def stale_first_lookup(user_code: str, key: str) -> Consumption | None:
        # 첫 조회 시점에는 같은 키의 다른 요청이 아직 기록 전이었다.
        lookups["count"] += 1
        if lookups["count"] == 1:
            return None
        return original_find(user_code, key)

    monkeypatch.setattr(repo, "find_by_idempotency_key", stale_first_lookup)

    result = fixture.ledger.record(
        "user-001", ResourceKind.CREDITS, 5, "job_analyze", idempotency_key="k"
    )

    assert result.replayed is True
    assert fixture.account_repo.accounts["user-001"].credits == 3
    assert fixture.account_repo.credit_calls == [("user-001", ResourceKind.CREDITS, 3)]
    assert len(repo.items) == 1


def test_runner_retry_with_same_key_after_draining_balance_replays() -> None:
    fixture = _build_fixture(build_account(credits=5))
    calls: list[str] = []

    def operation() -> str:
        calls.append("called")
        return "ok"

    _, first = fixture.runner.run(
        "user-001", ResourceKind.CREDITS, 5, "job_analyze", operation, idempotency_key="k"
    )
    result, second = fixture.runner.run(
        "user-001", ResourceKind.CREDITS, 5, "job_analyze", operation, idempotency_key="k"
    )

    assert result == "ok"
    assert first.balance == 0
    assert second.replayed is True
    assert second.balance == 0
    assert calls == ["called", "called"]
    assert fixture.account_repo.accounts["user-001"].credits == 0
    assert len(fixture.consumption_repo.items) == 1


def test_concurrent_debits_never_go_negative_nor_lose_updates() -> None:
    fixture = _build_fixture(build_account(credits=50))
    barrier = threading.Barrier(20)
    results = []
    lock = threading.Lock()

    def worker() -> None:
        barrier.wait()
        result = fixture.ledger.record("user-001", ResourceKind.CREDITS, 3, "job_analyze")
        with lock:
            results.append(result)

    threads = [threading.Thread(target=worker) for _ in range(20)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    final = fixture.account_repo.accounts["user-001"].credits
    full_debits = [r for r in results if not r.underflow]

    assert final == 0
    assert len(full_debits) == 16
    assert len(fixture.consumption_repo.items) == 20
    assert all(r.balance >= 0 for r in results)
