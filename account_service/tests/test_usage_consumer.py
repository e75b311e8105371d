from __future__ import annotations

from datetime import datetime, timezone

import pytest

from account_service.app.event_handlers import usage_consumer
from account_service.app.models.cv import Cv
from account_service.app.models.plan import PlanId
from account_service.app.services.entitlement_service import EntitlementService
from account_service.app.services.settings_service import SettingsService
from account_service.app.services.usage_service import UsageService
from account_service.tests.fakes import (
    NOW,
    FakeAccountRepository,
    FakeCvRepository,
    FakeSettingsRepository,
    FakeUsageStatsRepository,
    build_account,
)
from common.eventbus.envelope import Event
from common.eventbus.kafka import KafkaSettings
from common.eventbus.topics import TOPIC_ENTITLEMENT
from common.events.entitlement import EntitlementEventType


def _consumed_event(
    event_id: str,
    *,
    kind: str = "credits",
    amount: int = 5,
    reason: str = "job_analyze",
    underflow: bool = False,
    timestamp: str = "2026-03-15T12:00:00Z",
) -> Event:
    return Event(
        id=event_id,
        payload={
            "id": event_id,
            "type": EntitlementEventType.BALANCE_CONSUMED,
            "timestamp": timestamp,
            "source": "account-service",
            "version": "1.0",
            "user_code": "user-001",
            "kind": kind,
            "amount": amount,
            "balance_after": 5,
            "reason": reason,
            "underflow": underflow,
        },
    )


def test_handle_event_aggregates_monthly_usage() -> None:
    repo = FakeUsageStatsRepository()

    usage_consumer._handle_event(_consumed_event("evt-1"), usage_repo=repo)
    usage_consumer._handle_event(
        _consumed_event("evt-2", kind="cv_chat_tokens", amount=2, reason="cv_chat_message"),
        usage_repo=repo,
    )
    usage_consumer._handle_event(_consumed_event("evt-3", underflow=True), usage_repo=repo)

    stats = repo.get("user-001", "2026-03")
    assert stats is not None
    assert stats.credits_used == 10
    assert stats.cv_chat_tokens_used == 2
    assert stats.operations == {"job_analyze": 2, "cv_chat_message": 1}
    assert stats.underflow_count == 1


def test_handle_event_ignores_redelivered_event() -> None:
    repo = FakeUsageStatsRepository()

    usage_consumer._handle_event(_consumed_event("evt-1"), usage_repo=repo)
    usage_consumer._handle_event(_consumed_event("evt-1"), usage_repo=repo)

    stats = repo.get("user-001", "2026-03")
    assert stats is not None
    assert stats.credits_used == 5


def test_handle_event_sanitizes_reason_for_field_path() -> None:
    repo = FakeUsageStatsRepository()

    usage_consumer._handle_event(
        _consumed_event("evt-1", reason="Bulk.Match$v2-beta"), usage_repo=repo
    )

    stats = repo.get("user-001", "2026-03")
    assert stats is not None
    assert stats.operations == {"bulk_match_v2_beta": 1}


def test_handle_event_skips_other_event_types_and_unknown_kinds() -> None:
    repo = FakeUsageStatsRepository()
    other = _consumed_event("evt-1")
    other.payload["type"] = "entitlement.granted"

    usage_consumer._handle_event(other, usage_repo=repo)
    usage_consumer._handle_event(_consumed_event("evt-2", kind="gems"), usage_repo=repo)

    assert repo.stats == {}


def test_handle_event_reraises_on_malformed_payload() -> None:
    repo = FakeUsageStatsRepository()
    broken = _consumed_event("evt-1")
    del broken.payload["user_code"]

    with pytest.raises(KeyError):
        usage_consumer._handle_event(broken, usage_repo=repo)


def test_period_falls_back_to_current_month_on_bad_timestamp() -> None:
    assert usage_consumer._period_of("2026-01-31T23:59:59+00:00") == "2026-01"
    assert usage_consumer._period_of("not-a-date") == datetime.now(timezone.utc).strftime("%Y-%m")


def test_usage_report_combines_stats_and_plan_limits() -> None:
    usage_repo = FakeUsageStatsRepository()
    usage_consumer._handle_event(_consumed_event("evt-1"), usage_repo=usage_repo)
    cv_repo = FakeCvRepository()
    cv_repo.insert(
        Cv(user_code="user-001", title="CV", content="...", created_at=NOW, updated_at=NOW)
    )
    account = build_account()
    account.cv_applications_used = 2
    service = UsageService(
        usage_repo=usage_repo,
        cv_repo=cv_repo,
        entitlements=EntitlementService(
            account_repo=FakeAccountRepository(account),
            settings=SettingsService(FakeSettingsRepository()),
        ),
    )

    report = service.report("user-001", now=NOW)

    assert report.plan == "FREE"
    assert report.period == "2026-03"
    assert report.credits_used == 5
    assert report.operations == {"job_analyze": 1}
    assert (report.cv.current, report.cv.limit, report.cv.remaining) == (1, 1, 0)
    assert (report.cv_applications.limit, report.cv_applications.remaining) == (3, 1)


def test_usage_report_shows_unlimited_as_minus_one() -> None:
    service = UsageService(
        usage_repo=FakeUsageStatsRepository(),
        cv_repo=FakeCvRepository(),
        entitlements=EntitlementService(
            account_repo=FakeAccountRepository(build_account(plan=PlanId.PREMIUM)),
            settings=SettingsService(FakeSettingsRepository()),
        ),
    )

    report = service.report("user-001")

    assert report.credits_used == 0
    assert report.cv.limit == -1
    assert report.cv_applications.remaining == -1


class FakeKafkaEventBus:
    instances: list["FakeKafkaEventBus"] = []
    next_event: Event | None = None

    def __init__(self, settings: KafkaSettings) -> None:
        self.settings = settings
        self.subscribe_calls: list[dict] = []
        self.closed = False
        self.__class__.instances.append(self)

    def subscribe(self, *, group_id, topic, handler, stop_flag) -> None:
        self.subscribe_calls.append(
            {"group_id": group_id, "topic": topic, "handler": handler, "stop_flag": stop_flag}
        )
        if self.__class__.next_event is not None:
            handler(self.__class__.next_event)

    def close(self) -> None:
        self.closed = True


def _run_consumer_once(
    monkeypatch: pytest.MonkeyPatch, event: Event
) -> tuple[FakeUsageStatsRepository, FakeKafkaEventBus, list[bool]]:
    repo = FakeUsageStatsRepository()
    FakeKafkaEventBus.instances = []
    FakeKafkaEventBus.next_event = event
    monkeypatch.setenv("KAFKA_BOOTSTRAP_SERVERS", "kafka:9092")
    monkeypatch.setenv("KAFKA_GROUP_ID", "account-group")
    monkeypatch.setattr(usage_consumer, "KafkaEventBus", FakeKafkaEventBus)
    monkeypatch.setattr(usage_consumer, "get_database", lambda: None)
    monkeypatch.setattr(usage_consumer, "UsageStatsRepository", lambda db: repo)

    stop_flag = [False]
    usage_consumer.run_usage_consumer(stop_flag)

    assert len(FakeKafkaEventBus.instances) == 1
    return repo, FakeKafkaEventBus.instances[0], stop_flag


def test_run_usage_consumer_subscribes_and_applies_event(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    repo, bus, stop_flag = _run_consumer_once(monkeypatch, _consumed_event("evt-1"))

    stats = repo.get("user-001", "2026-03")
    assert stats is not None
    assert stats.credits_used == 5

    assert bus.settings.brokers == "kafka:9092"
    call = bus.subscribe_calls[0]
    assert call["group_id"] == "account-group"
    assert call["topic"].base == TOPIC_ENTITLEMENT.base
    assert call["stop_flag"] is stop_flag
    assert bus.closed is True


def test_run_usage_consumer_closes_bus_when_handler_fails(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    broken = _consumed_event("evt-1")
    del broken.payload["amount"]

    with pytest.raises(KeyError):
        _run_consumer_once(monkeypatch, broken)

    assert FakeKafkaEventBus.instances[0].closed is True


def test_run_usage_consumer_requires_group_id(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("KAFKA_BOOTSTRAP_SERVERS", "kafka:9092")
    monkeypatch.delenv("KAFKA_GROUP_ID", raising=False)
    FakeKafkaEventBus.instances = []
    monkeypatch.setattr(usage_consumer, "KafkaEventBus", FakeKafkaEventBus)

    with pytest.raises(RuntimeError, match="KAFKA_GROUP_ID"):
        usage_consumer.run_usage_consumer([False])

    assert FakeKafkaEventBus.instances == []
