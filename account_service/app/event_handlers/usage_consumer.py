from __future__ import annotations

import logging
import re
from datetime import datetime

from common.eventbus.envelope import Event
from common.eventbus.kafka import KafkaEventBus, KafkaSettings
from common.eventbus.topics import TOPIC_ENTITLEMENT
from common.events.entitlement import BalanceConsumedEvent, EntitlementEventType
from common.mongo.client import get_database
from common.types.datetime import month_period, utcnow

from ..models.account import ResourceKind
from ..repositories.interfaces import UsageStatsRepositoryInterface
from ..repositories.usage_repository import UsageStatsRepository


logger = logging.getLogger(__name__)

# operations.<key> 필드 경로에는 소문자, 숫자, '_' 만 쓴다.
_REASON_UNSAFE = re.compile(r"[^a-z0-9_]")

_USED_FIELDS = {
    ResourceKind.CREDITS.value: "credits_used",
    ResourceKind.CV_CHAT_TOKENS.value: "cv_chat_tokens_used",
}


def _reason_key(reason: str) -> str:
    return _REASON_UNSAFE.sub("_", reason.strip().lower()) or "unknown"


def _period_of(timestamp: str) -> str:
    try:
        return month_period(datetime.fromisoformat(timestamp.replace("Z", "+00:00")))
    except ValueError:
        return month_period(utcnow())


def _handle_event(evt: Event, *, usage_repo: UsageStatsRepositoryInterface) -> None:
    payload = evt.payload
    if not isinstance(payload, dict):
        logger.error("unexpected payload type for event %s: %r", evt.id, type(payload))
        return

    event_type = str(payload.get("type", ""))
    if event_type != EntitlementEventType.BALANCE_CONSUMED:
        logger.debug("ignoring entitlement event: type=%s id=%s", event_type, evt.id)
        return

    try:
        consumed = BalanceConsumedEvent.from_dict(payload)
    except Exception:  # noqa: BLE001
        logger.exception(
            "failed to decode BalanceConsumedEvent id=%s payload=%r",
            payload.get("id"),
            payload,
        )
        raise

    used_field = _USED_FIELDS.get(consumed.kind)
    if used_field is None:
        logger.warning("unknown balance kind=%s event_id=%s", consumed.kind, consumed.id)
        return

    increments = {
        used_field: consumed.amount,
        f"operations.{_reason_key(consumed.reason)}": 1,
    }
    if consumed.underflow:
        increments["underflow_count"] = 1

    applied = usage_repo.apply(
        consumed.id,
        consumed.user_code,
        _period_of(consumed.timestamp),
        increments,
    )
    if not applied:
        logger.info("duplicate BalanceConsumedEvent ignored id=%s", consumed.id)
        return

    logger.info(
        "usage recorded user_code=%s kind=%s amount=%d reason=%s",
        consumed.user_code,
        consumed.kind,
        consumed.amount,
        consumed.reason,
    )


def run_usage_consumer(stop_flag: list[bool]) -> None:
    """entitlement.consumed 이벤트를 소비해 월간 사용량 집계에 반영하는 구독 루프."""

    logger.info("usage-consumer starting up")

    settings = KafkaSettings.from_env()
    group_id = settings.require_group_id()

    bus = KafkaEventBus(settings)
    usage_repo = UsageStatsRepository(get_database())

    try:
        logger.info(
            "subscribing to topic=%s group_id=%s", TOPIC_ENTITLEMENT.base, group_id
        )
        bus.subscribe(
            group_id=group_id,
            topic=TOPIC_ENTITLEMENT,
            handler=lambda evt: _handle_event(evt, usage_repo=usage_repo),
            stop_flag=stop_flag,
        )
    finally:
        bus.close()
        logger.info("usage-consumer stopped")
