"""Kafka 이벤트 발행 헬퍼."""

from __future__ import annotations

import logging
import uuid
from dataclasses import asdict
from datetime import datetime, timezone

from common.eventbus.envelope import Event
from common.eventbus.kafka import get_kafka_event_bus
from common.eventbus.topics import TOPIC_ENTITLEMENT
from common.events.entitlement import BalanceConsumedEvent, EntitlementEventType

from ...constants import EVENT_SOURCE
from ...models.account import ConsumptionResult


logger = logging.getLogger(__name__)


def publish_balance_consumed(
    user_code: str, consumption: ConsumptionResult, reason: str
) -> None:
    """entitlement.consumed 이벤트 발행.

    실제 차감이 없었던 경우(무제한 요금제, 재요청)는 발행하지 않는다.
    발행 실패는 응답에 영향을 주지 않는다.
    """
    if consumption.unlimited or consumption.replayed:
        return

    event_id = str(uuid.uuid4())
    event = BalanceConsumedEvent(
        id=event_id,
        type=EntitlementEventType.BALANCE_CONSUMED,
        timestamp=datetime.now(timezone.utc).isoformat(),
        source=EVENT_SOURCE,
        version="1.0",
        user_code=user_code,
        kind=consumption.kind.value,
        amount=consumption.amount,
        balance_after=consumption.balance,
        reason=reason,
        underflow=consumption.underflow,
    )
    wrapped = Event.wrap(asdict(event), event_id=event_id)
    try:
        get_kafka_event_bus().publish(TOPIC_ENTITLEMENT.base, wrapped)
    except Exception:  # noqa: BLE001
        logger.exception(
            "failed to publish entitlement.consumed user_code=%s reason=%s",
            user_code,
            reason,
        )
