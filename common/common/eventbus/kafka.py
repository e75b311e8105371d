from __future__ import annotations

import logging
import os
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable

from confluent_kafka import Consumer, KafkaError, Message, Producer

from .envelope import RETRY_DELAYS, Event, MaxRetryExceededError, Topic, retry_stage

logger = logging.getLogger(__name__)


def _required_env(name: str) -> str:
    value = os.getenv(name, "").strip()
    if not value:
        raise RuntimeError(f"{name} environment variable is required")
    return value


@dataclass(frozen=True, slots=True)
class KafkaSettings:
    """KAFKA_* 환경 변수에서 읽는 접속 설정.

    message_max_bytes 가 None 이면 librdkafka 기본값을 쓴다.
    """

    brokers: str
    group_id: str | None = None
    message_max_bytes: int | None = None

    @classmethod
    def from_env(cls) -> "KafkaSettings":
        raw_max_bytes = os.getenv("KAFKA_MESSAGE_MAX_BYTES", "").strip()
        max_bytes: int | None = None
        if raw_max_bytes:
            try:
                max_bytes = int(raw_max_bytes)
            except ValueError as exc:
                raise RuntimeError(
                    f"KAFKA_MESSAGE_MAX_BYTES must be an integer value, got: {raw_max_bytes!r}"
                ) from exc
            if max_bytes <= 0:
                max_bytes = None

        return cls(
            brokers=_required_env("KAFKA_BOOTSTRAP_SERVERS"),
            group_id=os.getenv("KAFKA_GROUP_ID", "").strip() or None,
            message_max_bytes=max_bytes,
        )

    def require_group_id(self) -> str:
        """구독 루프는 consumer group 없이 시작할 수 없다."""
        if not self.group_id:
            raise RuntimeError("KAFKA_GROUP_ID environment variable is required")
        return self.group_id


class KafkaEventBus:
    """Kafka 기반 EventBus.

    잔액 차감 이벤트는 중복/유실 없이 전달되어야 하므로 producer 는 idempotent 모드로 동작한다.
    소비 측 처리 실패 시 retry.N 토픽으로 넘기고, 재시도를 모두 쓰면 DLQ 로 보낸다.
    retry.N 토픽의 메시지는 RETRY_DELAYS[N-1] 초가 지난 뒤에 처리한다.
    """

    def __init__(self, settings: KafkaSettings) -> None:
        config: dict[str, Any] = {
            "bootstrap.servers": settings.brokers,
            "enable.idempotence": True,
            "acks": "all",
        }
        if settings.message_max_bytes is not None:
            config["message.max.bytes"] = settings.message_max_bytes
        self._producer = Producer(config)
        self._brokers = settings.brokers

    def close(self) -> None:
        remaining = self._producer.flush(10)
        if remaining:
            logger.warning("kafka producer closed with %d undelivered message(s)", remaining)

    # 발행 -----------------------------------------------------------------
    @staticmethod
    def _on_delivery(err, msg) -> None:  # type: ignore[no-untyped-def]
        if err is not None:
            logger.error("kafka delivery failed topic=%s error=%s", msg.topic(), err)

    def publish(self, topic: str, event: Event) -> None:
        self._producer.produce(
            topic=topic,
            key=event.id.encode("utf-8"),
            value=event.to_bytes(),
            on_delivery=self._on_delivery,
        )
        self._producer.poll(0)

    # 구독 -----------------------------------------------------------------
    def subscribe(
        self,
        group_id: str,
        topic: Topic,
        handler: Callable[[Event], None],
        *,
        poll_timeout: float = 0.5,
        stop_flag: list[bool] | None = None,
    ) -> None:
        consumer = Consumer(
            {
                "bootstrap.servers": self._brokers,
                "group.id": group_id,
                "auto.offset.reset": "earliest",
                "enable.auto.commit": False,
            }
        )
        consumer.subscribe(topic.all_topics())
        logger.info("kafka consumer started group_id=%s topic=%s", group_id, topic.base)

        try:
            while not (stop_flag and stop_flag[0]):
                msg = consumer.poll(poll_timeout)
                if msg is None:
                    continue
                if msg.error():
                    if msg.error().code() != KafkaError._PARTITION_EOF:
                        logger.error("kafka consumer error: %s", msg.error())
                    continue

                self._wait_retry_delay(msg, stop_flag)
                if stop_flag and stop_flag[0]:
                    break

                if self._dispatch(msg, topic, handler):
                    try:
                        consumer.commit(message=msg, asynchronous=False)
                    except Exception:  # noqa: BLE001
                        logger.exception("kafka offset commit failed topic=%s", msg.topic())
        finally:
            consumer.close()
            logger.info("kafka consumer closed group_id=%s", group_id)

    def _dispatch(
        self, msg: Message, topic: Topic, handler: Callable[[Event], None]
    ) -> bool:
        """메시지 하나를 처리한다. 오프셋을 커밋해도 되면 True."""
        try:
            evt = Event.from_bytes(msg.value())
        except (ValueError, TypeError) as exc:
            # 복구할 수 없는 메시지는 건너뛴다.
            logger.error("undecodable kafka message on %s: %s", msg.topic(), exc)
            return True

        try:
            handler(evt)
            return True
        except Exception as exc:  # noqa: BLE001
            evt.last_error = str(exc)
            return self._forward_failed(evt, topic)

    def _forward_failed(self, evt: Event, topic: Topic) -> bool:
        """실패한 이벤트를 다음 retry 토픽 또는 DLQ 로 보낸다. 발행 실패면 False."""
        try:
            if evt.exhausted:
                raise MaxRetryExceededError()
            target = topic.get_retry_topic(evt.retry + 1)
        except MaxRetryExceededError:
            target = topic.dlq()
            logger.error(
                "event %s exhausted %d retries, moving to %s: %s",
                evt.id,
                evt.max_retry,
                target,
                evt.last_error,
            )
        else:
            evt.retry += 1
            logger.warning(
                "event %s failed, retry %d/%d via %s: %s",
                evt.id,
                evt.retry,
                evt.max_retry,
                target,
                evt.last_error,
            )

        try:
            self.publish(target, evt)
        except Exception:  # noqa: BLE001
            logger.exception("failed to forward event %s to %s", evt.id, target)
            return False
        return True

    @staticmethod
    def _wait_retry_delay(msg: Message, stop_flag: list[bool] | None) -> None:
        stage = retry_stage(msg.topic())
        if not 0 < stage <= len(RETRY_DELAYS):
            return

        _, timestamp_ms = msg.timestamp()
        if timestamp_ms <= 0:
            return
        due = timestamp_ms / 1000 + RETRY_DELAYS[stage - 1]
        while time.time() < due:
            if stop_flag and stop_flag[0]:
                return
            time.sleep(min(1.0, due - time.time()))


_bus: KafkaEventBus | None = None
_bus_lock = threading.Lock()


def get_kafka_event_bus() -> KafkaEventBus:
    """API 프로세스에서 공유하는 발행용 KafkaEventBus 싱글톤."""

    global _bus

    if _bus is not None:
        return _bus

    with _bus_lock:
        if _bus is None:
            _bus = KafkaEventBus(KafkaSettings.from_env())
        return _bus


def close_kafka_event_bus() -> None:
    global _bus

    with _bus_lock:
        if _bus is not None:
            _bus.close()
            _bus = None
