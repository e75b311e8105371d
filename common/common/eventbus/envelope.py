"""Kafka 로 오가는 이벤트 봉투와 토픽 이름 규칙."""

from __future__ import annotations

import json
import uuid
from dataclasses import asdict, dataclass
from typing import Any, Mapping


# retry.N 토픽에서 메시지를 다시 처리하기까지 기다리는 시간(초).
# 사용량 집계는 몇 분 안에 따라잡으면 되므로 단계를 짧게 둔다.
RETRY_DELAYS: tuple[float, ...] = (5.0, 30.0, 120.0, 600.0)

MAX_RETRY = len(RETRY_DELAYS)


class MaxRetryExceededError(Exception):
    """재시도 단계를 모두 쓴 이벤트."""


@dataclass(slots=True)
class Event:
    """payload(dict) 와 재시도 상태를 함께 싣는 봉투.

    retry 는 지금까지 거친 retry 토픽 단계, last_error 는 직전 처리 실패 사유다.
    """

    id: str
    payload: Any
    retry: int = 0
    max_retry: int = MAX_RETRY
    last_error: str | None = None

    def __post_init__(self) -> None:
        if not 0 < self.max_retry <= MAX_RETRY:
            self.max_retry = MAX_RETRY

    @classmethod
    def wrap(cls, payload: Mapping[str, Any], *, event_id: str | None = None) -> "Event":
        return cls(id=event_id or str(uuid.uuid4()), payload=dict(payload))

    @property
    def exhausted(self) -> bool:
        return self.retry >= self.max_retry

    def to_bytes(self) -> bytes:
        return json.dumps(asdict(self), ensure_ascii=False).encode("utf-8")

    @classmethod
    def from_bytes(cls, raw: bytes) -> "Event":
        """ValueError/TypeError 는 복구할 수 없는 메시지라는 뜻이다."""
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise TypeError(f"event must be a JSON object, got {type(data).__name__}")
        return cls(
            id=str(data.get("id", "")),
            payload=data.get("payload"),
            retry=int(data.get("retry", 0)),
            max_retry=int(data.get("max_retry", 0)),
            last_error=data.get("last_error"),
        )


@dataclass(frozen=True, slots=True)
class Topic:
    """본 토픽과 거기서 파생되는 '<base>.retry.N', '<base>.dlq' 토픽."""

    base: str

    def dlq(self) -> str:
        return f"{self.base}.dlq"

    def get_retry_topics(self) -> list[str]:
        return [self.get_retry_topic(stage) for stage in range(1, MAX_RETRY + 1)]

    def get_retry_topic(self, stage: int) -> str:
        if not 0 < stage <= MAX_RETRY:
            raise MaxRetryExceededError()
        return f"{self.base}.retry.{stage}"

    def all_topics(self) -> list[str]:
        return [self.base, *self.get_retry_topics()]


def retry_stage(topic_name: str) -> int:
    """'<base>.retry.N' 이면 N, 그 밖의 토픽이면 0."""
    _, sep, suffix = topic_name.rpartition(".retry.")
    if not sep or not suffix.isdigit():
        return 0
    return int(suffix)
