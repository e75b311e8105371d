"""잔액(크레딧/CV 채팅 토큰) 관련 이벤트 정의."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Self


class EntitlementEventType:
    """잔액 이벤트 타입 상수."""

    BALANCE_CONSUMED = "entitlement.consumed"


@dataclass(slots=True)
class BalanceConsumedEvent:
    """잔액 차감 이벤트.

    과금 대상 작업(AI 분석, CV 채팅 등)이 성공해 잔액이 차감되면 발행된다.
    """

    id: str
    type: str
    timestamp: str
    source: str
    version: str
    user_code: str
    kind: str  # "credits" | "cv_chat_tokens"
    amount: int
    balance_after: int
    reason: str
    underflow: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        return cls(
            id=str(data["id"]),
            type=str(data["type"]),
            timestamp=str(data["timestamp"]),
            source=str(data["source"]),
            version=str(data.get("version", "1.0")),
            user_code=str(data["user_code"]),
            kind=str(data["kind"]),
            amount=int(data["amount"]),
            balance_after=int(data["balance_after"]),
            reason=str(data["reason"]),
            underflow=bool(data.get("underflow", False)),
        )
