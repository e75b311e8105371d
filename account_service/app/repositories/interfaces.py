from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

from ..models.account import Account, Consumption, ResourceKind, Subscription
from ..models.admin_log import AdminLog, AdminLogFilter
from ..models.consultant_chat import (
    ChatMessage,
    ChatRoom,
    Consultant,
    ConsultantRating,
    SenderType,
)
from ..models.cookie_consent import CookieConsent
from ..models.coupon import Coupon, CouponStats
from ..models.cv import Cv, JobAnalysis, JobListing
from ..models.cv_chat import CvChatMessage, CvChatSession
from ..models.order import Order, OrderFilter, OrderStatus, SalesStats
from ..models.plan import PlanId
from ..models.usage import UsageStats


class AccountRepositoryInterface(Protocol):
    """AccountRepository가 따라야 할 최소한의 계약.

    잔액 변경 메서드는 모두 단일 도큐먼트 원자적 업데이트여야 한다.
    대상이 없거나 조건(guard)을 만족하지 못하면 None 을 반환한다.
    """

    def find_by_user_code(
        self, user_code: str
    ) -> Account | None:  # pragma: no cover - Protocol
        ...

    def insert(self, account: Account) -> Account:  # pragma: no cover - Protocol
        ...

    def update_profile(
        self, user_code: str, email: str, name: str
    ) -> Account | None:  # pragma: no cover - Protocol
        ...

    def try_debit(
        self, user_code: str, kind: ResourceKind, amount: int
    ) -> Account | None:  # pragma: no cover - Protocol
        """잔액 >= amount 일 때만 amount 만큼 차감한다."""
        ...

    def debit_clamped(
        self, user_code: str, kind: ResourceKind, amount: int
    ) -> Account | None:  # pragma: no cover - Protocol
        """잔액을 max(0, 잔액 - amount) 로 만들고 갱신 전 상태를 돌려준다."""
        ...

    def credit(
        self, user_code: str, kind: ResourceKind, amount: int
    ) -> Account | None:  # pragma: no cover - Protocol
        ...

    def activate_subscription(
        self,
        user_code: str,
        subscription: Subscription,
        credits: int,
        cv_chat_tokens: int,
    ) -> Account | None:  # pragma: no cover - Protocol
        ...

    def update_fields(
        self, user_code: str, fields: dict[str, Any]
    ) -> Account | None:  # pragma: no cover - Protocol
        ...

    def cap_chat_tokens(
        self, plan: PlanId, cap: int, now: datetime
    ) -> int:  # pragma: no cover - Protocol
        """effective plan 이 plan 인 계정의 CV 채팅 토큰을 cap 으로 낮추고 변경 수를 반환한다."""
        ...

    def count(self) -> int:  # pragma: no cover - Protocol
        ...

    def list(
        self, page: int, page_size: int, search: str | None = None
    ) -> tuple[list[Account], int]:  # pragma: no cover - Protocol
        ...


class ConsumptionRepositoryInterface(Protocol):
    def insert(
        self, consumption: Consumption
    ) -> Consumption | None:  # pragma: no cover - Protocol
        """같은 (user_code, idempotency_key) 가 이미 있으면 None."""
        ...

    def find_by_idempotency_key(
        self, user_code: str, idempotency_key: str
    ) -> Consumption | None:  # pragma: no cover - Protocol
        ...

    def list_by_user(
        self, user_code: str, page: int, page_size: int
    ) -> tuple[list[Consumption], int]:  # pragma: no cover - Protocol
        ...


class SettingsRepositoryInterface(Protocol):
    def get(self, key: str) -> Any | None:  # pragma: no cover - Protocol
        ...

    def set(self, key: str, value: Any) -> None:  # pragma: no cover - Protocol
        ...


class CouponRepositoryInterface(Protocol):
    def find_by_code(self, code: str) -> Coupon | None:  # pragma: no cover - Protocol
        ...

    def find_by_id(self, coupon_id: str) -> Coupon | None:  # pragma: no cover - Protocol
        ...

    def insert(self, coupon: Coupon) -> Coupon | None:  # pragma: no cover - Protocol
        """같은 code 가 이미 있으면 None."""
        ...

    def update(
        self, coupon_id: str, fields: dict[str, Any]
    ) -> Coupon | None:  # pragma: no cover - Protocol
        ...

    def delete(self, coupon_id: str) -> bool:  # pragma: no cover - Protocol
        ...

    def list_all(self) -> list[Coupon]:  # pragma: no cover - Protocol
        ...

    def stats(self) -> CouponStats:  # pragma: no cover - Protocol
        ...


class OrderRepositoryInterface(Protocol):
    def create(
        self, order: Order, redeem_coupon_code: str | None = None
    ) -> Order | None:  # pragma: no cover - Protocol
        """주문을 저장한다.

        redeem_coupon_code 가 주어지면 같은 트랜잭션에서 쿠폰 usage_count 를 1 올린다.
        쿠폰이 비활성이거나 사용 한도에 도달했으면 아무것도 쓰지 않고 None 을 반환한다.
        """
        ...

    def find_by_code(self, order_code: str) -> Order | None:  # pragma: no cover - Protocol
        ...

    def transition(
        self,
        order_code: str,
        from_status: OrderStatus,
        to_status: OrderStatus,
        now: datetime,
    ) -> Order | None:  # pragma: no cover - Protocol
        """현재 상태가 from_status 일 때만 to_status 로 바꾼다."""
        ...

    def claim_activation(
        self, order_code: str, now: datetime
    ) -> Order | None:  # pragma: no cover - Protocol
        """COMPLETED 이고 아직 구독이 활성화되지 않은 주문에 activated_at 을 찍는다."""
        ...

    def release_activation(self, order_code: str) -> None:  # pragma: no cover - Protocol
        """구독 활성화가 실패했을 때 activated_at 을 되돌린다."""
        ...

    def list_by_user(
        self, user_code: str, limit: int
    ) -> list[Order]:  # pragma: no cover - Protocol
        ...

    def search(
        self, order_filter: OrderFilter, page: int, page_size: int
    ) -> tuple[list[Order], int]:  # pragma: no cover - Protocol
        ...

    def stats(self, order_filter: OrderFilter) -> SalesStats:  # pragma: no cover - Protocol
        ...


class AdminLogRepositoryInterface(Protocol):
    def insert(self, log: AdminLog) -> AdminLog:  # pragma: no cover - Protocol
        ...

    def search(
        self, log_filter: AdminLogFilter, page: int, page_size: int
    ) -> tuple[list[AdminLog], int]:  # pragma: no cover - Protocol
        ...

    def count_by_action_since(
        self, since: datetime
    ) -> dict[str, int]:  # pragma: no cover - Protocol
        ...

    def delete_older_than(self, cutoff: datetime) -> int:  # pragma: no cover - Protocol
        ...


class ConsultantRepositoryInterface(Protocol):
    def insert(self, consultant: Consultant) -> Consultant:  # pragma: no cover - Protocol
        ...

    def find_by_id(
        self, consultant_id: str
    ) -> Consultant | None:  # pragma: no cover - Protocol
        ...

    def find_by_user_code(
        self, user_code: str
    ) -> Consultant | None:  # pragma: no cover - Protocol
        ...

    def list(self, active_only: bool) -> list[Consultant]:  # pragma: no cover - Protocol
        ...

    def update(
        self, consultant_id: str, fields: dict[str, Any]
    ) -> Consultant | None:  # pragma: no cover - Protocol
        ...


class ChatRoomRepositoryInterface(Protocol):
    def find_by_id(self, room_id: str) -> ChatRoom | None:  # pragma: no cover - Protocol
        ...

    def get_or_create(
        self, user_code: str, consultant_id: str
    ) -> ChatRoom:  # pragma: no cover - Protocol
        """(user_code, consultant_id) 당 하나의 방만 존재한다."""
        ...

    def list_by_user(self, user_code: str) -> list[ChatRoom]:  # pragma: no cover - Protocol
        ...

    def list_by_consultant(
        self, consultant_id: str
    ) -> list[ChatRoom]:  # pragma: no cover - Protocol
        ...

    def list_all(self) -> list[ChatRoom]:  # pragma: no cover - Protocol
        ...

    def claim_next_seq(
        self, room_id: str, now: datetime
    ) -> int | None:  # pragma: no cover - Protocol
        """ACTIVE 인 방의 message_seq 를 1 올리고 새 값을 반환한다. ACTIVE 가 아니면 None."""
        ...

    def close(
        self, room_id: str, closed_by: str, now: datetime
    ) -> ChatRoom | None:  # pragma: no cover - Protocol
        """ACTIVE 인 방만 CLOSED 로 바꾼다."""
        ...

    def reopen(self, room_id: str, now: datetime) -> ChatRoom | None:  # pragma: no cover - Protocol
        """CLOSED 인 방만 ACTIVE 로 되돌린다."""
        ...


class ChatMessageRepositoryInterface(Protocol):
    def insert(self, message: ChatMessage) -> ChatMessage:  # pragma: no cover - Protocol
        ...

    def list_by_room(self, room_id: str) -> list[ChatMessage]:  # pragma: no cover - Protocol
        """seq 오름차순."""
        ...

    def last_message(self, room_id: str) -> ChatMessage | None:  # pragma: no cover - Protocol
        ...

    def mark_read(
        self, room_id: str, sender_type: SenderType
    ) -> int:  # pragma: no cover - Protocol
        ...

    def count_unread(
        self, room_ids: list[str], sender_type: SenderType
    ) -> dict[str, int]:  # pragma: no cover - Protocol
        """room_id 별 sender_type 의 안 읽은 메시지 수."""
        ...


class ConsultantRatingRepositoryInterface(Protocol):
    def insert(
        self, rating: ConsultantRating
    ) -> ConsultantRating | None:  # pragma: no cover - Protocol
        """이미 평가된 방이면 None."""
        ...

    def find_by_room(
        self, room_id: str
    ) -> ConsultantRating | None:  # pragma: no cover - Protocol
        ...


class CookieConsentRepositoryInterface(Protocol):
    def insert(self, consent: CookieConsent) -> CookieConsent:  # pragma: no cover - Protocol
        ...

    def find_latest_valid(
        self, ip_address: str, now: datetime
    ) -> CookieConsent | None:  # pragma: no cover - Protocol
        ...


class CvRepositoryInterface(Protocol):
    def insert(self, cv: Cv) -> Cv:  # pragma: no cover - Protocol
        ...

    def find(self, cv_id: str, user_code: str) -> Cv | None:  # pragma: no cover - Protocol
        ...

    def list_by_user(self, user_code: str) -> list[Cv]:  # pragma: no cover - Protocol
        ...

    def count_by_user(self, user_code: str) -> int:  # pragma: no cover - Protocol
        ...


class JobListingRepositoryInterface(Protocol):
    def insert(self, job: JobListing) -> JobListing:  # pragma: no cover - Protocol
        ...

    def find_by_id(self, job_id: str) -> JobListing | None:  # pragma: no cover - Protocol
        ...

    def list(
        self, page: int, page_size: int, active_only: bool, search: str | None
    ) -> tuple[list[JobListing], int]:  # pragma: no cover - Protocol
        ...

    def update(
        self, job_id: str, fields: dict[str, Any]
    ) -> JobListing | None:  # pragma: no cover - Protocol
        ...

    def delete(self, job_id: str) -> bool:  # pragma: no cover - Protocol
        ...


class JobAnalysisRepositoryInterface(Protocol):
    def insert(self, analysis: JobAnalysis) -> JobAnalysis:  # pragma: no cover - Protocol
        ...

    def list_by_user(
        self, user_code: str, page: int, page_size: int
    ) -> tuple[list[JobAnalysis], int]:  # pragma: no cover - Protocol
        ...


class CvChatSessionRepositoryInterface(Protocol):
    def create(self, session: CvChatSession) -> CvChatSession:  # pragma: no cover - Protocol
        ...

    def get_by_id(
        self, session_id: str, user_code: str
    ) -> CvChatSession | None:  # pragma: no cover - Protocol
        ...

    def replace_messages(
        self, session_id: str, messages: list[CvChatMessage], is_finished: bool
    ) -> CvChatSession | None:  # pragma: no cover - Protocol
        ...


class UsageStatsRepositoryInterface(Protocol):
    def apply(
        self,
        event_id: str,
        user_code: str,
        period: str,
        increments: dict[str, int],
    ) -> bool:  # pragma: no cover - Protocol
        """이벤트 하나를 월간 집계에 반영한다. 이미 반영된 event_id 면 False."""
        ...

    def get(
        self, user_code: str, period: str
    ) -> UsageStats | None:  # pragma: no cover - Protocol
        ...
