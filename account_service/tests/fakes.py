"""서비스 테스트용 인메모리 리포지토리.

잔액/쿠폰/채팅방처럼 MongoDB 에서 조건부 원자적 업데이트로 처리하는 부분은
lock 으로 같은 의미를 흉내 낸다.
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import Any

from common.models.user import Role
from account_service.app.constants import USAGE_PROCESSED_EVENT_IDS_LIMIT
from account_service.app.models.account import (
    Account,
    Consumption,
    ResourceKind,
    Subscription,
    SubscriptionStatus,
)
from account_service.app.models.admin_log import AdminLog, AdminLogFilter
from account_service.app.models.consultant_chat import (
    ChatMessage,
    ChatRoom,
    Consultant,
    ConsultantRating,
    RoomStatus,
    SenderType,
)
from account_service.app.models.cookie_consent import CookieConsent
from account_service.app.models.coupon import Coupon, CouponStats, DiscountType
from account_service.app.models.cv import Cv, JobAnalysis, JobListing
from account_service.app.models.cv_chat import CvChatMessage, CvChatSession
from account_service.app.models.order import Order, OrderFilter, OrderStatus, SalesStats
from account_service.app.models.plan import PlanId
from account_service.app.models.usage import UsageStats


NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


def build_account(
    *,
    user_code: str = "user-001",
    credits: int = 10,
    cv_chat_tokens: int = 25,
    plan: PlanId | None = None,
    role: Role = Role.USER,
    expires_at: datetime | None = None,
) -> Account:
    now = datetime.now(timezone.utc)
    subscription = None
    if plan is not None:
        subscription = Subscription(
            plan=plan,
            status=SubscriptionStatus.ACTIVE,
            started_at=now - timedelta(days=1),
            expires_at=expires_at or now + timedelta(days=29),
        )
    return Account(
        user_code=user_code,
        email=f"{user_code}@example.com",
        name=user_code,
        role=role,
        credits=credits,
        cv_chat_tokens=cv_chat_tokens,
        subscription=subscription,
        created_at=now,
        updated_at=now,
    )


def build_coupon(
    *,
    code: str = "WELCOME10",
    discount_type: DiscountType = DiscountType.PERCENT,
    discount_value: float = 10,
    max_usage: int | None = None,
    usage_count: int = 0,
    plan_restriction: PlanId | None = None,
    is_active: bool = True,
    valid_from: datetime | None = None,
    valid_until: datetime | None = None,
) -> Coupon:
    return Coupon(
        code=code,
        discount_type=discount_type,
        discount_value=discount_value,
        max_usage=max_usage,
        usage_count=usage_count,
        plan_restriction=plan_restriction,
        is_active=is_active,
        valid_from=valid_from,
        valid_until=valid_until,
        created_at=NOW,
        updated_at=NOW,
    )


class FakeAccountRepository:
    def __init__(self, *accounts: Account) -> None:
        self._lock = threading.Lock()
        self.accounts: dict[str, Account] = {a.user_code: a for a in accounts}
        self.credit_calls: list[tuple[str, ResourceKind, int]] = []

    def _copy(self, user_code: str) -> Account | None:
        account = self.accounts.get(user_code)
        return account.model_copy(deep=True) if account else None

    def find_by_user_code(self, user_code: str) -> Account | None:
        with self._lock:
            return self._copy(user_code)

    def insert(self, account: Account) -> Account:
        with self._lock:
            existing = self.accounts.get(account.user_code)
            if existing is not None:
                return existing.model_copy(deep=True)
            stored = account.model_copy(update={"id": f"acc-{len(self.accounts) + 1}"})
            self.accounts[account.user_code] = stored
            return stored.model_copy(deep=True)

    def update_profile(self, user_code: str, email: str, name: str) -> Account | None:
        return self.update_fields(user_code, {"email": email, "name": name})

    def try_debit(self, user_code: str, kind: ResourceKind, amount: int) -> Account | None:
        with self._lock:
            account = self.accounts.get(user_code)
            if account is None or account.balance_of(kind) < amount:
                return None
            setattr(account, kind.value, account.balance_of(kind) - amount)
            return self._copy(user_code)

    def debit_clamped(self, user_code: str, kind: ResourceKind, amount: int) -> Account | None:
        with self._lock:
            account = self.accounts.get(user_code)
            if account is None:
                return None
            before = self._copy(user_code)
            setattr(account, kind.value, max(0, account.balance_of(kind) - amount))
            return before

    def credit(self, user_code: str, kind: ResourceKind, amount: int) -> Account | None:
        with self._lock:
            self.credit_calls.append((user_code, kind, amount))
            account = self.accounts.get(user_code)
            if account is None:
                return None
            setattr(account, kind.value, account.balance_of(kind) + amount)
            return self._copy(user_code)

    def activate_subscription(
        self,
        user_code: str,
        subscription: Subscription,
        credits: int,
        cv_chat_tokens: int,
    ) -> Account | None:
        with self._lock:
            account = self.accounts.get(user_code)
            if account is None:
                return None
            account.subscription = subscription
            account.credits += credits
            account.cv_chat_tokens += cv_chat_tokens
            return self._copy(user_code)

    def update_fields(self, user_code: str, fields: dict[str, Any]) -> Account | None:
        with self._lock:
            account = self.accounts.get(user_code)
            if account is None:
                return None
            data = {**account.model_dump(), **fields}
            self.accounts[user_code] = Account.model_validate(data)
            return self._copy(user_code)

    def cap_chat_tokens(self, plan: PlanId, cap: int, now: datetime) -> int:
        changed = 0
        with self._lock:
            for account in self.accounts.values():
                if account.effective_plan(now) == plan and account.cv_chat_tokens > cap:
                    account.cv_chat_tokens = cap
                    changed += 1
        return changed

    def count(self) -> int:
        return len(self.accounts)

    def list(
        self, page: int, page_size: int, search: str | None = None
    ) -> tuple[list[Account], int]:
        items = [
            a
            for a in self.accounts.values()
            if not search or search in a.user_code or search in a.email
        ]
        start = (page - 1) * page_size
        return items[start : start + page_size], len(items)


class FakeConsumptionRepository:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.items: list[Consumption] = []

    def insert(self, consumption: Consumption) -> Consumption | None:
        with self._lock:
            key = consumption.idempotency_key
            if key and any(
                c.user_code == consumption.user_code and c.idempotency_key == key
                for c in self.items
            ):
                return None
            stored = consumption.model_copy(update={"id": f"cons-{len(self.items) + 1}"})
            self.items.append(stored)
            return stored

    def find_by_idempotency_key(
        self, user_code: str, idempotency_key: str
    ) -> Consumption | None:
        for item in self.items:
            if item.user_code == user_code and item.idempotency_key == idempotency_key:
                return item
        return None

    def list_by_user(
        self, user_code: str, page: int, page_size: int
    ) -> tuple[list[Consumption], int]:
        items = [c for c in reversed(self.items) if c.user_code == user_code]
        start = (page - 1) * page_size
        return items[start : start + page_size], len(items)


class FakeSettingsRepository:
    def __init__(self, values: dict[str, Any] | None = None) -> None:
        self.values: dict[str, Any] = dict(values or {})

    def get(self, key: str) -> Any | None:
        return self.values.get(key)

    def set(self, key: str, value: Any) -> None:
        self.values[key] = value


class FakeCouponRepository:
    def __init__(self, *coupons: Coupon) -> None:
        self.lock = threading.Lock()
        self.coupons: dict[str, Coupon] = {}
        for coupon in coupons:
            self.insert(coupon)

    def find_by_code(self, code: str) -> Coupon | None:
        coupon = self.coupons.get(code.strip().upper())
        return coupon.model_copy() if coupon else None

    def find_by_id(self, coupon_id: str) -> Coupon | None:
        for coupon in self.coupons.values():
            if coupon.id == coupon_id:
                return coupon.model_copy()
        return None

    def insert(self, coupon: Coupon) -> Coupon | None:
        if coupon.code in self.coupons:
            return None
        stored = coupon.model_copy(update={"id": f"coupon-{len(self.coupons) + 1}"})
        self.coupons[coupon.code] = stored
        return stored

    def update(self, coupon_id: str, fields: dict[str, Any]) -> Coupon | None:
        current = self.find_by_id(coupon_id)
        if current is None:
            return None
        updated = Coupon.model_validate({**current.model_dump(), **fields})
        self.coupons[updated.code] = updated
        return updated

    def delete(self, coupon_id: str) -> bool:
        current = self.find_by_id(coupon_id)
        if current is None:
            return False
        del self.coupons[current.code]
        return True

    def list_all(self) -> list[Coupon]:
        return list(self.coupons.values())

    def stats(self) -> CouponStats:
        items = list(self.coupons.values())
        return CouponStats(
            total=len(items),
            active=sum(1 for c in items if c.is_active),
            total_usage=sum(c.usage_count for c in items),
        )

    def redeem(self, code: str) -> bool:
        """주문 트랜잭션 안의 guarded $inc 와 같은 의미."""
        with self.lock:
            coupon = self.coupons.get(code)
            if coupon is None or not coupon.is_active:
                return False
            if coupon.max_usage is not None and coupon.usage_count >= coupon.max_usage:
                return False
            coupon.usage_count += 1
            return True


class FakeOrderRepository:
    def __init__(self, coupon_repo: FakeCouponRepository) -> None:
        self._coupon_repo = coupon_repo
        self._lock = threading.Lock()
        self.orders: dict[str, Order] = {}

    def create(self, order: Order, redeem_coupon_code: str | None = None) -> Order | None:
        with self._lock:
            if redeem_coupon_code and not self._coupon_repo.redeem(redeem_coupon_code):
                return None
            stored = order.model_copy(update={"id": f"order-{len(self.orders) + 1}"})
            self.orders[order.order_code] = stored
            return stored

    def find_by_code(self, order_code: str) -> Order | None:
        return self.orders.get(order_code)

    def transition(
        self,
        order_code: str,
        from_status: OrderStatus,
        to_status: OrderStatus,
        now: datetime,
    ) -> Order | None:
        with self._lock:
            order = self.orders.get(order_code)
            if order is None or order.status is not from_status:
                return None
            update: dict[str, Any] = {"status": to_status, "updated_at": now}
            if to_status is OrderStatus.COMPLETED:
                update["completed_at"] = now
            self.orders[order_code] = order.model_copy(update=update)
            return self.orders[order_code]

    def claim_activation(self, order_code: str, now: datetime) -> Order | None:
        with self._lock:
            order = self.orders.get(order_code)
            if (
                order is None
                or order.status is not OrderStatus.COMPLETED
                or order.activated_at is not None
            ):
                return None
            self.orders[order_code] = order.model_copy(update={"activated_at": now})
            return self.orders[order_code]

    def release_activation(self, order_code: str) -> None:
        with self._lock:
            order = self.orders.get(order_code)
            if order is not None:
                self.orders[order_code] = order.model_copy(update={"activated_at": None})

    def list_by_user(self, user_code: str, limit: int) -> list[Order]:
        return [o for o in self.orders.values() if o.user_code == user_code][:limit]

    def _matches(self, order: Order, order_filter: OrderFilter) -> bool:
        if order_filter.status is not None and order.status is not order_filter.status:
            return False
        if order_filter.plan is not None and order.plan is not order_filter.plan:
            return False
        if order_filter.search and order_filter.search.upper() not in order.order_code:
            return False
        return True

    def search(
        self, order_filter: OrderFilter, page: int, page_size: int
    ) -> tuple[list[Order], int]:
        items = [o for o in self.orders.values() if self._matches(o, order_filter)]
        start = (page - 1) * page_size
        return items[start : start + page_size], len(items)

    def stats(self, order_filter: OrderFilter) -> SalesStats:
        items = [o for o in self.orders.values() if self._matches(o, order_filter)]
        completed = [o for o in items if o.status is OrderStatus.COMPLETED]
        return SalesStats(
            total_orders=len(items),
            completed_orders=len(completed),
            pending_orders=sum(1 for o in items if o.status is OrderStatus.PENDING),
            total_revenue=sum(o.amount for o in completed),
        )


class FakeAdminLogRepository:
    def __init__(self) -> None:
        self.logs: list[AdminLog] = []
        self.fail_inserts = False

    def insert(self, log: AdminLog) -> AdminLog:
        if self.fail_inserts:
            raise RuntimeError("mongo is down")
        stored = log.model_copy(update={"id": f"log-{len(self.logs) + 1}"})
        self.logs.append(stored)
        return stored

    def search(
        self, log_filter: AdminLogFilter, page: int, page_size: int
    ) -> tuple[list[AdminLog], int]:
        items = [
            log
            for log in sorted(self.logs, key=lambda l: l.created_at, reverse=True)
            if (log_filter.action is None or log.action is log_filter.action)
            and (log_filter.target_type is None or log.target_type is log_filter.target_type)
            and (log_filter.admin_code is None or log.admin_code == log_filter.admin_code)
            and (
                not log_filter.search
                or log_filter.search in (log.details or "")
                or log_filter.search in (log.target_id or "")
            )
        ]
        start = (page - 1) * page_size
        return items[start : start + page_size], len(items)

    def count_by_action_since(self, since: datetime) -> dict[str, int]:
        counts: dict[str, int] = {}
        for log in self.logs:
            if log.created_at >= since:
                counts[log.action.value] = counts.get(log.action.value, 0) + 1
        return counts

    def delete_older_than(self, cutoff: datetime) -> int:
        before = len(self.logs)
        self.logs = [log for log in self.logs if log.created_at >= cutoff]
        return before - len(self.logs)


class FakeConsultantRepository:
    def __init__(self) -> None:
        self.consultants: dict[str, Consultant] = {}

    def insert(self, consultant: Consultant) -> Consultant:
        stored = consultant.model_copy(update={"id": f"consultant-{len(self.consultants) + 1}"})
        self.consultants[stored.id or ""] = stored
        return stored

    def find_by_id(self, consultant_id: str) -> Consultant | None:
        return self.consultants.get(consultant_id)

    def find_by_user_code(self, user_code: str) -> Consultant | None:
        for consultant in self.consultants.values():
            if consultant.user_code == user_code:
                return consultant
        return None

    def list(self, active_only: bool) -> list[Consultant]:
        return [c for c in self.consultants.values() if c.is_active or not active_only]

    def update(self, consultant_id: str, fields: dict[str, Any]) -> Consultant | None:
        current = self.consultants.get(consultant_id)
        if current is None:
            return None
        self.consultants[consultant_id] = current.model_copy(update=fields)
        return self.consultants[consultant_id]


class FakeChatRoomRepository:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.rooms: dict[str, ChatRoom] = {}

    def find_by_id(self, room_id: str) -> ChatRoom | None:
        room = self.rooms.get(room_id)
        return room.model_copy() if room else None

    def get_or_create(self, user_code: str, consultant_id: str) -> ChatRoom:
        with self._lock:
            for room in self.rooms.values():
                if room.user_code == user_code and room.consultant_id == consultant_id:
                    return room.model_copy()
            now = datetime.now(timezone.utc)
            room = ChatRoom(
                id=f"room-{len(self.rooms) + 1}",
                user_code=user_code,
                consultant_id=consultant_id,
                created_at=now,
                updated_at=now,
            )
            self.rooms[room.id or ""] = room
            return room.model_copy()

    def list_by_user(self, user_code: str) -> list[ChatRoom]:
        return [r for r in self.rooms.values() if r.user_code == user_code]

    def list_by_consultant(self, consultant_id: str) -> list[ChatRoom]:
        return [r for r in self.rooms.values() if r.consultant_id == consultant_id]

    def list_all(self) -> list[ChatRoom]:
        return list(self.rooms.values())

    def claim_next_seq(self, room_id: str, now: datetime) -> int | None:
        with self._lock:
            room = self.rooms.get(room_id)
            if room is None or room.status is not RoomStatus.ACTIVE:
                return None
            room.message_seq += 1
            room.last_message_at = now
            return room.message_seq

    def close(self, room_id: str, closed_by: str, now: datetime) -> ChatRoom | None:
        with self._lock:
            room = self.rooms.get(room_id)
            if room is None or room.status is not RoomStatus.ACTIVE:
                return None
            room.status = RoomStatus.CLOSED
            room.closed_at = now
            room.closed_by = closed_by
            return room.model_copy()

    def reopen(self, room_id: str, now: datetime) -> ChatRoom | None:
        with self._lock:
            room = self.rooms.get(room_id)
            if room is None or room.status is not RoomStatus.CLOSED:
                return None
            room.status = RoomStatus.ACTIVE
            room.closed_at = None
            room.closed_by = None
            return room.model_copy()


class FakeChatMessageRepository:
    def __init__(self) -> None:
        self.messages: list[ChatMessage] = []

    def insert(self, message: ChatMessage) -> ChatMessage:
        stored = message.model_copy(update={"id": f"msg-{len(self.messages) + 1}"})
        self.messages.append(stored)
        return stored

    def list_by_room(self, room_id: str) -> list[ChatMessage]:
        return sorted((m for m in self.messages if m.room_id == room_id), key=lambda m: m.seq)

    def last_message(self, room_id: str) -> ChatMessage | None:
        items = self.list_by_room(room_id)
        return items[-1] if items else None

    def mark_read(self, room_id: str, sender_type: SenderType) -> int:
        changed = 0
        for message in self.messages:
            if message.room_id == room_id and message.sender_type is sender_type and not message.is_read:
                message.is_read = True
                changed += 1
        return changed

    def count_unread(self, room_ids: list[str], sender_type: SenderType) -> dict[str, int]:
        counts: dict[str, int] = {}
        for message in self.messages:
            if message.room_id in room_ids and message.sender_type is sender_type and not message.is_read:
                counts[message.room_id] = counts.get(message.room_id, 0) + 1
        return counts


class FakeConsultantRatingRepository:
    def __init__(self) -> None:
        self.ratings: dict[str, ConsultantRating] = {}

    def insert(self, rating: ConsultantRating) -> ConsultantRating | None:
        if rating.room_id in self.ratings:
            return None
        stored = rating.model_copy(update={"id": f"rating-{len(self.ratings) + 1}"})
        self.ratings[rating.room_id] = stored
        return stored

    def find_by_room(self, room_id: str) -> ConsultantRating | None:
        return self.ratings.get(room_id)


class FakeCookieConsentRepository:
    def __init__(self) -> None:
        self.consents: list[CookieConsent] = []
        self.fail = False

    def insert(self, consent: CookieConsent) -> CookieConsent:
        if self.fail:
            raise RuntimeError("mongo is down")
        stored = consent.model_copy(update={"id": f"consent-{len(self.consents) + 1}"})
        self.consents.append(stored)
        return stored

    def find_latest_valid(self, ip_address: str, now: datetime) -> CookieConsent | None:
        if self.fail:
            raise RuntimeError("mongo is down")
        valid = [c for c in self.consents if c.ip_address == ip_address and c.expires_at > now]
        return max(valid, key=lambda c: c.accepted_at) if valid else None


class FakeCvRepository:
    def __init__(self) -> None:
        self.cvs: list[Cv] = []

    def insert(self, cv: Cv) -> Cv:
        stored = cv.model_copy(update={"id": f"cv-{len(self.cvs) + 1}"})
        self.cvs.append(stored)
        return stored

    def find(self, cv_id: str, user_code: str) -> Cv | None:
        for cv in self.cvs:
            if cv.id == cv_id and cv.user_code == user_code:
                return cv
        return None

    def list_by_user(self, user_code: str) -> list[Cv]:
        return [cv for cv in self.cvs if cv.user_code == user_code]

    def count_by_user(self, user_code: str) -> int:
        return len(self.list_by_user(user_code))


class FakeJobListingRepository:
    def __init__(self) -> None:
        self.jobs: dict[str, JobListing] = {}

    def insert(self, job: JobListing) -> JobListing:
        stored = job.model_copy(update={"id": f"job-{len(self.jobs) + 1}"})
        self.jobs[stored.id or ""] = stored
        return stored

    def find_by_id(self, job_id: str) -> JobListing | None:
        return self.jobs.get(job_id)

    def list(
        self, page: int, page_size: int, active_only: bool, search: str | None
    ) -> tuple[list[JobListing], int]:
        items = [
            j
            for j in self.jobs.values()
            if (j.is_active or not active_only) and (not search or search in j.title)
        ]
        start = (page - 1) * page_size
        return items[start : start + page_size], len(items)

    def update(self, job_id: str, fields: dict[str, Any]) -> JobListing | None:
        current = self.jobs.get(job_id)
        if current is None:
            return None
        self.jobs[job_id] = current.model_copy(update=fields)
        return self.jobs[job_id]

    def delete(self, job_id: str) -> bool:
        return self.jobs.pop(job_id, None) is not None


class FakeJobAnalysisRepository:
    def __init__(self) -> None:
        self.analyses: list[JobAnalysis] = []

    def insert(self, analysis: JobAnalysis) -> JobAnalysis:
        stored = analysis.model_copy(update={"id": f"analysis-{len(self.analyses) + 1}"})
        self.analyses.append(stored)
        return stored

    def list_by_user(
        self, user_code: str, page: int, page_size: int
    ) -> tuple[list[JobAnalysis], int]:
        items = [a for a in self.analyses if a.user_code == user_code]
        start = (page - 1) * page_size
        return items[start : start + page_size], len(items)


class FakeCvChatSessionRepository:
    def __init__(self) -> None:
        self.sessions: dict[str, CvChatSession] = {}

    def create(self, session: CvChatSession) -> CvChatSession:
        stored = session.model_copy(update={"id": f"session-{len(self.sessions) + 1}"})
        self.sessions[stored.id or ""] = stored
        return stored

    def get_by_id(self, session_id: str, user_code: str) -> CvChatSession | None:
        session = self.sessions.get(session_id)
        if session is None or session.user_code != user_code:
            return None
        return session

    def replace_messages(
        self, session_id: str, messages: list[CvChatMessage], is_finished: bool
    ) -> CvChatSession | None:
        session = self.sessions.get(session_id)
        if session is None:
            return None
        self.sessions[session_id] = session.model_copy(
            update={"messages": list(messages), "is_finished": is_finished}
        )
        return self.sessions[session_id]


class FakeUsageStatsRepository:
    def __init__(self, processed_limit: int = USAGE_PROCESSED_EVENT_IDS_LIMIT) -> None:
        self.stats: dict[tuple[str, str], UsageStats] = {}
        self.processed: dict[tuple[str, str], list[str]] = {}
        self.processed_limit = processed_limit

    def apply(
        self, event_id: str, user_code: str, period: str, increments: dict[str, int]
    ) -> bool:
        key = (user_code, period)
        processed = self.processed.setdefault(key, [])
        if event_id in processed:
            return False
        processed.append(event_id)
        del processed[: -self.processed_limit]

        current = self.stats.get(key) or UsageStats(
            user_code=user_code, period=period, created_at=NOW, updated_at=NOW
        )
        data = current.model_dump()
        for field, value in increments.items():
            if field.startswith("operations."):
                name = field.split(".", 1)[1]
                data["operations"][name] = data["operations"].get(name, 0) + value
            else:
                data[field] += value
        self.stats[key] = UsageStats.model_validate(data)
        return True

    def get(self, user_code: str, period: str) -> UsageStats | None:
        return self.stats.get((user_code, period))


def build_text_pdf(text: str) -> bytes:
    """Helvetica 텍스트 한 줄짜리 1 페이지 PDF. text 에 괄호/비ASCII 문자는 넣지 않는다."""
    content = f"BT /F1 12 Tf 72 720 Td ({text}) Tj ET".encode("ascii")
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
        b"/Contents 4 0 R /Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length %d >>\nstream\n" % len(content) + content + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]

    out = bytearray(b"%PDF-1.4\n")
    offsets: list[int] = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"

    xref_offset = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\n" % (len(objects) + 1)
    out += b"startxref\n%d\n%%%%EOF\n" % xref_offset
    return bytes(out)
