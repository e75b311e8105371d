"""계정 잔액(Entitlement) 서비스.

계정 생성, 구독 활성화, 관리자 잔액 조정, 채팅 한도 조회를 처리한다.
차감은 metering_service 의 ConsumptionLedger 만 수행한다.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any

from fastapi import Depends
from pymongo.database import Database

from common.models.user import Identity, Role
from common.mongo.client import get_database
from common.types.datetime import utcnow

from ..exceptions import NotFoundError, ValidationError
from ..models.account import Account, Subscription, SubscriptionStatus
from ..models.plan import ChatLimits, PlanDefinition, PlanId
from ..repositories.account_repository import AccountRepository
from ..repositories.interfaces import AccountRepositoryInterface
from .settings_service import SettingsService, get_settings_service


logger = logging.getLogger(__name__)

# 한 달은 30일로 계산한다.
_DAYS_PER_MONTH = 30


class EntitlementService:
    """계정/구독 관련 비즈니스 로직."""

    def __init__(
        self,
        account_repo: AccountRepositoryInterface,
        settings: SettingsService,
    ) -> None:
        self._account_repo = account_repo
        self._settings = settings

    def get_account(self, user_code: str) -> Account:
        account = self._account_repo.find_by_user_code(user_code)
        if account is None:
            raise NotFoundError("Kullanıcı bulunamadı")
        return account

    def ensure_account(self, identity: Identity, email: str, name: str) -> Account:
        """첫 로그인이면 FREE 요금제 기본 잔액으로 계정을 만들고, 아니면 프로필만 갱신한다."""
        existing = self._account_repo.find_by_user_code(identity.user_code)
        if existing is not None:
            updated = self._account_repo.update_profile(identity.user_code, email, name)
            return updated or existing

        free_plan = self._settings.get_plan(PlanId.FREE)
        now = utcnow()
        account = Account(
            user_code=identity.user_code,
            email=email,
            name=name,
            role=identity.role,
            credits=free_plan.credits,
            cv_chat_tokens=free_plan.cv_chat_tokens,
            created_at=now,
            updated_at=now,
        )
        created = self._account_repo.insert(account)
        logger.info("account created user_code=%s", identity.user_code)
        return created

    def plan_of(self, account: Account, now: datetime | None = None) -> PlanDefinition:
        return self._settings.plan_for(account, now or utcnow())

    def activate_subscription(
        self,
        user_code: str,
        plan_id: PlanId,
        months: int,
        order_code: str | None,
    ) -> Account:
        """구독을 ACTIVE 로 만들고 요금제 지급량(크레딧/CV 채팅 토큰)을 더한다."""
        if months <= 0:
            raise ValidationError("Abonelik süresi en az 1 ay olmalı")

        plan = self._settings.get_plan(plan_id)
        now = utcnow()
        subscription = Subscription(
            plan=plan_id,
            status=SubscriptionStatus.ACTIVE,
            order_code=order_code,
            started_at=now,
            expires_at=now + timedelta(days=_DAYS_PER_MONTH * months),
        )
        account = self._account_repo.activate_subscription(
            user_code,
            subscription,
            credits=plan.credits,
            cv_chat_tokens=plan.cv_chat_tokens,
        )
        if account is None:
            raise NotFoundError("Kullanıcı bulunamadı")

        logger.info(
            "subscription activated user_code=%s plan=%s order_code=%s",
            user_code,
            plan_id,
            order_code,
        )
        return account

    def get_chat_limits(self, user_code: str) -> ChatLimits:
        account = self.get_account(user_code)
        plan = self.plan_of(account)
        costs = self._settings.get_token_costs()

        limit = plan.cv_application_limit
        used = account.cv_applications_used
        return ChatLimits(
            session_limit=plan.chat_session_limit,
            token_cost=costs.cv_chat_message,
            cv_application_limit=limit,
            cv_applications_used=used,
            cv_applications_remaining=-1 if limit == 0 else max(0, limit - used),
        )

    # 관리자 -------------------------------------------------------------
    def update_account(
        self,
        user_code: str,
        *,
        credits: int | None = None,
        cv_chat_tokens: int | None = None,
        role: Role | None = None,
        plan: PlanId | None = None,
        months: int = 1,
    ) -> Account:
        """관리자 계정 수정. 잔액은 절대값으로 설정한다."""
        fields: dict[str, Any] = {}
        if credits is not None:
            if credits < 0:
                raise ValidationError("Kredi negatif olamaz")
            fields["credits"] = credits
        if cv_chat_tokens is not None:
            if cv_chat_tokens < 0:
                raise ValidationError("Jeton negatif olamaz")
            fields["cv_chat_tokens"] = cv_chat_tokens
        if role is not None:
            fields["role"] = role.value

        account: Account | None = None
        if plan is not None:
            if plan is PlanId.FREE:
                fields["subscription"] = None
            else:
                account = self.activate_subscription(user_code, plan, months, None)

        if fields:
            account = self._account_repo.update_fields(user_code, fields)

        if account is None:
            account = self.get_account(user_code)
        return account

    def reset_chat_tokens(self) -> tuple[int, int, dict[str, int]]:
        """모든 계정의 CV 채팅 토큰을 effective plan 지급량 이하로 낮춘다.

        반환: (변경된 계정 수, 변경되지 않은 계정 수, 요금제별 상한)
        """
        now = utcnow()
        plan_limits: dict[str, int] = {}
        reset_count = 0
        for plan in self._settings.get_plans():
            plan_limits[plan.id.value] = plan.cv_chat_tokens
            reset_count += self._account_repo.cap_chat_tokens(plan.id, plan.cv_chat_tokens, now)

        total = self._account_repo.count()
        skipped = max(0, total - reset_count)
        logger.info("chat tokens reset reset=%d skipped=%d", reset_count, skipped)
        return reset_count, skipped, plan_limits

    def list_accounts(
        self, page: int, page_size: int, search: str | None = None
    ) -> tuple[list[Account], int]:
        return self._account_repo.list(page, page_size, search)


def get_account_repository(
    db: Database = Depends(get_database),
) -> AccountRepositoryInterface:
    """FastAPI DI용 AccountRepository 팩토리."""

    return AccountRepository(db)


def get_entitlement_service(
    account_repo: AccountRepositoryInterface = Depends(get_account_repository),
    settings: SettingsService = Depends(get_settings_service),
) -> EntitlementService:
    """FastAPI DI용 EntitlementService 팩토리."""

    return EntitlementService(account_repo=account_repo, settings=settings)
