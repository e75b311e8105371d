"""운영 설정 서비스.

요금제 카탈로그, 과금 단가, 결제 안내를 site_settings 에서 읽고 쓴다.
저장된 값이 없거나 형식이 깨져 있으면 기본값으로 동작한다.
"""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import Depends
from pydantic import ValidationError as PydanticValidationError
from pymongo.database import Database

from common.mongo.client import get_database

from ..constants import (
    DEFAULT_PLANS,
    DEFAULT_TOKEN_COSTS,
    SETTING_PAYMENT,
    SETTING_SUBSCRIPTION_PLANS,
    SETTING_TOKEN_COSTS,
)
from ..exceptions import NotFoundError, ValidationError
from ..models.account import Account
from ..models.plan import PaymentSettings, PlanDefinition, PlanId, TokenCosts
from ..repositories.interfaces import SettingsRepositoryInterface
from ..repositories.settings_repository import SettingsRepository


logger = logging.getLogger(__name__)


class SettingsService:
    def __init__(self, settings_repo: SettingsRepositoryInterface) -> None:
        self._settings_repo = settings_repo

    # 요금제 -------------------------------------------------------------
    def get_plans(self) -> list[PlanDefinition]:
        raw = self._settings_repo.get(SETTING_SUBSCRIPTION_PLANS)
        defaults = [PlanDefinition.model_validate(p) for p in DEFAULT_PLANS]
        if not raw:
            return defaults

        try:
            stored = {
                plan.id: plan for plan in (PlanDefinition.model_validate(p) for p in raw)
            }
        except (PydanticValidationError, TypeError):
            logger.exception("invalid subscription_plans setting, using defaults")
            return defaults

        # 저장된 목록에 빠진 요금제는 기본값으로 채운다.
        return [stored.get(plan.id, plan) for plan in defaults]

    def get_plan(self, plan_id: PlanId) -> PlanDefinition:
        for plan in self.get_plans():
            if plan.id == plan_id:
                return plan
        raise NotFoundError("Plan bulunamadı")

    def plan_for(self, account: Account, now: datetime) -> PlanDefinition:
        """계정의 effective plan 정의."""
        return self.get_plan(account.effective_plan(now))

    def update_plans(self, plans: list[PlanDefinition]) -> list[PlanDefinition]:
        ids = [plan.id for plan in plans]
        if len(set(ids)) != len(ids):
            raise ValidationError("Aynı plan birden fazla kez tanımlanamaz")
        self._settings_repo.set(
            SETTING_SUBSCRIPTION_PLANS, [plan.model_dump(mode="json") for plan in plans]
        )
        return self.get_plans()

    # 과금 단가 ----------------------------------------------------------
    def get_token_costs(self) -> TokenCosts:
        raw = self._settings_repo.get(SETTING_TOKEN_COSTS)
        if not raw:
            return TokenCosts(**DEFAULT_TOKEN_COSTS)
        try:
            return TokenCosts.model_validate({**DEFAULT_TOKEN_COSTS, **raw})
        except (PydanticValidationError, TypeError):
            logger.exception("invalid token_costs setting, using defaults")
            return TokenCosts(**DEFAULT_TOKEN_COSTS)

    def update_token_costs(self, costs: TokenCosts) -> TokenCosts:
        self._settings_repo.set(SETTING_TOKEN_COSTS, costs.model_dump())
        return costs

    # 결제 안내 ----------------------------------------------------------
    def get_payment(self) -> PaymentSettings:
        raw = self._settings_repo.get(SETTING_PAYMENT)
        if not raw:
            return PaymentSettings()
        try:
            return PaymentSettings.model_validate(raw)
        except (PydanticValidationError, TypeError):
            logger.exception("invalid payment setting, using defaults")
            return PaymentSettings()

    def update_payment(self, payment: PaymentSettings) -> PaymentSettings:
        self._settings_repo.set(SETTING_PAYMENT, payment.model_dump())
        return payment


def get_settings_repository(
    db: Database = Depends(get_database),
) -> SettingsRepositoryInterface:
    """FastAPI DI용 SettingsRepository 팩토리."""

    return SettingsRepository(db)


def get_settings_service(
    settings_repo: SettingsRepositoryInterface = Depends(get_settings_repository),
) -> SettingsService:
    """FastAPI DI용 SettingsService 팩토리."""

    return SettingsService(settings_repo)
