"""과금(Metering) 서비스.

- MeteringGate: 작업 실행 전 잔액 검사 (부수효과 없음)
- ConsumptionLedger: 작업 성공 후 잔액 차감 + 이력 기록
- MeteredOperationRunner: 검사 -> 외부 작업 -> 차감 순서를 묶는다

검사와 차감 사이에 다른 요청이 잔액을 먼저 쓸 수 있다. 이 경우 차감 시점의
조건부 업데이트가 실패하고, 잔액을 0 으로 맞춘 뒤 underflow=True 로 기록한다.
이미 제공된 결과는 되돌리지 않는다.
"""

from __future__ import annotations

import logging
from typing import Callable, TypeVar

from fastapi import Depends
from pymongo.database import Database

from common.mongo.client import get_database
from common.types.datetime import utcnow

from ..exceptions import InsufficientBalanceError, NotFoundError, ValidationError
from ..models.account import (
    Account,
    Consumption,
    ConsumptionResult,
    GateDecision,
    ResourceKind,
)
from ..repositories.account_repository import ConsumptionRepository
from ..repositories.interfaces import (
    AccountRepositoryInterface,
    ConsumptionRepositoryInterface,
)
from .entitlement_service import get_account_repository
from .settings_service import SettingsService, get_settings_service


logger = logging.getLogger(__name__)

T = TypeVar("T")


def _require_positive(amount: int) -> None:
    if amount < 1:
        raise ValidationError("Tutar en az 1 olmalı")


class MeteringGate:
    """잔액 검사기."""

    def __init__(
        self,
        account_repo: AccountRepositoryInterface,
        settings: SettingsService,
    ) -> None:
        self._account_repo = account_repo
        self._settings = settings

    def _load(self, user_code: str) -> Account:
        account = self._account_repo.find_by_user_code(user_code)
        if account is None:
            raise NotFoundError("Kullanıcı bulunamadı")
        return account

    def check(self, user_code: str, kind: ResourceKind, amount: int) -> GateDecision:
        _require_positive(amount)
        account = self._load(user_code)
        available = account.balance_of(kind)

        if self._settings.plan_for(account, utcnow()).is_unlimited:
            return GateDecision(
                allowed=True,
                kind=kind,
                required=amount,
                available=available,
                unlimited=True,
            )

        return GateDecision(
            allowed=available >= amount,
            kind=kind,
            required=amount,
            available=available,
        )

    def require(self, user_code: str, kind: ResourceKind, amount: int) -> GateDecision:
        decision = self.check(user_code, kind, amount)
        if not decision.allowed:
            raise InsufficientBalanceError(
                kind=kind.value,
                required=decision.required,
                available=decision.available,
            )
        return decision


class ConsumptionLedger:
    """잔액 차감기."""

    def __init__(
        self,
        account_repo: AccountRepositoryInterface,
        consumption_repo: ConsumptionRepositoryInterface,
        settings: SettingsService,
    ) -> None:
        self._account_repo = account_repo
        self._consumption_repo = consumption_repo
        self._settings = settings

    @staticmethod
    def _replay(previous: Consumption) -> ConsumptionResult:
        return ConsumptionResult(
            kind=previous.kind,
            amount=previous.amount,
            balance=previous.balance_after,
            underflow=previous.underflow,
            replayed=True,
        )

    def find_replay(self, user_code: str, idempotency_key: str) -> ConsumptionResult | None:
        """이미 처리된 idempotency_key 면 첫 차감 결과를 replayed=True 로 돌려준다."""
        previous = self._consumption_repo.find_by_idempotency_key(user_code, idempotency_key)
        if previous is None:
            return None
        return self._replay(previous)

    def record(
        self,
        user_code: str,
        kind: ResourceKind,
        amount: int,
        reason: str,
        idempotency_key: str | None = None,
    ) -> ConsumptionResult:
        """성공한 작업 1회분을 차감한다.

        - 무제한 요금제는 차감하지 않는다.
        - idempotency_key 가 이미 처리된 키면 첫 결과를 replayed=True 로 돌려준다.
        """
        _require_positive(amount)

        if idempotency_key:
            replay = self.find_replay(user_code, idempotency_key)
            if replay is not None:
                return replay

        account = self._account_repo.find_by_user_code(user_code)
        if account is None:
            raise NotFoundError("Kullanıcı bulunamadı")

        if self._settings.plan_for(account, utcnow()).is_unlimited:
            return ConsumptionResult(
                kind=kind,
                amount=0,
                balance=account.balance_of(kind),
                unlimited=True,
            )

        underflow = False
        debited = amount
        updated = self._account_repo.try_debit(user_code, kind, amount)
        if updated is not None:
            balance = updated.balance_of(kind)
        else:
            # 검사 이후 다른 요청이 먼저 잔액을 썼다.
            before = self._account_repo.debit_clamped(user_code, kind, amount)
            if before is None:
                raise NotFoundError("Kullanıcı bulunamadı")
            debited = min(amount, before.balance_of(kind))
            balance = before.balance_of(kind) - debited
            underflow = True
            logger.warning(
                "balance underflow clamped to zero user_code=%s kind=%s amount=%d debited=%d",
                user_code,
                kind,
                amount,
                debited,
            )

        now = utcnow()
        stored = self._consumption_repo.insert(
            Consumption(
                user_code=user_code,
                kind=kind,
                amount=amount,
                balance_after=balance,
                reason=reason,
                underflow=underflow,
                idempotency_key=idempotency_key or None,
                created_at=now,
                updated_at=now,
            )
        )

        if stored is None and idempotency_key:
            # 같은 키의 요청이 동시에 들어와 상대가 먼저 기록했다. 실제로 빠진 만큼만 되돌린다.
            if debited > 0:
                self._account_repo.credit(user_code, kind, debited)
            previous = self._consumption_repo.find_by_idempotency_key(
                user_code, idempotency_key
            )
            if previous is not None:
                return self._replay(previous)

        return ConsumptionResult(
            kind=kind,
            amount=amount,
            balance=balance,
            underflow=underflow,
        )

    def history(
        self, user_code: str, page: int, page_size: int
    ) -> tuple[list[Consumption], int]:
        return self._consumption_repo.list_by_user(user_code, page, page_size)


class MeteredOperationRunner:
    """검사 -> 작업 -> 차감.

    작업이 예외(UpstreamServiceError 등)로 끝나면 차감하지 않고 그대로 전파한다.
    이미 차감된 idempotency_key 로 다시 들어온 요청은 잔액 검사 없이 작업만 다시 수행하고
    첫 차감 결과를 돌려준다.
    """

    def __init__(self, gate: MeteringGate, ledger: ConsumptionLedger) -> None:
        self._gate = gate
        self._ledger = ledger

    def run(
        self,
        user_code: str,
        kind: ResourceKind,
        amount: int,
        reason: str,
        operation: Callable[[], T],
        idempotency_key: str | None = None,
    ) -> tuple[T, ConsumptionResult]:
        replay = (
            self._ledger.find_replay(user_code, idempotency_key) if idempotency_key else None
        )
        if replay is None:
            self._gate.require(user_code, kind, amount)

        result = operation()
        if replay is not None:
            return result, replay

        consumption = self._ledger.record(
            user_code, kind, amount, reason, idempotency_key=idempotency_key
        )
        return result, consumption


def get_consumption_repository(
    db: Database = Depends(get_database),
) -> ConsumptionRepositoryInterface:
    """FastAPI DI용 ConsumptionRepository 팩토리."""

    return ConsumptionRepository(db)


def get_metering_gate(
    account_repo: AccountRepositoryInterface = Depends(get_account_repository),
    settings: SettingsService = Depends(get_settings_service),
) -> MeteringGate:
    return MeteringGate(account_repo=account_repo, settings=settings)


def get_consumption_ledger(
    account_repo: AccountRepositoryInterface = Depends(get_account_repository),
    consumption_repo: ConsumptionRepositoryInterface = Depends(get_consumption_repository),
    settings: SettingsService = Depends(get_settings_service),
) -> ConsumptionLedger:
    return ConsumptionLedger(
        account_repo=account_repo,
        consumption_repo=consumption_repo,
        settings=settings,
    )


def get_metered_runner(
    gate: MeteringGate = Depends(get_metering_gate),
    ledger: ConsumptionLedger = Depends(get_consumption_ledger),
) -> MeteredOperationRunner:
    """FastAPI DI용 MeteredOperationRunner 팩토리."""

    return MeteredOperationRunner(gate=gate, ledger=ledger)
