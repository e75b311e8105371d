from __future__ import annotations

from datetime import datetime, timedelta

from fastapi import Depends
from pymongo.database import Database

from common.mongo.client import get_database
from common.types.datetime import utcnow

from ..config import get_app_config
from ..constants import COOKIE_CONSENT_DEFAULT_DAYS
from ..exceptions import ValidationError
from ..models.cookie_consent import CookieConsent
from ..repositories.cookie_consent_repository import CookieConsentRepository
from ..repositories.interfaces import CookieConsentRepositoryInterface


_CONSENT_TYPES = frozenset({"all", "necessary", "analytics"})


class CookieConsentService:
    """클라이언트 IP 단위 쿠키 동의 기록/조회."""

    def __init__(
        self,
        consent_repo: CookieConsentRepositoryInterface,
        validity_days: int = COOKIE_CONSENT_DEFAULT_DAYS,
    ) -> None:
        self._consent_repo = consent_repo
        self._validity_days = validity_days

    def get_active(self, ip_address: str, now: datetime | None = None) -> CookieConsent | None:
        return self._consent_repo.find_latest_valid(ip_address, now or utcnow())

    def accept(
        self,
        ip_address: str,
        consent_type: str = "all",
        user_agent: str | None = None,
        now: datetime | None = None,
    ) -> CookieConsent:
        if consent_type not in _CONSENT_TYPES:
            raise ValidationError("Geçersiz çerez onay türü")

        accepted_at = now or utcnow()
        return self._consent_repo.insert(
            CookieConsent(
                ip_address=ip_address,
                consent_type=consent_type,
                user_agent=user_agent,
                accepted_at=accepted_at,
                expires_at=accepted_at + timedelta(days=self._validity_days),
                created_at=accepted_at,
                updated_at=accepted_at,
            )
        )


def _cookie_consent_days() -> int:
    try:
        return get_app_config().cookie_consent_days
    except RuntimeError:
        return COOKIE_CONSENT_DEFAULT_DAYS


def get_cookie_consent_service(
    db: Database = Depends(get_database),
) -> CookieConsentService:
    """FastAPI DI용 CookieConsentService 팩토리."""

    return CookieConsentService(
        CookieConsentRepository(db), validity_days=_cookie_consent_days()
    )
