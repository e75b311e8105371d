from __future__ import annotations

from datetime import datetime

from pymongo import DESCENDING
from pymongo.database import Database

from .documents.misc_document import CookieConsentDocument
from .interfaces import CookieConsentRepositoryInterface
from ..models.cookie_consent import CookieConsent


class CookieConsentRepository(CookieConsentRepositoryInterface):
    """cookie_consents 컬렉션에 대한 MongoDB 접근 레이어."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["cookie_consents"]

    def insert(self, consent: CookieConsent) -> CookieConsent:
        payload = CookieConsentDocument.from_domain(consent).to_mongo_record()
        result = self._col.insert_one(payload)
        payload["_id"] = result.inserted_id
        return CookieConsentDocument.model_validate(payload).to_domain()

    def find_latest_valid(self, ip_address: str, now: datetime) -> CookieConsent | None:
        doc = self._col.find_one(
            {"ip_address": ip_address, "expires_at": {"$gt": now}},
            sort=[("accepted_at", DESCENDING)],
        )
        if not doc:
            return None
        return CookieConsentDocument.model_validate(doc).to_domain()
