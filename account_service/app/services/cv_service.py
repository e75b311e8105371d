from __future__ import annotations

import logging

from fastapi import Depends
from pymongo.database import Database

from common.mongo.client import get_database
from common.types.datetime import utcnow

from ..config import get_app_config
from ..constants import PDF_DEFAULT_MAX_BYTES
from ..exceptions import NotFoundError, QuotaExceededError
from ..models.cv import Cv, CvSource
from ..pdf import extract_pdf_text
from ..repositories.cv_repository import CvRepository
from ..repositories.interfaces import CvRepositoryInterface
from .entitlement_service import EntitlementService, get_entitlement_service


logger = logging.getLogger(__name__)


class CvService:
    def __init__(
        self,
        cv_repo: CvRepositoryInterface,
        entitlements: EntitlementService,
        pdf_max_bytes: int = PDF_DEFAULT_MAX_BYTES,
    ) -> None:
        self._cv_repo = cv_repo
        self._entitlements = entitlements
        self._pdf_max_bytes = pdf_max_bytes

    def ensure_quota(self, user_code: str) -> None:
        """effective plan 의 CV 개수 한도를 확인한다. cv_limit 0 은 무제한."""
        plan = self._entitlements.plan_of(self._entitlements.get_account(user_code))
        if plan.cv_limit == 0:
            return

        current = self._cv_repo.count_by_user(user_code)
        if current >= plan.cv_limit:
            raise QuotaExceededError(
                "CV oluşturma limitinize ulaştınız. Daha fazlası için planınızı yükseltin",
                limit=plan.cv_limit,
                current=current,
            )

    def upload_pdf(
        self, user_code: str, file_name: str, data: bytes, title: str | None = None
    ) -> Cv:
        self.ensure_quota(user_code)
        text = extract_pdf_text(file_name, data, max_bytes=self._pdf_max_bytes)

        now = utcnow()
        cv = self._cv_repo.insert(
            Cv(
                user_code=user_code,
                title=(title or "").strip() or file_name.rsplit(".", 1)[0],
                content=text,
                source=CvSource.PDF_UPLOAD,
                file_name=file_name,
                created_at=now,
                updated_at=now,
            )
        )
        logger.info(
            "cv uploaded user_code=%s cv_id=%s text_len=%d", user_code, cv.id, len(text)
        )
        return cv

    def list_for_user(self, user_code: str) -> list[Cv]:
        return self._cv_repo.list_by_user(user_code)

    def get(self, user_code: str, cv_id: str) -> Cv:
        cv = self._cv_repo.find(cv_id, user_code)
        if cv is None:
            raise NotFoundError("CV bulunamadı")
        return cv


def get_cv_repository(db: Database = Depends(get_database)) -> CvRepositoryInterface:
    """FastAPI DI용 CvRepository 팩토리."""

    return CvRepository(db)


def _pdf_max_bytes() -> int:
    try:
        return get_app_config().pdf_max_bytes
    except RuntimeError:
        return PDF_DEFAULT_MAX_BYTES


def get_cv_service(
    cv_repo: CvRepositoryInterface = Depends(get_cv_repository),
    entitlements: EntitlementService = Depends(get_entitlement_service),
) -> CvService:
    """FastAPI DI용 CvService 팩토리."""

    return CvService(cv_repo=cv_repo, entitlements=entitlements, pdf_max_bytes=_pdf_max_bytes())
