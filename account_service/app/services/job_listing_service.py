from __future__ import annotations

from typing import Any

from fastapi import Depends
from pymongo.database import Database

from common.mongo.client import get_database
from common.types.datetime import utcnow

from ..exceptions import NotFoundError, ValidationError
from ..models.cv import JobListing
from ..repositories.cv_repository import JobListingRepository
from ..repositories.interfaces import JobListingRepositoryInterface


_UPDATABLE_FIELDS = frozenset(
    {"title", "company", "location", "description", "requirements", "url", "is_active"}
)


class JobListingService:
    def __init__(self, job_repo: JobListingRepositoryInterface) -> None:
        self._job_repo = job_repo

    def list(
        self,
        page: int,
        page_size: int,
        *,
        active_only: bool = True,
        search: str | None = None,
    ) -> tuple[list[JobListing], int]:
        return self._job_repo.list(page, page_size, active_only, search)

    def get(self, job_id: str, *, include_inactive: bool = False) -> JobListing:
        job = self._job_repo.find_by_id(job_id)
        if job is None or (not job.is_active and not include_inactive):
            raise NotFoundError("İş ilanı bulunamadı")
        return job

    def create(self, fields: dict[str, Any]) -> JobListing:
        now = utcnow()
        try:
            job = JobListing.model_validate({**fields, "created_at": now, "updated_at": now})
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        return self._job_repo.insert(job)

    def update(self, job_id: str, fields: dict[str, Any]) -> JobListing:
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Güncellenemeyen alanlar: {', '.join(sorted(unknown))}")

        updated = self._job_repo.update(job_id, fields)
        if updated is None:
            raise NotFoundError("İş ilanı bulunamadı")
        return updated

    def delete(self, job_id: str) -> None:
        if not self._job_repo.delete(job_id):
            raise NotFoundError("İş ilanı bulunamadı")


def get_job_listing_repository(
    db: Database = Depends(get_database),
) -> JobListingRepositoryInterface:
    """FastAPI DI용 JobListingRepository 팩토리."""

    return JobListingRepository(db)


def get_job_listing_service(
    job_repo: JobListingRepositoryInterface = Depends(get_job_listing_repository),
) -> JobListingService:
    """FastAPI DI용 JobListingService 팩토리."""

    return JobListingService(job_repo)
