from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from common.schemas.pagination import PaginatedResponse, normalize_paging

from ...models.cv import JobListing
from ...services.job_listing_service import JobListingService, get_job_listing_service


router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.get("")
def list_jobs(
    service: Annotated[JobListingService, Depends(get_job_listing_service)],
    page: int = 1,
    page_size: int = 20,
    search: str | None = None,
) -> PaginatedResponse[JobListing]:
    """활성 채용 공고 목록."""
    page, page_size = normalize_paging(page, page_size)
    items, total = service.list(page, page_size, active_only=True, search=search)
    return PaginatedResponse(items=items, total=total, page=page, page_size=page_size)


@router.get("/{job_id}")
def get_job(
    job_id: str,
    service: Annotated[JobListingService, Depends(get_job_listing_service)],
) -> JobListing:
    return service.get(job_id)
