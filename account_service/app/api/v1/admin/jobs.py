from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from common.schemas.pagination import PaginatedResponse, normalize_paging

from ....models.admin_log import AdminAction, TargetType
from ....models.cv import JobListing
from ....services.admin_log_service import AdminLogService, get_admin_log_service
from ....services.job_listing_service import JobListingService, get_job_listing_service
from ...dependencies import AdminDep, AuditDep


router = APIRouter()

AuditServiceDep = Annotated[AdminLogService, Depends(get_admin_log_service)]
JobServiceDep = Annotated[JobListingService, Depends(get_job_listing_service)]


class CreateJobRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(..., min_length=1, max_length=200)
    company: str = Field(..., min_length=1, max_length=200)
    location: str = Field(default="", max_length=200)
    description: str = Field(..., min_length=1)
    requirements: list[str] = Field(default_factory=list)
    url: str | None = None
    is_active: bool = True


class UpdateJobRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, min_length=1, max_length=200)
    company: str | None = Field(default=None, min_length=1, max_length=200)
    location: str | None = Field(default=None, max_length=200)
    description: str | None = Field(default=None, min_length=1)
    requirements: list[str] | None = None
    url: str | None = None
    is_active: bool | None = None


class JobMutationResponse(BaseModel):
    job: JobListing
    audit_logged: bool


class DeleteJobResponse(BaseModel):
    success: bool = True
    audit_logged: bool


@router.get("")
def list_all_jobs(
    admin: AdminDep,
    jobs: JobServiceDep,
    page: int = 1,
    page_size: int = 20,
    search: str | None = None,
) -> PaginatedResponse[JobListing]:
    page, page_size = normalize_paging(page, page_size)
    items, total = jobs.list(page, page_size, active_only=False, search=search)
    return PaginatedResponse(items=items, total=total, page=page, page_size=page_size)


@router.post("")
def create_job(
    req: CreateJobRequest, ctx: AuditDep, jobs: JobServiceDep, audit: AuditServiceDep
) -> JobMutationResponse:
    job = jobs.create(req.model_dump())
    audit_logged = audit.record(
        ctx,
        AdminAction.CREATE,
        TargetType.JOB,
        job.id,
        {"title": job.title, "company": job.company},
    )
    return JobMutationResponse(job=job, audit_logged=audit_logged)


@router.patch("/{job_id}")
def update_job(
    job_id: str,
    req: UpdateJobRequest,
    ctx: AuditDep,
    jobs: JobServiceDep,
    audit: AuditServiceDep,
) -> JobMutationResponse:
    fields = req.model_dump(exclude_unset=True)
    job = jobs.update(job_id, fields)
    audit_logged = audit.record(ctx, AdminAction.UPDATE, TargetType.JOB, job_id, fields)
    return JobMutationResponse(job=job, audit_logged=audit_logged)


@router.delete("/{job_id}")
def delete_job(
    job_id: str, ctx: AuditDep, jobs: JobServiceDep, audit: AuditServiceDep
) -> DeleteJobResponse:
    jobs.delete(job_id)
    audit_logged = audit.record(ctx, AdminAction.DELETE, TargetType.JOB, job_id)
    return DeleteJobResponse(audit_logged=audit_logged)
