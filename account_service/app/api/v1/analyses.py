"""AI 채용 공고 매칭 분석 API (크레딧 과금)."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from common.schemas.pagination import PaginatedResponse, normalize_paging

from ...models.cv import JobAnalysis, MatchedJob, SuggestedJob
from ...services.analysis_service import (
    OPERATION_BULK_MATCH,
    OPERATION_JOB_ANALYZE,
    OPERATION_JOB_SUGGEST,
    AnalysisService,
    get_analysis_service,
)
from ..dependencies import IdempotencyKeyDep, IdentityDep
from ..schemas.accounts import ChargeResponse
from .publishers import publish_balance_consumed


router = APIRouter(prefix="/analyses", tags=["analyses"])


class AnalyzeRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    cv_id: str = Field(..., min_length=1)
    job_id: str = Field(..., min_length=1)


class AnalysisResponse(BaseModel):
    id: str | None
    cv_id: str
    job_id: str
    score: int
    feedback: str
    strengths: list[str]
    improvements: list[str]
    model: str
    credits_used: int
    created_at: datetime

    @classmethod
    def from_domain(cls, analysis: JobAnalysis) -> "AnalysisResponse":
        return cls(
            id=analysis.id,
            cv_id=analysis.cv_id,
            job_id=analysis.job_id,
            score=analysis.score,
            feedback=analysis.feedback,
            strengths=analysis.strengths,
            improvements=analysis.improvements,
            model=analysis.model,
            credits_used=analysis.credits_used,
            created_at=analysis.created_at,
        )


class AnalyzeResponse(BaseModel):
    analysis: AnalysisResponse
    credits_used: int
    remaining_credits: int
    charge: ChargeResponse


@router.post("")
def analyze(
    req: AnalyzeRequest,
    identity: IdentityDep,
    idempotency_key: IdempotencyKeyDep,
    service: Annotated[AnalysisService, Depends(get_analysis_service)],
) -> AnalyzeResponse:
    analysis, consumption = service.analyze(
        identity.user_code, req.cv_id, req.job_id, idempotency_key=idempotency_key
    )
    publish_balance_consumed(identity.user_code, consumption, OPERATION_JOB_ANALYZE)

    charge = ChargeResponse.from_result(consumption)
    return AnalyzeResponse(
        analysis=AnalysisResponse.from_domain(analysis),
        credits_used=consumption.amount,
        remaining_credits=charge.remaining,
        charge=charge,
    )


class CvRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    cv_id: str = Field(..., min_length=1)


class SuggestResponse(BaseModel):
    suggestions: list[SuggestedJob]
    credits_used: int
    remaining_credits: int
    charge: ChargeResponse


class BulkMatchResponse(BaseModel):
    matches: list[MatchedJob]
    total_jobs: int
    credits_used: int
    remaining_credits: int
    charge: ChargeResponse


@router.post("/suggest")
def suggest_jobs(
    req: CvRequest,
    identity: IdentityDep,
    idempotency_key: IdempotencyKeyDep,
    service: Annotated[AnalysisService, Depends(get_analysis_service)],
) -> SuggestResponse:
    """CV 에 맞는 공고 추천 (job_suggest 단가)."""
    suggestions, consumption = service.suggest_jobs(
        identity.user_code, req.cv_id, idempotency_key=idempotency_key
    )
    publish_balance_consumed(identity.user_code, consumption, OPERATION_JOB_SUGGEST)

    charge = ChargeResponse.from_result(consumption)
    return SuggestResponse(
        suggestions=suggestions,
        credits_used=consumption.amount,
        remaining_credits=charge.remaining,
        charge=charge,
    )


@router.post("/match")
def match_jobs(
    req: CvRequest,
    identity: IdentityDep,
    idempotency_key: IdempotencyKeyDep,
    service: Annotated[AnalysisService, Depends(get_analysis_service)],
) -> BulkMatchResponse:
    """활성 공고 일괄 채점 (bulk_match 단가)."""
    matches, consumption = service.match_jobs(
        identity.user_code, req.cv_id, idempotency_key=idempotency_key
    )
    publish_balance_consumed(identity.user_code, consumption, OPERATION_BULK_MATCH)

    charge = ChargeResponse.from_result(consumption)
    return BulkMatchResponse(
        matches=matches,
        total_jobs=len(matches),
        credits_used=consumption.amount,
        remaining_credits=charge.remaining,
        charge=charge,
    )


@router.get("")
def list_analyses(
    identity: IdentityDep,
    service: Annotated[AnalysisService, Depends(get_analysis_service)],
    page: int = 1,
    page_size: int = 20,
) -> PaginatedResponse[AnalysisResponse]:
    page, page_size = normalize_paging(page, page_size)
    items, total = service.list_for_user(identity.user_code, page, page_size)
    return PaginatedResponse(
        items=[AnalysisResponse.from_domain(item) for item in items],
        total=total,
        page=page,
        page_size=page_size,
    )
