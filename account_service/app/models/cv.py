"""CV / 채용 공고 / AI 매칭 분석 도메인 모델."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class CvSource(StrEnum):
    BUILDER = "BUILDER"
    PDF_UPLOAD = "PDF_UPLOAD"


class Cv(BaseModel):
    id: str | None = None
    user_code: str
    title: str
    content: str  # 평문 (PDF 추출 결과 또는 빌더 결과)
    source: CvSource = CvSource.BUILDER
    file_name: str | None = None
    created_at: datetime
    updated_at: datetime


class JobListing(BaseModel):
    id: str | None = None
    title: str
    company: str
    location: str = ""
    description: str
    requirements: list[str] = Field(default_factory=list)
    url: str | None = None
    is_active: bool = True
    created_at: datetime
    updated_at: datetime


class SuggestedJob(BaseModel):
    """CV 기준 추천 공고. is_alternative 는 직접 일치가 아닌 인접 분야 추천."""

    job: JobListing
    reason: str
    is_alternative: bool = False


class MatchedJob(BaseModel):
    job: JobListing
    score: int = Field(ge=0, le=100)
    match_reasons: list[str] = Field(default_factory=list)
    feedback: str = ""


class JobAnalysis(BaseModel):
    """CV 와 채용 공고의 AI 매칭 분석 결과."""

    id: str | None = None
    user_code: str
    cv_id: str
    job_id: str
    score: int = Field(ge=0, le=100)
    feedback: str
    strengths: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)
    model: str = "unknown"
    credits_used: int = 0
    created_at: datetime
    updated_at: datetime
