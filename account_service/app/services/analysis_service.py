"""AI 채용 공고 매칭 분석 (크레딧 과금 작업)."""

from __future__ import annotations

import logging

from fastapi import Depends
from pymongo.database import Database

from common.llm.utils import normalize_model_name
from common.mongo.client import get_database
from common.types.datetime import utcnow

from ..ai import JobMatcher, get_job_matcher
from ..constants import BULK_MATCH_POOL_SIZE, JOB_SUGGEST_LIMIT, JOB_SUGGEST_POOL_SIZE
from ..exceptions import NotFoundError
from ..models.account import ConsumptionResult, ResourceKind
from ..models.cv import JobAnalysis, JobListing, MatchedJob, SuggestedJob
from ..repositories.cv_repository import JobAnalysisRepository
from ..repositories.interfaces import JobAnalysisRepositoryInterface
from .cv_service import CvService, get_cv_service
from .job_listing_service import JobListingService, get_job_listing_service
from .metering_service import MeteredOperationRunner, get_metered_runner
from .settings_service import SettingsService, get_settings_service


logger = logging.getLogger(__name__)

OPERATION_JOB_ANALYZE = "job_analyze"
OPERATION_JOB_SUGGEST = "job_suggest"
OPERATION_BULK_MATCH = "bulk_match"


def _job_text(title: str, company: str, description: str, requirements: list[str]) -> str:
    lines = [f"{title} - {company}", "", description]
    if requirements:
        lines.append("")
        lines.extend(f"- {item}" for item in requirements)
    return "\n".join(lines)


def _jobs_text(jobs: list[JobListing]) -> str:
    blocks = []
    for job in jobs:
        header = f"[{job.id}] {job.title} - {job.company}"
        if job.location:
            header += f" ({job.location})"
        lines = [header, job.description[:300]]
        if job.requirements:
            lines.append("Gereksinimler: " + ", ".join(job.requirements))
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


class AnalysisService:
    def __init__(
        self,
        cvs: CvService,
        jobs: JobListingService,
        analysis_repo: JobAnalysisRepositoryInterface,
        runner: MeteredOperationRunner,
        settings: SettingsService,
        matcher: JobMatcher,
    ) -> None:
        self._cvs = cvs
        self._jobs = jobs
        self._analysis_repo = analysis_repo
        self._runner = runner
        self._settings = settings
        self._matcher = matcher

    def analyze(
        self,
        user_code: str,
        cv_id: str,
        job_id: str,
        idempotency_key: str | None = None,
    ) -> tuple[JobAnalysis, ConsumptionResult]:
        """CV 와 공고를 AI 로 비교한다. 성공한 경우에만 크레딧을 차감한다."""
        cv = self._cvs.get(user_code, cv_id)
        job = self._jobs.get(job_id)
        cost = self._settings.get_token_costs().job_analyze

        match, consumption = self._runner.run(
            user_code,
            ResourceKind.CREDITS,
            cost,
            OPERATION_JOB_ANALYZE,
            lambda: self._matcher.match(
                cv.content,
                _job_text(job.title, job.company, job.description, job.requirements),
            ),
            idempotency_key=idempotency_key,
        )

        now = utcnow()
        analysis = self._analysis_repo.insert(
            JobAnalysis(
                user_code=user_code,
                cv_id=cv_id,
                job_id=job_id,
                score=match.score,
                feedback=match.feedback,
                strengths=match.strengths,
                improvements=match.improvements,
                model=normalize_model_name(self._matcher.model_name),
                credits_used=consumption.amount,
                created_at=now,
                updated_at=now,
            )
        )
        logger.info(
            "job analysis stored user_code=%s analysis_id=%s score=%d",
            user_code,
            analysis.id,
            analysis.score,
        )
        return analysis, consumption

    def _active_jobs(self, pool_size: int) -> list[JobListing]:
        jobs, _ = self._jobs.list(1, pool_size)
        if not jobs:
            raise NotFoundError("Aktif iş ilanı bulunamadı")
        return jobs

    def suggest_jobs(
        self,
        user_code: str,
        cv_id: str,
        idempotency_key: str | None = None,
    ) -> tuple[list[SuggestedJob], ConsumptionResult]:
        """CV 에 맞는 공고를 최대 JOB_SUGGEST_LIMIT 건 추천한다 (job_suggest 단가)."""
        cv = self._cvs.get(user_code, cv_id)
        jobs = self._active_jobs(JOB_SUGGEST_POOL_SIZE)
        cost = self._settings.get_token_costs().job_suggest

        suggestions, consumption = self._runner.run(
            user_code,
            ResourceKind.CREDITS,
            cost,
            OPERATION_JOB_SUGGEST,
            lambda: self._matcher.suggest(cv.content, _jobs_text(jobs), JOB_SUGGEST_LIMIT),
            idempotency_key=idempotency_key,
        )

        by_id = {job.id: job for job in jobs}
        picked: list[SuggestedJob] = []
        for suggestion in suggestions:
            job = by_id.pop(suggestion.job_id, None)
            if job is None:
                continue
            picked.append(
                SuggestedJob(
                    job=job,
                    reason=suggestion.reason,
                    is_alternative=suggestion.is_alternative,
                )
            )
        return picked[:JOB_SUGGEST_LIMIT], consumption

    def match_jobs(
        self,
        user_code: str,
        cv_id: str,
        idempotency_key: str | None = None,
    ) -> tuple[list[MatchedJob], ConsumptionResult]:
        """활성 공고 전체를 한 번에 채점해 점수 내림차순으로 돌려준다 (bulk_match 단가)."""
        cv = self._cvs.get(user_code, cv_id)
        jobs = self._active_jobs(BULK_MATCH_POOL_SIZE)
        cost = self._settings.get_token_costs().bulk_match

        scores, consumption = self._runner.run(
            user_code,
            ResourceKind.CREDITS,
            cost,
            OPERATION_BULK_MATCH,
            lambda: self._matcher.match_many(cv.content, _jobs_text(jobs)),
            idempotency_key=idempotency_key,
        )

        by_id = {job.id: job for job in jobs}
        matches = [
            MatchedJob(
                job=by_id[score.job_id],
                score=score.score,
                match_reasons=score.match_reasons[:3],
                feedback=score.feedback,
            )
            for score in scores
            if score.job_id in by_id
        ]
        matches.sort(key=lambda item: item.score, reverse=True)
        return matches, consumption

    def list_for_user(
        self, user_code: str, page: int, page_size: int
    ) -> tuple[list[JobAnalysis], int]:
        return self._analysis_repo.list_by_user(user_code, page, page_size)


def get_job_analysis_repository(
    db: Database = Depends(get_database),
) -> JobAnalysisRepositoryInterface:
    """FastAPI DI용 JobAnalysisRepository 팩토리."""

    return JobAnalysisRepository(db)


def get_analysis_service(
    cvs: CvService = Depends(get_cv_service),
    jobs: JobListingService = Depends(get_job_listing_service),
    analysis_repo: JobAnalysisRepositoryInterface = Depends(get_job_analysis_repository),
    runner: MeteredOperationRunner = Depends(get_metered_runner),
    settings: SettingsService = Depends(get_settings_service),
    matcher: JobMatcher = Depends(get_job_matcher),
) -> AnalysisService:
    """FastAPI DI용 AnalysisService 팩토리."""

    return AnalysisService(
        cvs=cvs,
        jobs=jobs,
        analysis_repo=analysis_repo,
        runner=runner,
        settings=settings,
        matcher=matcher,
    )
