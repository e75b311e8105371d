"""CV / 채용 공고 / 분석 / CV 빌더 채팅 세션 MongoDB 도큐먼트."""

from __future__ import annotations

from pydantic import BaseModel, Field

from common.mongo.types import (
    BaseDocument,
    MongoDateTime,
    build_document_data_from_domain,
    from_object_id,
)

from ...models.cv import Cv, CvSource, JobAnalysis, JobListing
from ...models.cv_chat import CvChatMessage, CvChatRole, CvChatSession


class CvDocument(BaseDocument):
    user_code: str
    title: str
    content: str
    source: str
    file_name: str | None = None

    @classmethod
    def from_domain(cls, cv: Cv) -> "CvDocument":
        return cls.model_validate(build_document_data_from_domain(cv))

    def to_domain(self) -> Cv:
        return Cv(
            id=from_object_id(self.id),
            user_code=self.user_code,
            title=self.title,
            content=self.content,
            source=CvSource(self.source),
            file_name=self.file_name,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class JobListingDocument(BaseDocument):
    title: str
    company: str
    location: str = ""
    description: str
    requirements: list[str] = Field(default_factory=list)
    url: str | None = None
    is_active: bool = True

    @classmethod
    def from_domain(cls, job: JobListing) -> "JobListingDocument":
        return cls.model_validate(build_document_data_from_domain(job))

    def to_domain(self) -> JobListing:
        return JobListing(
            id=from_object_id(self.id),
            title=self.title,
            company=self.company,
            location=self.location,
            description=self.description,
            requirements=list(self.requirements),
            url=self.url,
            is_active=self.is_active,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class JobAnalysisDocument(BaseDocument):
    user_code: str
    cv_id: str
    job_id: str
    score: int
    feedback: str
    strengths: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)
    model: str = "unknown"
    credits_used: int = 0

    @classmethod
    def from_domain(cls, analysis: JobAnalysis) -> "JobAnalysisDocument":
        return cls.model_validate(build_document_data_from_domain(analysis))

    def to_domain(self) -> JobAnalysis:
        return JobAnalysis(
            id=from_object_id(self.id),
            user_code=self.user_code,
            cv_id=self.cv_id,
            job_id=self.job_id,
            score=self.score,
            feedback=self.feedback,
            strengths=list(self.strengths),
            improvements=list(self.improvements),
            model=self.model,
            credits_used=self.credits_used,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class CvChatMessageDocument(BaseModel):
    role: str
    content: str
    created_at: MongoDateTime


class CvChatSessionDocument(BaseDocument):
    """MongoDB cv_chat_sessions 컬렉션 도큐먼트 모델."""

    user_code: str
    title: str
    messages: list[CvChatMessageDocument] = Field(default_factory=list)
    is_finished: bool = False

    @classmethod
    def from_domain(cls, session: CvChatSession) -> "CvChatSessionDocument":
        return cls.model_validate(build_document_data_from_domain(session))

    def to_domain(self) -> CvChatSession:
        return CvChatSession(
            id=from_object_id(self.id),
            user_code=self.user_code,
            title=self.title,
            messages=[
                CvChatMessage(
                    role=CvChatRole(m.role),
                    content=m.content,
                    created_at=m.created_at,
                )
                for m in self.messages
            ],
            is_finished=self.is_finished,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
