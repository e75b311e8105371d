"""LLM 기반 협력자 (채점기/CV 빌더 응답기).

앱 기동 시 lifespan 에서 한 번 만들어 등록하고, 라우터는 get_* 의존성으로 꺼내 쓴다.
"""

from __future__ import annotations

from .cv_chat import CvChatResponder
from .job_matcher import JobMatcher, MatchResult


_job_matcher: JobMatcher | None = None
_cv_chat_responder: CvChatResponder | None = None


def set_ai_clients(job_matcher: JobMatcher, cv_chat_responder: CvChatResponder) -> None:
    global _job_matcher, _cv_chat_responder

    _job_matcher = job_matcher
    _cv_chat_responder = cv_chat_responder


def get_job_matcher() -> JobMatcher:
    if _job_matcher is None:
        raise RuntimeError("job matcher is not initialized")
    return _job_matcher


def get_cv_chat_responder() -> CvChatResponder:
    if _cv_chat_responder is None:
        raise RuntimeError("cv chat responder is not initialized")
    return _cv_chat_responder


__all__ = [
    "CvChatResponder",
    "JobMatcher",
    "MatchResult",
    "get_cv_chat_responder",
    "get_job_matcher",
    "set_ai_clients",
]
