"""AI CV 빌더 채팅 (CV 채팅 토큰 과금 작업)."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import Depends
from pymongo.database import Database

from common.mongo.client import get_database
from common.types.datetime import utcnow

from ..ai import CvChatResponder, get_cv_chat_responder
from ..constants import CV_READY_MARKER
from ..exceptions import NotFoundError, ValidationError
from ..models.account import ConsumptionResult, ResourceKind
from ..models.cv_chat import CvChatMessage, CvChatRole, CvChatSession
from ..repositories.cv_repository import CvChatSessionRepository
from ..repositories.interfaces import CvChatSessionRepositoryInterface
from .metering_service import MeteredOperationRunner, get_metered_runner
from .settings_service import SettingsService, get_settings_service


logger = logging.getLogger(__name__)

OPERATION_CV_CHAT_MESSAGE = "cv_chat_message"


@dataclass(slots=True)
class CvChatTurn:
    session: CvChatSession
    reply: str
    consumption: ConsumptionResult


class CvChatService:
    def __init__(
        self,
        session_repo: CvChatSessionRepositoryInterface,
        runner: MeteredOperationRunner,
        settings: SettingsService,
        responder: CvChatResponder,
    ) -> None:
        self._session_repo = session_repo
        self._runner = runner
        self._settings = settings
        self._responder = responder

    def create_session(self, user_code: str, title: str | None = None) -> CvChatSession:
        now = utcnow()
        session = CvChatSession(user_code=user_code, created_at=now, updated_at=now)
        if title and title.strip():
            session.title = title.strip()
        return self._session_repo.create(session)

    def get_session(self, user_code: str, session_id: str) -> CvChatSession:
        session = self._session_repo.get_by_id(session_id, user_code)
        if session is None:
            raise NotFoundError("Sohbet oturumu bulunamadı")
        return session

    def chat(
        self,
        user_code: str,
        session_id: str,
        messages: list[CvChatMessage],
        idempotency_key: str | None = None,
    ) -> CvChatTurn:
        """클라이언트가 보낸 대화 전체로 다음 응답을 만들고, 세션 메시지를 교체한다."""
        if not messages or messages[-1].role is not CvChatRole.USER:
            raise ValidationError("Son mesaj kullanıcıya ait olmalı")

        self.get_session(user_code, session_id)
        cost = self._settings.get_token_costs().cv_chat_message

        reply, consumption = self._runner.run(
            user_code,
            ResourceKind.CV_CHAT_TOKENS,
            cost,
            OPERATION_CV_CHAT_MESSAGE,
            lambda: self._responder.reply(messages),
            idempotency_key=idempotency_key,
        )

        is_finished = CV_READY_MARKER in reply
        history = [*messages, CvChatMessage(role=CvChatRole.ASSISTANT, content=reply)]
        session = self._session_repo.replace_messages(session_id, history, is_finished)
        if session is None:
            raise NotFoundError("Sohbet oturumu bulunamadı")

        if is_finished:
            logger.info("cv chat finished user_code=%s session_id=%s", user_code, session_id)
        return CvChatTurn(session=session, reply=reply, consumption=consumption)


def get_cv_chat_session_repository(
    db: Database = Depends(get_database),
) -> CvChatSessionRepositoryInterface:
    """FastAPI DI용 CvChatSessionRepository 팩토리."""

    return CvChatSessionRepository(db)


def get_cv_chat_service(
    session_repo: CvChatSessionRepositoryInterface = Depends(get_cv_chat_session_repository),
    runner: MeteredOperationRunner = Depends(get_metered_runner),
    settings: SettingsService = Depends(get_settings_service),
    responder: CvChatResponder = Depends(get_cv_chat_responder),
) -> CvChatService:
    """FastAPI DI용 CvChatService 팩토리."""

    return CvChatService(
        session_repo=session_repo,
        runner=runner,
        settings=settings,
        responder=responder,
    )
