from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from common.eventbus.kafka import close_kafka_event_bus
from common.llm.factory import create_chat_model
from common.logger import setup_logger
from common.middleware.request_trace import RequestTraceMiddleware

from .ai import CvChatResponder, JobMatcher, set_ai_clients
from .api.errors import register_exception_handlers
from .api.health import router as health_router
from .api.v1 import api_router
from .config import get_app_config


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:  # pragma: no cover - framework hook
    """앱 생명주기 관리.

    - 시작 시: 설정 로드, LLM 협력자(채점기/CV 빌더 응답기) 초기화
    - 종료 시: 발행용 Kafka producer flush
    """
    logger.info("account-service starting up")

    config = get_app_config()
    chat_model = create_chat_model(config.llm)
    set_ai_clients(
        JobMatcher(chat_model, model_name=config.llm.model),
        CvChatResponder(chat_model),
    )
    logger.info("ai clients initialized provider=%s model=%s", config.llm.provider, config.llm.model)

    yield

    logger.info("account-service shutting down")
    close_kafka_event_bus()


def create_app() -> FastAPI:
    """FastAPI 앱 팩토리."""
    setup_logger(name=os.getenv("SERVICE_NAME", "account-service"))
    app = FastAPI(
        title="Kariyer Koçu Account Service",
        description="Kredi / jeton bakiyesi, abonelik, kupon ve danışman sohbeti servisi",
        version="0.1.0",
        lifespan=lifespan,
    )

    # 공통 Request/Span ID 로그 미들웨어
    app.add_middleware(RequestTraceMiddleware)
    register_exception_handlers(app)

    app.include_router(health_router, tags=["health"])
    app.include_router(api_router, prefix="/api/v1")

    return app


app = create_app()


def main() -> None:
    import uvicorn

    port = int(os.getenv("ACCOUNT_SERVICE_PORT", "8004"))
    uvicorn.run(
        "account_service.app.main:app",
        host="0.0.0.0",
        port=port,
        reload=False,
        access_log=False,
    )


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    main()
