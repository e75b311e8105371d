from __future__ import annotations

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from common.mongo.client import get_client


logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", summary="Liveness")
def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/health/ready", summary="Readiness (MongoDB ping)")
def ready() -> JSONResponse:
    """잔액/쿠폰 처리는 MongoDB 없이는 불가능하므로 ping 실패 시 503."""
    try:
        get_client().admin.command("ping")
    except Exception:  # noqa: BLE001
        logger.exception("readiness check failed: mongodb unreachable")
        return JSONResponse(status_code=503, content={"status": "unavailable", "mongo": "down"})
    return JSONResponse(content={"status": "ok", "mongo": "up"})
