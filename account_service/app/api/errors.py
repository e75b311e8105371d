"""도메인 예외 -> HTTP 응답 매핑."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from ..exceptions import (
    AccountServiceError,
    ConflictError,
    CouponInvalidError,
    InsufficientBalanceError,
    NotFoundError,
    PermissionDeniedError,
    QuotaExceededError,
    UpstreamServiceError,
    ValidationError,
)


logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Sunucu hatası oluştu, lütfen daha sonra tekrar deneyin"

_STATUS_BY_ERROR: list[tuple[type[AccountServiceError], int]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
    (ConflictError, status.HTTP_409_CONFLICT),
    (UpstreamServiceError, status.HTTP_502_BAD_GATEWAY),
]


async def _insufficient_balance(request: Request, exc: InsufficientBalanceError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_403_FORBIDDEN,
        content={
            "error": exc.message,
            "code": "insufficient_balance",
            "kind": exc.kind,
            "required": exc.required,
            "available": exc.available,
            "credits": exc.available,
        },
    )


async def _coupon_invalid(request: Request, exc: CouponInvalidError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"valid": False, "error": exc.message, "reason": exc.reason.value},
    )


async def _quota_exceeded(request: Request, exc: QuotaExceededError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={"error": exc.message, "limit": exc.limit, "current": exc.current},
    )


async def _account_service_error(request: Request, exc: AccountServiceError) -> JSONResponse:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return JSONResponse(status_code=status_code, content={"error": exc.message})

    logger.error("unmapped service error path=%s error=%r", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": INTERNAL_ERROR_MESSAGE},
    )


async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled error path=%s", request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": INTERNAL_ERROR_MESSAGE},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(InsufficientBalanceError, _insufficient_balance)  # type: ignore[arg-type]
    app.add_exception_handler(CouponInvalidError, _coupon_invalid)  # type: ignore[arg-type]
    app.add_exception_handler(QuotaExceededError, _quota_exceeded)  # type: ignore[arg-type]
    app.add_exception_handler(AccountServiceError, _account_service_error)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled)
