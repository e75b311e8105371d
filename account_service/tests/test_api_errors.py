from __future__ import annotations

import asyncio
import json

from fastapi import FastAPI, Request

from account_service.app.api import errors
from account_service.app.exceptions import (
    AccountServiceError,
    CouponInvalidError,
    CouponInvalidReason,
    InsufficientBalanceError,
    NotFoundError,
    QuotaExceededError,
    RoomClosedError,
)


def _request() -> Request:
    return Request(
        {
            "type": "http",
            "method": "POST",
            "scheme": "http",
            "server": ("testserver", 80),
            "path": "/api/v1/analyses",
            "query_string": b"",
            "headers": [],
        }
    )


def _handle(app: FastAPI, exc: Exception) -> tuple[int, dict]:
    handler = next(
        app.exception_handlers[error_type]
        for error_type in type(exc).__mro__
        if error_type in app.exception_handlers
    )
    response = asyncio.run(handler(_request(), exc))
    return response.status_code, json.loads(response.body)


def _app() -> FastAPI:
    app = FastAPI()
    errors.register_exception_handlers(app)
    return app


def test_insufficient_balance_reports_kind_and_amounts() -> None:
    status_code, body = _handle(_app(), InsufficientBalanceError("credits", required=5, available=2))

    assert status_code == 403
    assert body["code"] == "insufficient_balance"
    assert body["kind"] == "credits"
    assert body["required"] == 5
    assert body["available"] == 2
    assert body["credits"] == 2


def test_coupon_invalid_reports_reason() -> None:
    status_code, body = _handle(_app(), CouponInvalidError(CouponInvalidReason.USAGE_EXCEEDED))

    assert status_code == 400
    assert body == {
        "valid": False,
        "error": "Bu kuponun kullanım limiti dolmuş",
        "reason": "USAGE_EXCEEDED",
    }


def test_quota_exceeded_reports_limit_and_current() -> None:
    status_code, body = _handle(_app(), QuotaExceededError("CV limiti doldu", limit=3, current=3))

    assert status_code == 429
    assert body == {"error": "CV limiti doldu", "limit": 3, "current": 3}


def test_service_errors_map_through_subclass_status() -> None:
    app = _app()

    assert _handle(app, NotFoundError())[0] == 404
    assert _handle(app, RoomClosedError()) == (409, {"error": "Bu sohbet kapatılmış"})
    assert _handle(app, AccountServiceError())[0] == 500


def test_unexpected_error_hides_details() -> None:
    status_code, body = _handle(_app(), RuntimeError("db password leaked"))

    assert status_code == 500
    assert body == {"error": errors.INTERNAL_ERROR_MESSAGE}
