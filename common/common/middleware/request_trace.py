import json
import logging
import time
import uuid
from urllib.parse import parse_qs

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response


REQUEST_ID_HEADER = "X-Request-Id"
SPAN_ID_HEADER = "X-Span-Id"
FORWARDED_FOR_HEADER = "X-Forwarded-For"
REAL_IP_HEADER = "X-Real-IP"
USER_CODE_HEADER = "X-User-Code"

UNKNOWN_CLIENT_IP = "unknown"

# 헬스체크는 로그에서 제외한다.
IGNORED_LOG_PATHS: set[str] = {"/health", "/health/ready"}

# PDF 업로드 같은 바이너리 바디는 로그에 싣지 않는다.
BODYLESS_CONTENT_TYPES: tuple[str, ...] = ("multipart/", "application/pdf")

# 결제 안내(IBAN 등)처럼 로그에 남기면 안 되는 JSON 키
MASKED_BODY_KEYS: frozenset[str] = frozenset({"iban", "account_holder", "whatsapp_number"})

MAX_LOGGED_BODY_CHARS = 1024


def resolve_client_ip(request: Request) -> str:
    """게이트웨이가 넘겨준 헤더로 클라이언트 IP 를 결정한다.

    X-Forwarded-For 의 첫 번째 hop -> X-Real-IP -> "unknown" 순서로 사용한다.
    """

    cached = getattr(request.state, "client_ip", None)
    if cached:
        return cached

    forwarded = request.headers.get(FORWARDED_FOR_HEADER, "").split(",")[0].strip()
    if forwarded:
        return forwarded

    real_ip = request.headers.get(REAL_IP_HEADER, "").strip()
    return real_ip or UNKNOWN_CLIENT_IP


def _mask(value: object) -> object:
    if isinstance(value, dict):
        return {
            key: "***" if key in MASKED_BODY_KEYS else _mask(item)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [_mask(item) for item in value]
    return value


def summarize_body(raw: bytes) -> str | None:
    """로그용 바디 요약. JSON 이면 민감 키를 가리고, 길면 자른다."""
    if not raw:
        return None
    text = raw.decode("utf-8", errors="replace")
    try:
        text = json.dumps(_mask(json.loads(text)), ensure_ascii=False)
    except ValueError:
        pass
    return text[:MAX_LOGGED_BODY_CHARS]


class RequestTraceMiddleware(BaseHTTPMiddleware):
    """Request/Span ID 전파와 요청 단위 access 로그.

    request.state 에 request_id, span_id, client_ip 를 싣고, 응답 헤더에도 같은 ID 를 돌려준다.
    """

    def __init__(self, app, logger: logging.Logger | None = None) -> None:  # type: ignore[override]
        super().__init__(app)
        self._logger = logger or logging.getLogger("request_trace")

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        span_id = request.headers.get(SPAN_ID_HEADER) or "0"

        request.state.request_id = request_id
        request.state.span_id = span_id
        request.state.client_ip = resolve_client_ip(request)
        request.state.request_body = await self._read_body(request)

        traced = request.url.path not in IGNORED_LOG_PATHS
        started = time.monotonic()
        try:
            response = await call_next(request)
        except Exception:
            if traced:
                self._logger.exception(
                    "request failed", extra=self._log_extra(request, started)
                )
            raise

        response.headers.setdefault(REQUEST_ID_HEADER, request_id)
        response.headers.setdefault(SPAN_ID_HEADER, span_id)
        if traced:
            self._logger.info(
                "completed request",
                extra=self._log_extra(request, started, status=response.status_code),
            )
        return response

    @staticmethod
    async def _read_body(request: Request) -> str | None:
        if request.method not in {"POST", "PUT", "PATCH", "DELETE"}:
            return None
        if request.headers.get("content-type", "").startswith(BODYLESS_CONTENT_TYPES):
            return None
        try:
            return summarize_body(await request.body())
        except Exception:  # noqa: BLE001
            return None

    @staticmethod
    def _log_extra(
        request: Request, started: float, status: int | None = None
    ) -> dict[str, object]:
        state = request.state
        extra: dict[str, object] = {
            "request_id": state.request_id,
            "span_id": state.span_id,
            "method": request.method,
            "path": request.url.path,
            "client_ip": state.client_ip,
            "duration": f"{(time.monotonic() - started) * 1000:.3f}ms",
        }
        if status is not None:
            extra["status"] = status

        user_code = request.headers.get(USER_CODE_HEADER)
        if user_code:
            extra["user_code"] = user_code

        if request.url.query:
            extra["query_params"] = {
                key: values[0] if len(values) == 1 else values
                for key, values in parse_qs(request.url.query, keep_blank_values=True).items()
            }

        if state.request_body:
            extra["body"] = state.request_body
        return extra
