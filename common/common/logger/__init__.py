import json
import logging
import os
import sys
from datetime import datetime, timezone


DEFAULT_LOGGER_NAME = "kariyer-koc"

# extra 로 넘어오면 JSON 레코드 최상위에 싣는 필드
EXTRA_KEYS: tuple[str, ...] = (
    "request_id",
    "span_id",
    "method",
    "path",
    "query_params",
    "status",
    "body",
    "duration",
    "client_ip",
    "user_code",
)

# 외부 라이브러리 중 INFO 로그가 지나치게 많은 것들
NOISY_LOGGERS: tuple[str, ...] = ("pymongo", "httpx", "httpcore", "urllib3")


def _resolve_level(level: str | None) -> int:
    name = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    return logging.getLevelNamesMapping().get(name, logging.INFO)


def setup_logger(name: str = DEFAULT_LOGGER_NAME, level: str | None = None) -> logging.Logger:
    """프로세스 로깅을 JSON 한 줄 포맷(stdout)으로 설정하고 서비스 로거를 반환한다.

    SERVICE_NAME 환경변수가 있으면 name 대신 그 값을 로거 이름으로 쓴다.
    여러 번 호출해도 핸들러가 중복으로 붙지 않는다.
    """
    log_level = _resolve_level(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(JsonFormatter())

    logger = logging.getLogger(os.getenv("SERVICE_NAME", name))
    logger.setLevel(log_level)
    logger.handlers[:] = [handler]
    logger.propagate = False

    # 모듈 로거(logging.getLogger(__name__))는 루트 로거를 통해 같은 포맷으로 나간다.
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(log_level)

    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(max(log_level, logging.WARNING))

    return logger


def get_logger(name: str) -> logging.Logger:
    """모듈별 로거를 가져온다."""
    return logging.getLogger(name)


class JsonFormatter(logging.Formatter):
    """datetime(UTC, ms), level, logger, message 와 EXTRA_KEYS 를 담는 JSON 포맷터."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        log_record: dict[str, object] = {
            "datetime": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(
                timespec="milliseconds"
            ),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_record.update(
            {key: getattr(record, key) for key in EXTRA_KEYS if hasattr(record, key)}
        )

        service_name = getattr(record, "service_name", None) or os.getenv("SERVICE_NAME")
        if service_name:
            log_record["service_name"] = service_name

        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(log_record, ensure_ascii=False, default=str)
