from __future__ import annotations

import os
from dataclasses import dataclass

from common.llm.factory import ChatModelConfig, LlmProvider

from .constants import COOKIE_CONSENT_DEFAULT_DAYS, PDF_DEFAULT_MAX_BYTES


ACCOUNT_LLM_PROVIDER = "ACCOUNT_LLM_PROVIDER"
ACCOUNT_LLM_MODEL_NAME = "ACCOUNT_LLM_MODEL_NAME"
ACCOUNT_LLM_API_KEY = "ACCOUNT_LLM_API_KEY"
ACCOUNT_LLM_BASE_URL = "ACCOUNT_LLM_BASE_URL"
ACCOUNT_LLM_TEMPERATURE = "ACCOUNT_LLM_TEMPERATURE"
ACCOUNT_LLM_MAX_RETRIES = "ACCOUNT_LLM_MAX_RETRIES"
ACCOUNT_PDF_MAX_BYTES = "ACCOUNT_PDF_MAX_BYTES"
ACCOUNT_COOKIE_CONSENT_DAYS = "ACCOUNT_COOKIE_CONSENT_DAYS"


@dataclass(slots=True)
class AppConfig:
    """account-service 전체 설정 루트.

    - 요금제/단가/결제 안내처럼 운영 중 바뀌는 값은 site_settings 컬렉션에 있고,
      여기에는 프로세스 기동 시 고정되는 값만 둔다.
    """

    llm: ChatModelConfig
    pdf_max_bytes: int = PDF_DEFAULT_MAX_BYTES
    cookie_consent_days: int = COOKIE_CONSENT_DEFAULT_DAYS


def _read_positive_int(name: str, default: int) -> int:
    raw_value = os.getenv(name, "").strip()
    if not raw_value:
        return default

    try:
        value = int(raw_value)
    except ValueError as exc:  # noqa: TRY003
        raise RuntimeError(f"{name} must be an integer value, got: {raw_value!r}") from exc

    if value <= 0:
        raise RuntimeError(f"{name} must be positive, got: {value}")
    return value


def load_chat_model_config() -> ChatModelConfig:
    provider_raw = os.getenv(ACCOUNT_LLM_PROVIDER, "google")
    provider = LlmProvider.from_str(provider_raw)

    model = os.getenv(ACCOUNT_LLM_MODEL_NAME)
    if not model:
        raise RuntimeError(
            f"{ACCOUNT_LLM_MODEL_NAME} environment variable is required for account-service",
        )

    api_key = os.getenv(ACCOUNT_LLM_API_KEY) or None
    base_url = os.getenv(ACCOUNT_LLM_BASE_URL) or None

    temperature_raw = os.getenv(ACCOUNT_LLM_TEMPERATURE)
    temperature = float(temperature_raw) if temperature_raw is not None else 0.3

    max_retries_raw = os.getenv(ACCOUNT_LLM_MAX_RETRIES)
    max_retries = int(max_retries_raw) if max_retries_raw is not None else 2

    return ChatModelConfig(
        provider=provider,
        model=model,
        temperature=temperature,
        api_key=api_key,
        base_url=base_url,
        max_retries=max_retries,
    )


def load_config() -> AppConfig:
    """account-service 설정을 로드하여 AppConfig 로 반환한다."""

    return AppConfig(
        llm=load_chat_model_config(),
        pdf_max_bytes=_read_positive_int(ACCOUNT_PDF_MAX_BYTES, PDF_DEFAULT_MAX_BYTES),
        cookie_consent_days=_read_positive_int(
            ACCOUNT_COOKIE_CONSENT_DAYS, COOKIE_CONSENT_DEFAULT_DAYS
        ),
    )


_config: AppConfig | None = None


def get_app_config() -> AppConfig:
    """프로세스 전역에서 공유하는 AppConfig (최초 호출 시 로드)."""

    global _config

    if _config is None:
        _config = load_config()
    return _config
