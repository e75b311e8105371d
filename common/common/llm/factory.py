from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Self

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_openai import ChatOpenAI
from langchain_ollama import ChatOllama


class LlmProvider(str, Enum):
    GOOGLE = "google"
    OPENAI = "openai"
    OLLAMA = "ollama"
    OPENROUTER = "openrouter"

    @classmethod
    def from_str(cls, value: str) -> Self:
        normalized = value.lower()
        try:
            return cls(normalized)
        except ValueError as exc:
            raise ValueError(f"unsupported LLM provider: {value}") from exc


@dataclass(slots=True)
class ChatModelConfig:
    provider: LlmProvider
    model: str
    temperature: float = 1.0
    api_key: str | None = None
    base_url: str | None = None
    max_retries: int = 0


def _apply_api_key_env(provider: LlmProvider, api_key: str | None) -> None:
    if not api_key:
        return
    if provider is LlmProvider.GOOGLE:
        os.environ.setdefault("GOOGLE_API_KEY", api_key)
    elif provider is LlmProvider.OPENAI:
        os.environ.setdefault("OPENAI_API_KEY", api_key)
    elif provider is LlmProvider.OPENROUTER:
        os.environ.setdefault("OPENAI_API_KEY", api_key)
        os.environ.setdefault("OPENROUTER_API_KEY", api_key)


_CHAT_FACTORIES: dict[LlmProvider, Callable[[ChatModelConfig], BaseChatModel]] = {
    LlmProvider.GOOGLE: lambda cfg: ChatGoogleGenerativeAI(
        model=cfg.model,
        temperature=cfg.temperature,
        max_retries=cfg.max_retries,
    ),
    LlmProvider.OPENAI: lambda cfg: ChatOpenAI(
        model=cfg.model,
        temperature=cfg.temperature,
        base_url=cfg.base_url,
        max_retries=cfg.max_retries,
    ),
    LlmProvider.OLLAMA: lambda cfg: ChatOllama(
        model=cfg.model,
        temperature=cfg.temperature,
        base_url=cfg.base_url or "http://localhost:11434",
    ),
    LlmProvider.OPENROUTER: lambda cfg: ChatOpenAI(
        model=cfg.model,
        temperature=cfg.temperature,
        base_url=cfg.base_url or "https://openrouter.ai/api/v1",
        max_retries=cfg.max_retries,
    ),
}


def create_chat_model(config: ChatModelConfig) -> BaseChatModel:
    _apply_api_key_env(config.provider, config.api_key)
    try:
        factory = _CHAT_FACTORIES[config.provider]
    except KeyError as exc:
        raise ValueError(f"unsupported chat provider: {config.provider}") from exc
    return factory(config)
