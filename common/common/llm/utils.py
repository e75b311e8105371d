from __future__ import annotations

from typing import Any


def normalize_model_name(model_name: str) -> str:
    """모델 이름을 정규화해 저장용 식별자로 쓴다.

    OpenRouter 등을 경유하면 "google/gemini-2.0-flash" 처럼 provider prefix 가 붙으므로
    '/' 뒤 마지막 부분만 남긴다.
    """
    if not model_name:
        return "unknown"

    value = model_name.strip()
    if "/" in value:
        value = value.split("/")[-1].strip()
    return value or "unknown"


def message_text(content: Any) -> str:
    """LangChain 메시지 content(str 또는 파트 목록)를 평문으로 합친다."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: list[str] = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type") == "text":
                parts.append(str(part.get("text", "")))
        return "".join(parts)
    return str(content or "")
