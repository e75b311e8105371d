"""쿠키 동의 API. 로그인 없이 클라이언트 IP 기준으로 동작한다."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from common.middleware.request_trace import resolve_client_ip

from ...exceptions import ValidationError
from ...services.cookie_consent_service import (
    CookieConsentService,
    get_cookie_consent_service,
)


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cookie-consent", tags=["cookie_consent"])

_camel = ConfigDict(populate_by_name=True)


class ConsentStatusResponse(BaseModel):
    model_config = _camel

    has_consent: bool = Field(alias="hasConsent")
    consent_type: str | None = Field(default=None, alias="consentType")
    accepted_at: datetime | None = Field(default=None, alias="acceptedAt")
    expires_at: datetime | None = Field(default=None, alias="expiresAt")


class AcceptConsentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    consent_type: str = Field(default="all", alias="consentType", max_length=32)


class AcceptConsentResponse(BaseModel):
    model_config = _camel

    success: bool = True
    consent_id: str | None = Field(alias="consentId")
    expires_at: datetime = Field(alias="expiresAt")


@router.get("", response_model_by_alias=True)
def get_consent(
    request: Request,
    service: Annotated[CookieConsentService, Depends(get_cookie_consent_service)],
) -> ConsentStatusResponse:
    """조회 실패는 동의 없음으로 응답한다 (배너를 다시 띄운다)."""
    try:
        consent = service.get_active(resolve_client_ip(request))
    except Exception:  # noqa: BLE001
        logger.exception("failed to look up cookie consent")
        return ConsentStatusResponse(has_consent=False)

    if consent is None:
        return ConsentStatusResponse(has_consent=False)
    return ConsentStatusResponse(
        has_consent=True,
        consent_type=consent.consent_type,
        accepted_at=consent.accepted_at,
        expires_at=consent.expires_at,
    )


@router.post("", response_model_by_alias=True, response_model=AcceptConsentResponse)
def accept_consent(
    request: Request,
    service: Annotated[CookieConsentService, Depends(get_cookie_consent_service)],
    req: AcceptConsentRequest | None = None,
):
    try:
        consent = service.accept(
            resolve_client_ip(request),
            consent_type=req.consent_type if req else "all",
            user_agent=request.headers.get("user-agent"),
        )
    except ValidationError:
        raise
    except Exception:  # noqa: BLE001
        logger.exception("failed to save cookie consent")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": "Çerez onayı kaydedilemedi"},
        )

    return AcceptConsentResponse(consent_id=consent.id, expires_at=consent.expires_at)
