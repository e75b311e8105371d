"""요청 단위 공통 의존성.

게이트웨이가 인증을 마친 뒤 X-User-Code / X-User-Role 헤더로 호출자를 전달한다.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status
from pydantic import ValidationError as PydanticValidationError

from common.middleware.request_trace import UNKNOWN_CLIENT_IP, resolve_client_ip
from common.models.user import Identity, Role

from ..models.admin_log import AuditContext


def get_identity(
    x_user_code: Annotated[str | None, Header()] = None,
    x_user_role: Annotated[str | None, Header()] = None,
) -> Identity:
    if not x_user_code:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "Oturum açmanız gerekiyor"},
        )

    try:
        role = Role((x_user_role or Role.USER.value).upper())
        return Identity(user_code=x_user_code, role=role)
    except (ValueError, PydanticValidationError) as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "Geçersiz oturum bilgisi"},
        ) from exc


def require_admin(identity: Annotated[Identity, Depends(get_identity)]) -> Identity:
    if not identity.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"error": "Bu işlem için yönetici yetkisi gerekli"},
        )
    return identity


def get_audit_context(
    request: Request,
    admin: Annotated[Identity, Depends(require_admin)],
) -> AuditContext:
    return AuditContext(
        admin_code=admin.user_code,
        ip_address=resolve_client_ip(request),
        user_agent=request.headers.get("user-agent") or UNKNOWN_CLIENT_IP,
    )


def get_idempotency_key(
    idempotency_key: Annotated[str | None, Header()] = None,
) -> str | None:
    if idempotency_key is None:
        return None
    return idempotency_key.strip()[:128] or None


IdentityDep = Annotated[Identity, Depends(get_identity)]
AdminDep = Annotated[Identity, Depends(require_admin)]
AuditDep = Annotated[AuditContext, Depends(get_audit_context)]
IdempotencyKeyDep = Annotated[str | None, Depends(get_idempotency_key)]
