from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from ....models.admin_log import AdminAction, TargetType
from ....models.consultant_chat import Consultant
from ....services.admin_log_service import AdminLogService, get_admin_log_service
from ....services.consultant_chat_service import (
    ConsultantChatService,
    get_consultant_chat_service,
)
from ...dependencies import AdminDep, AuditDep


router = APIRouter()

AuditServiceDep = Annotated[AdminLogService, Depends(get_admin_log_service)]
ChatServiceDep = Annotated[ConsultantChatService, Depends(get_consultant_chat_service)]


class CreateConsultantRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=200)
    title: str = Field(default="", max_length=200)
    bio: str = Field(default="", max_length=4000)
    user_code: str | None = Field(default=None, description="연결할 MODERATOR 계정")


class SetActiveRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    is_active: bool


class ConsultantMutationResponse(BaseModel):
    consultant: Consultant
    audit_logged: bool


@router.get("")
def list_all_consultants(admin: AdminDep, service: ChatServiceDep) -> list[Consultant]:
    return service.list_consultants(active_only=False)


@router.post("")
def create_consultant(
    req: CreateConsultantRequest,
    ctx: AuditDep,
    service: ChatServiceDep,
    audit: AuditServiceDep,
) -> ConsultantMutationResponse:
    consultant = service.create_consultant(req.name, req.title, req.bio, req.user_code)
    audit_logged = audit.record(
        ctx,
        AdminAction.CREATE,
        TargetType.CONSULTANT,
        consultant.id,
        req.model_dump(exclude={"bio"}),
    )
    return ConsultantMutationResponse(consultant=consultant, audit_logged=audit_logged)


@router.patch("/{consultant_id}")
def set_consultant_active(
    consultant_id: str,
    req: SetActiveRequest,
    ctx: AuditDep,
    service: ChatServiceDep,
    audit: AuditServiceDep,
) -> ConsultantMutationResponse:
    consultant = service.set_consultant_active(consultant_id, req.is_active)
    audit_logged = audit.record(
        ctx,
        AdminAction.UPDATE,
        TargetType.CONSULTANT,
        consultant_id,
        {"is_active": req.is_active},
    )
    return ConsultantMutationResponse(consultant=consultant, audit_logged=audit_logged)
