from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from ...models.usage import UsageReport
from ...services.usage_service import UsageService, get_usage_service
from ..dependencies import IdentityDep


router = APIRouter(prefix="/usage", tags=["usage"])


@router.get("/me")
def get_my_usage(
    identity: IdentityDep,
    service: Annotated[UsageService, Depends(get_usage_service)],
) -> UsageReport:
    """이번 달 사용량과 요금제 한도."""
    return service.report(identity.user_code)
