from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import BaseModel

from ...models.cv import Cv
from ...services.cv_service import CvService, get_cv_service
from ..dependencies import IdentityDep


router = APIRouter(prefix="/cvs", tags=["cvs"])


class CvResponse(BaseModel):
    id: str | None
    title: str
    content: str
    source: str
    file_name: str | None
    created_at: datetime

    @classmethod
    def from_domain(cls, cv: Cv) -> "CvResponse":
        return cls(
            id=cv.id,
            title=cv.title,
            content=cv.content,
            source=cv.source.value,
            file_name=cv.file_name,
            created_at=cv.created_at,
        )


@router.post("/upload-pdf")
def upload_pdf(
    identity: IdentityDep,
    service: Annotated[CvService, Depends(get_cv_service)],
    pdf: Annotated[UploadFile, File()],
    title: Annotated[str | None, Form()] = None,
) -> CvResponse:
    """PDF CV 업로드. 텍스트를 추출해 CV 로 저장한다."""
    data = pdf.file.read()
    cv = service.upload_pdf(identity.user_code, pdf.filename or "", data, title)
    return CvResponse.from_domain(cv)


@router.get("")
def list_cvs(
    identity: IdentityDep,
    service: Annotated[CvService, Depends(get_cv_service)],
) -> list[CvResponse]:
    return [CvResponse.from_domain(cv) for cv in service.list_for_user(identity.user_code)]


@router.get("/{cv_id}")
def get_cv(
    cv_id: str,
    identity: IdentityDep,
    service: Annotated[CvService, Depends(get_cv_service)],
) -> CvResponse:
    return CvResponse.from_domain(service.get(identity.user_code, cv_id))
