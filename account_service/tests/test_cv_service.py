from __future__ import annotations

import io
from dataclasses import dataclass

import pytest
from PyPDF2 import PdfWriter

from account_service.app.exceptions import NotFoundError, QuotaExceededError, ValidationError
from account_service.app.models.cv import CvSource
from account_service.app.models.plan import PlanId
from account_service.app.pdf import extract_pdf_text
from account_service.app.pdf import extractor
from account_service.app.services.cv_service import CvService
from account_service.app.services.entitlement_service import EntitlementService
from account_service.app.services.settings_service import SettingsService
from account_service.tests.fakes import (
    FakeAccountRepository,
    FakeCvRepository,
    FakeSettingsRepository,
    build_account,
    build_text_pdf,
)


RESUME_TEXT = "Ahmet Yilmaz - Backend Developer - 5 years of Python FastAPI and MongoDB"


def _blank_pdf() -> bytes:
    writer = PdfWriter()
    writer.add_blank_page(width=612, height=792)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


@dataclass
class CvServiceFixture:
    service: CvService
    cv_repo: FakeCvRepository


def _build_fixture(plan: PlanId | None = None) -> CvServiceFixture:
    account_repo = FakeAccountRepository(build_account(plan=plan))
    cv_repo = FakeCvRepository()
    service = CvService(
        cv_repo=cv_repo,
        entitlements=EntitlementService(
            account_repo=account_repo,
            settings=SettingsService(FakeSettingsRepository()),
        ),
        pdf_max_bytes=1024 * 1024,
    )
    return CvServiceFixture(service=service, cv_repo=cv_repo)


def test_extract_pdf_text_reads_text_layer() -> None:
    text = extract_pdf_text("cv.pdf", build_text_pdf(RESUME_TEXT))

    assert "Backend Developer" in text


def test_extract_pdf_text_rejects_wrong_extension_and_empty_file() -> None:
    with pytest.raises(ValidationError):
        extract_pdf_text("cv.docx", build_text_pdf(RESUME_TEXT))
    with pytest.raises(ValidationError):
        extract_pdf_text("cv.pdf", b"")


def test_extract_pdf_text_rejects_oversized_file() -> None:
    with pytest.raises(ValidationError):
        extract_pdf_text("cv.pdf", b"%PDF-1.4" + b"0" * 2048, max_bytes=1024)


def test_extract_pdf_text_rejects_unreadable_bytes() -> None:
    with pytest.raises(ValidationError) as exc_info:
        extract_pdf_text("cv.pdf", b"this is definitely not a pdf")

    assert exc_info.value.message == "PDF dosyası okunamadı"


def test_extract_pdf_text_rejects_pdf_with_dangling_root() -> None:
    broken = build_text_pdf(RESUME_TEXT).replace(b"/Root 1 0 R", b"/Root 9 0 R")

    with pytest.raises(ValidationError) as exc_info:
        extract_pdf_text("cv.pdf", broken)

    assert exc_info.value.message == "PDF dosyası okunamadı"


def test_extract_pdf_text_turns_any_reader_failure_into_validation_error(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    def broken_reader(stream):
        raise AttributeError("'NoneType' object has no attribute 'get_object'")

    monkeypatch.setattr(extractor, "PdfReader", broken_reader)

    with pytest.raises(ValidationError):
        extract_pdf_text("cv.pdf", build_text_pdf(RESUME_TEXT))


def test_extract_pdf_text_rejects_pdf_without_text_layer() -> None:
    with pytest.raises(ValidationError):
        extract_pdf_text("scan.pdf", _blank_pdf())


def test_upload_pdf_stores_extracted_text() -> None:
    fixture = _build_fixture()

    cv = fixture.service.upload_pdf("user-001", "Ahmet_CV.PDF", build_text_pdf(RESUME_TEXT))

    assert cv.source is CvSource.PDF_UPLOAD
    assert cv.title == "Ahmet_CV"
    assert "FastAPI" in cv.content
    assert fixture.service.get("user-001", cv.id or "").id == cv.id


def test_free_plan_cv_quota_is_enforced_before_parsing() -> None:
    fixture = _build_fixture()
    fixture.service.upload_pdf("user-001", "cv.pdf", build_text_pdf(RESUME_TEXT), title="İlk CV")

    with pytest.raises(QuotaExceededError) as exc_info:
        fixture.service.upload_pdf("user-001", "cv2.pdf", b"not parsed")

    assert exc_info.value.limit == 1
    assert exc_info.value.current == 1
    assert len(fixture.cv_repo.cvs) == 1


def test_premium_plan_has_no_cv_limit() -> None:
    fixture = _build_fixture(plan=PlanId.PREMIUM)

    for index in range(3):
        fixture.service.upload_pdf("user-001", f"cv{index}.pdf", build_text_pdf(RESUME_TEXT))

    assert len(fixture.service.list_for_user("user-001")) == 3


def test_get_cv_of_another_user_raises_not_found() -> None:
    fixture = _build_fixture()
    cv = fixture.service.upload_pdf("user-001", "cv.pdf", build_text_pdf(RESUME_TEXT))

    with pytest.raises(NotFoundError):
        fixture.service.get("user-002", cv.id or "")
