from __future__ import annotations

import io
import logging

from PyPDF2 import PdfReader

from ..constants import PDF_DEFAULT_MAX_BYTES, PDF_MIN_TEXT_LENGTH
from ..exceptions import ValidationError


logger = logging.getLogger(__name__)


def extract_pdf_text(
    file_name: str,
    data: bytes,
    *,
    max_bytes: int = PDF_DEFAULT_MAX_BYTES,
) -> str:
    """업로드된 PDF 에서 평문을 추출한다.

    - 확장자는 .pdf 만 허용
    - max_bytes 초과 시 거부
    - 추출된 텍스트가 PDF_MIN_TEXT_LENGTH 자 미만이면 스캔본 등으로 보고 거부
    """
    if not file_name.lower().endswith(".pdf"):
        raise ValidationError("Sadece PDF dosyaları yüklenebilir")
    if not data:
        raise ValidationError("Dosya boş")
    if len(data) > max_bytes:
        raise ValidationError(
            f"Dosya boyutu en fazla {max_bytes // (1024 * 1024)} MB olabilir"
        )

    try:
        reader = PdfReader(io.BytesIO(data))
        pages = [page.extract_text() or "" for page in reader.pages]
    except Exception as exc:  # noqa: BLE001
        # PyPDF2 는 손상된 파일에서 PdfReadError 외에도 AttributeError 등을 던진다.
        logger.warning("failed to read pdf file_name=%s error=%s", file_name, exc)
        raise ValidationError("PDF dosyası okunamadı") from exc

    text = "\n".join(page.strip() for page in pages if page.strip())
    if len(text) < PDF_MIN_TEXT_LENGTH:
        raise ValidationError(
            "PDF'den yeterli metin çıkarılamadı. Taranmış bir belge olabilir"
        )
    return text
