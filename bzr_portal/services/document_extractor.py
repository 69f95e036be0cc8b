"""Plain-text extraction from uploaded documents."""
import logging
import os
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from io import BytesIO
from typing import Any, Dict, Optional

import docx
import openpyxl
from pypdf import PdfReader

from bzr_portal.core.exceptions import ExtractionError, OCRNotSupportedError

logger = logging.getLogger(__name__)

UNSUPPORTED_PREFIX = "[Unsupported format: "

GENERIC_CONTENT_TYPES = {"", "application/octet-stream", "binary/octet-stream"}

EXTENSION_CONTENT_TYPES = {
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "xls": "application/vnd.ms-excel",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "ppt": "application/vnd.ms-powerpoint",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "txt": "text/plain",
    "csv": "text/csv",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "bmp": "image/bmp",
}


def content_type_from_filename(filename: str) -> str:
    """Guess a MIME type from the file extension."""
    _, ext = os.path.splitext(filename or "")
    return EXTENSION_CONTENT_TYPES.get(ext.lstrip(".").lower(), "application/octet-stream")


def unsupported_text(content_type: str) -> str:
    return f"{UNSUPPORTED_PREFIX}{content_type}]"


def is_unsupported_text(text: str) -> bool:
    """True if the text is the placeholder stored for formats we cannot read."""
    return bool(text) and text.startswith(UNSUPPORTED_PREFIX) and text.endswith("]")


@dataclass(frozen=True)
class DocumentContent:
    """Extracted text plus the metadata describing where it came from."""
    text: str
    metadata: Dict[str, Any] = field(default_factory=dict)


class DocumentExtractor:
    """Routes raw bytes to the right parser by content type, then by extension."""

    def resolve_content_type(self, content_type: Optional[str], filename: str) -> str:
        normalized = (content_type or "").split(";")[0].strip().lower()
        if normalized in GENERIC_CONTENT_TYPES:
            return content_type_from_filename(filename)
        return normalized

    def extract(self, data: bytes, content_type: Optional[str], filename: str) -> DocumentContent:
        """Extract text from a document.

        Formats we cannot parse produce the unsupported-format placeholder as
        text. Corrupt files raise ExtractionError and images raise
        OCRNotSupportedError.
        """
        resolved = self.resolve_content_type(content_type, filename)

        try:
            if "pdf" in resolved:
                text = self.extract_text_from_pdf(data)
            elif "wordprocessingml" in resolved:
                text = self.extract_text_from_docx(data)
            elif "spreadsheetml" in resolved:
                text = self.extract_text_from_xlsx(data)
            elif resolved.startswith("text/"):
                text = self.extract_text_from_plain(data)
            elif resolved.startswith("image/"):
                text = self.extract_text_from_image(data, filename, resolved)
            else:
                logger.warning(f"Unsupported format {resolved} for {filename}")
                text = unsupported_text(resolved)
        except ExtractionError:
            raise
        except Exception as e:
            logger.error(f"Failed to extract text from {filename} ({resolved}): {e}")
            raise ExtractionError(
                f"Could not read {filename} as {resolved}: {e}",
                filename=filename,
                content_type=resolved
            ) from e

        return DocumentContent(
            text=text,
            metadata={
                "filename": filename,
                "fileType": resolved,
                "extractionDate": datetime.now(timezone.utc).isoformat(),
                "fileSizeBytes": len(data),
            }
        )

    def extract_text_from_pdf(self, file_bytes: bytes) -> str:
        """Extract text from PDF"""
        # PdfReader needs a file-like object that supports seeking
        reader = PdfReader(BytesIO(file_bytes))
        return "\n".join(page.extract_text() or "" for page in reader.pages)

    def extract_text_from_docx(self, file_bytes: bytes) -> str:
        """Extract text from DOCX"""
        doc = docx.Document(BytesIO(file_bytes))
        return "\n".join([para.text for para in doc.paragraphs])

    def extract_text_from_xlsx(self, file_bytes: bytes) -> str:
        """One [Sheet: name] header per sheet, non-empty cells joined with ' | '."""
        workbook = openpyxl.load_workbook(BytesIO(file_bytes), read_only=True, data_only=True)
        try:
            parts = []
            for sheet in workbook.worksheets:
                parts.append(f"\n[Sheet: {sheet.title}]\n")
                for row in sheet.iter_rows(values_only=True):
                    cells = [str(cell) for cell in row if cell is not None and str(cell).strip()]
                    if cells:
                        parts.append(" | ".join(cells) + "\n")
            return "".join(parts)
        finally:
            workbook.close()

    def extract_text_from_plain(self, file_bytes: bytes) -> str:
        return file_bytes.decode("utf-8", errors="replace")

    def extract_text_from_image(self, file_bytes: bytes, filename: str, content_type: str) -> str:
        _, ext = os.path.splitext(filename or "")
        with tempfile.TemporaryDirectory(prefix="bzr-ocr-") as tmp_dir:
            image_path = os.path.join(tmp_dir, f"image{ext or '.img'}")
            with open(image_path, "wb") as fh:
                fh.write(file_bytes)
            return self._run_ocr(image_path, filename, content_type)

    def _run_ocr(self, image_path: str, filename: str, content_type: str) -> str:
        raise OCRNotSupportedError(
            f"OCR is not available for {filename}",
            filename=filename,
            content_type=content_type
        )


document_extractor = DocumentExtractor()
