"""Unit tests for the document extractor."""
import os
import pytest
from io import BytesIO
from unittest.mock import MagicMock, patch

import docx
import openpyxl

from bzr_portal.core.exceptions import ExtractionError, OCRNotSupportedError
from bzr_portal.services.document_extractor import (
    DocumentExtractor,
    content_type_from_filename,
    is_unsupported_text,
)

DOCX_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
XLSX_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _docx_bytes(*paragraphs):
    document = docx.Document()
    for paragraph in paragraphs:
        document.add_paragraph(paragraph)
    buffer = BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def _xlsx_bytes():
    workbook = openpyxl.Workbook()
    sheet = workbook.active
    sheet.title = "Rizici"
    sheet.append(["Opasnost", "Mera"])
    sheet.append(["Buka", None, "Antifoni"])
    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


@pytest.mark.unit
class TestDocumentExtractor:
    """Test cases for format dispatch and extraction."""

    @pytest.fixture
    def extractor(self):
        return DocumentExtractor()

    def test_docx_paragraphs(self, extractor):
        """Word documents yield their paragraphs joined by newlines."""
        data = _docx_bytes("Pravila evakuacije", "Izlazi su obeleženi zelenom bojom")

        content = extractor.extract(data, DOCX_TYPE, "pravila.docx")

        assert "Pravila evakuacije\nIzlazi su obeleženi zelenom bojom" in content.text
        assert content.metadata["fileType"] == DOCX_TYPE

    def test_xlsx_sheets_and_cells(self, extractor):
        """Excel sheets get a header line; empty cells are skipped."""
        content = extractor.extract(_xlsx_bytes(), XLSX_TYPE, "rizici.xlsx")

        assert "[Sheet: Rizici]" in content.text
        assert "Opasnost | Mera" in content.text
        assert "Buka | Antifoni" in content.text

    def test_pdf_pages_joined(self, extractor):
        """PDF page texts are joined; pages without text contribute nothing."""
        pages = [MagicMock(), MagicMock()]
        pages[0].extract_text.return_value = "Strana 1"
        pages[1].extract_text.return_value = None
        reader = MagicMock(pages=pages)

        with patch("bzr_portal.services.document_extractor.PdfReader", return_value=reader):
            content = extractor.extract(b"%PDF-1.4", "application/pdf", "zakon.pdf")

        assert content.text == "Strana 1\n"

    def test_plain_text_with_invalid_bytes(self, extractor):
        """Invalid UTF-8 is replaced, not rejected."""
        content = extractor.extract("Zaštita".encode("utf-8") + b"\xff", "text/plain", "a.txt")

        assert content.text.startswith("Zaštita")
        assert "�" in content.text

    def test_generic_content_type_uses_extension(self, extractor):
        """An octet-stream upload named .txt is read as text."""
        content = extractor.extract(b"Evakuacija", "application/octet-stream", "plan.txt")

        assert content.text == "Evakuacija"
        assert content.metadata["fileType"] == "text/plain"

    def test_unsupported_format_is_soft(self, extractor):
        """Legacy Word files produce the placeholder text instead of an error."""
        content = extractor.extract(b"\xd0\xcf\x11\xe0", "application/msword", "stari.doc")

        assert content.text == "[Unsupported format: application/msword]"
        assert is_unsupported_text(content.text)

    def test_corrupt_file_raises_extraction_error(self, extractor):
        """A file that claims to be DOCX but is not raises ExtractionError."""
        with pytest.raises(ExtractionError) as exc_info:
            extractor.extract(b"not a zip archive", DOCX_TYPE, "broken.docx")

        assert exc_info.value.filename == "broken.docx"
        assert exc_info.value.content_type == DOCX_TYPE

    def test_image_raises_ocr_not_supported_and_cleans_up(self, extractor):
        """Images raise OCRNotSupportedError and the temp file is removed."""
        seen = {}
        original = extractor._run_ocr

        def spy(image_path, filename, content_type):
            seen["path"] = image_path
            seen["existed"] = os.path.exists(image_path)
            return original(image_path, filename, content_type)

        extractor._run_ocr = spy

        with pytest.raises(OCRNotSupportedError) as exc_info:
            extractor.extract(b"\x89PNG\r\n", "image/png", "znak.png")

        assert isinstance(exc_info.value, NotImplementedError)
        assert exc_info.value.content_type == "image/png"
        assert seen["existed"] is True
        assert not os.path.exists(seen["path"])

    def test_metadata(self, extractor):
        """Metadata records filename, type, size and extraction time."""
        content = extractor.extract(b"12345", "text/plain", "a.txt")

        assert content.metadata["filename"] == "a.txt"
        assert content.metadata["fileSizeBytes"] == 5
        assert "extractionDate" in content.metadata


@pytest.mark.unit
class TestContentTypeHelpers:
    """Test cases for extension based content types."""

    @pytest.mark.parametrize("filename,expected", [
        ("zakon.PDF", "application/pdf"),
        ("akt.docx", DOCX_TYPE),
        ("tabela.xls", "application/vnd.ms-excel"),
        ("slika.jpeg", "image/jpeg"),
        ("bez-ekstenzije", "application/octet-stream"),
    ])
    def test_content_type_from_filename(self, filename, expected):
        assert content_type_from_filename(filename) == expected

    def test_is_unsupported_text(self):
        assert is_unsupported_text("[Unsupported format: image/tiff]")
        assert not is_unsupported_text("Običan tekst")
        assert not is_unsupported_text("")
