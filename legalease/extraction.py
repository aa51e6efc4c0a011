from __future__ import annotations

import base64
import logging
import mimetypes
import re
import tempfile
import xml.etree.ElementTree as ET
import zipfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from legalease.config import DEFAULT_MAX_UPLOAD_BYTES
from legalease.errors import NoTextExtracted, UnsupportedFileType

logger = logging.getLogger(__name__)

PDF_MEDIA_TYPE = "application/pdf"
DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
IMAGE_MEDIA_TYPES = {"image/jpeg", "image/png", "image/gif", "image/webp"}
SUPPORTED_MEDIA_TYPES = {PDF_MEDIA_TYPE, DOCX_MEDIA_TYPE, *IMAGE_MEDIA_TYPES}
EXTENSION_MEDIA_TYPES = {
    ".pdf": PDF_MEDIA_TYPE,
    ".docx": DOCX_MEDIA_TYPE,
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
}

IMAGE_MARKER_PATTERN = re.compile(
    r"^\[IMAGE_DATA:(?P<marker_mime>[\w.+-]+/[\w.+-]+)\]data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<data>.*)$",
    re.DOTALL,
)
# C0 and C1 controls except tab, newline and carriage return.
CONTROL_CHARS_PATTERN = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")


@dataclass(frozen=True)
class ImagePayload:
    mime_type: str
    data: str

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"

    def to_marker(self) -> str:
        return f"[IMAGE_DATA:{self.mime_type}]{self.data_url}"


@dataclass(frozen=True)
class ExtractedContent:
    """Either plain document text or an image handed on to the vision model."""

    media_type: str
    text: str = ""
    image: ImagePayload | None = None

    @property
    def is_image(self) -> bool:
        return self.image is not None

    def to_text(self) -> str:
        if self.image is not None:
            return self.image.to_marker()
        return self.text


def parse_image_marker(text: str) -> ImagePayload | None:
    match = IMAGE_MARKER_PATTERN.match(text.strip())
    if match is None:
        return None
    return ImagePayload(mime_type=match.group("mime"), data=match.group("data").strip())


def sanitize_text(text: str, collapse_whitespace: bool = True) -> str:
    cleaned = CONTROL_CHARS_PATTERN.sub("", text)
    if not collapse_whitespace:
        return cleaned.strip()
    return re.sub(r"\s+", " ", cleaned).strip()


def _detect_image_mime_type(content_bytes: bytes) -> str | None:
    if content_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if content_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if content_bytes.startswith((b"GIF87a", b"GIF89a")):
        return "image/gif"
    if content_bytes.startswith(b"RIFF") and content_bytes[8:12] == b"WEBP":
        return "image/webp"
    return None


def resolve_media_type(filename: str, content_type: str | None, content_bytes: bytes = b"") -> str | None:
    declared = (content_type or "").split(";", maxsplit=1)[0].strip().lower()
    if declared and declared != "application/octet-stream":
        return declared

    extension = Path(filename or "").suffix.lower()
    if extension in EXTENSION_MEDIA_TYPES:
        return EXTENSION_MEDIA_TYPES[extension]

    guessed, _ = mimetypes.guess_type(filename or "")
    if guessed:
        return guessed.lower()

    return _detect_image_mime_type(content_bytes)


def validate_upload(
    filename: str,
    content_type: str | None,
    content_bytes: bytes,
    max_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
) -> str:
    """Return the accepted media type or raise ``UnsupportedFileType``."""
    if not content_bytes:
        raise UnsupportedFileType("Empty uploads are not allowed.")

    if len(content_bytes) > max_bytes:
        raise UnsupportedFileType(
            f"File is too large ({len(content_bytes)} bytes). Maximum size is {max_bytes // (1024 * 1024)} MB."
        )

    media_type = resolve_media_type(filename, content_type, content_bytes)
    if media_type not in SUPPORTED_MEDIA_TYPES:
        raise UnsupportedFileType(
            f"Unsupported file type '{media_type or 'unknown'}'. "
            "Supported types: PDF, DOCX, JPEG, PNG, GIF, WEBP."
        )
    return media_type


@contextmanager
def staged_upload(filename: str, content_bytes: bytes) -> Iterator[Path]:
    """Write the upload into a private temp dir that is removed on exit."""
    suffix = Path(filename or "").suffix
    with tempfile.TemporaryDirectory(prefix="legalease-") as temp_dir:
        staged_path = Path(temp_dir) / f"upload{suffix}"
        staged_path.write_bytes(content_bytes)
        yield staged_path


def _extract_pdf_text(file_path: Path) -> str:
    reader = PdfReader(str(file_path))
    pages: list[str] = []
    for page in reader.pages:
        page_text = page.extract_text() or ""
        if page_text.strip():
            pages.append(page_text.strip())

    return "\n\n".join(pages)


def _extract_docx_text(file_path: Path) -> str:
    with zipfile.ZipFile(file_path) as archive:
        with archive.open("word/document.xml") as document_xml:
            xml_content = document_xml.read()

    root = ET.fromstring(xml_content)
    namespace = {"w": "http://schemas.openxmlformats.org/wordprocessingml/2006/main"}
    paragraphs: list[str] = []

    for paragraph in root.findall(".//w:p", namespace):
        runs = [node.text or "" for node in paragraph.findall(".//w:t", namespace)]
        line = "".join(runs).strip()
        if line:
            paragraphs.append(line)

    return "\n\n".join(paragraphs)


def extract_content(
    filename: str,
    content_type: str | None,
    content_bytes: bytes,
    max_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
) -> ExtractedContent:
    media_type = validate_upload(filename, content_type, content_bytes, max_bytes=max_bytes)
    logger.info("Extracting content from %s (%s)", filename or "<unnamed>", media_type)

    if media_type in IMAGE_MEDIA_TYPES:
        encoded = base64.b64encode(content_bytes).decode("ascii")
        return ExtractedContent(
            media_type=media_type,
            image=ImagePayload(mime_type=media_type, data=encoded),
        )

    with staged_upload(filename, content_bytes) as staged_path:
        if media_type == PDF_MEDIA_TYPE:
            try:
                text = _extract_pdf_text(staged_path)
            except (PdfReadError, ValueError, OSError) as exc:
                raise NoTextExtracted(f"Could not read PDF file: {exc}") from exc
        else:
            try:
                text = _extract_docx_text(staged_path)
            except (zipfile.BadZipFile, KeyError, ET.ParseError) as exc:
                raise NoTextExtracted(f"Could not read DOCX file: {exc}") from exc

    if not text.strip():
        raise NoTextExtracted("No text could be extracted from the file.")

    return ExtractedContent(media_type=media_type, text=text)
