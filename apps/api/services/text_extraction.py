"""
Text Extraction

Turns an uploaded coach file into plain text, chosen by file extension:
- txt, md, srt, csv: UTF-8 text
- json: Instagram export captions, otherwise pretty-printed JSON
- html, htm: visible text via BeautifulSoup
- pdf: page text via pypdf

Anything else raises TextExtractionError.
"""
import io
import json
import logging
from typing import List

from bs4 import BeautifulSoup
from pypdf import PdfReader

logger = logging.getLogger(__name__)


PLAIN_TEXT_EXTENSIONS = {"txt", "md", "srt", "csv"}
SUPPORTED_EXTENSIONS = PLAIN_TEXT_EXTENSIONS | {"json", "html", "htm", "pdf"}


class TextExtractionError(Exception):
    """The file type is unsupported or its content could not be read."""

    def __init__(self, message: str, extension: str = "", unsupported: bool = False):
        super().__init__(message)
        self.extension = extension
        self.unsupported = unsupported


def file_extension(filename: str) -> str:
    if not filename or "." not in filename:
        return ""
    return filename.rsplit(".", 1)[-1].lower()


def _decode(raw_bytes: bytes) -> str:
    return raw_bytes.decode("utf-8")


def _extract_json(raw_bytes: bytes) -> str:
    data = json.loads(_decode(raw_bytes))
    # Instagram export: {"data": [{"caption": ...}, ...]}
    if isinstance(data, dict) and isinstance(data.get("data"), list):
        return "\n\n".join(
            (post.get("caption") or "") if isinstance(post, dict) else ""
            for post in data["data"]
        )
    return json.dumps(data, indent=2)


def _extract_html(raw_bytes: bytes) -> str:
    soup = BeautifulSoup(_decode(raw_bytes), "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    return " ".join(soup.get_text(separator=" ").split())


def _extract_pdf(raw_bytes: bytes) -> str:
    reader = PdfReader(io.BytesIO(raw_bytes))
    pages: List[str] = []
    for page_num, page in enumerate(reader.pages):
        try:
            text = page.extract_text() or ""
        except Exception as e:
            logger.warning(f"Could not extract PDF page {page_num + 1}: {e}")
            continue
        if text.strip():
            pages.append(text)
    return "\n\n".join(pages)


def extract_text(raw_bytes: bytes, filename: str) -> str:
    """
    Extract plain text from an uploaded file.

    Raises:
        TextExtractionError: unsupported extension or unreadable content
    """
    extension = file_extension(filename)
    if extension not in SUPPORTED_EXTENSIONS:
        raise TextExtractionError(
            f"Unsupported file type: {extension or 'unknown'}",
            extension=extension,
            unsupported=True,
        )

    try:
        if extension in PLAIN_TEXT_EXTENSIONS:
            return _decode(raw_bytes)
        if extension == "json":
            return _extract_json(raw_bytes)
        if extension in ("html", "htm"):
            return _extract_html(raw_bytes)
        return _extract_pdf(raw_bytes)
    except Exception as e:
        logger.error(f"Error extracting text from {filename}: {e}")
        raise TextExtractionError(
            f"Failed to extract text from {extension} file: {e}",
            extension=extension,
        ) from e
