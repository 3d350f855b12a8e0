"""Read base resume text from a PDF, DOCX or TXT file."""
from __future__ import annotations

import io
import re
import zipfile
from pathlib import Path
from typing import BinaryIO
from xml.etree import ElementTree

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from jobmatch.config import RESUME_DIR
from jobmatch.errors import ValidationError
from jobmatch.log import get_logger

log = get_logger(__name__)

SUPPORTED_SUFFIXES = (".pdf", ".docx", ".txt")

_W_NS = "{http://schemas.openxmlformats.org/wordprocessingml/2006/main}"


def extract_text(path: Path) -> str:
    """Return plain text from a PDF, DOCX, or TXT file."""
    with open(path, "rb") as f:
        return extract_text_from_stream(f, path.name)


def extract_text_from_stream(stream: BinaryIO, filename: str) -> str:
    """Same as :func:`extract_text` for an uploaded file object."""
    suffix = Path(filename).suffix.lower()
    if suffix == ".txt":
        return stream.read().decode("utf-8", errors="ignore")
    if suffix == ".docx":
        return _extract_docx(stream)
    if suffix == ".pdf":
        return _extract_pdf(stream)
    raise ValidationError(f"Unsupported resume format: {suffix or filename}")


def _fix_spacing(text: str) -> str:
    """Re-insert spaces when PDF extraction merges words together."""
    if not text or len(text) < 50:
        return text
    space_ratio = text.count(" ") / len(text)
    if space_ratio > 0.08:
        return text

    log.debug("Low space ratio (%.2f%%) — applying spacing fix", space_ratio * 100)
    fixed = re.sub(r"([a-z])([A-Z])", r"\1 \2", text)
    fixed = re.sub(r"([.!?,;:])([A-Za-z])", r"\1 \2", fixed)
    return fixed


def _extract_pdf(stream: BinaryIO) -> str:
    try:
        reader = PdfReader(io.BytesIO(stream.read()))
        pages = [_fix_spacing(page.extract_text() or "") for page in reader.pages]
    except PdfReadError as exc:
        raise ValidationError(f"Could not read PDF resume: {exc}") from exc
    return "\n".join(pages)


def _extract_docx(stream: BinaryIO) -> str:
    """Parse DOCX using only stdlib (zipfile + xml)."""
    texts: list[str] = []
    try:
        with zipfile.ZipFile(io.BytesIO(stream.read())) as zf:
            with zf.open("word/document.xml") as f:
                tree = ElementTree.parse(f)
    except (zipfile.BadZipFile, KeyError, ElementTree.ParseError) as exc:
        raise ValidationError(f"Could not read DOCX resume: {exc}") from exc
    for para in tree.iter(f"{_W_NS}p"):
        parts = [node.text for node in para.iter(f"{_W_NS}t") if node.text]
        if parts:
            texts.append("".join(parts))
    return "\n".join(texts)


def find_resume(resume_dir: Path = RESUME_DIR) -> Path | None:
    """First PDF, DOCX or TXT in the resume folder."""
    if not resume_dir.exists():
        return None
    for ext in SUPPORTED_SUFFIXES:
        for p in sorted(resume_dir.iterdir()):
            if p.suffix.lower() == ext and p.is_file():
                return p
    return None


def load_resume_text(resume_dir: Path = RESUME_DIR) -> str | None:
    path = find_resume(resume_dir)
    if path is None:
        return None
    text = extract_text(path).strip()
    log.info("Loaded resume %s (%d chars)", path.name, len(text))
    return text or None
