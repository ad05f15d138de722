"""
Per-format document text extraction.

Each extractor returns raw text lines or blocks; cleaning and sentence
splitting happen afterwards in cleaning.py.
"""

import json
import re
from pathlib import Path
from typing import Callable, Dict, List, Union
import xml.etree.ElementTree as ET

from bs4 import BeautifulSoup
import docx
from PyPDF2 import PdfReader

from util.logging import logger
from ..core.errors import ExtractionError, PathError

RAW_PREVIEW_BYTES = 100


def extract_data_from_text(path: Path) -> List[str]:
    """One entry per line of a plain text file."""
    return path.read_text(encoding="utf-8").splitlines()


def extract_data_from_csv(path: Path) -> List[str]:
    """CSV rows are kept as whole lines."""
    return path.read_text(encoding="utf-8").splitlines()


def extract_data_from_json(path: Path) -> List[str]:
    """A JSON document holding a list of strings."""
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ExtractionError(f"JSON file must contain a list of strings: {path}")
    return [str(item) for item in data if item is not None]


def extract_data_from_xml(path: Path) -> List[str]:
    """One "<tag>: <text>" entry for every element, root included."""
    root = ET.parse(path).getroot()
    return [f"{element.tag}: {''.join(element.itertext())}" for element in root.iter()]


def extract_data_from_html(path: Path) -> List[str]:
    soup = BeautifulSoup(path.read_text(encoding="utf-8"), "html.parser")
    text = soup.get_text(separator=" ")
    return [text.replace("\n", " ").strip()]


def extract_data_from_markdown(path: Path) -> List[str]:
    content = path.read_text(encoding="utf-8")
    text = re.sub(r"[#*\-]\s?", " ", content).replace("\n", " ").strip()
    return [text]


def extract_data_from_pdf(path: Path) -> List[str]:
    """One entry per page."""
    reader = PdfReader(str(path))
    return [page.extract_text() or "" for page in reader.pages]


def extract_data_from_docx(path: Path) -> List[str]:
    """One entry per paragraph."""
    document = docx.Document(str(path))
    return [paragraph.text for paragraph in document.paragraphs]


def extract_raw_data(path: Path) -> List[str]:
    """Fallback for unknown formats: a hex preview of the first bytes."""
    with open(path, "rb") as f:
        head = f.read(RAW_PREVIEW_BYTES)
    preview = "-".join(f"{b:02X}" for b in head)
    return [f"Raw Content (first {RAW_PREVIEW_BYTES} bytes): {preview}"]


EXTRACTORS: Dict[str, Callable[[Path], List[str]]] = {
    ".txt": extract_data_from_text,
    ".csv": extract_data_from_csv,
    ".json": extract_data_from_json,
    ".xml": extract_data_from_xml,
    ".html": extract_data_from_html,
    ".htm": extract_data_from_html,
    ".md": extract_data_from_markdown,
    ".pdf": extract_data_from_pdf,
    ".docx": extract_data_from_docx,
}


def extract_data_from_file(file_path: Union[str, Path]) -> List[str]:
    """
    Extract text from a document, choosing the extractor by file extension.

    Raises:
        PathError: the file does not exist
        ExtractionError: the extractor failed
    """
    path = Path(file_path)
    if not path.is_file():
        raise PathError(f"Document does not exist: {path}")

    extension = path.suffix.lower()
    extractor = EXTRACTORS.get(extension, extract_raw_data)

    try:
        lines = extractor(path)
    except ExtractionError:
        raise
    except Exception as e:
        raise ExtractionError(f"Error reading file {path}: {e}") from e

    logger.log_operation("extraction.file", "success", {
        "path": str(path),
        "format": extension or "raw",
        "entries": len(lines),
    })
    return lines
