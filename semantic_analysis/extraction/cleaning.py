"""
Sentence cleaning and the JSON sentence-list format shared by the extraction
and embedding steps.
"""

import json
import re
from pathlib import Path
from typing import Any, List, Union

from util.logging import logger
from ..core.errors import ExtractionError, OutputWriteError
from .extractors import extract_data_from_file

_WHITESPACE_RE = re.compile(r"\s+")
_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")
_LIST_NUMBER_RE = re.compile(r"^\d+\.\s*")
_DISALLOWED_RE = re.compile(r"[^a-zA-Z0-9\s.,!?'-]")


def clean_data(data: List[str]) -> List[str]:
    """
    Normalize raw lines into lower-case sentences.

    Whitespace is collapsed, lines are split after sentence punctuation,
    leading list numbering ("1. ") is dropped and characters outside
    letters, digits, whitespace and . , ! ? ' - are removed.
    """
    if not data:
        logger.info("No data to clean.")
        return []

    cleaned = []
    for line in data:
        line = _WHITESPACE_RE.sub(" ", line.replace("\n", " ").strip())

        for sentence in _SENTENCE_SPLIT_RE.split(line):
            sentence = sentence.strip().lower()
            sentence = _LIST_NUMBER_RE.sub("", sentence)
            sentence = _DISALLOWED_RE.sub("", sentence)
            if sentence:
                cleaned.append(sentence)

    return cleaned


def extract_sentences(file_path: Union[str, Path]) -> List[str]:
    """Extract a document and clean it into a sentence list."""
    return clean_data(extract_data_from_file(file_path))


def save_data_to_json(output_path: Union[str, Path], data: List[str]) -> Path:
    """Write trimmed, non-empty sentences as an indented JSON list."""
    output_path = Path(output_path)
    sentences = [s.strip() for s in data if s and s.strip()]
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(json.dumps(sentences, indent=2, ensure_ascii=False), encoding="utf-8")
    except OSError as e:
        raise OutputWriteError(f"Error saving data to JSON file '{output_path}': {e}") from e

    logger.log_operation("extraction.save", "success", {"path": str(output_path), "sentences": len(sentences)})
    return output_path


def analyze_json(json_content: str) -> List[str]:
    """
    Flatten a JSON document into "<path>: <value>" strings.

    Array elements contribute "[i]: " and object members "<key>: " to the
    path, so a sentence list ["a", "b"] becomes ["[0]: a", "[1]: b"].

    Raises:
        json.JSONDecodeError: content is not valid JSON
        ExtractionError: content is empty or null
    """
    if json_content is None or not json_content.strip():
        raise ExtractionError("The provided JSON content is empty or malformed.")

    parsed = json.loads(json_content)
    if parsed is None:
        raise ExtractionError("The provided JSON content is empty or malformed.")

    extracted: List[str] = []

    def traverse(node: Any, prefix: str = ""):
        if isinstance(node, dict):
            for key, value in node.items():
                traverse(value, f"{prefix}{key}: ")
        elif isinstance(node, list):
            for i, item in enumerate(node):
                traverse(item, f"{prefix}[{i}]: ")
        else:
            extracted.append(f"{prefix}{'' if node is None else node}")

    traverse(parsed)
    return extracted


def load_sentence_file(json_path: Union[str, Path]) -> List[str]:
    """Read a saved sentence list and flatten it with analyze_json."""
    json_path = Path(json_path)
    if not json_path.is_file():
        raise ExtractionError(f"The specified JSON file does not exist: {json_path}")
    return analyze_json(json_path.read_text(encoding="utf-8"))
