"""
Reader and writer for the persisted vector line format:

    "<index>: <text>","<v1>,<v2>,..."

The text field is quoted but not escaped, so it may itself contain commas.
Parsing is best-effort: a line that cannot be recovered yields None.
"""

import math
import re
from typing import Iterable, Optional

import numpy as np

from util.logging import logger, snippet
from .types import VectorRecord

UNKNOWN_INDEX = "[Unknown]"

# Plain decimal or exponent notation; rejects nan, inf and digit separators
_NUMBER_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")


def _clean_field(field: str) -> str:
    return field.strip().strip('"')


def parse_float(value: str) -> Optional[float]:
    """Parse a locale-invariant finite float, or return None."""
    value = value.strip()
    if not _NUMBER_RE.match(value):
        return None
    number = float(value)
    # "1e400" matches the grammar but overflows to inf
    if not math.isfinite(number):
        return None
    return number


def split_index(raw_text: str):
    """Split "index: text" at the first colon."""
    if ":" not in raw_text:
        return UNKNOWN_INDEX, raw_text
    index, _, text = raw_text.partition(":")
    return index.strip(), text.strip()


def parse_vector_line(line: str) -> Optional[VectorRecord]:
    """
    Recover (index, text, vector) from one persisted line.

    Fields after the first that do not parse as numbers are fragments of a
    text that contained commas; they are re-joined onto the text until the
    first numeric field. Every later field is a vector component, and
    components that are not numbers or overflow to infinity are dropped
    with a warning.

    Returns:
        VectorRecord with an un-normalized vector, or None when the line has
        fewer than two fields, no text, or no vector components.
    """
    if not line or not line.strip():
        return None

    parts = line.rstrip("\r\n").split(",")
    if len(parts) < 2:
        return None

    index, text = split_index(_clean_field(parts[0]))

    last_text_field = 0
    for i in range(1, len(parts)):
        if _NUMBER_RE.match(_clean_field(parts[i])):
            break
        # Keep the fragment's own spacing so "hello, world" survives the split
        text += "," + parts[i].strip('"')
        last_text_field = i

    values = []
    for raw_value in parts[last_text_field + 1:]:
        number = parse_float(_clean_field(raw_value))
        if number is None:
            logger.warning(f"Invalid number format in vector line: {snippet(raw_value)}")
            continue
        values.append(number)

    if not text or not values:
        return None

    return VectorRecord(index=index, text=text, vector=np.asarray(values, dtype=np.float64))


def format_float(value: float) -> str:
    """Shortest round-trip decimal, independent of locale."""
    return repr(float(value))


def format_vector_line(text: str, vector: Iterable[float], index: Optional[str] = None) -> str:
    """
    Render one persisted vector line.

    Args:
        text: Sentence text (written unescaped)
        vector: Embedding components
        index: Optional index; when given the text field becomes "index: text"
    """
    text_field = f"{index}: {text}" if index is not None else text
    components = ",".join(format_float(v) for v in vector)
    return f"\"{text_field}\",\"{components}\""
