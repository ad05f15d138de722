"""
Read-only store of one document's sentence vectors, built from a vector file.
"""

from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

import numpy as np

from util.logging import logger
from ..core.errors import DimensionMismatchError, EmptyStoreError, PathError
from .parser import format_vector_line, parse_vector_line
from .types import VectorRecord


def normalize_vector(vector) -> np.ndarray:
    """Scale to unit length. A zero vector is returned unchanged."""
    vector = np.asarray(vector, dtype=np.float64)
    magnitude = np.sqrt(np.sum(vector * vector))
    if magnitude == 0:
        return vector
    return vector / magnitude


class VectorStore:
    """
    Mapping of index -> VectorRecord for a single document.

    Vectors are normalized when the store is built and nothing mutates the
    store afterwards. Dimensional consistency is checked separately by
    validate_uniform_dimension() so a caller decides when to enforce it.
    """

    def __init__(self, records: Dict[str, VectorRecord], source: Optional[str] = None):
        if not records:
            raise EmptyStoreError(
                f"Vector file must contain at least one valid vector: {source or '<memory>'}"
            )
        self._records = dict(records)
        self.source = source

    @staticmethod
    def normalize(vector) -> np.ndarray:
        return normalize_vector(vector)

    @classmethod
    def from_records(cls, records: List[VectorRecord], source: Optional[str] = None) -> "VectorStore":
        """Build a store from parsed records; later duplicates overwrite earlier ones."""
        mapping = {}
        for record in records:
            mapping[record.index] = VectorRecord(
                index=record.index,
                text=record.text,
                vector=normalize_vector(record.vector),
            )
        return cls(mapping, source=source)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "VectorStore":
        """
        Load a vector file.

        Raises:
            PathError: path is empty or missing
            EmptyStoreError: no line could be parsed
        """
        if path is None or not str(path).strip():
            raise PathError("File path must not be null or empty")

        path = Path(path)
        if not path.is_file():
            raise PathError(f"Vector file does not exist: {path}")

        records = []
        skipped = 0
        # utf-8-sig tolerates a byte order mark written by other tools
        with open(path, "r", encoding="utf-8-sig") as f:
            for line in f:
                if not line.strip():
                    continue
                record = parse_vector_line(line)
                if record is None:
                    skipped += 1
                    continue
                records.append(record)

        if not records:
            logger.log_vector_file(path, 0, skipped, status="empty")
            raise EmptyStoreError(f"Vector file must contain at least one valid vector: {path}")

        store = cls.from_records(records, source=str(path))
        logger.log_vector_file(path, len(store), skipped)
        return store

    def validate_uniform_dimension(self) -> int:
        """
        Check that every vector has the same length.

        Returns:
            The shared dimension.
        """
        dimensions = {record.dimension for record in self._records.values()}
        if len(dimensions) > 1:
            raise DimensionMismatchError(
                f"All vectors must have the same length; found {sorted(dimensions)} in {self.source or '<memory>'}"
            )
        return dimensions.pop()

    @property
    def dimension(self) -> int:
        return next(iter(self._records.values())).dimension

    def indices(self) -> List[str]:
        """Indices in insertion order."""
        return list(self._records.keys())

    def sorted_indices(self) -> List[str]:
        return sorted(self._records.keys())

    def records(self) -> List[VectorRecord]:
        return list(self._records.values())

    def to_lines(self) -> List[str]:
        """Render the store back into persisted vector lines."""
        return [format_vector_line(r.text, r.vector, index=r.index) for r in self._records.values()]

    def __getitem__(self, index: str) -> VectorRecord:
        return self._records[index]

    def __contains__(self, index: str) -> bool:
        return index in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)
