"""
Cosine similarity between two documents' sentence vectors.

Every sentence of document A is compared with every sentence of document B.
Rows are grouped by A's indices in sorted order, and each A index gets a
stable x position across the plotting width.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from decimal import Decimal, ROUND_HALF_UP
import math
import os
from pathlib import Path
import threading
from typing import List, Optional, Tuple, Union

import numpy as np

from util.logging import logger
from ..core.errors import DimensionMismatchError, OperationCancelledError, OutputWriteError
from .store import VectorStore
from .types import SimilarityReport, SimilarityRow

DEFAULT_PLOT_WIDTH = 536.0
SIMILARITY_PLACES = 10
SIMILARITY_HEADER = "Index1,Index2,Word1,Word2,X_Position,Cosine_Similarity"
DOCUMENT_SIMILARITY_PREFIX = "Document_Similarity -->"


def cosine_similarity(vector_a, vector_b) -> float:
    """
    dot(a, b) / (|a| * |b|).

    Degenerate inputs score 0.0: a zero vector, or one holding nan or inf
    components. The result is never nan.
    """
    a = np.asarray(vector_a, dtype=np.float64)
    b = np.asarray(vector_b, dtype=np.float64)
    if a.shape != b.shape:
        raise DimensionMismatchError(f"Cannot compare vectors of length {a.size} and {b.size}")

    if not (np.all(np.isfinite(a)) and np.all(np.isfinite(b))):
        return 0.0

    with np.errstate(over="ignore", invalid="ignore"):
        magnitude_a = np.sqrt(np.dot(a, a))
        magnitude_b = np.sqrt(np.dot(b, b))
        if magnitude_a == 0 or magnitude_b == 0:
            return 0.0
        similarity = float(np.dot(a, b) / (magnitude_a * magnitude_b))
    if math.isnan(similarity):
        return 0.0
    # Floating point can overshoot by an ulp
    return max(-1.0, min(1.0, similarity))


def round_half_away(value: float, places: int = SIMILARITY_PLACES) -> float:
    """Round half away from zero (Python's round() is half-to-even)."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(float(value))).quantize(quantum, rounding=ROUND_HALF_UP))


def x_positions(count: int, width: float = DEFAULT_PLOT_WIDTH) -> List[int]:
    """Evenly space `count` points across `width`; a single point sits at the center."""
    if count <= 0:
        return []
    if count == 1:
        return [int(round_half_away(width / 2, 0))]
    step = width / (count - 1)
    return [int(round_half_away(i * step, 0)) for i in range(count)]


class SimilarityEngine:
    """Computes pairwise and document-level similarity between two stores."""

    def __init__(self, plot_width: float = DEFAULT_PLOT_WIDTH, max_workers: Optional[int] = None,
                 cancel_event: Optional[threading.Event] = None):
        self.plot_width = plot_width
        self.max_workers = max_workers or (os.cpu_count() or 1)
        self.cancel_event = cancel_event

    @classmethod
    def from_settings(cls, settings, cancel_event: Optional[threading.Event] = None) -> "SimilarityEngine":
        return cls(plot_width=settings.plot_width, max_workers=settings.worker_count,
                   cancel_event=cancel_event)

    def _check_cancelled(self):
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise OperationCancelledError("Similarity computation cancelled")

    @staticmethod
    def _check_compatible(store_a: VectorStore, store_b: VectorStore):
        if store_a.dimension != store_b.dimension:
            raise DimensionMismatchError(
                f"Documents use different vector lengths: {store_a.dimension} vs {store_b.dimension}"
            )

    @staticmethod
    def _row_group(store_a: VectorStore, store_b: VectorStore, index_a: str,
                   x_position: int) -> Tuple[List[SimilarityRow], List[float]]:
        """Rows for one A index, plus their unrounded scores in the same order."""
        record_a = store_a[index_a]
        rows = []
        scores = []
        for index_b in store_b.indices():
            record_b = store_b[index_b]
            score = cosine_similarity(record_a.vector, record_b.vector)
            scores.append(score)
            rows.append(SimilarityRow(
                index1=index_a,
                index2=index_b,
                text1=record_a.text,
                text2=record_b.text,
                x_position=x_position,
                similarity=round_half_away(score),
            ))
        return rows, scores

    def _pairwise(self, store_a: VectorStore, store_b: VectorStore) -> Tuple[List[SimilarityRow], List[float]]:
        """
        Every (A index, B index) pair as a row and an unrounded score.

        Each A index is an independent task on the worker pool. Results are
        merged back in sorted A order, with B in its natural order.

        Raises:
            OperationCancelledError: the cancel event was set between tasks
        """
        self._check_compatible(store_a, store_b)
        self._check_cancelled()

        ordered_a = store_a.sorted_indices()
        positions = x_positions(len(ordered_a), self.plot_width)
        groups = {}

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = {
                pool.submit(self._row_group, store_a, store_b, index_a, positions[i]): i
                for i, index_a in enumerate(ordered_a)
            }
            for future in as_completed(futures):
                if self.cancel_event is not None and self.cancel_event.is_set():
                    for pending in futures:
                        pending.cancel()
                    raise OperationCancelledError("Similarity computation cancelled")
                groups[futures[future]] = future.result()

        rows = [row for i in range(len(ordered_a)) for row in groups[i][0]]
        scores = [score for i in range(len(ordered_a)) for score in groups[i][1]]
        return rows, scores

    @staticmethod
    def _mean(scores: List[float]) -> float:
        return float(np.mean(scores)) if scores else 0.0

    def pairwise_matrix(self, store_a: VectorStore, store_b: VectorStore) -> List[SimilarityRow]:
        """One row per (A index, B index) pair, similarity rounded to 10 places."""
        return self._pairwise(store_a, store_b)[0]

    def document_similarity(self, store_a: VectorStore, store_b: VectorStore) -> float:
        """Mean of the unrounded pairwise scores over the full cross product."""
        if len(store_a) == 0 or len(store_b) == 0:
            return 0.0
        return self._mean(self._pairwise(store_a, store_b)[1])

    def compare(self, store_a: VectorStore, store_b: VectorStore) -> SimilarityReport:
        """Validate both stores, then compute rows and document similarity in one pass."""
        store_a.validate_uniform_dimension()
        store_b.validate_uniform_dimension()

        rows, scores = self._pairwise(store_a, store_b)
        document_similarity = self._mean(scores)
        logger.log_similarity_run(len(store_a), len(store_b), document_similarity)

        return SimilarityReport(
            rows=rows,
            document_similarity=document_similarity,
            count_a=len(store_a),
            count_b=len(store_b),
        )


def format_similarity_row(row: SimilarityRow) -> str:
    return (f"{row.index1},{row.index2},\"{row.text1}\",\"{row.text2}\","
            f"{row.x_position},{repr(float(row.similarity))}")


def write_similarity_file(path: Union[str, Path], rows: List[SimilarityRow], document_similarity: float) -> Path:
    """Write header, rows and the document similarity line, replacing any existing file."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="\n") as f:
            f.write(SIMILARITY_HEADER + "\n")
            for row in rows:
                f.write(format_similarity_row(row) + "\n")
            f.write(f"{DOCUMENT_SIMILARITY_PREFIX} {repr(float(document_similarity))}\n")
    except OSError as e:
        raise OutputWriteError(f"Error saving similarity file '{path}': {e}") from e

    logger.log_operation("similarity.save", "success", {"path": str(path), "rows": len(rows)})
    return path
