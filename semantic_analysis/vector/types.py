"""
Data model for vector files, similarity rows and embedding runs.
"""

from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np


@dataclass
class VectorRecord:
    """One persisted "index: text" line with its embedding."""

    index: str
    """Identifier parsed from the text field (e.g. "[3]"), or the unknown marker"""

    text: str
    """Sentence text with the index prefix removed"""

    vector: np.ndarray
    """Embedding components as float64"""

    @property
    def dimension(self) -> int:
        return int(self.vector.shape[0])


@dataclass(frozen=True)
class SimilarityRow:
    """Cosine similarity between one record of document A and one of document B."""

    index1: str
    index2: str
    text1: str
    text2: str
    x_position: int
    similarity: float
    """Rounded half away from zero to 10 decimal places"""


@dataclass
class SimilarityReport:
    rows: List[SimilarityRow]
    document_similarity: float
    count_a: int
    count_b: int


@dataclass
class RetryOutcome:
    """Terminal state of a bounded single-item embedding retry loop."""

    text: str
    vector: Optional[List[float]] = None
    attempts: int = 0
    error: Optional[Exception] = None

    @property
    def succeeded(self) -> bool:
        return self.vector is not None


@dataclass
class BatchRunSummary:
    """What one EmbeddingBatcher run produced."""

    output_path: str
    total: int = 0
    written: int = 0
    batches_attempted: int = 0
    fallback_batches: int = 0
    checkpoints: int = 0
    failed: List[str] = field(default_factory=list)
    cancelled: bool = False
