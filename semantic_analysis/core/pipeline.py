"""
Pipeline orchestration: extraction -> embedding -> similarity -> visualization.

The orchestrator owns file paths and wiring only. It builds every component
from one PipelineSettings instance.
"""

from dataclasses import dataclass, field
from pathlib import Path
import threading
from typing import List, Optional, Sequence, Tuple

from util.logging import logger
from .config import PipelineSettings, get_embedding_provider
from .errors import InputError, OperationCancelledError
from ..extraction import extract_sentences, load_sentence_file, save_data_to_json
from ..vector.batcher import EmbeddingBatcher
from ..vector.embeddings import IEmbeddingProvider
from ..vector.similarity import SimilarityEngine, write_similarity_file
from ..vector.store import VectorStore
from ..vector.types import BatchRunSummary, SimilarityReport
from ..visualization import load_plot_data, render_scatter_plot


@dataclass
class PipelineResult:
    sentence_files: List[Path] = field(default_factory=list)
    vector_files: List[Path] = field(default_factory=list)
    embedding_runs: List[BatchRunSummary] = field(default_factory=list)
    similarity_file: Optional[Path] = None
    plot_file: Optional[Path] = None
    document_similarity: Optional[float] = None


class PipelineOrchestrator:
    """Runs the four pipeline steps for exactly two documents."""

    def __init__(self, settings: PipelineSettings, provider: Optional[IEmbeddingProvider] = None,
                 cancel_event: Optional[threading.Event] = None):
        self.settings = settings
        self._provider = provider
        self.cancel_event = cancel_event

    @property
    def provider(self) -> IEmbeddingProvider:
        """Lazy-loaded embedding provider."""
        if self._provider is None:
            self._provider = get_embedding_provider(self.settings)
        return self._provider

    def _source_documents(self) -> List[Path]:
        raw_dir = self.settings.data_preprocessing_dir
        if not raw_dir.is_dir():
            raise InputError(f"Raw data folder does not exist: {raw_dir}")

        files = sorted(
            p for p in raw_dir.iterdir()
            if p.is_file() and p.suffix.lower() in self.settings.supported_extensions
        )
        if len(files) != 2:
            raise InputError(f"Expected exactly two files in {raw_dir}, but found {len(files)}.")
        return files

    def run_extraction(self) -> List[Path]:
        """Extract and clean both documents into JSON sentence lists."""
        logger.log_pipeline_step("extraction", "started")
        outputs = []
        for document in self._source_documents():
            sentences = extract_sentences(document)
            output_path = self.settings.extracted_data_dir / f"{document.stem}.json"
            save_data_to_json(output_path, sentences)
            outputs.append(output_path)

        logger.log_pipeline_step("extraction", "completed", {"files": [str(p) for p in outputs]})
        return outputs

    def _sentence_files(self) -> List[Path]:
        extracted_dir = self.settings.extracted_data_dir
        files = sorted(extracted_dir.glob("*.json")) if extracted_dir.is_dir() else []
        if len(files) < 2:
            raise InputError(f"Expected at least two JSON files in {extracted_dir}, but found {len(files)}.")
        return files[:2]

    def run_embedding(self, sentence_files: Optional[Sequence[Path]] = None) -> List[BatchRunSummary]:
        """
        Embed both sentence lists into the two vector files.

        Files are processed one after another so no two batches ever run at
        the same time against the embedding service.
        """
        sentence_files = list(sentence_files) if sentence_files else self._sentence_files()
        targets: List[Tuple[Path, Path]] = list(zip(
            sentence_files[:2], [self.settings.vector_path_1, self.settings.vector_path_2]
        ))

        logger.log_pipeline_step("embedding", "started")
        batcher = EmbeddingBatcher.from_settings(self.provider, self.settings, cancel_event=self.cancel_event)

        summaries = []
        for json_path, vector_path in targets:
            sentences = load_sentence_file(json_path)
            summary = batcher.run(sentences, vector_path)
            summaries.append(summary)
            if summary.cancelled:
                raise OperationCancelledError(f"Embedding cancelled while writing {vector_path}")

        logger.log_pipeline_step("embedding", "completed", {
            "written": [s.written for s in summaries],
            "failed": [len(s.failed) for s in summaries],
        })
        return summaries

    def run_similarity(self) -> SimilarityReport:
        """Load both vector files, compare them and write the similarity file."""
        logger.log_pipeline_step("similarity", "started")

        store_a = VectorStore.load(self.settings.vector_path_1)
        store_b = VectorStore.load(self.settings.vector_path_2)

        engine = SimilarityEngine.from_settings(self.settings, cancel_event=self.cancel_event)
        report = engine.compare(store_a, store_b)
        write_similarity_file(self.settings.similarity_path, report.rows, report.document_similarity)

        logger.log_pipeline_step("similarity", "completed", {
            "rows": len(report.rows),
            "document_similarity": round(report.document_similarity, 4),
        })
        return report

    def run_visualization(self) -> Path:
        """Render the similarity file as a scatter plot."""
        logger.log_pipeline_step("visualization", "started")
        data = load_plot_data(self.settings.similarity_path)
        path = render_scatter_plot(data, self.settings.plot_path)
        logger.log_pipeline_step("visualization", "completed", {"path": str(path)})
        return path

    def run(self) -> PipelineResult:
        """Run every step in order."""
        result = PipelineResult()
        result.sentence_files = self.run_extraction()
        result.embedding_runs = self.run_embedding(result.sentence_files)
        result.vector_files = [self.settings.vector_path_1, self.settings.vector_path_2]

        report = self.run_similarity()
        result.similarity_file = self.settings.similarity_path
        result.document_similarity = report.document_similarity

        result.plot_file = self.run_visualization()
        return result
