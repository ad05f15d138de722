"""
Batched embedding generation with per-item fallback and checkpointed output.

Batches run one after another. Each provider call runs off the event loop
under a timeout. A batch that fails, or returns the wrong number of vectors,
is retried item by item with linear backoff; items that exhaust their
attempts are left out of the output and the run continues.
"""

import asyncio
import os
from pathlib import Path
import threading
from typing import Awaitable, Callable, List, Optional, Sequence, Union

from util.logging import logger, snippet
from ..core.errors import EmbeddingExhaustedError, EmbeddingServiceError, OutputWriteError
from .embeddings import IEmbeddingProvider
from .parser import format_vector_line
from .types import BatchRunSummary, RetryOutcome

DEFAULT_BATCH_SIZE = 10
DEFAULT_SAVE_INTERVAL = 10
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_CALL_TIMEOUT_SEC = 60.0


class EmbeddingBatcher:
    """Drives an embedding provider over a sentence list and streams vector lines to disk."""

    def __init__(self, provider: IEmbeddingProvider,
                 batch_size: int = DEFAULT_BATCH_SIZE,
                 save_interval: int = DEFAULT_SAVE_INTERVAL,
                 max_attempts: int = DEFAULT_MAX_ATTEMPTS,
                 call_timeout: float = DEFAULT_CALL_TIMEOUT_SEC,
                 sleep: Optional[Callable[[float], Awaitable[None]]] = None,
                 cancel_event: Optional[threading.Event] = None):
        if batch_size < 1 or save_interval < 1 or max_attempts < 1:
            raise ValueError("batch_size, save_interval and max_attempts must be >= 1")

        self.provider = provider
        self.batch_size = batch_size
        self.save_interval = save_interval
        self.max_attempts = max_attempts
        self.call_timeout = call_timeout
        self.sleep = sleep or asyncio.sleep
        self.cancel_event = cancel_event

    @classmethod
    def from_settings(cls, provider: IEmbeddingProvider, settings, **kwargs) -> "EmbeddingBatcher":
        return cls(
            provider,
            batch_size=settings.batch_size,
            save_interval=settings.save_interval,
            max_attempts=settings.max_attempts,
            call_timeout=settings.call_timeout_sec,
            **kwargs,
        )

    @staticmethod
    def backoff_delay(attempt: int) -> float:
        """Seconds to wait after failed attempt number `attempt` (1s, 2s, 3s, ...)."""
        return float(attempt)

    def _cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    async def _call(self, func, *args):
        # wait_for abandons the worker thread on timeout without stopping it;
        # providers enforce the same timeout on the request itself
        return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout=self.call_timeout)

    async def attempt_with_retry(self, text: str, max_attempts: Optional[int] = None) -> RetryOutcome:
        """
        Bounded retry loop for one text.

        Returns:
            RetryOutcome holding either the vector or the last error.
        """
        max_attempts = max_attempts or self.max_attempts
        outcome = RetryOutcome(text=text)

        for attempt in range(1, max_attempts + 1):
            outcome.attempts = attempt
            try:
                vector = await self._call(self.provider.embed_text, text)
                if vector is None or len(vector) == 0:
                    raise EmbeddingServiceError("Provider returned an empty embedding")
                outcome.vector = list(vector)
                outcome.error = None
                return outcome
            except Exception as e:
                outcome.error = e
                if attempt < max_attempts:
                    delay = self.backoff_delay(attempt)
                    logger.log_embedding_retry(text, attempt, max_attempts, e, delay)
                    await self.sleep(delay)
                else:
                    logger.log_embedding_retry(text, attempt, max_attempts, e)

        return outcome

    async def generate_with_retry(self, text: str, max_attempts: Optional[int] = None) -> List[float]:
        """
        Embed one text, retrying with linear backoff.

        Raises:
            EmbeddingExhaustedError: every attempt failed
        """
        outcome = await self.attempt_with_retry(text, max_attempts)
        if not outcome.succeeded:
            raise EmbeddingExhaustedError(text, outcome.attempts, outcome.error)
        return outcome.vector

    async def _embed_batch(self, batch: List[str], batch_number: int) -> Optional[List[List[float]]]:
        """One batched request; None means the batch must fall back to single items."""
        try:
            vectors = await self._call(self.provider.embed_batch, batch)
        except Exception as e:
            logger.log_embedding_batch(batch_number, len(batch), "failed", {"error": str(e)[:100]})
            return None

        if vectors is None or len(vectors) != len(batch):
            received = 0 if vectors is None else len(vectors)
            logger.log_embedding_batch(batch_number, len(batch), "mismatch", {"received": received})
            return None

        if any(vector is None or len(vector) == 0 for vector in vectors):
            logger.log_embedding_batch(batch_number, len(batch), "mismatch", {"reason": "empty vector"})
            return None

        logger.log_embedding_batch(batch_number, len(batch))
        return vectors

    def _prepare_output(self, output_path: Path):
        """Remove any previous output; runs always start from an empty file."""
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            if output_path.exists():
                os.remove(output_path)
                logger.info(f"Previous output file deleted: {output_path}")
        except OSError as e:
            raise OutputWriteError(f"Cannot reset output file '{output_path}': {e}") from e

    def _write(self, handle, text: str, vector: Sequence[float], summary: BatchRunSummary):
        handle.write(format_vector_line(text, vector) + "\n")
        summary.written += 1

        if summary.written % self.save_interval == 0:
            handle.flush()
            os.fsync(handle.fileno())
            summary.checkpoints += 1
            logger.log_checkpoint(summary.written, summary.output_path)

    async def generate_and_save(self, sentences: Sequence[str], output_path: Union[str, Path]) -> BatchRunSummary:
        """
        Embed every sentence and write one vector line per success.

        Raises:
            OutputWriteError: the output file could not be reset or written
        """
        output_path = Path(output_path)
        self._prepare_output(output_path)

        summary = BatchRunSummary(output_path=str(output_path), total=len(sentences))
        logger.log_operation("embedding.run", "started", {
            "path": str(output_path),
            "sentences": len(sentences),
            "batch_size": self.batch_size,
        })

        try:
            with open(output_path, "w", encoding="utf-8", newline="\n") as handle:
                for batch_number, start in enumerate(range(0, len(sentences), self.batch_size), start=1):
                    if self._cancelled():
                        summary.cancelled = True
                        logger.log_operation("embedding.run", "cancelled", {"before_batch": batch_number})
                        break

                    batch = list(sentences[start:start + self.batch_size])
                    summary.batches_attempted += 1

                    vectors = await self._embed_batch(batch, batch_number)
                    if vectors is not None:
                        for text, vector in zip(batch, vectors):
                            self._write(handle, text, vector, summary)
                        continue

                    summary.fallback_batches += 1
                    for text in batch:
                        outcome = await self.attempt_with_retry(text)
                        if outcome.succeeded:
                            self._write(handle, text, outcome.vector, summary)
                        else:
                            summary.failed.append(text)
                            logger.warning(f"Dropping text after {outcome.attempts} attempts: {snippet(text)}")

                handle.flush()
                os.fsync(handle.fileno())
        except OSError as e:
            raise OutputWriteError(f"Error writing embeddings to '{output_path}': {e}") from e

        logger.log_operation("embedding.run", "cancelled" if summary.cancelled else "completed", {
            "path": str(output_path),
            "written": summary.written,
            "failed": len(summary.failed),
            "fallback_batches": summary.fallback_batches,
        })
        return summary

    def run(self, sentences: Sequence[str], output_path: Union[str, Path]) -> BatchRunSummary:
        """Synchronous entry point for callers outside an event loop."""
        return asyncio.run(self.generate_and_save(sentences, output_path))
