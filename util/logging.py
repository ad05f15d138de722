"""
Structured operation logging for the semantic analysis pipeline.
Embedding batches, checkpoints, vector file loads and similarity runs all report through here.
"""

import logging
from typing import Any, Dict

SNIPPET_LENGTH = 50


def snippet(text: str, length: int = SNIPPET_LENGTH) -> str:
    """Shorten text for log output."""
    if text is None:
        return ""
    return text[:length] + "..." if len(text) > length else text


class StructuredLogger:
    """Structured logger for pipeline operations."""

    def __init__(self, name: str = "semantic_analysis"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None, level: int = logging.INFO):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        self.logger.log(level, message)

    def log_embedding_batch(self, batch_number: int, batch_size: int, status: str = "success", details: Dict[str, Any] = None):
        """Log the outcome of one batched embedding request."""
        log_details = {"batch": batch_number, "size": batch_size}
        if details:
            log_details.update(details)

        level = logging.INFO if status == "success" else logging.WARNING
        self.log_operation("embedding.batch", status, log_details, level)

    def log_embedding_retry(self, text: str, attempt: int, max_attempts: int, error: Any, delay_sec: float = None):
        """Log a failed single-item embedding attempt."""
        log_details = {
            "text": snippet(text),
            "attempt": attempt,
            "max_attempts": max_attempts,
            "error": str(error)[:100]
        }
        if delay_sec is not None:
            log_details["retry_in_sec"] = delay_sec

        status = "retrying" if delay_sec is not None else "exhausted"
        self.log_operation("embedding.item", status, log_details, logging.WARNING)

    def log_checkpoint(self, written: int, path: str):
        """Log a durable flush of embedding output."""
        self.log_operation("embedding.checkpoint", "flushed", {"written": written, "path": str(path)})

    def log_vector_file(self, path: str, records: int, skipped: int, status: str = "success"):
        """Log a vector file load."""
        log_details = {"path": str(path), "records": records, "skipped_lines": skipped}
        self.log_operation("vector.load", status, log_details)

    def log_similarity_run(self, count_a: int, count_b: int, document_similarity: float = None, status: str = "success"):
        """Log a pairwise similarity computation."""
        log_details = {"count_a": count_a, "count_b": count_b, "pairs": count_a * count_b}
        if document_similarity is not None:
            log_details["document_similarity"] = round(document_similarity, 4)

        self.log_operation("similarity.pairwise", status, log_details)

    def log_pipeline_step(self, step: str, status: str, details: Dict[str, Any] = None):
        """Log a pipeline step transition."""
        self.log_operation(f"pipeline.{step}", status, details)

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)

# Global logger instance
logger = StructuredLogger()
