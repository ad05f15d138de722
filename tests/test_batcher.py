"""
EmbeddingBatcher - batching, per-item fallback, retry backoff, checkpoints and cancellation.
"""

import asyncio
import threading
import time

import pytest

from semantic_analysis.core.config import PipelineSettings
from semantic_analysis.core.errors import EmbeddingExhaustedError, EmbeddingServiceError
from semantic_analysis.vector.batcher import EmbeddingBatcher
from semantic_analysis.vector.embeddings import IEmbeddingProvider
from semantic_analysis.vector.parser import parse_vector_line


class FakeProvider(IEmbeddingProvider):
    """Records calls; batch behaviour is controlled per call number."""

    def __init__(self, short_batches=(), failing_batches=(), failing_texts=None, batch_hook=None):
        self.short_batches = set(short_batches)
        self.failing_batches = set(failing_batches)
        self.failing_texts = dict(failing_texts or {})
        self.batch_hook = batch_hook
        self.batch_calls = []
        self.text_calls = []

    def embed_text(self, text):
        self.text_calls.append(text)
        remaining = self.failing_texts.get(text, 0)
        if remaining:
            self.failing_texts[text] = remaining - 1
            raise EmbeddingServiceError(f"transient failure for {text}")
        return [float(len(text)), 1.0, 0.0]

    def embed_batch(self, texts):
        self.batch_calls.append(list(texts))
        call_number = len(self.batch_calls)
        if self.batch_hook:
            self.batch_hook(call_number)
        if call_number in self.failing_batches:
            raise EmbeddingServiceError("batch request failed")
        vectors = [[float(len(t)), 1.0, 0.0] for t in texts]
        if call_number in self.short_batches:
            return vectors[:-1]
        return vectors

    def get_dimension(self):
        return 3


class SleepRecorder:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def sentences(count):
    return [f"sentence number {i}" for i in range(count)]


def written_texts(path):
    return [parse_vector_line(line).text for line in path.read_text(encoding="utf-8").splitlines()]


@pytest.fixture
def sleep():
    return SleepRecorder()


def test_twenty_five_sentences_three_batches(tmp_path):
    provider = FakeProvider()
    batcher = EmbeddingBatcher(provider, batch_size=10)
    output = tmp_path / "vectors.csv"

    summary = batcher.run(sentences(25), output)

    assert [len(b) for b in provider.batch_calls] == [10, 10, 5]
    assert summary.batches_attempted == 3
    assert summary.written == 25
    assert summary.fallback_batches == 0
    assert written_texts(output) == sentences(25)


def test_count_mismatch_falls_back_per_item(tmp_path, sleep):
    provider = FakeProvider(short_batches={2})
    batcher = EmbeddingBatcher(provider, batch_size=10, sleep=sleep)
    output = tmp_path / "vectors.csv"

    summary = batcher.run(sentences(25), output)

    assert summary.batches_attempted == 3
    assert summary.fallback_batches == 1
    assert provider.text_calls == sentences(25)[10:20]
    assert summary.written == 25
    assert summary.failed == []
    assert written_texts(output) == sentences(25)
    assert sleep.delays == []


def test_failed_batch_retries_with_linear_backoff(tmp_path, sleep):
    texts = sentences(3)
    provider = FakeProvider(failing_batches={1}, failing_texts={texts[1]: 2})
    batcher = EmbeddingBatcher(provider, batch_size=10, max_attempts=3, sleep=sleep)

    summary = batcher.run(texts, tmp_path / "vectors.csv")

    assert summary.written == 3
    assert provider.text_calls.count(texts[1]) == 3
    assert sleep.delays == [1.0, 2.0]


def test_exhausted_item_is_dropped(tmp_path, sleep):
    texts = sentences(4)
    provider = FakeProvider(failing_batches={1}, failing_texts={texts[2]: 99})
    batcher = EmbeddingBatcher(provider, batch_size=10, max_attempts=3, sleep=sleep)
    output = tmp_path / "vectors.csv"

    summary = batcher.run(texts, output)

    assert summary.failed == [texts[2]]
    assert summary.written == 3
    assert written_texts(output) == [texts[0], texts[1], texts[3]]
    assert sleep.delays == [1.0, 2.0]


def test_empty_vector_in_batch_triggers_fallback(tmp_path):
    class EmptyBatchProvider(FakeProvider):
        def embed_batch(self, texts):
            return [[] for _ in texts]

    provider = EmptyBatchProvider()
    summary = EmbeddingBatcher(provider, batch_size=5).run(sentences(3), tmp_path / "v.csv")

    assert summary.fallback_batches == 1
    assert summary.written == 3


def test_checkpoints_every_save_interval(tmp_path):
    batcher = EmbeddingBatcher(FakeProvider(), batch_size=10, save_interval=10)

    summary = batcher.run(sentences(25), tmp_path / "vectors.csv")

    assert summary.checkpoints == 2


def test_previous_output_is_deleted(tmp_path):
    output = tmp_path / "vectors.csv"
    output.write_text('"stale","9.0,9.0,9.0"\n', encoding="utf-8")

    EmbeddingBatcher(FakeProvider()).run(sentences(2), output)

    assert written_texts(output) == sentences(2)


def test_output_directory_is_created(tmp_path):
    output = tmp_path / "nested" / "dir" / "vectors.csv"

    EmbeddingBatcher(FakeProvider()).run(sentences(1), output)

    assert output.exists()


def test_cancel_before_first_batch(tmp_path):
    cancel = threading.Event()
    cancel.set()
    provider = FakeProvider()
    output = tmp_path / "vectors.csv"

    summary = EmbeddingBatcher(provider, cancel_event=cancel).run(sentences(5), output)

    assert summary.cancelled
    assert summary.batches_attempted == 0
    assert provider.batch_calls == []
    assert output.read_text(encoding="utf-8") == ""


def test_cancel_between_batches(tmp_path):
    cancel = threading.Event()
    provider = FakeProvider(batch_hook=lambda n: cancel.set())
    batcher = EmbeddingBatcher(provider, batch_size=10, cancel_event=cancel)

    summary = batcher.run(sentences(25), tmp_path / "vectors.csv")

    assert summary.cancelled
    assert summary.batches_attempted == 1
    assert summary.written == 10


def test_slow_batch_times_out_and_falls_back(tmp_path):
    class SlowBatchProvider(FakeProvider):
        def embed_batch(self, texts):
            time.sleep(0.5)
            return super().embed_batch(texts)

    provider = SlowBatchProvider()
    batcher = EmbeddingBatcher(provider, batch_size=10, call_timeout=0.05)

    summary = batcher.run(sentences(3), tmp_path / "vectors.csv")

    assert summary.fallback_batches == 1
    assert summary.written == 3


def test_generate_with_retry_raises_when_exhausted(sleep):
    provider = FakeProvider(failing_texts={"doomed": 10})
    batcher = EmbeddingBatcher(provider, max_attempts=2, sleep=sleep)

    with pytest.raises(EmbeddingExhaustedError) as exc_info:
        asyncio.run(batcher.generate_with_retry("doomed"))

    assert exc_info.value.attempts == 2
    assert exc_info.value.text == "doomed"
    assert isinstance(exc_info.value.last_error, EmbeddingServiceError)
    assert sleep.delays == [1.0]


def test_generate_with_retry_returns_vector(sleep):
    batcher = EmbeddingBatcher(FakeProvider(failing_texts={"flaky": 1}), sleep=sleep)

    vector = asyncio.run(batcher.generate_with_retry("flaky"))

    assert vector == [5.0, 1.0, 0.0]
    assert sleep.delays == [1.0]


def test_backoff_delay_is_linear():
    assert [EmbeddingBatcher.backoff_delay(n) for n in (1, 2, 3)] == [1.0, 2.0, 3.0]


@pytest.mark.parametrize("kwargs", [
    {"batch_size": 0},
    {"save_interval": 0},
    {"max_attempts": 0},
])
def test_invalid_counts_rejected(kwargs):
    with pytest.raises(ValueError):
        EmbeddingBatcher(FakeProvider(), **kwargs)


def test_from_settings():
    settings = PipelineSettings(batch_size=4, save_interval=2, max_attempts=5, call_timeout_sec=1.5)

    batcher = EmbeddingBatcher.from_settings(FakeProvider(), settings)

    assert batcher.batch_size == 4
    assert batcher.save_interval == 2
    assert batcher.max_attempts == 5
    assert batcher.call_timeout == 1.5
