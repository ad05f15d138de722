"""
Embedding providers. Every provider exposes single-item and batched calls so
the batcher can fall back from one to the other.
"""

from abc import ABC, abstractmethod
import hashlib
from typing import List, Optional, Sequence

import ollama
import openai

from ..core.errors import EmbeddingServiceError


class IEmbeddingProvider(ABC):
    """Abstract interface for embedding providers."""

    @abstractmethod
    def embed_text(self, text: str) -> List[float]:
        """Generate embedding vector for given text."""
        pass

    def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        """Generate embedding vectors for several texts, in input order."""
        return [self.embed_text(text) for text in texts]

    @abstractmethod
    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        pass


class DeterministicHashEmbedding(IEmbeddingProvider):
    """Deterministic hash-based embedding provider for testing purposes.

    Vectors are derived from chained SHA-256 digests of the text, so the same
    input always produces the same vector without any model or network.
    """

    def __init__(self, dimension: int = 384):
        self.dimension = dimension

    def embed_text(self, text: str) -> List[float]:
        """Generate deterministic embedding vector using hash function."""
        vector = []
        counter = 0
        while len(vector) < self.dimension:
            digest = hashlib.sha256(f"{counter}:{text}".encode("utf-8")).digest()
            for i in range(0, len(digest), 4):
                if len(vector) >= self.dimension:
                    break
                value = int.from_bytes(digest[i:i + 4], "big")
                # Map to [-1, 1]
                vector.append((value / (2**32)) * 2 - 1)
            counter += 1

        return vector

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        return self.dimension


class OpenAIEmbedding(IEmbeddingProvider):
    """OpenAI embeddings API provider (text-embedding-3-large by default)."""

    KNOWN_DIMENSIONS = {
        "text-embedding-3-large": 3072,
        "text-embedding-3-small": 1536,
        "text-embedding-ada-002": 1536,
    }

    def __init__(self, model_name: str = "text-embedding-3-large", api_key: Optional[str] = None,
                 timeout: float = 60.0, client=None):
        self.model_name = model_name
        self.api_key = api_key
        self.timeout = timeout
        self._client = client
        self._dimension = self.KNOWN_DIMENSIONS.get(model_name)

    @property
    def client(self):
        if self._client is None:
            if not self.api_key:
                raise EmbeddingServiceError("OPENAI_API_KEY is not set")
            self._client = openai.OpenAI(api_key=self.api_key, timeout=self.timeout)
        return self._client

    def embed_text(self, text: str) -> List[float]:
        """Generate embedding vector with a single-input request."""
        return self.embed_batch([text])[0]

    def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        """Generate embeddings for a batch with one request."""
        try:
            response = self.client.embeddings.create(input=list(texts), model=self.model_name)
        except openai.OpenAIError as e:
            raise EmbeddingServiceError(f"OpenAI embedding request failed: {e}") from e

        # The API tags each item with its input position
        items = sorted(response.data, key=lambda item: item.index)
        return [list(item.embedding) for item in items]

    def get_dimension(self) -> int:
        if self._dimension is None:
            self._dimension = len(self.embed_text("test"))
        return self._dimension


class OllamaEmbedding(IEmbeddingProvider):
    """Embeddings from a local Ollama server."""

    def __init__(self, model_name: str = "nomic-embed-text", host: Optional[str] = None,
                 timeout: float = 60.0, client=None):
        self.model_name = model_name
        self.host = host
        self.timeout = timeout
        self._client = client
        self._dimension = None

    @property
    def client(self):
        if self._client is None:
            self._client = ollama.Client(host=self.host, timeout=self.timeout)
        return self._client

    def embed_text(self, text: str) -> List[float]:
        return self.embed_batch([text])[0]

    def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        try:
            response = self.client.embed(model=self.model_name, input=list(texts))
        except ollama.ResponseError as e:
            raise EmbeddingServiceError(f"Ollama model error: {e}") from e
        except ConnectionError as e:
            raise EmbeddingServiceError(f"Ollama server unreachable: {e}") from e

        return [list(vector) for vector in response["embeddings"]]

    def get_dimension(self) -> int:
        if self._dimension is None:
            self._dimension = len(self.embed_text("test"))
        return self._dimension


class SentenceTransformerEmbedding(IEmbeddingProvider):
    """Sentence transformers embedding provider using pre-trained models.

    Runs in-process; the model is loaded on first use.
    """

    def __init__(self, model_name: str = "all-mpnet-base-v2"):
        self.model_name = model_name
        self._model = None
        self._dimension = None

    @property
    def model(self):
        if self._model is None:
            from sentence_transformers import SentenceTransformer
            self._model = SentenceTransformer(self.model_name)
        return self._model

    def embed_text(self, text: str) -> List[float]:
        """Generate embedding vector using sentence transformers."""
        embedding = self.model.encode(text, convert_to_tensor=False)
        return embedding.tolist()

    def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        embeddings = self.model.encode(list(texts), convert_to_numpy=True)
        return embeddings.tolist()

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        if self._dimension is None:
            self._dimension = self.model.get_sentence_embedding_dimension()
        return self._dimension
