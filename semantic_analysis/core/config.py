"""
Pipeline configuration.

Module-level values are the environment defaults. Components never read them
directly: load_settings() builds one PipelineSettings at process start and it
is passed into each component's constructor.
"""

import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator

load_dotenv()

# Embedding provider configuration
EMBED_PROVIDER = os.getenv("EMBED_PROVIDER", "openai")  # openai|ollama|sentence_transformer|hash
EMBED_MODEL_NAME = os.getenv("EMBED_MODEL_NAME")  # None = provider default
OLLAMA_HOST = os.getenv("OLLAMA_HOST")

# Batching, checkpointing and retry
EMBED_BATCH_SIZE = int(os.getenv("EMBED_BATCH_SIZE", "10"))
EMBED_SAVE_INTERVAL = int(os.getenv("EMBED_SAVE_INTERVAL", "10"))
EMBED_MAX_ATTEMPTS = int(os.getenv("EMBED_MAX_ATTEMPTS", "3"))
EMBED_CALL_TIMEOUT_SEC = float(os.getenv("EMBED_CALL_TIMEOUT_SEC", "60"))

# Similarity and plotting
PLOT_WIDTH = float(os.getenv("PLOT_WIDTH", "536.0"))
SIMILARITY_MAX_WORKERS = int(os.getenv("SIMILARITY_MAX_WORKERS", "0"))  # 0 = available CPUs

# File layout
DATA_PREPROCESSING_DIR = os.getenv("DATA_PREPROCESSING_DIR", "data/raw")
EXTRACTED_DATA_DIR = os.getenv("EXTRACTED_DATA_DIR", "data/extracted")
EMBEDDINGS_DIR = os.getenv("EMBEDDINGS_DIR", "data/embeddings")
VECTOR_FILE_1 = os.getenv("VECTOR_FILE_1", "embeddings_1.csv")
VECTOR_FILE_2 = os.getenv("VECTOR_FILE_2", "embeddings_2.csv")
OUTPUT_DIR = os.getenv("OUTPUT_DIR", "output")
SIMILARITY_FILE = os.getenv("SIMILARITY_FILE", "similarity.csv")
PLOT_DIR = os.getenv("PLOT_DIR", "output/plots")
PLOT_FILE = os.getenv("PLOT_FILE", "scatter_plot.png")
SUPPORTED_EXTENSIONS = os.getenv(
    "SUPPORTED_EXTENSIONS", ".txt,.csv,.json,.xml,.html,.htm,.md,.pdf,.docx"
)

VALID_PROVIDERS = ["openai", "ollama", "sentence_transformer", "hash"]
DEFAULT_MODELS = {
    "openai": "text-embedding-3-large",
    "ollama": "nomic-embed-text",
    "sentence_transformer": "all-mpnet-base-v2",
    "hash": "sha256",
}

# Version string
VERSION = "1.0.0"


class PipelineSettings(BaseModel):
    """Validated configuration shared by every pipeline component."""

    model_config = ConfigDict(frozen=True)

    embed_provider: str = "openai"
    embed_model_name: Optional[str] = None
    openai_api_key: Optional[str] = None
    ollama_host: Optional[str] = None

    batch_size: int = 10
    save_interval: int = 10
    max_attempts: int = 3
    call_timeout_sec: float = 60.0

    plot_width: float = 536.0
    similarity_max_workers: int = 0

    data_preprocessing_dir: Path = Path("data/raw")
    extracted_data_dir: Path = Path("data/extracted")
    embeddings_dir: Path = Path("data/embeddings")
    vector_file_1: str = "embeddings_1.csv"
    vector_file_2: str = "embeddings_2.csv"
    output_dir: Path = Path("output")
    similarity_file: str = "similarity.csv"
    plot_dir: Path = Path("output/plots")
    plot_file: str = "scatter_plot.png"
    supported_extensions: List[str] = [
        ".txt", ".csv", ".json", ".xml", ".html", ".htm", ".md", ".pdf", ".docx"
    ]

    @field_validator('embed_provider')
    @classmethod
    def provider_must_be_known(cls, v):
        v = v.strip().lower()
        if v not in VALID_PROVIDERS:
            raise ValueError(f'embed_provider must be one of: {VALID_PROVIDERS}')
        return v

    @field_validator('batch_size', 'save_interval', 'max_attempts')
    @classmethod
    def must_be_positive_count(cls, v):
        if v < 1:
            raise ValueError('must be >= 1')
        return v

    @field_validator('call_timeout_sec', 'plot_width')
    @classmethod
    def must_be_positive(cls, v):
        if v <= 0:
            raise ValueError('must be > 0')
        return v

    @field_validator('similarity_max_workers')
    @classmethod
    def workers_not_negative(cls, v):
        if v < 0:
            raise ValueError('must be >= 0')
        return v

    @field_validator('supported_extensions')
    @classmethod
    def extensions_lowercase_dotted(cls, v):
        cleaned = []
        for ext in v:
            ext = ext.strip().lower()
            if not ext:
                continue
            cleaned.append(ext if ext.startswith(".") else f".{ext}")
        return cleaned

    @property
    def vector_path_1(self) -> Path:
        return self.embeddings_dir / self.vector_file_1

    @property
    def vector_path_2(self) -> Path:
        return self.embeddings_dir / self.vector_file_2

    @property
    def similarity_path(self) -> Path:
        return self.output_dir / self.similarity_file

    @property
    def plot_path(self) -> Path:
        return self.plot_dir / self.plot_file

    @property
    def resolved_model_name(self) -> str:
        """Configured model, or the provider's default."""
        return self.embed_model_name or DEFAULT_MODELS[self.embed_provider]

    @property
    def worker_count(self) -> int:
        """Resolved similarity worker pool size."""
        return self.similarity_max_workers or (os.cpu_count() or 1)


def load_settings(**overrides) -> PipelineSettings:
    """
    Build settings from the environment, applying explicit overrides.

    The environment is read at call time so a .env change or a test's
    monkeypatched variable is honored.
    """
    values = {
        "embed_provider": os.getenv("EMBED_PROVIDER", EMBED_PROVIDER),
        "embed_model_name": os.getenv("EMBED_MODEL_NAME", EMBED_MODEL_NAME),
        "openai_api_key": os.getenv("OPENAI_API_KEY"),
        "ollama_host": os.getenv("OLLAMA_HOST", OLLAMA_HOST),
        "batch_size": os.getenv("EMBED_BATCH_SIZE", EMBED_BATCH_SIZE),
        "save_interval": os.getenv("EMBED_SAVE_INTERVAL", EMBED_SAVE_INTERVAL),
        "max_attempts": os.getenv("EMBED_MAX_ATTEMPTS", EMBED_MAX_ATTEMPTS),
        "call_timeout_sec": os.getenv("EMBED_CALL_TIMEOUT_SEC", EMBED_CALL_TIMEOUT_SEC),
        "plot_width": os.getenv("PLOT_WIDTH", PLOT_WIDTH),
        "similarity_max_workers": os.getenv("SIMILARITY_MAX_WORKERS", SIMILARITY_MAX_WORKERS),
        "data_preprocessing_dir": os.getenv("DATA_PREPROCESSING_DIR", DATA_PREPROCESSING_DIR),
        "extracted_data_dir": os.getenv("EXTRACTED_DATA_DIR", EXTRACTED_DATA_DIR),
        "embeddings_dir": os.getenv("EMBEDDINGS_DIR", EMBEDDINGS_DIR),
        "vector_file_1": os.getenv("VECTOR_FILE_1", VECTOR_FILE_1),
        "vector_file_2": os.getenv("VECTOR_FILE_2", VECTOR_FILE_2),
        "output_dir": os.getenv("OUTPUT_DIR", OUTPUT_DIR),
        "similarity_file": os.getenv("SIMILARITY_FILE", SIMILARITY_FILE),
        "plot_dir": os.getenv("PLOT_DIR", PLOT_DIR),
        "plot_file": os.getenv("PLOT_FILE", PLOT_FILE),
        "supported_extensions": os.getenv("SUPPORTED_EXTENSIONS", SUPPORTED_EXTENSIONS).split(","),
    }
    values.update({k: v for k, v in overrides.items() if v is not None})
    return PipelineSettings(**values)


def get_embedding_provider(settings: PipelineSettings):
    """Get the configured embedding provider implementation."""
    provider = settings.embed_provider

    if provider == "openai":
        from semantic_analysis.vector.embeddings import OpenAIEmbedding
        return OpenAIEmbedding(
            model_name=settings.resolved_model_name,
            api_key=settings.openai_api_key,
            timeout=settings.call_timeout_sec,
        )
    elif provider == "ollama":
        from semantic_analysis.vector.embeddings import OllamaEmbedding
        return OllamaEmbedding(
            model_name=settings.resolved_model_name,
            host=settings.ollama_host,
            timeout=settings.call_timeout_sec,
        )
    elif provider == "sentence_transformer":
        from semantic_analysis.vector.embeddings import SentenceTransformerEmbedding
        return SentenceTransformerEmbedding(model_name=settings.resolved_model_name)
    else:
        from semantic_analysis.vector.embeddings import DeterministicHashEmbedding
        return DeterministicHashEmbedding()
