"""
Configuration loading - environment defaults, overrides and validation.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from semantic_analysis.core.config import (
    DEFAULT_MODELS,
    PipelineSettings,
    get_embedding_provider,
    load_settings,
)
from semantic_analysis.vector.embeddings import (
    DeterministicHashEmbedding,
    OllamaEmbedding,
    OpenAIEmbedding,
    SentenceTransformerEmbedding,
)

ENV_VARS = [
    "EMBED_PROVIDER", "EMBED_MODEL_NAME", "OPENAI_API_KEY", "OLLAMA_HOST",
    "EMBED_BATCH_SIZE", "EMBED_SAVE_INTERVAL", "EMBED_MAX_ATTEMPTS", "EMBED_CALL_TIMEOUT_SEC",
    "PLOT_WIDTH", "SIMILARITY_MAX_WORKERS", "EMBEDDINGS_DIR", "OUTPUT_DIR", "PLOT_DIR",
    "SUPPORTED_EXTENSIONS",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    settings = load_settings()

    assert settings.embed_provider == "openai"
    assert settings.batch_size == 10
    assert settings.save_interval == 10
    assert settings.max_attempts == 3
    assert settings.call_timeout_sec == 60.0
    assert settings.plot_width == 536.0
    assert settings.resolved_model_name == "text-embedding-3-large"
    assert settings.vector_path_1 == Path("data/embeddings/embeddings_1.csv")
    assert settings.similarity_path == Path("output/similarity.csv")
    assert settings.plot_path == Path("output/plots/scatter_plot.png")


def test_environment_values(clean_env):
    clean_env.setenv("EMBED_PROVIDER", "Ollama")
    clean_env.setenv("EMBED_BATCH_SIZE", "25")
    clean_env.setenv("PLOT_WIDTH", "800")
    clean_env.setenv("SUPPORTED_EXTENSIONS", "TXT, .Md")

    settings = load_settings()

    assert settings.embed_provider == "ollama"
    assert settings.batch_size == 25
    assert settings.plot_width == 800.0
    assert settings.supported_extensions == [".txt", ".md"]
    assert settings.resolved_model_name == DEFAULT_MODELS["ollama"]


def test_overrides_win_and_none_is_ignored(clean_env):
    clean_env.setenv("EMBED_BATCH_SIZE", "25")

    settings = load_settings(batch_size=3, max_attempts=None)

    assert settings.batch_size == 3
    assert settings.max_attempts == 3


def test_explicit_model_name(clean_env):
    clean_env.setenv("EMBED_MODEL_NAME", "text-embedding-3-small")
    assert load_settings().resolved_model_name == "text-embedding-3-small"


@pytest.mark.parametrize("field,value", [
    ("embed_provider", "unknown"),
    ("batch_size", 0),
    ("save_interval", -1),
    ("max_attempts", 0),
    ("call_timeout_sec", 0),
    ("plot_width", -5.0),
    ("similarity_max_workers", -1),
])
def test_invalid_values_rejected(field, value):
    with pytest.raises(ValidationError):
        PipelineSettings(**{field: value})


def test_settings_are_frozen():
    settings = PipelineSettings()
    with pytest.raises(ValidationError):
        settings.batch_size = 99


def test_worker_count_defaults_to_cpus():
    assert PipelineSettings(similarity_max_workers=3).worker_count == 3
    assert PipelineSettings().worker_count >= 1


@pytest.mark.parametrize("provider,expected", [
    ("openai", OpenAIEmbedding),
    ("ollama", OllamaEmbedding),
    ("sentence_transformer", SentenceTransformerEmbedding),
    ("hash", DeterministicHashEmbedding),
])
def test_provider_factory(provider, expected):
    embedder = get_embedding_provider(PipelineSettings(embed_provider=provider, openai_api_key="sk-test"))
    assert isinstance(embedder, expected)


def test_openai_provider_receives_settings():
    settings = PipelineSettings(embed_model_name="text-embedding-3-small", openai_api_key="sk-test",
                                call_timeout_sec=5.0)

    embedder = get_embedding_provider(settings)

    assert embedder.model_name == "text-embedding-3-small"
    assert embedder.api_key == "sk-test"
    assert embedder.timeout == 5.0


def test_ollama_provider_receives_timeout():
    settings = PipelineSettings(embed_provider="ollama", ollama_host="http://gpu-box:11434", call_timeout_sec=12.0)

    embedder = get_embedding_provider(settings)

    assert embedder.host == "http://gpu-box:11434"
    assert embedder.timeout == 12.0
    assert embedder.model_name == "nomic-embed-text"
