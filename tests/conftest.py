"""
Pytest configuration and shared fixtures.
"""

import multiprocessing
import re
from types import SimpleNamespace
from typing import List

import pytest

from memstore.embeddings import EmbeddingFactory, EmbeddingProvider
from memstore.memory import MemoryManager, RecordStore


# Environment variables read by load_config / OpenAIEmbedding
MEM_ENV_VARS = [
    "MEM_DATA_DIR",
    "MEM_PROVIDER",
    "MEM_MODEL",
    "MEM_TIMEOUT",
    "MEM_MAX_RETRIES",
    "OPENAI_API_KEY",
    "OPENAI_BASE_URL",
]


class KeywordEmbedding(EmbeddingProvider):
    """
    Deterministic embedding over a fixed vocabulary.

    Component 0 is a constant bias so that no text embeds to the zero
    vector; component i + 1 counts words starting with VOCABULARY[i].
    """

    name = "keyword"

    VOCABULARY = [
        "diff", "commit", "file", "list", "hidden",
        "show", "last", "current", "branch", "docker",
    ]

    def __init__(self):
        self.calls: List[str] = []

    @property
    def dimension(self) -> int:
        return len(self.VOCABULARY) + 1

    def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        vector = [0.0] * self.dimension
        vector[0] = 1.0
        for word in re.findall(r"[a-z0-9]+", text.lower()):
            for i, stem in enumerate(self.VOCABULARY):
                if word.startswith(stem):
                    vector[i + 1] += 1.0
        return vector


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's own memstore/OpenAI settings out of the tests."""
    for name in MEM_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fork_context():
    """multiprocessing context for tests that run several processes."""
    if "fork" not in multiprocessing.get_all_start_methods():
        pytest.skip("requires the fork start method")
    return multiprocessing.get_context("fork")


@pytest.fixture
def store_path(tmp_path):
    """Path of a store file that does not exist yet."""
    return tmp_path / "store.jsonl"


@pytest.fixture
def record_store(store_path):
    """Create an empty record store."""
    store = RecordStore(store_path)
    yield store
    store.close()


@pytest.fixture
def keyword_embedding():
    """Create a keyword embedding provider."""
    return KeywordEmbedding()


@pytest.fixture
def memory_manager(record_store, keyword_embedding):
    """Create a memory manager over an empty store."""
    manager = MemoryManager(
        store=record_store,
        embedding_provider=keyword_embedding,
        retry_delay=0,
    )
    yield manager
    manager.close()


@pytest.fixture
def sample_memories():
    """Commands and descriptions used across the tests."""
    return [
        ("git diff HEAD^ HEAD", "show diff between last commit and current commit"),
        ("ls -la", "list all files including hidden ones"),
    ]


@pytest.fixture
def keyword_provider_registered():
    """Register KeywordEmbedding with the factory as provider "keyword"."""
    EmbeddingFactory.register_provider("keyword", KeywordEmbedding)
    yield "keyword"
    EmbeddingFactory._providers.pop("keyword", None)


@pytest.fixture
def embedding_response():
    """Factory for objects shaped like the OpenAI SDK's CreateEmbeddingResponse."""
    def _build(*embeddings, indexes=None):
        indexes = indexes if indexes is not None else range(len(embeddings))
        return SimpleNamespace(
            data=[
                SimpleNamespace(embedding=list(embedding), index=index)
                for embedding, index in zip(embeddings, indexes)
            ]
        )
    return _build
