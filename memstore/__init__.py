"""
memstore - remember shell commands and find them again by meaning.

Store a command together with a short description, then ask for it later
in your own words. Descriptions and queries are embedded and compared by
cosine similarity, so "diff between commits" finds
"git diff HEAD^ HEAD" even without a shared keyword.
"""

from .errors import (
    MemStoreError,
    ValidationError,
    ConfigError,
    StoreError,
    StoreIOError,
    StoreCorruptError,
    DimensionMismatchError,
)

# Memory store
from .memory import (
    MemoryRecord,
    MemorySearchResult,
    RecordStore,
    MemoryManager,
    create_memory_manager,
    rank,
)

# Embedding providers
from .embeddings import (
    EmbeddingProvider,
    EmbeddingError,
    EmbeddingAuthenticationError,
    EmbeddingRateLimitError,
    EmbeddingUnavailableError,
    EmbeddingFactory,
    OpenAIEmbedding,
    HashEmbedding,
    SentenceTransformerEmbedding,
)

# Configuration
from .config import MemConfig, load_config

__version__ = "0.1.0"
__all__ = [
    # Errors
    "MemStoreError",
    "ValidationError",
    "ConfigError",
    "StoreError",
    "StoreIOError",
    "StoreCorruptError",
    "DimensionMismatchError",
    # Memory
    "MemoryRecord",
    "MemorySearchResult",
    "RecordStore",
    "MemoryManager",
    "create_memory_manager",
    "rank",
    # Embeddings
    "EmbeddingProvider",
    "EmbeddingError",
    "EmbeddingAuthenticationError",
    "EmbeddingRateLimitError",
    "EmbeddingUnavailableError",
    "EmbeddingFactory",
    "OpenAIEmbedding",
    "HashEmbedding",
    "SentenceTransformerEmbedding",
    # Config
    "MemConfig",
    "load_config",
]
