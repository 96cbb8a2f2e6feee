"""
Embedding providers - turn text into fixed-length vectors.

Every provider implements EmbeddingProvider.embed(text) and raises the
EmbeddingError family on failure, so the store and ranking code never see
provider-specific exceptions.
"""

from .base import (
    EmbeddingProvider,
    EmbeddingError,
    EmbeddingAuthenticationError,
    EmbeddingRateLimitError,
    EmbeddingUnavailableError,
)
from .openai_provider import OpenAIEmbedding
from .local import HashEmbedding, SentenceTransformerEmbedding
from .factory import EmbeddingFactory

__all__ = [
    # Core classes
    "EmbeddingProvider",
    "EmbeddingError",
    "EmbeddingAuthenticationError",
    "EmbeddingRateLimitError",
    "EmbeddingUnavailableError",
    # Providers
    "OpenAIEmbedding",
    "HashEmbedding",
    "SentenceTransformerEmbedding",
    "EmbeddingFactory",
]
