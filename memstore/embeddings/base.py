"""
Base Embedding Provider - Abstract base class and errors for embedding providers.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..errors import MemStoreError


class EmbeddingError(MemStoreError):
    """Base exception for embedding-related errors."""
    pass


class EmbeddingAuthenticationError(EmbeddingError):
    """Raised when the API key is missing or rejected."""
    pass


class EmbeddingRateLimitError(EmbeddingError):
    """Raised when rate limit is exceeded."""
    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after


class EmbeddingUnavailableError(EmbeddingError):
    """Raised on timeouts, connection failures and server errors."""
    pass


class EmbeddingProvider(ABC):
    """Abstract base class for embedding providers."""

    name: str = "base"

    @abstractmethod
    def embed(self, text: str) -> List[float]:
        """
        Generate an embedding vector for text.

        Args:
            text: The text to embed

        Returns:
            A list of floats representing the embedding vector

        Raises:
            EmbeddingError: If the embedding could not be produced
        """
        pass

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings for multiple texts.

        Args:
            texts: List of texts to embed

        Returns:
            List of embedding vectors
        """
        return [self.embed(text) for text in texts]

    @property
    @abstractmethod
    def dimension(self) -> Optional[int]:
        """Get the embedding dimension, or None if not known yet."""
        pass

    @property
    def model(self) -> str:
        """Get the model identifier."""
        return self.name

    def __repr__(self) -> str:
        return f"{type(self).__name__}(model={self.model!r})"
