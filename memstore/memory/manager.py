"""
Memory Manager - High-level interface for the memory store.

Embeds descriptions on insert, embeds queries on lookup and ranks the
stored memories against them.
"""

import logging
import time
from typing import List, Optional

from ..embeddings.base import (
    EmbeddingProvider,
    EmbeddingError,
    EmbeddingRateLimitError,
    EmbeddingUnavailableError,
)
from ..embeddings.factory import EmbeddingFactory
from ..errors import DimensionMismatchError, ValidationError
from .similarity import rank, validate_k
from .storage import RecordStore
from .types import MemorySearchResult


logger = logging.getLogger(__name__)


class MemoryManager:
    """
    High-level memory store interface.

    The manager owns no state of its own: everything durable lives in the
    RecordStore handed to it.

    Example usage:
        with create_memory_manager(load_config()) as manager:
            manager.insert("git diff HEAD^ HEAD", "show diff between last two commits")
            best = manager.get_best("diff between commits")
            if best:
                print(best.record.command)
    """

    DEFAULT_COUNT = 10

    def __init__(
        self,
        store: RecordStore,
        embedding_provider: EmbeddingProvider,
        max_retries: int = 3,
        retry_delay: float = 1.0,
    ):
        """
        Initialize the memory manager.

        Args:
            store: Record store holding the memories.
            embedding_provider: Provider used for descriptions and queries.
            max_retries: Attempts per embedding request for transient failures.
            retry_delay: Base delay in seconds for exponential backoff.
        """
        if max_retries < 1:
            raise ValidationError("max_retries must be at least 1")
        self._store = store
        self._embedding_provider = embedding_provider
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    @property
    def store(self) -> RecordStore:
        """Get the record store."""
        return self._store

    @property
    def embedding_provider(self) -> EmbeddingProvider:
        """Get the embedding provider."""
        return self._embedding_provider

    # ========== Core Memory Operations ==========

    def insert(self, command: str, description: str) -> int:
        """
        Store a new memory.

        Args:
            command: The memory to store, returned verbatim on retrieval
            description: Description used for semantic retrieval

        Returns:
            The id of the stored memory

        Raises:
            ValidationError: If either text is empty
            EmbeddingError: If the description could not be embedded; nothing is stored
            StoreError: If the memory could not be persisted
        """
        _require_text(command, "memory")
        _require_text(description, "description")

        embedding = self._embed(description)
        record = self._store.append(command, description, embedding)

        logger.info(f"Inserted memory {record.id}")
        return record.id

    def query(self, query_text: str, k: int = DEFAULT_COUNT) -> List[MemorySearchResult]:
        """
        Find the memories whose descriptions best match a query.

        Args:
            query_text: Description of the memory being looked for
            k: Maximum number of results

        Returns:
            At most k results ordered by descending similarity; empty if
            the store is empty
        """
        _require_text(query_text, "query")
        k = validate_k(k)

        candidates = self._store.all()
        if not candidates:
            return []

        query_embedding = self._embed(query_text)

        dimension = self._store.dimension
        if dimension is not None and len(query_embedding) != dimension:
            raise DimensionMismatchError(
                dimension, len(query_embedding), path=str(self._store.path)
            )

        results = rank(query_embedding, candidates, k)
        logger.debug(f"Ranked {len(candidates)} memories, returning {len(results)}")
        return results

    def get_best(self, query_text: str) -> Optional[MemorySearchResult]:
        """
        Get the single best matching memory.

        Returns:
            The top result, or None if the store is empty
        """
        results = self.query(query_text, k=1)
        return results[0] if results else None

    def count(self) -> int:
        """Get the number of stored memories."""
        return len(self._store)

    # ========== Embedding ==========

    def _embed(self, text: str) -> List[float]:
        """
        Embed text, retrying rate limits and transient failures.

        Authentication failures and other embedding errors are raised
        immediately.
        """
        last_error: Optional[EmbeddingError] = None
        for attempt in range(self.max_retries):
            try:
                return self._embedding_provider.embed(text)
            except EmbeddingRateLimitError as e:
                last_error = e
                wait_time = e.retry_after or (self.retry_delay * (2 ** attempt))
            except EmbeddingUnavailableError as e:
                last_error = e
                wait_time = self.retry_delay * (2 ** attempt)

            if attempt < self.max_retries - 1:
                logger.warning(
                    f"Embedding request failed ({last_error}). "
                    f"Waiting {wait_time}s before retry {attempt + 2}/{self.max_retries}..."
                )
                time.sleep(wait_time)

        raise last_error or EmbeddingError("Max retries exceeded")

    # ========== Lifecycle ==========

    def close(self):
        """Close the memory manager and release resources."""
        self._store.close()

    def __enter__(self) -> "MemoryManager":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def _require_text(value: str, name: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{name} must not be empty")


def create_memory_manager(config) -> MemoryManager:
    """
    Build a MemoryManager from a MemConfig.

    Args:
        config: MemConfig instance

    Returns:
        Configured MemoryManager with its store loaded
    """
    store = RecordStore(config.store_path, lock_timeout=config.lock_timeout)
    provider = EmbeddingFactory.create_from_config(config)
    return MemoryManager(
        store=store,
        embedding_provider=provider,
        max_retries=config.max_retries,
        retry_delay=config.retry_delay,
    )
