"""
Memory Store - persistence and semantic retrieval of short memories.

Key features:
- Append-only JSON Lines storage with a pinned embedding dimension
- Lock file around writes so concurrent CLI invocations don't clobber each other
- Exact cosine-similarity ranking over all stored memories
"""

from .types import (
    MemoryRecord,
    MemorySearchResult,
    StoreHeader,
)

from .storage import (
    RecordStore,
)

from .similarity import (
    cosine_similarity,
    rank,
)

from .manager import (
    MemoryManager,
    create_memory_manager,
)


__all__ = [
    # Types
    "MemoryRecord",
    "MemorySearchResult",
    "StoreHeader",
    # Storage
    "RecordStore",
    # Ranking
    "cosine_similarity",
    "rank",
    # Manager
    "MemoryManager",
    "create_memory_manager",
]
