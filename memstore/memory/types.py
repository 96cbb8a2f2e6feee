"""
Memory type definitions for the memory store.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


STORE_FORMAT = "memstore"
STORE_VERSION = 1


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parse a datetime from string or return as-is if already datetime.

    Handles ISO format strings including 'Z' suffix for UTC.

    Args:
        value: String or datetime to parse

    Returns:
        Parsed datetime or None
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        # Handle 'Z' suffix for UTC
        if value.endswith('Z'):
            value = value[:-1] + '+00:00'
        return datetime.fromisoformat(value)
    return None


@dataclass
class MemoryRecord:
    """
    A single stored memory.

    Attributes:
        id: Insertion-order identifier assigned by the store
        command: The payload to recall, returned verbatim
        description: Natural-language text the embedding was built from
        embedding: Vector embedding of the description
        created_at: When the memory was stored
    """

    id: int
    command: str
    description: str
    embedding: List[float]
    created_at: datetime = field(default_factory=utc_now)

    @property
    def dimension(self) -> int:
        """Get the embedding dimension."""
        return len(self.embedding)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "command": self.command,
            "description": self.description,
            "embedding": self.embedding,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MemoryRecord":
        """
        Create from dictionary.

        Raises:
            KeyError: If a required field is missing
            TypeError, ValueError: If a field has the wrong type
        """
        record_id = data["id"]
        if isinstance(record_id, bool) or not isinstance(record_id, int):
            raise TypeError(f"id must be an integer, got {record_id!r}")

        command = data["command"]
        description = data["description"]
        if not isinstance(command, str) or not isinstance(description, str):
            raise TypeError("command and description must be strings")

        embedding = data["embedding"]
        if not isinstance(embedding, list):
            raise TypeError("embedding must be a list")
        for value in embedding:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise TypeError(f"embedding values must be numbers, got {value!r}")
            if not math.isfinite(value):
                raise ValueError(f"embedding contains non-finite value {value!r}")

        created_at = parse_datetime(data["created_at"])
        if created_at is None:
            raise ValueError(f"invalid created_at: {data['created_at']!r}")

        return cls(
            id=record_id,
            command=command,
            description=description,
            embedding=[float(v) for v in embedding],
            created_at=created_at,
        )

    def __str__(self) -> str:
        return f"{self.command}\n  # {self.description}"


@dataclass
class StoreHeader:
    """First line of a store file, pinning the embedding dimension."""

    dimension: int
    format: str = STORE_FORMAT
    version: int = STORE_VERSION

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "format": self.format,
            "version": self.version,
            "dimension": self.dimension,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoreHeader":
        """Create from dictionary."""
        if data.get("format") != STORE_FORMAT:
            raise ValueError(f"not a {STORE_FORMAT} header")
        version = data.get("version")
        if version != STORE_VERSION:
            raise ValueError(f"unsupported store version: {version!r}")
        dimension = data.get("dimension")
        if isinstance(dimension, bool) or not isinstance(dimension, int) or dimension <= 0:
            raise ValueError(f"invalid dimension: {dimension!r}")
        return cls(dimension=dimension, format=STORE_FORMAT, version=version)


@dataclass
class MemorySearchResult:
    """
    Result of a memory search.

    Attributes:
        record: The matching memory record
        score: Cosine similarity between query and record, in [-1, 1]
    """

    record: MemoryRecord
    score: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.record.id,
            "command": self.record.command,
            "description": self.record.description,
            "created_at": self.record.created_at.isoformat(),
            "score": self.score,
        }

    def __str__(self) -> str:
        return f"[{self.score:.3f}] {self.record}"
