"""
Exception hierarchy shared by the memory store.

Embedding errors live next to the providers in ``memstore.embeddings.base``.
"""

from typing import Optional


class MemStoreError(Exception):
    """Base exception for all memory store errors."""
    pass


class ValidationError(MemStoreError, ValueError):
    """Raised when caller input is empty or out of range."""
    pass


class ConfigError(MemStoreError):
    """Raised when configuration cannot be loaded."""
    pass


class StoreError(MemStoreError):
    """Base exception for record store failures."""
    pass


class StoreIOError(StoreError):
    """Raised when the store file cannot be read, written or locked."""
    pass


class StoreCorruptError(StoreError):
    """Raised when the persisted store cannot be trusted."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        line_number: Optional[int] = None,
    ):
        location = ""
        if path is not None:
            location = path
            if line_number is not None:
                location += f":{line_number}"
            location += ": "
        super().__init__(f"{location}{message}")
        self.path = path
        self.line_number = line_number


class DimensionMismatchError(StoreCorruptError):
    """Raised when an embedding does not have the store's dimension."""

    def __init__(
        self,
        expected: int,
        actual: int,
        path: Optional[str] = None,
        line_number: Optional[int] = None,
    ):
        super().__init__(
            f"Embedding dimension mismatch. Expected: {expected}, Got: {actual}",
            path=path,
            line_number=line_number,
        )
        self.expected = expected
        self.actual = actual
