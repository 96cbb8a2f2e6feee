"""
Exact cosine-similarity ranking over stored memories.

Brute force over every candidate: O(N * D) per query, which is fine for a
personal store of a few thousand entries.
"""

import logging
from typing import List, Sequence

import numpy as np

from ..errors import DimensionMismatchError, ValidationError
from .types import MemoryRecord, MemorySearchResult


logger = logging.getLogger(__name__)


def validate_k(k: int) -> int:
    """Ensure ``k`` is a positive integer."""
    if isinstance(k, bool) or not isinstance(k, (int, np.integer)):
        raise ValidationError(f"k must be a positive integer, got {k!r}")
    if k <= 0:
        raise ValidationError(f"k must be a positive integer, got {k}")
    return int(k)


def cosine_similarity(vec1: Sequence[float], vec2: Sequence[float]) -> float:
    """
    Calculate cosine similarity between two vectors.

    Returns 0.0 if either vector has zero magnitude.
    """
    a = np.asarray(vec1, dtype=np.float64)
    b = np.asarray(vec2, dtype=np.float64)
    if a.shape != b.shape:
        raise DimensionMismatchError(a.shape[0], b.shape[0])

    norm = np.linalg.norm(a) * np.linalg.norm(b)
    if norm == 0:
        return 0.0
    return float(np.dot(a, b) / norm)


def rank(
    query_vector: Sequence[float],
    candidates: Sequence[MemoryRecord],
    k: int,
) -> List[MemorySearchResult]:
    """
    Rank candidates by cosine similarity to the query.

    Args:
        query_vector: Embedding of the query text
        candidates: Records to score, in insertion order
        k: Maximum number of results

    Returns:
        At most ``k`` results, highest score first. Equal scores keep
        candidate order. Candidates with a zero vector are left out.

    Raises:
        ValidationError: If ``k`` is not a positive integer
        DimensionMismatchError: If a candidate's dimension differs from the query
    """
    k = validate_k(k)
    if not candidates:
        return []

    query = np.asarray(query_vector, dtype=np.float64)
    dimension = query.shape[0]
    for record in candidates:
        if record.dimension != dimension:
            raise DimensionMismatchError(record.dimension, dimension)

    query_norm = np.linalg.norm(query)
    if query_norm == 0:
        logger.warning("Query embedding has zero magnitude; nothing can be ranked")
        return []

    matrix = np.asarray([record.embedding for record in candidates], dtype=np.float64)
    norms = np.linalg.norm(matrix, axis=1)

    valid = np.flatnonzero(norms > 0)
    if len(valid) < len(candidates):
        logger.warning(f"Skipping {len(candidates) - len(valid)} memories with zero embeddings")
    if len(valid) == 0:
        return []

    scores = (matrix[valid] @ query) / (norms[valid] * query_norm)
    # Stable sort keeps insertion order among equal scores.
    order = np.argsort(-scores, kind="stable")[:k]

    return [
        MemorySearchResult(record=candidates[valid[i]], score=float(scores[i]))
        for i in order
    ]
