"""
Embedding providers that run without a remote API.
"""

import hashlib
import logging
import re
from typing import List, Optional, Tuple

import numpy as np

from .base import EmbeddingProvider, EmbeddingError, EmbeddingUnavailableError


logger = logging.getLogger(__name__)


class HashEmbedding(EmbeddingProvider):
    """
    Signed feature-hashing embedding provider.

    Deterministic and offline: each word of three or more characters is
    hashed into one of ``dimension`` buckets with a +1/-1 sign, and the
    bucket counts are L2 normalized. Similarity only reflects shared words,
    so it stands in for a semantic model when no network is available.
    """

    name = "hash"

    DEFAULT_DIMENSION = 256
    MIN_WORD_LENGTH = 3

    _WORD_RE = re.compile(r"[^\W_]+")

    def __init__(self, dimension: int = DEFAULT_DIMENSION):
        if dimension <= 0:
            raise ValueError("dimension must be positive")
        self._dimension = dimension

    @property
    def model(self) -> str:
        return f"hash-{self._dimension}"

    @property
    def dimension(self) -> int:
        return self._dimension

    def embed(self, text: str) -> List[float]:
        """
        Hash the words of ``text`` into a unit vector.

        Text without any usable word maps to the zero vector, which the
        ranking step leaves out.
        """
        counts = np.zeros(self._dimension, dtype=np.float64)
        for word in self.words(text):
            bucket, sign = self._bucket(word)
            counts[bucket] += sign

        norm = np.linalg.norm(counts)
        if norm > 0:
            counts /= norm
        return counts.tolist()

    def words(self, text: str) -> List[str]:
        """Lowercase words long enough to carry meaning."""
        return [
            word for word in self._WORD_RE.findall(text.lower())
            if len(word) >= self.MIN_WORD_LENGTH
        ]

    def _bucket(self, word: str) -> Tuple[int, int]:
        digest = hashlib.blake2b(word.encode("utf-8"), digest_size=8).digest()
        value = int.from_bytes(digest, "big")
        # Lowest bit picks the sign, the rest picks the bucket.
        sign = 1 if value & 1 else -1
        return (value >> 1) % self._dimension, sign


class SentenceTransformerEmbedding(EmbeddingProvider):
    """
    Local transformer model via sentence-transformers.

    The model is downloaded and loaded on first use. Install the optional
    dependency with ``pip install memstore[local]``.
    """

    name = "local"

    DEFAULT_MODEL = "all-MiniLM-L6-v2"

    def __init__(self, model_name: Optional[str] = None):
        self.model_name = model_name or self.DEFAULT_MODEL
        self._encoder = None
        self._dimension: Optional[int] = None

    @property
    def model(self) -> str:
        return self.model_name

    @property
    def dimension(self) -> Optional[int]:
        """Known once the model has been loaded."""
        return self._dimension

    def _load(self):
        if self._encoder is None:
            try:
                from sentence_transformers import SentenceTransformer
            except ImportError as e:
                raise EmbeddingError(
                    "sentence-transformers not installed. "
                    "Install with: pip install memstore[local]"
                ) from e
            try:
                self._encoder = SentenceTransformer(self.model_name)
            except Exception as e:
                raise EmbeddingUnavailableError(
                    f"Failed to load sentence-transformers model {self.model_name}: {e}"
                ) from e
            self._dimension = self._encoder.get_sentence_embedding_dimension()
            logger.info(f"Loaded sentence-transformers model {self.model_name} ({self._dimension} dims)")
        return self._encoder

    def embed(self, text: str) -> List[float]:
        return self._encode(text).tolist()

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []
        return [row.tolist() for row in self._encode(texts)]

    def _encode(self, inputs):
        encoder = self._load()
        try:
            return encoder.encode(inputs, convert_to_numpy=True)
        except Exception as e:
            raise EmbeddingError(f"sentence-transformers failed to encode: {e}") from e
