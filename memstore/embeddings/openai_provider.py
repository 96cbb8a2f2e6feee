"""
OpenAI Embedding Provider - Implementation for the OpenAI embeddings API.
"""

import json
import logging
import os
from typing import List, Optional

from .base import (
    EmbeddingProvider,
    EmbeddingError,
    EmbeddingAuthenticationError,
    EmbeddingRateLimitError,
    EmbeddingUnavailableError,
)


logger = logging.getLogger(__name__)


class OpenAIEmbedding(EmbeddingProvider):
    """
    OpenAI embedding provider.

    Makes exactly one request per call: the SDK's own retries are disabled
    so that MemoryManager decides what to retry.

    Models:
    - text-embedding-3-small: 1536 dimensions (default)
    - text-embedding-3-large: 3072 dimensions, can be reduced
    - text-embedding-ada-002: 1536 dimensions
    """

    name = "openai"

    DEFAULT_MODEL = "text-embedding-3-small"

    MODEL_DEFAULT_DIMENSIONS = {
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
        "text-embedding-ada-002": 1536,
    }

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        dimensions: Optional[int] = None,
        api_base: Optional[str] = None,
        timeout: float = 10.0,
    ):
        """
        Initialize the OpenAI embedding provider.

        Args:
            api_key: OpenAI API key. Falls back to OPENAI_API_KEY at call time.
            model: Embedding model name.
            dimensions: Reduced output dimensions (text-embedding-3 models only).
            api_base: Alternative API base URL.
            timeout: Request timeout in seconds.
        """
        self.api_key = api_key
        self._model = model or self.DEFAULT_MODEL
        self._requested_dimensions = dimensions
        self.api_base = api_base
        self.timeout = timeout
        self._client = None

        if dimensions is not None:
            self._dimension: Optional[int] = dimensions
        else:
            self._dimension = self.MODEL_DEFAULT_DIMENSIONS.get(self._model)

        logger.debug(
            f"OpenAIEmbedding initialized: model={self._model}, dimensions={self._dimension}"
        )

    @property
    def model(self) -> str:
        return self._model

    @property
    def dimension(self) -> Optional[int]:
        return self._dimension

    def _resolve_api_key(self) -> str:
        api_key = self.api_key or os.environ.get("OPENAI_API_KEY")
        if not api_key:
            raise EmbeddingAuthenticationError(
                "No OpenAI API key found. Run `mem set-key <key>` or set OPENAI_API_KEY."
            )
        return api_key

    def _get_client(self):
        """Get or create the OpenAI client."""
        if self._client is None:
            api_key = self._resolve_api_key()
            try:
                import openai
            except ImportError:
                raise EmbeddingError(
                    "OpenAI package not installed. Install with: pip install openai"
                )
            self._client = openai.OpenAI(
                api_key=api_key,
                base_url=self.api_base,
                timeout=self.timeout,
                max_retries=0,
            )
        return self._client

    def embed(self, text: str) -> List[float]:
        """Generate an embedding using OpenAI."""
        return self._create([text])[0]

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """Generate embeddings for multiple texts in one request."""
        if not texts:
            return []
        return self._create(texts)

    def _create(self, inputs: List[str]) -> List[List[float]]:
        client = self._get_client()

        request_params = {
            "model": self._model,
            "input": inputs if len(inputs) > 1 else inputs[0],
        }
        if self._requested_dimensions is not None:
            request_params["dimensions"] = self._requested_dimensions

        try:
            response = client.embeddings.create(**request_params)
        except Exception as e:
            raise self._handle_error(e) from e

        if not response.data or len(response.data) != len(inputs):
            raise EmbeddingError(
                f"Expected {len(inputs)} embeddings from OpenAI, got {len(response.data or [])}"
            )

        # Sort by index to maintain order
        embeddings = [item.embedding for item in sorted(response.data, key=lambda x: x.index)]

        for embedding in embeddings:
            if self._dimension is None:
                self._dimension = len(embedding)
            elif len(embedding) != self._dimension:
                raise EmbeddingError(
                    f"Embedding size is not correct. Expected: {self._dimension}, "
                    f"Got: {len(embedding)}"
                )
        return embeddings

    def _handle_error(self, error: Exception) -> EmbeddingError:
        """Convert OpenAI errors to embedding errors."""
        import openai

        if isinstance(error, (openai.AuthenticationError, openai.PermissionDeniedError)):
            return EmbeddingAuthenticationError(str(error))

        if isinstance(error, openai.RateLimitError):
            return EmbeddingRateLimitError(str(error), self._retry_after(error))

        if isinstance(error, (openai.APIConnectionError, openai.InternalServerError)):
            # APITimeoutError is an APIConnectionError
            return EmbeddingUnavailableError(str(error))

        error_message = str(error)

        # Try to parse error details
        if hasattr(error, "response"):
            try:
                response_json = error.response.json()
                error_message = response_json.get("error", {}).get("message", error_message)
            except (json.JSONDecodeError, AttributeError):
                pass

        lowered = error_message.lower()
        if "rate_limit" in lowered or "rate limit" in lowered:
            return EmbeddingRateLimitError(error_message, self._retry_after(error))
        if "authentication" in lowered or "api_key" in lowered or "api key" in lowered:
            return EmbeddingAuthenticationError(error_message)
        if "timeout" in lowered or "timed out" in lowered or "connection" in lowered:
            return EmbeddingUnavailableError(error_message)

        return EmbeddingError(error_message)

    @staticmethod
    def _retry_after(error: Exception) -> Optional[float]:
        response = getattr(error, "response", None)
        headers = getattr(response, "headers", None)
        if not headers:
            return None
        retry_after_str = headers.get("retry-after")
        if not retry_after_str:
            return None
        try:
            return float(retry_after_str)
        except ValueError:
            return None
