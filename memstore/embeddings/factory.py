"""
Embedding Factory - Factory for creating embedding providers.
"""

from typing import Optional

from .base import EmbeddingProvider, EmbeddingError
from .local import HashEmbedding, SentenceTransformerEmbedding
from .openai_provider import OpenAIEmbedding


class EmbeddingFactory:
    """Factory for creating embedding providers."""

    # Mapping of provider names to classes
    _providers = {
        "openai": OpenAIEmbedding,
        "local": SentenceTransformerEmbedding,
        "hash": HashEmbedding,
    }

    @classmethod
    def register_provider(cls, name: str, provider_class: type):
        """
        Register a custom embedding provider.

        Args:
            name: Provider name.
            provider_class: Provider class that inherits from EmbeddingProvider.
        """
        if not issubclass(provider_class, EmbeddingProvider):
            raise ValueError("Provider class must inherit from EmbeddingProvider")
        cls._providers[name.lower()] = provider_class

    @classmethod
    def list_providers(cls) -> list:
        """List registered provider names."""
        return list(cls._providers.keys())

    @classmethod
    def create(
        cls,
        provider: str = "openai",
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        dimensions: Optional[int] = None,
        api_base: Optional[str] = None,
        timeout: float = 10.0,
    ) -> EmbeddingProvider:
        """
        Create an embedding provider instance.

        Args:
            provider: Provider name ("openai", "local", "hash").
            model: Model name (optional, uses provider default if not specified).
            api_key: API key for remote providers.
            dimensions: Output dimensions, where the provider supports choosing them.
            api_base: Alternative API base URL for remote providers.
            timeout: Request timeout in seconds for remote providers.

        Returns:
            Configured embedding provider instance.

        Raises:
            EmbeddingError: If provider is not supported.
        """
        provider_name = provider.lower()

        if provider_name not in cls._providers:
            available = ", ".join(cls._providers.keys())
            raise EmbeddingError(
                f"Unknown embedding provider: {provider}. "
                f"Available providers: {available}"
            )

        provider_class = cls._providers[provider_name]

        if provider_class is OpenAIEmbedding:
            return OpenAIEmbedding(
                api_key=api_key,
                model=model,
                dimensions=dimensions,
                api_base=api_base,
                timeout=timeout,
            )
        if provider_class is SentenceTransformerEmbedding:
            return SentenceTransformerEmbedding(model_name=model)
        if provider_class is HashEmbedding:
            return HashEmbedding(dimension=dimensions or HashEmbedding.DEFAULT_DIMENSION)

        return provider_class()

    @classmethod
    def create_from_config(cls, config) -> EmbeddingProvider:
        """
        Create an embedding provider from a MemConfig.

        Args:
            config: MemConfig instance.

        Returns:
            Configured embedding provider instance.
        """
        return cls.create(
            provider=config.provider,
            model=config.model or None,
            api_key=config.api_key,
            dimensions=config.dimensions,
            api_base=config.api_base,
            timeout=config.timeout,
        )
