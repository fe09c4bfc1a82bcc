"""
Abstract base class for embedding providers.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import List, Dict, Any, Tuple


class EmbeddingProvider(Enum):
    """Supported embedding providers"""
    OPENAI = "openai"
    HUGGINGFACE = "huggingface"
    OLLAMA = "ollama"
    SENTENCE_TRANSFORMERS = "sentence_transformers"


class BaseEmbeddingProvider(ABC):
    """Abstract base class for embedding providers.

    A provider makes exactly one request per ``embed_batch`` call and does
    not retry; retries, caching and validation live in EmbeddingProcessor.
    """

    def __init__(self, model_name: str, **kwargs):
        """
        Initialize the embedding provider

        Args:
            model_name: Name of the embedding model
            **kwargs: Provider-specific configuration
        """
        self.model_name = model_name
        self.config = kwargs
        self._dimension = None

    @abstractmethod
    def initialize(self) -> None:
        """Initialize the provider (load model, setup client, etc.)"""
        pass

    @abstractmethod
    def get_embedding_dimension(self) -> int:
        """Get the dimension of the embedding model"""
        pass

    @abstractmethod
    def embed_batch(self, texts: List[str]) -> List[Tuple[int, List[float]]]:
        """
        Generate embeddings for one batch of texts in a single request

        Args:
            texts: Texts to embed, at most the provider's batch limit

        Returns:
            (request_index, vector) pairs; order is not guaranteed
        """
        pass

    def is_rate_limit_error(self, error: Exception) -> bool:
        """Whether an error raised by embed_batch signals rate limiting"""
        status = getattr(error, 'status_code', None) or getattr(error, 'status', None)
        if status == 429:
            return True
        return 'rate limit' in str(error).lower()

    @abstractmethod
    def get_provider_info(self) -> Dict[str, Any]:
        """Get information about the provider"""
        pass

    def validate_model(self) -> bool:
        """Validate if the model is supported (can be overridden)"""
        return True
