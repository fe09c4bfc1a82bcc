"""
OpenAI embedding provider implementation.
"""

import logging
from typing import List, Dict, Any, Tuple

import openai
from openai import OpenAI

from .base_provider import BaseEmbeddingProvider
from ...config import EMBEDDING_MODELS, EMBEDDING_BATCH_SIZE, validate_embedding_model, get_embedding_dimension


class OpenAIEmbeddingProvider(BaseEmbeddingProvider):
    """OpenAI embedding provider"""

    SUPPORTED_MODELS = EMBEDDING_MODELS

    def __init__(self, model_name: str, api_key: str = None, **kwargs):
        super().__init__(model_name, **kwargs)
        self.api_key = api_key
        self.client = kwargs.get('client')
        self.base_url = kwargs.get('base_url')
        self.http_client = kwargs.get('http_client')
        self.batch_size = kwargs.get('batch_size', EMBEDDING_BATCH_SIZE)
        self.logger = logging.getLogger(__name__)

    def initialize(self) -> None:
        """Initialize OpenAI client"""
        if not self.validate_model():
            raise ValueError(f"Unsupported OpenAI model: {self.model_name}")

        if self.client is None:
            # EmbeddingProcessor owns retries and backoff
            self.client = OpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                http_client=self.http_client,
                max_retries=0
            )

        self._dimension = get_embedding_dimension(self.model_name)

    def get_embedding_dimension(self) -> int:
        """Get the dimension of the embedding model"""
        if self._dimension is None:
            self._dimension = self.SUPPORTED_MODELS.get(self.model_name, 1536)
        return self._dimension

    def embed_batch(self, texts: List[str]) -> List[Tuple[int, List[float]]]:
        """One embeddings request; results keep the index OpenAI tagged them with"""
        if not self.client:
            self.initialize()

        self.logger.debug(f"Requesting {len(texts)} embeddings from {self.model_name}")

        response = self.client.embeddings.create(
            input=texts,
            model=self.model_name
        )

        return [(item.index, list(item.embedding)) for item in response.data]

    def is_rate_limit_error(self, error: Exception) -> bool:
        if isinstance(error, openai.RateLimitError):
            return True
        return super().is_rate_limit_error(error)

    def validate_model(self) -> bool:
        """Validate if the model is supported"""
        return validate_embedding_model(self.model_name)

    def get_provider_info(self) -> Dict[str, Any]:
        """Get information about the provider"""
        return {
            'provider': 'openai',
            'model': self.model_name,
            'dimension': self.get_embedding_dimension(),
            'batch_size': self.batch_size,
            'supported_models': list(self.SUPPORTED_MODELS.keys())
        }
