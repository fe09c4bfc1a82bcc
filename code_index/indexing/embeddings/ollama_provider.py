"""
Ollama embedding provider implementation.
"""

import logging
from typing import List, Dict, Any, Tuple

try:
    import ollama
    OLLAMA_AVAILABLE = True
except ImportError:
    OLLAMA_AVAILABLE = False

from .base_provider import BaseEmbeddingProvider


class OllamaEmbeddingProvider(BaseEmbeddingProvider):
    """Ollama embedding provider for local models"""

    POPULAR_MODELS = {
        'nomic-embed-text': 768,
        'all-minilm': 384,
        'snowflake-arctic-embed': 1024,
        'mxbai-embed-large': 1024,
        'bge-large': 1024,
        'bge-base': 768,
        'bge-small': 512,
    }

    def __init__(self, model_name: str, host: str = None, **kwargs):
        if not OLLAMA_AVAILABLE:
            raise ImportError(
                "ollama library not installed. "
                "Run: pip install ollama"
            )

        super().__init__(model_name, **kwargs)
        self.host = host or 'http://localhost:11434'
        self.client = None
        self.timeout = kwargs.get('timeout', 30)
        self.logger = logging.getLogger(__name__)

    def initialize(self) -> None:
        """Initialize Ollama client"""
        self.client = ollama.Client(host=self.host, timeout=self.timeout)

        if self._dimension is None and self.model_name not in self.POPULAR_MODELS:
            try:
                response = self.client.embed(model=self.model_name, input=["test"])
                self._dimension = len(response['embeddings'][0])
                self.logger.info(f"Ollama model {self.model_name} loaded successfully. Dimension: {self._dimension}")
            except Exception as e:
                self.logger.error(f"Model {self.model_name} not available at {self.host}: {e}")
                raise

    def get_embedding_dimension(self) -> int:
        """Get the dimension of the embedding model"""
        if self._dimension is None:
            if self.model_name in self.POPULAR_MODELS:
                self._dimension = self.POPULAR_MODELS[self.model_name]
            else:
                self.initialize()
        return self._dimension

    def embed_batch(self, texts: List[str]) -> List[Tuple[int, List[float]]]:
        """Embed a batch with Ollama; results come back in request order"""
        if not self.client:
            self.initialize()

        response = self.client.embed(model=self.model_name, input=texts)
        return [(i, list(vector)) for i, vector in enumerate(response['embeddings'])]

    def get_provider_info(self) -> Dict[str, Any]:
        """Get information about the provider"""
        return {
            'provider': 'ollama',
            'model': self.model_name,
            'dimension': self.get_embedding_dimension(),
            'host': self.host,
            'timeout': self.timeout,
            'popular_models': list(self.POPULAR_MODELS.keys())
        }
