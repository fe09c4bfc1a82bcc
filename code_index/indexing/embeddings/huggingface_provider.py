"""
Hugging Face embedding provider implementation.
"""

import logging
from typing import List, Dict, Any, Tuple
import numpy as np

try:
    from sentence_transformers import SentenceTransformer
    SENTENCE_TRANSFORMERS_AVAILABLE = True
except ImportError:
    SENTENCE_TRANSFORMERS_AVAILABLE = False

from .base_provider import BaseEmbeddingProvider


class HuggingFaceEmbeddingProvider(BaseEmbeddingProvider):
    """Hugging Face embedding provider using sentence-transformers"""

    POPULAR_MODELS = {
        'all-MiniLM-L6-v2': 384,
        'all-mpnet-base-v2': 768,
        'multi-qa-mpnet-base-dot-v1': 768,
        'all-MiniLM-L12-v2': 384,
        'sentence-transformers/all-MiniLM-L6-v2': 384,
        'sentence-transformers/all-mpnet-base-v2': 768,
    }

    def __init__(self, model_name: str, device: str = None, **kwargs):
        if not SENTENCE_TRANSFORMERS_AVAILABLE:
            raise ImportError(
                "sentence-transformers library not installed. "
                "Run: pip install sentence-transformers"
            )

        super().__init__(model_name, **kwargs)
        self.device = device or 'cpu'
        self.model = None
        self.batch_size = kwargs.get('batch_size', 32)
        self.normalize_embeddings = kwargs.get('normalize_embeddings', True)
        self.logger = logging.getLogger(__name__)

    def initialize(self) -> None:
        """Initialize the sentence transformer model"""
        try:
            self.logger.info(f"Loading Hugging Face model: {self.model_name}")
            self.model = SentenceTransformer(self.model_name, device=self.device)
            self._dimension = self.model.get_sentence_embedding_dimension()
            self.logger.info(f"Model loaded successfully. Dimension: {self._dimension}")
        except Exception as e:
            self.logger.error(f"Error loading model {self.model_name}: {e}")
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
        """Encode locally; the model returns rows in input order"""
        if not self.model:
            self.initialize()

        embeddings = self.model.encode(
            texts,
            batch_size=self.batch_size,
            normalize_embeddings=self.normalize_embeddings,
            show_progress_bar=False
        )
        return [(i, np.asarray(row, dtype=np.float32).tolist()) for i, row in enumerate(embeddings)]

    def is_rate_limit_error(self, error: Exception) -> bool:
        # Local inference has no rate limits
        return False

    def get_provider_info(self) -> Dict[str, Any]:
        """Get information about the provider"""
        return {
            'provider': 'huggingface',
            'model': self.model_name,
            'dimension': self.get_embedding_dimension(),
            'device': self.device,
            'batch_size': self.batch_size,
            'normalize_embeddings': self.normalize_embeddings
        }
