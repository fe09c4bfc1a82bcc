"""
Embedding providers and the process-local embedding cache.
"""

from .base_provider import BaseEmbeddingProvider, EmbeddingProvider
from .cache import EmbeddingCache, hash_text
from .openai_provider import OpenAIEmbeddingProvider
from .huggingface_provider import HuggingFaceEmbeddingProvider
from .ollama_provider import OllamaEmbeddingProvider
from .provider_factory import EmbeddingProviderFactory

__all__ = [
    'BaseEmbeddingProvider',
    'EmbeddingProvider',
    'EmbeddingCache',
    'hash_text',
    'OpenAIEmbeddingProvider',
    'HuggingFaceEmbeddingProvider',
    'OllamaEmbeddingProvider',
    'EmbeddingProviderFactory'
]
