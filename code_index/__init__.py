"""
Code Index - language-aware chunking, embedding and indexing of source repositories.
"""

__version__ = "0.1.0"

from .models import CodeChunk, EmbeddingRecord, IndexState, IndexStatus, IndexProjectResult, Project, SearchResult
from .exceptions import CodeIndexError, ConfigurationError, EmbeddingError, EmbeddingResponseError, StorageError

__all__ = [
    'CodeChunk',
    'EmbeddingRecord',
    'IndexState',
    'IndexStatus',
    'IndexProjectResult',
    'Project',
    'SearchResult',
    'CodeIndexError',
    'ConfigurationError',
    'EmbeddingError',
    'EmbeddingResponseError',
    'StorageError'
]
