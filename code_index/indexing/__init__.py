"""
Indexing components: discovery, chunking, embedding and orchestration.
"""

from .file_processor import FileProcessor, compute_content_hash
from .chunk_queue import ChunkQueue, QueuedChunk
from .embedding_processor import EmbeddingProcessor, prepare_text
from .index_builder import IndexBuilder, index_project, resolve_project_id

from .chunking import (
    Language, BoundaryProfile, DetectorFactory, detect_language,
    detect_boundaries, chunk_source_code, chunk_file
)
from .embeddings import EmbeddingProviderFactory, BaseEmbeddingProvider, EmbeddingCache

__all__ = [
    'FileProcessor',
    'compute_content_hash',
    'ChunkQueue',
    'QueuedChunk',
    'EmbeddingProcessor',
    'prepare_text',
    'IndexBuilder',
    'index_project',
    'resolve_project_id',
    'Language',
    'BoundaryProfile',
    'DetectorFactory',
    'detect_language',
    'detect_boundaries',
    'chunk_source_code',
    'chunk_file',
    'EmbeddingProviderFactory',
    'BaseEmbeddingProvider',
    'EmbeddingCache'
]
