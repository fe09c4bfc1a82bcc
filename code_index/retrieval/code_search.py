from typing import List, Dict, Any, Sequence
import logging

from ..indexing.embedding_processor import EmbeddingProcessor
from ..storage import IndexStore
from ..config import DEFAULT_SEARCH_LIMIT, MAX_SEARCH_LIMIT, DEFAULT_SIMILARITY_THRESHOLD


class CodeSearch:
    """Semantic search over a project's indexed chunks"""

    def __init__(self, store: IndexStore, embedding_processor: EmbeddingProcessor = None):
        """
        Initialize Code Search

        Args:
            store: Store holding the project's embedding records
            embedding_processor: Embedding client for queries (created from config if None)
        """
        self.logger = logging.getLogger(__name__)
        self.store = store
        self.embedding_processor = embedding_processor or EmbeddingProcessor()

    def search(self, project_id: str, query: str, languages: Sequence[str] = None,
               directories: Sequence[str] = None, limit: int = DEFAULT_SEARCH_LIMIT,
               similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD) -> List[Dict[str, Any]]:
        """
        Search for code chunks similar to the query

        Args:
            project_id: Project to search
            query: Natural language or code query
            languages: Restrict to these language tags
            directories: Restrict to files under these root-relative directories
            limit: Number of results to return, at most MAX_SEARCH_LIMIT
            similarity_threshold: Minimum cosine similarity (0..1)

        Returns:
            Results with similarity as a percentage rounded to one decimal
        """
        if not query or not query.strip():
            raise ValueError("query must not be empty")

        limit = max(1, min(limit, MAX_SEARCH_LIMIT))
        self.logger.info(f"Searching project {project_id} for: {query}")

        query_embedding = self.embedding_processor.embed_query(query)
        results = self.store.search(
            project_id,
            query_embedding,
            limit,
            languages=languages,
            directories=directories,
            similarity_threshold=similarity_threshold
        )

        formatted_results = [
            {
                'file_path': result.file_path,
                'chunk_text': result.chunk_text,
                'start_line': result.start_line,
                'end_line': result.end_line,
                'language': result.language,
                'similarity': round(result.similarity * 100, 1)
            }
            for result in results
        ]

        self.logger.info(f"Found {len(formatted_results)} results")
        return formatted_results
