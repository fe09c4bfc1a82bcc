"""
Abstract interface of the persistent index store.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence

from ..models import Project, EmbeddingRecord, IndexStatus, SearchResult


class IndexStore(ABC):
    """Storage operations the indexing pipeline and search depend on"""

    @abstractmethod
    def register_project(self, project_id: str, name: str, repo_path: str = None) -> Project:
        """Create the project, or update its name/path if it already exists"""
        pass

    @abstractmethod
    def get_project(self, project_id: str) -> Optional[Project]:
        pass

    @abstractmethod
    def delete_embeddings(self, project_id: str, file_path: str) -> int:
        """Delete every record of one file; returns the number removed"""
        pass

    @abstractmethod
    def insert_embeddings(self, records: Sequence[EmbeddingRecord]) -> None:
        pass

    @abstractmethod
    def replace_file_embeddings(self, project_id: str, file_path: str,
                                records: Sequence[EmbeddingRecord]) -> None:
        """
        Swap a file's stored generation for a new one.

        Either the new records replace the old ones or, when the call raises,
        the old generation is left untouched.
        """
        pass

    @abstractmethod
    def get_index_status(self, project_id: str, repo_path: str) -> Optional[IndexStatus]:
        pass

    @abstractmethod
    def upsert_index_status(self, status: IndexStatus) -> None:
        """Update the (project, repo path) record if present, insert it otherwise"""
        pass

    @abstractmethod
    def get_file_hashes(self, project_id: str) -> Dict[str, str]:
        """Map of stored file path to the content hash of its current generation"""
        pass

    @abstractmethod
    def search(self, project_id: str, query_embedding: List[float], limit: int,
               languages: Sequence[str] = None, directories: Sequence[str] = None,
               similarity_threshold: float = 0.0) -> List[SearchResult]:
        """
        Cosine-similarity search over a project's records

        Args:
            project_id: Project to search
            query_embedding: Query vector
            limit: Maximum number of results
            languages: Keep only records with one of these language tags
            directories: Keep only files under one of these root-relative directories
            similarity_threshold: Minimum cosine similarity (0..1)

        Returns:
            Results ordered by descending similarity
        """
        pass

    def get_embedding_dimension(self) -> Optional[int]:
        """Vector dimension the store accepts, None when it does not fix one"""
        return None

    def flush(self) -> None:
        """Persist writes the backend buffers; transactional backends have none"""
        pass

    def close(self) -> None:
        """Release backend resources"""
        pass


def directory_prefixes(directories: Sequence[str]) -> List[str]:
    """Normalize directory filters to 'dir/' prefixes"""
    prefixes = []
    for directory in directories or []:
        cleaned = directory.strip().strip('/')
        if cleaned.startswith('./'):
            cleaned = cleaned[2:]
        if cleaned and cleaned != '.':
            prefixes.append(cleaned + '/')
    return prefixes
