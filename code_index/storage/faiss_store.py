from dataclasses import replace
from typing import Dict, List, Optional, Sequence, Tuple
import logging
import os

import faiss
import pickle
import numpy as np

from .base import IndexStore, directory_prefixes
from ..config import EMBEDDING_DIMENSION
from ..exceptions import StorageError
from ..models import Project, EmbeddingRecord, IndexStatus, SearchResult


class FaissIndexStore(IndexStore):
    """Process-local store: FAISS inner-product index over normalized vectors.

    Each record gets a stable int64 id so a file's previous generation can be
    removed from the index before the new one is added.
    """

    def __init__(self, dimension: int):
        self.dimension = dimension
        self.index = faiss.IndexIDMap2(faiss.IndexFlatIP(dimension))
        self.records: Dict[int, EmbeddingRecord] = {}
        self.projects: Dict[str, Project] = {}
        self.statuses: Dict[Tuple[str, str], IndexStatus] = {}
        self._next_id = 0
        self.logger = logging.getLogger(__name__)

    def register_project(self, project_id: str, name: str, repo_path: str = None) -> Project:
        project = Project(project_id=project_id, name=name, repo_path=repo_path)
        self.projects[project_id] = project
        return project

    def get_project(self, project_id: str) -> Optional[Project]:
        return self.projects.get(project_id)

    def get_embedding_dimension(self) -> int:
        return self.dimension

    def delete_embeddings(self, project_id: str, file_path: str) -> int:
        ids = self._record_ids(project_id, file_path)
        if not ids:
            return 0

        self.index.remove_ids(np.array(ids, dtype='int64'))
        for record_id in ids:
            del self.records[record_id]
        return len(ids)

    def insert_embeddings(self, records: Sequence[EmbeddingRecord]) -> None:
        if not records:
            return
        self._add(records, self._normalized_vectors(records))

    def replace_file_embeddings(self, project_id: str, file_path: str,
                                records: Sequence[EmbeddingRecord]) -> None:
        # Validate before anything is removed so a bad generation leaves the old one in place
        vectors = self._normalized_vectors(records) if records else None
        self.delete_embeddings(project_id, file_path)
        if records:
            self._add(records, vectors)

    def _record_ids(self, project_id: str, file_path: str) -> List[int]:
        return [
            record_id for record_id, record in self.records.items()
            if record.project_id == project_id and record.file_path == file_path
        ]

    def _normalized_vectors(self, records: Sequence[EmbeddingRecord]) -> np.ndarray:
        try:
            vectors = np.array([record.embedding for record in records], dtype='float32')
        except ValueError as e:
            raise StorageError(f"Embeddings of unequal length: {e}") from e
        if vectors.ndim != 2 or vectors.shape[1] != self.dimension:
            raise StorageError(
                f"Embedding dimension mismatch: store expects {self.dimension}, got {vectors.shape[-1]}"
            )

        norms = np.linalg.norm(vectors, axis=1, keepdims=True)
        norms[norms == 0] = 1.0
        return vectors / norms

    def _add(self, records: Sequence[EmbeddingRecord], vectors: np.ndarray) -> None:
        ids = np.arange(self._next_id, self._next_id + len(records), dtype='int64')
        self.index.add_with_ids(vectors, ids)
        for record_id, record in zip(ids.tolist(), records):
            self.records[record_id] = record
        self._next_id += len(records)

        self.logger.debug(f"Added {len(records)} records to vector store")

    def get_index_status(self, project_id: str, repo_path: str) -> Optional[IndexStatus]:
        status = self.statuses.get((project_id, repo_path))
        return replace(status) if status else None

    def upsert_index_status(self, status: IndexStatus) -> None:
        self.statuses[(status.project_id, status.repo_path)] = replace(status)

    def get_file_hashes(self, project_id: str) -> Dict[str, str]:
        return {
            record.file_path: record.file_hash
            for record in self.records.values()
            if record.project_id == project_id
        }

    def search(self, project_id: str, query_embedding: List[float], limit: int,
               languages: Sequence[str] = None, directories: Sequence[str] = None,
               similarity_threshold: float = 0.0) -> List[SearchResult]:
        if self.index.ntotal == 0 or limit <= 0:
            return []

        query = np.array(query_embedding, dtype='float32').reshape(1, -1)
        norm = np.linalg.norm(query)
        if norm > 0:
            query = query / norm

        # Filters are applied after the scan, so rank the whole index
        scores, ids = self.index.search(query, self.index.ntotal)

        language_set = set(languages or [])
        prefixes = directory_prefixes(directories)

        results = []
        for score, record_id in zip(scores[0], ids[0]):
            if record_id < 0:
                continue
            record = self.records.get(int(record_id))
            if record is None or record.project_id != project_id:
                continue
            if language_set and record.language not in language_set:
                continue
            if prefixes and not any(record.file_path.startswith(p) for p in prefixes):
                continue
            if score < similarity_threshold:
                break

            results.append(SearchResult(
                file_path=record.file_path,
                chunk_text=record.chunk_text,
                chunk_index=record.chunk_index,
                start_line=record.start_line,
                end_line=record.end_line,
                language=record.language,
                similarity=float(score)
            ))
            if len(results) >= limit:
                break

        return results

    def save(self, filepath: str):
        """Save the store to disk"""
        directory = os.path.dirname(filepath)
        if directory:
            os.makedirs(directory, exist_ok=True)

        faiss.write_index(self.index, f"{filepath}.faiss")
        with open(f"{filepath}.meta", 'wb') as f:
            pickle.dump({
                'dimension': self.dimension,
                'records': self.records,
                'projects': self.projects,
                'statuses': self.statuses,
                'next_id': self._next_id,
            }, f)
        self.logger.info(f"Vector store saved to {filepath}")

    @classmethod
    def load(cls, filepath: str) -> 'FaissIndexStore':
        """Load a store saved with save()"""
        with open(f"{filepath}.meta", 'rb') as f:
            state = pickle.load(f)

        store = cls(state['dimension'])
        store.index = faiss.read_index(f"{filepath}.faiss")
        store.records = state['records']
        store.projects = state['projects']
        store.statuses = state['statuses']
        store._next_id = state['next_id']
        store.logger.info(f"Vector store loaded from {filepath}")
        return store

    def get_stats(self) -> dict:
        """Get statistics about the vector store"""
        return {
            'total_records': len(self.records),
            'projects': len(self.projects),
            'dimension': self.dimension,
            'index_size': self.index.ntotal
        }


class PersistentFaissIndexStore(FaissIndexStore):
    """FaissIndexStore backed by files on disk.

    Project and status writes are saved immediately. Embedding writes are
    buffered until flush() or close(), so a run saves once per batch instead
    of once per file.
    """

    def __init__(self, dimension: int, filepath: str):
        super().__init__(dimension)
        self.filepath = filepath
        self._dirty = False

    @classmethod
    def open(cls, filepath: str, dimension: int = None) -> 'PersistentFaissIndexStore':
        """
        Open the store at filepath, creating it when absent

        Args:
            filepath: Path prefix of the .faiss and .meta files
            dimension: Expected vector dimension; the saved one when omitted

        Raises:
            StorageError: The saved index holds vectors of a different dimension
        """
        if not os.path.exists(f"{filepath}.meta"):
            return cls(dimension or EMBEDDING_DIMENSION, filepath)

        loaded = FaissIndexStore.load(filepath)
        if dimension is not None and loaded.dimension != dimension:
            if loaded.index.ntotal:
                raise StorageError(
                    f"Index at {filepath} has dimension {loaded.dimension}, expected {dimension}"
                )
            # An index without vectors takes the requested dimension
            loaded.dimension = dimension
            loaded.index = faiss.IndexIDMap2(faiss.IndexFlatIP(dimension))
        store = cls(loaded.dimension, filepath)
        store.index = loaded.index
        store.records = loaded.records
        store.projects = loaded.projects
        store.statuses = loaded.statuses
        store._next_id = loaded._next_id
        return store

    def register_project(self, project_id: str, name: str, repo_path: str = None) -> Project:
        project = super().register_project(project_id, name, repo_path)
        self._save()
        return project

    def replace_file_embeddings(self, project_id: str, file_path: str,
                                records: Sequence[EmbeddingRecord]) -> None:
        super().replace_file_embeddings(project_id, file_path, records)
        self._dirty = True

    def delete_embeddings(self, project_id: str, file_path: str) -> int:
        removed = super().delete_embeddings(project_id, file_path)
        if removed:
            self._dirty = True
        return removed

    def insert_embeddings(self, records: Sequence[EmbeddingRecord]) -> None:
        super().insert_embeddings(records)
        if records:
            self._dirty = True

    def upsert_index_status(self, status: IndexStatus) -> None:
        super().upsert_index_status(status)
        self._save()

    def flush(self) -> None:
        if self._dirty:
            self._save()

    def close(self) -> None:
        self.flush()

    def _save(self):
        self.save(self.filepath)
        self._dirty = False
