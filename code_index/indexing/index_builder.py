import json
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from .file_processor import FileProcessor, compute_content_hash
from .chunk_queue import ChunkQueue, QueuedChunk, group_by_file
from .embedding_processor import EmbeddingProcessor
from .chunking import chunk_file
from ..config import (
    DEFAULT_INDEX_BATCH_SIZE, DEFAULT_TARGET_TOKENS, DEFAULT_OVERLAP_TOKENS,
    PROJECT_MARKER_FILE, STALE_STATUS_MAX_AGE_SECONDS
)
from ..exceptions import ConfigurationError
from ..models import EmbeddingRecord, IndexState, IndexStatus, IndexProjectResult
from ..storage import IndexStore


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # Some backends hand back naive timestamps that were stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def normalize_repo_path(repo_path: str) -> str:
    """Absolute form of a repository path, used as the status record key"""
    return str(Path(repo_path).expanduser().resolve())


def read_project_marker(repo_path: str) -> Optional[str]:
    """project_id from the repository's marker file, None when absent or unreadable"""
    marker = Path(repo_path) / PROJECT_MARKER_FILE
    try:
        with open(marker, 'r', encoding='utf-8') as f:
            config = json.load(f)
    except (OSError, ValueError):
        return None
    if not isinstance(config, dict):
        return None
    return config.get('project_id') or None


def resolve_project_id(project_id: Optional[str], repo_path: Optional[str]) -> str:
    """Explicit project id, else the one recorded in the repository marker file"""
    if project_id:
        return project_id
    if repo_path:
        marker_id = read_project_marker(repo_path)
        if marker_id:
            return marker_id
    raise ConfigurationError(
        f"project_id is required. Either provide it directly or create a {PROJECT_MARKER_FILE} "
        f'file in the repo root with {{"project_id": "your-uuid"}}'
    )


class _RunCounters:
    def __init__(self):
        self.files_processed = 0
        self.chunks_created = 0
        self.files_skipped = 0


class IndexBuilder:
    """Main orchestrator: discovers, chunks, embeds and persists a project's files"""

    def __init__(self, store: IndexStore, embedding_processor: EmbeddingProcessor,
                 batch_size: int = DEFAULT_INDEX_BATCH_SIZE,
                 target_tokens: int = DEFAULT_TARGET_TOKENS,
                 overlap_tokens: int = DEFAULT_OVERLAP_TOKENS,
                 clock: Callable[[], datetime] = _utcnow):
        """
        Initialize the Index Builder

        Args:
            store: Persistent store for embedding records and status
            embedding_processor: Embedding client used for every flushed batch
            batch_size: Queued chunks that trigger a flush
            target_tokens: Soft chunk size
            overlap_tokens: Overlap budget between consecutive chunks
            clock: Source of status timestamps
        """
        self.store = store
        self.embedding_processor = embedding_processor
        self.batch_size = batch_size
        self.target_tokens = target_tokens
        self.overlap_tokens = overlap_tokens
        self.clock = clock
        self.logger = logging.getLogger(__name__)

    def index_project(self, repo_path: str, project_id: str = None,
                      patterns: Sequence[str] = None, batch_size: int = None,
                      incremental: bool = False) -> IndexProjectResult:
        """
        Index every matching file under repo_path. Never raises.

        Args:
            repo_path: Root of the repository
            project_id: Registered project; read from the marker file when omitted
            patterns: Glob inclusion patterns (defaults from config)
            batch_size: Overrides the builder's flush size for this run
            incremental: Skip files whose stored content hash is unchanged

        Returns:
            Counts, duration and 'success'/'error' status of the run
        """
        started = time.monotonic()
        counters = _RunCounters()

        try:
            project_id = resolve_project_id(project_id, repo_path)
            root = self._check_preconditions(project_id, repo_path)
        except Exception as e:
            self.logger.error(f"Cannot index {repo_path}: {e}")
            return self._result(counters, started, 'error', error=str(e), project_id=project_id)

        status = IndexStatus(
            project_id=project_id,
            repo_path=str(root),
            status=IndexState.INDEXING,
            last_indexed_at=self.clock()
        )

        try:
            self.store.upsert_index_status(status)
            self.logger.info(f"Indexing {root} for project {project_id}")

            self._run(project_id, root, patterns, batch_size or self.batch_size, incremental, counters)

            status.status = IndexState.COMPLETED
            status.total_files = counters.files_processed
            status.total_chunks = counters.chunks_created
            status.last_indexed_at = self.clock()
            self.store.upsert_index_status(status)

        except Exception as e:
            self.logger.error(f"Indexing failed for project {project_id}: {e}")
            self._mark_failed(status, counters, str(e))
            return self._result(counters, started, 'error', error=str(e), project_id=project_id)

        result = self._result(counters, started, 'success', project_id=project_id)
        self.logger.info(
            f"Indexed {result.files_processed} files into {result.chunks_created} chunks "
            f"in {result.duration_ms} ms ({result.files_skipped} skipped)"
        )
        return result

    def update_files(self, repo_path: str, project_id: str = None,
                     files: Sequence[str] = (), deleted_files: Sequence[str] = ()) -> Dict[str, int]:
        """
        Re-index changed files and drop records of deleted ones

        Args:
            repo_path: Root of the repository
            project_id: Registered project; read from the marker file when omitted
            files: Root-relative paths that changed
            deleted_files: Root-relative paths that no longer exist

        Returns:
            {'updated': files re-embedded, 'deleted': files removed}
        """
        project_id = resolve_project_id(project_id, repo_path)
        root = self._check_preconditions(project_id, repo_path)

        deleted = 0
        for file_path in deleted_files:
            if self.store.delete_embeddings(project_id, file_path):
                deleted += 1

        existing_hashes = self.store.get_file_hashes(project_id) if files else {}
        processor = FileProcessor(str(root))
        counters = _RunCounters()
        queue = ChunkQueue(self.batch_size)

        for relative in files:
            file_path = root / relative
            if not file_path.is_file() or processor.is_binary_file(file_path):
                self.logger.warning(f"Skipping {relative}: not a readable text file")
                continue
            self._enqueue_file(processor, file_path, queue, counters, existing_hashes)
            if queue.is_full():
                self._flush(queue, project_id, counters)

        if queue:
            self._flush(queue, project_id, counters)
        self.store.flush()

        current = self.store.get_index_status(project_id, str(root))
        if current is not None:
            current.last_indexed_at = self.clock()
            self.store.upsert_index_status(current)

        self.logger.info(f"Updated {counters.files_processed} files, deleted {deleted} files")
        return {'updated': counters.files_processed, 'deleted': deleted}

    def find_stale_status(self, project_id: str, repo_path: str,
                          max_age_seconds: int = STALE_STATUS_MAX_AGE_SECONDS) -> Optional[IndexStatus]:
        """Status of a run left in 'indexing' for longer than max_age_seconds, if any"""
        status = self.store.get_index_status(project_id, normalize_repo_path(repo_path))
        if status is None or status.status != IndexState.INDEXING:
            return None
        if status.last_indexed_at is None:
            return status

        age = (_as_utc(self.clock()) - _as_utc(status.last_indexed_at)).total_seconds()
        return status if age > max_age_seconds else None

    def recover_stale_status(self, project_id: str, repo_path: str,
                             max_age_seconds: int = STALE_STATUS_MAX_AGE_SECONDS) -> Optional[IndexStatus]:
        """Mark a stale 'indexing' run as failed; returns the updated status or None"""
        status = self.find_stale_status(project_id, repo_path, max_age_seconds)
        if status is None:
            return None

        started_at = status.last_indexed_at.isoformat() if status.last_indexed_at else 'unknown time'
        status.status = IndexState.FAILED
        status.error_message = f"Indexing run started at {started_at} never finished"
        status.last_indexed_at = self.clock()
        self.store.upsert_index_status(status)

        self.logger.warning(f"Recovered stale index status for project {project_id} at {status.repo_path}")
        return status

    def _check_preconditions(self, project_id: str, repo_path: str) -> Path:
        if not repo_path:
            raise ConfigurationError("repo_path is required")

        root = Path(normalize_repo_path(repo_path))
        if not root.is_dir():
            raise ConfigurationError(f"Repository path is not accessible: {repo_path}")

        if self.store.get_project(project_id) is None:
            raise ConfigurationError(f"Project not found: {project_id}")

        store_dimension = self.store.get_embedding_dimension()
        model_dimension = self.embedding_processor.get_embedding_dimension()
        if store_dimension is not None and store_dimension != model_dimension:
            raise ConfigurationError(
                f"Embedding dimension mismatch: store expects {store_dimension}, "
                f"embedding model produces {model_dimension}"
            )
        return root

    def _run(self, project_id: str, root: Path, patterns: Optional[Sequence[str]],
             batch_size: int, incremental: bool, counters: _RunCounters):
        processor = FileProcessor(str(root), include_patterns=patterns)
        files = processor.discover_files()

        existing_hashes = self.store.get_file_hashes(project_id) if incremental else None
        queue = ChunkQueue(batch_size)

        for file_path in files:
            self._enqueue_file(processor, file_path, queue, counters, existing_hashes)
            if queue.is_full():
                self._flush(queue, project_id, counters)

        if queue:
            self._flush(queue, project_id, counters)

    def _enqueue_file(self, processor: FileProcessor, file_path: Path, queue: ChunkQueue,
                      counters: _RunCounters, existing_hashes: Optional[Dict[str, str]]):
        """Chunk one file into the queue; read and chunk failures only skip the file"""
        try:
            relative_path = processor.relative_path(file_path)
            content = processor.read_file_content(file_path)
            if content is None:
                counters.files_skipped += 1
                return

            file_hash = compute_content_hash(content)
            if existing_hashes is not None and existing_hashes.get(relative_path) == file_hash:
                self.logger.debug(f"Unchanged, skipping {relative_path}")
                counters.files_skipped += 1
                return

            chunks = chunk_file(content, file_path.name, self.target_tokens, self.overlap_tokens)
        except Exception as e:
            self.logger.error(f"Error processing {file_path}: {e}")
            counters.files_skipped += 1
            return

        if not chunks:
            # Unsupported extension or blank file
            self.logger.debug(f"No chunks for {relative_path}, skipping")
            counters.files_skipped += 1
            return

        queue.add_file(relative_path, file_hash, chunks)

    def _flush(self, queue: ChunkQueue, project_id: str, counters: _RunCounters):
        """Embed everything queued in one call, replace each file's records, then persist the batch"""
        items: List[QueuedChunk] = queue.drain()
        self.logger.info(f"Flushing batch of {len(items)} chunks")

        embeddings = self.embedding_processor.embed([item.chunk.text for item in items])

        for file_path, positions in group_by_file(items).items():
            records = [
                EmbeddingRecord(
                    project_id=project_id,
                    file_path=file_path,
                    chunk_index=chunk_index,
                    chunk_text=items[position].chunk.text,
                    start_line=items[position].chunk.start_line,
                    end_line=items[position].chunk.end_line,
                    language=items[position].chunk.language,
                    file_hash=items[position].file_hash,
                    embedding=embeddings[position]
                )
                for chunk_index, position in enumerate(positions)
            ]
            self.store.replace_file_embeddings(project_id, file_path, records)

            counters.files_processed += 1
            counters.chunks_created += len(records)

        self.store.flush()

    def _mark_failed(self, status: IndexStatus, counters: _RunCounters, message: str):
        status.status = IndexState.FAILED
        status.total_files = counters.files_processed
        status.total_chunks = counters.chunks_created
        status.error_message = message
        status.last_indexed_at = self.clock()
        try:
            self.store.upsert_index_status(status)
        except Exception as e:
            self.logger.error(f"Could not record failed status for project {status.project_id}: {e}")

    @staticmethod
    def _result(counters: _RunCounters, started: float, status: str,
                error: str = None, project_id: str = None) -> IndexProjectResult:
        return IndexProjectResult(
            files_processed=counters.files_processed,
            chunks_created=counters.chunks_created,
            duration_ms=int((time.monotonic() - started) * 1000),
            status=status,
            error=error,
            files_skipped=counters.files_skipped,
            project_id=project_id
        )


def index_project(project_id: str = None, repo_path: str = None, patterns: Sequence[str] = None,
                  batch_size: int = None, incremental: bool = False,
                  store: IndexStore = None, embedding_processor: EmbeddingProcessor = None) -> dict:
    """
    Index a project with configured defaults and return the result as a dict.

    The embedding client and then a store sized for its vectors are created
    from configuration when not given; configuration failures are reported
    in the result like any other error.
    """
    started = time.monotonic()
    owns_store = store is None

    try:
        if embedding_processor is None:
            embedding_processor = EmbeddingProcessor()
        if store is None:
            from ..storage import create_store
            store = create_store(dimension=embedding_processor.get_embedding_dimension())
    except Exception as e:
        logging.getLogger(__name__).error(f"Cannot set up indexing: {e}")
        if owns_store and store is not None:
            store.close()
        return IndexProjectResult(
            files_processed=0,
            chunks_created=0,
            duration_ms=int((time.monotonic() - started) * 1000),
            status='error',
            error=str(e),
            project_id=project_id
        ).to_dict()

    try:
        builder = IndexBuilder(store, embedding_processor)
        result = builder.index_project(
            repo_path,
            project_id=project_id,
            patterns=patterns,
            batch_size=batch_size,
            incremental=incremental
        )
        return result.to_dict()
    finally:
        if owns_store:
            store.close()
