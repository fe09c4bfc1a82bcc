from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import List, Optional, Dict, Any


@dataclass(frozen=True)
class CodeChunk:
    """A contiguous slice of a source file with its 1-indexed inclusive line range"""
    text: str
    start_line: int
    end_line: int
    language: str


@dataclass
class Project:
    """A registered project whose repository can be indexed"""
    project_id: str
    name: str
    repo_path: Optional[str] = None


@dataclass
class EmbeddingRecord:
    """One chunk of one file together with its embedding vector"""
    project_id: str
    file_path: str
    chunk_index: int
    chunk_text: str
    start_line: int
    end_line: int
    language: str
    file_hash: str
    embedding: List[float] = field(repr=False)


class IndexState(Enum):
    """Lifecycle states of an index run"""
    INDEXING = "indexing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class IndexStatus:
    """Progress record, one per (project, repo path)"""
    project_id: str
    repo_path: str
    status: IndexState
    total_files: int = 0
    total_chunks: int = 0
    last_indexed_at: Optional[datetime] = None
    error_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['status'] = self.status.value
        data['last_indexed_at'] = self.last_indexed_at.isoformat() if self.last_indexed_at else None
        return data


@dataclass
class IndexProjectResult:
    """Outcome of one index run as reported to the caller"""
    files_processed: int
    chunks_created: int
    duration_ms: int
    status: str  # 'success' or 'error'
    error: Optional[str] = None
    files_skipped: int = 0
    project_id: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == 'success'

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'files_processed': self.files_processed,
            'chunks_created': self.chunks_created,
            'duration_ms': self.duration_ms,
            'status': self.status,
            'files_skipped': self.files_skipped,
        }
        if self.project_id is not None:
            data['project_id'] = self.project_id
        if self.error is not None:
            data['error'] = self.error
        return data


@dataclass
class SearchResult:
    """A stored chunk matched by a similarity query"""
    file_path: str
    chunk_text: str
    chunk_index: int
    start_line: int
    end_line: int
    language: str
    similarity: float
