"""
PostgreSQL store: SQLAlchemy ORM tables with a pgvector embedding column.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from pgvector.sqlalchemy import Vector
from sqlalchemy import (
    Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint,
    create_engine, or_
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from .base import IndexStore, directory_prefixes
from ..config import EMBEDDING_DIMENSION
from ..exceptions import ConfigurationError, StorageError
from ..models import Project, EmbeddingRecord, IndexState, IndexStatus, SearchResult

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProjectRow(Base):
    __tablename__ = "projects"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    repo_path = Column(Text)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class CodeEmbeddingRow(Base):
    __tablename__ = "code_embeddings"
    __table_args__ = (
        UniqueConstraint("project_id", "file_path", "chunk_index", name="uq_code_embeddings_chunk"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(String, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    file_path = Column(Text, nullable=False, index=True)
    chunk_index = Column(Integer, nullable=False)
    chunk_text = Column(Text, nullable=False)
    start_line = Column(Integer, nullable=False)
    end_line = Column(Integer, nullable=False)
    language = Column(String)
    file_hash = Column(String, nullable=False)
    embedding = Column(Vector(EMBEDDING_DIMENSION), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class CodeIndexStatusRow(Base):
    __tablename__ = "code_index_status"
    __table_args__ = (
        UniqueConstraint("project_id", "repo_path", name="uq_code_index_status_path"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(String, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    repo_path = Column(Text, nullable=False)
    status = Column(String, nullable=False)
    total_files = Column(Integer, default=0)
    total_chunks = Column(Integer, default=0)
    last_indexed_at = Column(DateTime(timezone=True))
    error_message = Column(Text)


class PostgresIndexStore(IndexStore):
    """IndexStore backed by a SQL database; similarity search needs PostgreSQL with pgvector"""

    def __init__(self, database_url: str = None, engine=None, create_tables: bool = True,
                 dimension: int = None):
        if dimension is not None and dimension != EMBEDDING_DIMENSION:
            raise ConfigurationError(
                f"Embedding dimension {dimension} does not match the code_embeddings column "
                f"({EMBEDDING_DIMENSION}); set EMBEDDING_DIMENSION={dimension}"
            )
        if engine is None:
            if not database_url:
                raise ValueError("database_url or engine is required")
            engine = create_engine(database_url, pool_pre_ping=True)

        self.engine = engine
        self.Session = sessionmaker(bind=engine, expire_on_commit=False)
        self.logger = logging.getLogger(__name__)

        if create_tables:
            try:
                Base.metadata.create_all(engine)
            except SQLAlchemyError as e:
                raise StorageError(f"Could not create index tables: {e}") from e

    def register_project(self, project_id: str, name: str, repo_path: str = None) -> Project:
        try:
            with self.Session.begin() as session:
                row = session.get(ProjectRow, project_id)
                if row is None:
                    session.add(ProjectRow(id=project_id, name=name, repo_path=repo_path))
                else:
                    row.name = name
                    row.repo_path = repo_path
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to register project {project_id}: {e}") from e
        return Project(project_id=project_id, name=name, repo_path=repo_path)

    def get_project(self, project_id: str) -> Optional[Project]:
        try:
            with self.Session() as session:
                row = session.get(ProjectRow, project_id)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to load project {project_id}: {e}") from e

        if row is None:
            return None
        return Project(project_id=row.id, name=row.name, repo_path=row.repo_path)

    def get_embedding_dimension(self) -> int:
        return EMBEDDING_DIMENSION

    def delete_embeddings(self, project_id: str, file_path: str) -> int:
        try:
            with self.Session.begin() as session:
                return self._delete(session, project_id, file_path)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to delete embeddings for {file_path}: {e}") from e

    def insert_embeddings(self, records: Sequence[EmbeddingRecord]) -> None:
        if not records:
            return
        try:
            with self.Session.begin() as session:
                session.add_all(self._to_row(record) for record in records)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to insert {len(records)} embeddings: {e}") from e

    def replace_file_embeddings(self, project_id: str, file_path: str,
                                records: Sequence[EmbeddingRecord]) -> None:
        try:
            with self.Session.begin() as session:
                self._delete(session, project_id, file_path)
                session.flush()
                session.add_all(self._to_row(record) for record in records)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to replace embeddings for {file_path}: {e}") from e

    def get_index_status(self, project_id: str, repo_path: str) -> Optional[IndexStatus]:
        try:
            with self.Session() as session:
                row = session.query(CodeIndexStatusRow).filter_by(
                    project_id=project_id, repo_path=repo_path
                ).one_or_none()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to load index status for {project_id}: {e}") from e

        if row is None:
            return None
        return IndexStatus(
            project_id=row.project_id,
            repo_path=row.repo_path,
            status=IndexState(row.status),
            total_files=row.total_files or 0,
            total_chunks=row.total_chunks or 0,
            last_indexed_at=row.last_indexed_at,
            error_message=row.error_message
        )

    def upsert_index_status(self, status: IndexStatus) -> None:
        try:
            with self.Session.begin() as session:
                row = session.query(CodeIndexStatusRow).filter_by(
                    project_id=status.project_id, repo_path=status.repo_path
                ).one_or_none()
                if row is None:
                    row = CodeIndexStatusRow(project_id=status.project_id, repo_path=status.repo_path)
                    session.add(row)

                row.status = status.status.value
                row.total_files = status.total_files
                row.total_chunks = status.total_chunks
                row.last_indexed_at = status.last_indexed_at
                row.error_message = status.error_message
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to update index status for {status.project_id}: {e}") from e

    def get_file_hashes(self, project_id: str) -> Dict[str, str]:
        try:
            with self.Session() as session:
                rows = session.query(CodeEmbeddingRow.file_path, CodeEmbeddingRow.file_hash).filter(
                    CodeEmbeddingRow.project_id == project_id
                ).distinct().all()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to load file hashes for {project_id}: {e}") from e
        return {file_path: file_hash for file_path, file_hash in rows}

    def search(self, project_id: str, query_embedding: List[float], limit: int,
               languages: Sequence[str] = None, directories: Sequence[str] = None,
               similarity_threshold: float = 0.0) -> List[SearchResult]:
        distance = CodeEmbeddingRow.embedding.cosine_distance(query_embedding)
        similarity = (1 - distance).label("similarity")

        try:
            with self.Session() as session:
                query = session.query(CodeEmbeddingRow, similarity).filter(
                    CodeEmbeddingRow.project_id == project_id,
                    (1 - distance) >= similarity_threshold
                )
                if languages:
                    query = query.filter(CodeEmbeddingRow.language.in_(list(languages)))
                prefixes = directory_prefixes(directories)
                if prefixes:
                    query = query.filter(or_(*(CodeEmbeddingRow.file_path.startswith(p) for p in prefixes)))

                rows = query.order_by(distance).limit(limit).all()
        except SQLAlchemyError as e:
            raise StorageError(f"Search failed for project {project_id}: {e}") from e

        return [
            SearchResult(
                file_path=row.file_path,
                chunk_text=row.chunk_text,
                chunk_index=row.chunk_index,
                start_line=row.start_line,
                end_line=row.end_line,
                language=row.language,
                similarity=float(score)
            )
            for row, score in rows
        ]

    def close(self) -> None:
        self.engine.dispose()

    @staticmethod
    def _delete(session, project_id: str, file_path: str) -> int:
        return session.query(CodeEmbeddingRow).filter(
            CodeEmbeddingRow.project_id == project_id,
            CodeEmbeddingRow.file_path == file_path
        ).delete(synchronize_session=False)

    @staticmethod
    def _to_row(record: EmbeddingRecord) -> CodeEmbeddingRow:
        return CodeEmbeddingRow(
            project_id=record.project_id,
            file_path=record.file_path,
            chunk_index=record.chunk_index,
            chunk_text=record.chunk_text,
            start_line=record.start_line,
            end_line=record.end_line,
            language=record.language,
            file_hash=record.file_hash,
            embedding=list(record.embedding)
        )
