"""Pytest configuration and fixtures."""
import hashlib
import math
from dataclasses import replace
from pathlib import Path

import pytest

from code_index.indexing.embedding_processor import EmbeddingProcessor
from code_index.indexing.embeddings import BaseEmbeddingProvider, EmbeddingCache
from code_index.models import Project, SearchResult
from code_index.storage.base import IndexStore, directory_prefixes

DIMENSION = 8


def fake_vector(text, dimension=DIMENSION):
    """Deterministic pseudo-embedding derived from the text's digest."""
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    return [(digest[i] - 128) / 128.0 for i in range(dimension)]


class RateLimitError(Exception):
    status_code = 429


class FakeEmbeddingProvider(BaseEmbeddingProvider):
    """Provider that records every request and can be scripted to fail."""

    def __init__(self, dimension=DIMENSION, failures=None, reverse=False, response=None):
        super().__init__("fake-embedding-model")
        self._dimension = dimension
        self.failures = list(failures or [])
        self.reverse = reverse
        self.response = response
        self.calls = []

    def initialize(self):
        pass

    def get_embedding_dimension(self):
        return self._dimension

    def embed_batch(self, texts):
        self.calls.append(list(texts))
        if self.failures:
            raise self.failures.pop(0)
        if self.response is not None:
            return self.response(texts)

        pairs = [(i, fake_vector(text, self._dimension)) for i, text in enumerate(texts)]
        if self.reverse:
            pairs.reverse()
        return pairs

    def get_provider_info(self):
        return {"provider": "fake", "model": self.model_name, "dimension": self._dimension}


class InMemoryIndexStore(IndexStore):
    """IndexStore kept in plain dicts, with optional failure injection."""

    def __init__(self):
        self.projects = {}
        self.records = {}
        self.statuses = {}
        self.status_history = []
        self.replace_calls = []
        self.fail_replace_after = None
        self.fail_status_writes = False
        self.flushes = 0

    def register_project(self, project_id, name, repo_path=None):
        project = Project(project_id=project_id, name=name, repo_path=repo_path)
        self.projects[project_id] = project
        return project

    def get_project(self, project_id):
        return self.projects.get(project_id)

    def delete_embeddings(self, project_id, file_path):
        removed = self.records.pop((project_id, file_path), [])
        return len(removed)

    def insert_embeddings(self, records):
        for record in records:
            self.records.setdefault((record.project_id, record.file_path), []).append(record)

    def replace_file_embeddings(self, project_id, file_path, records):
        if self.fail_replace_after is not None and len(self.replace_calls) >= self.fail_replace_after:
            raise RuntimeError("database unavailable")
        self.replace_calls.append(file_path)
        self.records[(project_id, file_path)] = list(records)

    def flush(self):
        self.flushes += 1

    def get_index_status(self, project_id, repo_path):
        status = self.statuses.get((project_id, repo_path))
        return replace(status) if status else None

    def upsert_index_status(self, status):
        if self.fail_status_writes:
            raise RuntimeError("status table locked")
        self.statuses[(status.project_id, status.repo_path)] = replace(status)
        self.status_history.append(status.status)

    def get_file_hashes(self, project_id):
        return {
            file_path: records[0].file_hash
            for (pid, file_path), records in self.records.items()
            if pid == project_id and records
        }

    def search(self, project_id, query_embedding, limit, languages=None, directories=None,
               similarity_threshold=0.0):
        prefixes = directory_prefixes(directories)
        scored = []
        for (pid, file_path), records in self.records.items():
            if pid != project_id:
                continue
            if prefixes and not any(file_path.startswith(p) for p in prefixes):
                continue
            for record in records:
                if languages and record.language not in languages:
                    continue
                similarity = _cosine(query_embedding, record.embedding)
                if similarity >= similarity_threshold:
                    scored.append(SearchResult(
                        file_path=record.file_path,
                        chunk_text=record.chunk_text,
                        chunk_index=record.chunk_index,
                        start_line=record.start_line,
                        end_line=record.end_line,
                        language=record.language,
                        similarity=similarity,
                    ))
        scored.sort(key=lambda r: r.similarity, reverse=True)
        return scored[:limit]

    def chunks_for(self, project_id, file_path):
        return sorted(self.records.get((project_id, file_path), []), key=lambda r: r.chunk_index)


def _cosine(a, b):
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


@pytest.fixture
def provider():
    return FakeEmbeddingProvider()


@pytest.fixture
def sleeps():
    """Delays requested by the embedding processor, recorded instead of slept."""
    return []


@pytest.fixture
def embedding_processor(provider, sleeps):
    return EmbeddingProcessor(provider=provider, cache=EmbeddingCache(max_size=100), sleep=sleeps.append)


@pytest.fixture
def store():
    store = InMemoryIndexStore()
    store.register_project("proj-1", "Project One")
    return store


def write_file(root: Path, relative: str, content):
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content, encoding="utf-8")
    return path


PYTHON_SOURCE = '''import os


def load(path):
    with open(path) as f:
        return f.read()


class Loader:
    def __init__(self, root):
        self.root = root
'''

TS_SOURCE = '''export interface User {
  id: string;
}

export function greet(user: User): string {
  return `hello ${user.id}`;
}
'''


@pytest.fixture
def sample_repo(tmp_path):
    """Small repository with indexable, excluded, ignored and binary files."""
    root = tmp_path / "repo"
    root.mkdir()
    write_file(root, "src/app.py", PYTHON_SOURCE)
    write_file(root, "src/user.ts", TS_SOURCE)
    write_file(root, "README.md", "# Sample\n\nA sample repository.\n")
    write_file(root, "node_modules/lib/index.js", "module.exports = 1;\n")
    write_file(root, "dist/bundle.min.js", "var a=1;\n")
    write_file(root, "generated/schema.py", "SCHEMA = {}\n")
    write_file(root, "assets/logo.py", b"\x89PNG\r\n\x00\x00binary")
    write_file(root, ".gitignore", "generated/\n")
    return root
