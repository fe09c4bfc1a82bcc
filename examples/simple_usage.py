"""
Simple usage example: index a repository into a local faiss store and search it.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from code_index.config import configure_logging
from code_index.indexing import IndexBuilder, EmbeddingProcessor
from code_index.retrieval import CodeSearch
from code_index.storage.faiss_store import PersistentFaissIndexStore


def main():
    """Index this repository and run a couple of queries against it."""
    configure_logging()

    project_dir = Path(__file__).parent.parent
    data_dir = project_dir / "data"

    print("=== Code Index Demo ===")
    print(f"Target directory to index: {project_dir}")

    embedding_processor = EmbeddingProcessor()
    store = PersistentFaissIndexStore.open(
        str(data_dir / "indices" / "demo"),
        embedding_processor.get_embedding_dimension()
    )
    store.register_project("demo", "Demo project", str(project_dir))

    builder = IndexBuilder(store, embedding_processor)
    result = builder.index_project(str(project_dir), project_id="demo", incremental=True)

    if not result.ok:
        print(f"Indexing failed: {result.error}")
        return

    print(f"Indexed {result.files_processed} files into {result.chunks_created} chunks "
          f"({result.files_skipped} skipped) in {result.duration_ms} ms")

    search = CodeSearch(store, embedding_processor)
    for query in ["how are files split into chunks", "retry on rate limit"]:
        print(f"\nQuery: {query}")
        for hit in search.search("demo", query, limit=3, similarity_threshold=0.2):
            print(f"  {hit['similarity']:5.1f}%  {hit['file_path']}:{hit['start_line']}-{hit['end_line']}")


if __name__ == "__main__":
    main()
