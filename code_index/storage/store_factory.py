"""
Factory for creating index stores.
"""

import logging
import os

from .base import IndexStore
from ..config import DEFAULT_STORE_BACKEND, get_database_url, get_indices_dir
from ..exceptions import ConfigurationError


def create_store(backend: str = None, dimension: int = None, **kwargs) -> IndexStore:
    """
    Create the configured index store

    Args:
        backend: 'postgres' or 'faiss' (STORE_BACKEND when omitted)
        dimension: Vector dimension of the embedding model; checked against a postgres
            column, used for a new faiss index (the saved one is kept when omitted)
        **kwargs: database_url for postgres, index_path for faiss

    Raises:
        ConfigurationError: Unknown backend, missing connection settings or a dimension
            the postgres column cannot hold
        StorageError: Saved faiss index has a different dimension
    """
    logger = logging.getLogger(__name__)
    backend = (backend or DEFAULT_STORE_BACKEND).lower()

    if backend == 'postgres':
        from .postgres_store import PostgresIndexStore

        try:
            database_url = kwargs.get('database_url') or get_database_url()
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

        logger.info("Using postgres index store")
        return PostgresIndexStore(database_url, dimension=dimension)

    if backend == 'faiss':
        from .faiss_store import PersistentFaissIndexStore

        index_path = kwargs.get('index_path') or os.path.join(get_indices_dir(), 'code_index')
        logger.info(f"Using faiss index store at {index_path}")
        return PersistentFaissIndexStore.open(index_path, dimension)

    raise ConfigurationError(f"Unsupported store backend: {backend}")
