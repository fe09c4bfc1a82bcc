"""
Configuration settings for the code indexing pipeline.
"""

import os
import logging
from typing import List

from dotenv import load_dotenv

load_dotenv()

# Embedding provider configuration
DEFAULT_EMBEDDING_PROVIDER = os.getenv('EMBEDDING_PROVIDER', 'openai')
DEFAULT_EMBEDDING_MODEL = os.getenv('DEFAULT_EMBEDDING_MODEL', 'text-embedding-3-small')

EMBEDDING_MODELS = {
    'text-embedding-3-small': 1536,
    'text-embedding-3-large': 3072,
    'text-embedding-ada-002': 1536
}

EMBEDDING_DIMENSION = int(os.getenv(
    'EMBEDDING_DIMENSION',
    str(EMBEDDING_MODELS.get(DEFAULT_EMBEDDING_MODEL, 1536))
))

# Provider call limits and retry policy
EMBEDDING_BATCH_SIZE = int(os.getenv('EMBEDDING_BATCH_SIZE', '100'))
EMBEDDING_MAX_RETRIES = int(os.getenv('EMBEDDING_MAX_RETRIES', '3'))
EMBEDDING_INITIAL_BACKOFF = float(os.getenv('EMBEDDING_INITIAL_BACKOFF', '1.0'))
EMBEDDING_JITTER_RATIO = float(os.getenv('EMBEDDING_JITTER_RATIO', '0.1'))
EMBEDDING_RETRY_ON_ERROR = os.getenv('EMBEDDING_RETRY_ON_ERROR', 'true').lower() == 'true'
EMBEDDING_MAX_INPUT_TOKENS = int(os.getenv('EMBEDDING_MAX_INPUT_TOKENS', '8191'))
EMBEDDING_CACHE_SIZE = int(os.getenv('EMBEDDING_CACHE_SIZE', '1000'))

# Chunking
DEFAULT_TARGET_TOKENS = int(os.getenv('DEFAULT_TARGET_TOKENS', '500'))
DEFAULT_OVERLAP_TOKENS = int(os.getenv('DEFAULT_OVERLAP_TOKENS', '50'))

# File discovery
DEFAULT_INCLUDE_PATTERNS: List[str] = os.getenv(
    'INCLUDE_PATTERNS',
    '**/*.ts,**/*.tsx,**/*.js,**/*.jsx,**/*.py,**/*.md'
).split(',')

DEFAULT_EXCLUDED_DIRS: List[str] = os.getenv(
    'EXCLUDED_DIRS',
    'node_modules,.git,dist,build,.next,coverage,__pycache__'
).split(',')

DEFAULT_EXCLUDED_FILE_PATTERNS: List[str] = os.getenv(
    'EXCLUDED_FILE_PATTERNS',
    '*.min.js,*.map'
).split(',')

IGNORE_FILE_NAME = os.getenv('IGNORE_FILE_NAME', '.gitignore')
BINARY_SNIFF_BYTES = int(os.getenv('BINARY_SNIFF_BYTES', '512'))
PROJECT_MARKER_FILE = os.getenv('PROJECT_MARKER_FILE', '.kanban.json')

# Orchestration
DEFAULT_INDEX_BATCH_SIZE = int(os.getenv('DEFAULT_INDEX_BATCH_SIZE', '50'))
STALE_STATUS_MAX_AGE_SECONDS = int(os.getenv('STALE_STATUS_MAX_AGE_SECONDS', '3600'))

# Search
DEFAULT_SEARCH_LIMIT = int(os.getenv('DEFAULT_SEARCH_LIMIT', '10'))
MAX_SEARCH_LIMIT = int(os.getenv('MAX_SEARCH_LIMIT', '50'))
DEFAULT_SIMILARITY_THRESHOLD = float(os.getenv('DEFAULT_SIMILARITY_THRESHOLD', '0.5'))

# Persistent store
DEFAULT_STORE_BACKEND = os.getenv('STORE_BACKEND', 'postgres')

DEFAULT_LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')


def get_openai_api_key() -> str:
    """Get OpenAI API key from environment variable."""
    api_key = os.getenv('OPENAI_API_KEY', '')
    if not api_key:
        raise ValueError(
            "OPENAI_API_KEY environment variable is required. "
            "Please set it in your .env file or environment."
        )
    return api_key


def get_database_url() -> str:
    """Get the SQLAlchemy URL of the persistent store."""
    url = os.getenv('DATABASE_URL', '')
    if not url:
        raise ValueError(
            "DATABASE_URL environment variable is required for the postgres store. "
            "Please set it in your .env file or environment."
        )
    return url


def get_data_dir() -> str:
    """Get data directory path from environment or use default."""
    return os.getenv('CODE_INDEX_DATA_DIR', './data')


def get_indices_dir() -> str:
    """Get directory used by the local faiss store."""
    return os.getenv('CODE_INDEX_INDICES_DIR', os.path.join(get_data_dir(), 'indices'))


def validate_embedding_model(model_name: str) -> bool:
    """Validate if the embedding model is supported."""
    return model_name in EMBEDDING_MODELS


def get_embedding_dimension(model_name: str) -> int:
    """Get the dimension for the specified embedding model."""
    if not validate_embedding_model(model_name):
        raise ValueError(f"Unsupported embedding model: {model_name}")
    return EMBEDDING_MODELS[model_name]


def configure_logging(level: str = None):
    """Configure root logging once for command line entry points."""
    logging.basicConfig(
        level=getattr(logging, (level or DEFAULT_LOG_LEVEL).upper(), logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )
