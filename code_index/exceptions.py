"""
Exceptions raised by the indexing pipeline.
"""


class CodeIndexError(Exception):
    """Base class for all pipeline errors"""


class ConfigurationError(CodeIndexError):
    """Missing credentials, unknown project or unreadable root path.

    Raised before the pipeline has touched the store or the provider.
    """


class EmbeddingError(CodeIndexError):
    """The provider could not produce embeddings within the attempt ceiling.

    Attributes:
        last_error: The last exception observed from the provider
        attempts: Number of provider calls made for the failing batch
    """

    def __init__(self, message: str, last_error: Exception = None, attempts: int = 0):
        super().__init__(message)
        self.last_error = last_error
        self.attempts = attempts


class EmbeddingResponseError(EmbeddingError):
    """The provider answered with a response that breaks the contract.

    Wrong vector dimension, wrong result count or unknown result index.
    Never retried.
    """


class StorageError(CodeIndexError):
    """A persistent store operation failed"""
