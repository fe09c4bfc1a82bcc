"""
Embedding processor: caching, batching, retry and response validation
on top of a pluggable embedding provider.
"""

import logging
import random
import re
import time
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..config import (
    DEFAULT_EMBEDDING_PROVIDER, DEFAULT_EMBEDDING_MODEL, EMBEDDING_BATCH_SIZE,
    EMBEDDING_MAX_RETRIES, EMBEDDING_INITIAL_BACKOFF, EMBEDDING_JITTER_RATIO,
    EMBEDDING_RETRY_ON_ERROR, EMBEDDING_MAX_INPUT_TOKENS
)
from ..exceptions import EmbeddingError, EmbeddingResponseError
from .embeddings import EmbeddingProviderFactory, BaseEmbeddingProvider, EmbeddingCache, hash_text

_WHITESPACE = re.compile(r'\s+')


def prepare_text(text: str, max_tokens: int = EMBEDDING_MAX_INPUT_TOKENS) -> str:
    """Collapse whitespace and truncate to the provider's input ceiling (≈4 chars per token)"""
    cleaned = _WHITESPACE.sub(' ', text).strip()
    max_chars = max_tokens * 4
    if len(cleaned) > max_chars:
        cleaned = cleaned[:max_chars]
    return cleaned


class EmbeddingProcessor:
    """
    Converts texts into fixed-dimension vectors, one per input, in input order.

    Uncached texts are sent in provider-sized batches. Rate limiting is
    retried with exponential backoff and jitter, other provider errors with a
    fixed delay when ``retry_on_error`` is set; a response with the wrong
    count or dimension is rejected without retrying.
    """

    def __init__(self, provider: BaseEmbeddingProvider = None, cache: EmbeddingCache = None,
                 provider_type: str = None, model_name: str = None,
                 dimension: int = None,
                 max_batch_size: int = EMBEDDING_BATCH_SIZE,
                 max_retries: int = EMBEDDING_MAX_RETRIES,
                 initial_backoff: float = EMBEDDING_INITIAL_BACKOFF,
                 jitter_ratio: float = EMBEDDING_JITTER_RATIO,
                 retry_on_error: bool = EMBEDDING_RETRY_ON_ERROR,
                 sleep: Callable[[float], None] = time.sleep,
                 **kwargs):
        """
        Initialize embedding processor

        Args:
            provider: Ready provider; created from provider_type/model_name when omitted
            cache: Cache shared with other processors, a private one when omitted
            provider_type: Type of embedding provider ('openai', 'huggingface', 'ollama')
            model_name: Name of the embedding model
            dimension: Expected vector dimension, the provider's when omitted
            max_batch_size: Most texts sent in one provider call
            max_retries: Attempt ceiling per batch
            initial_backoff: Seconds before the first rate-limit retry
            jitter_ratio: Random extra delay as a fraction of the backoff
            retry_on_error: Retry non rate-limit errors with a fixed delay
            sleep: Delay function, replaceable in tests
            **kwargs: Provider-specific configuration
        """
        self.logger = logging.getLogger(__name__)

        if provider is None:
            self.provider_type = provider_type or DEFAULT_EMBEDDING_PROVIDER
            self.model_name = model_name or DEFAULT_EMBEDDING_MODEL
            provider = EmbeddingProviderFactory.create_provider(self.provider_type, self.model_name, **kwargs)
        else:
            self.provider_type = provider.__class__.__name__
            self.model_name = provider.model_name

        if max_batch_size < 1:
            raise ValueError("max_batch_size must be positive")
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")

        self.provider = provider
        self.cache = cache if cache is not None else EmbeddingCache()
        self.dimension = dimension or provider.get_embedding_dimension()
        self.max_batch_size = max_batch_size
        self.max_retries = max_retries
        self.initial_backoff = initial_backoff
        self.jitter_ratio = jitter_ratio
        self.retry_on_error = retry_on_error
        self._sleep = sleep

        self.logger.info(f"Initialized {self.provider_type} provider with model {self.model_name}")

    def get_embedding_dimension(self) -> int:
        """Get the dimension of the embedding model"""
        return self.dimension

    def embed(self, texts: Sequence[str]) -> List[List[float]]:
        """
        Generate one vector per text, in input order

        Raises:
            EmbeddingResponseError: Provider response broke the count/dimension contract
            EmbeddingError: Provider kept failing up to the attempt ceiling
        """
        if not texts:
            return []

        prepared = [prepare_text(text) for text in texts]
        keys = [hash_text(text) for text in prepared]
        results: List[Optional[List[float]]] = [None] * len(texts)

        # Identical uncached texts are requested once
        pending: Dict[str, List[int]] = {}
        for i, key in enumerate(keys):
            cached = self.cache.get(key)
            if cached is not None:
                results[i] = cached
            else:
                pending.setdefault(key, []).append(i)

        if pending:
            unique_keys = list(pending)
            self.logger.info(
                f"Embedding {len(unique_keys)} uncached texts "
                f"({len(texts) - sum(len(v) for v in pending.values())} cache hits)"
            )

            for start in range(0, len(unique_keys), self.max_batch_size):
                batch_keys = unique_keys[start:start + self.max_batch_size]
                batch_texts = [prepared[pending[key][0]] for key in batch_keys]

                vectors = self._embed_with_retry(batch_texts)

                for key, vector in zip(batch_keys, vectors):
                    self.cache.put(key, vector)
                    for i in pending[key]:
                        results[i] = list(vector)

        return results

    def embed_query(self, query: str) -> List[float]:
        """Generate embedding for a single query"""
        return self.embed([query])[0]

    def _embed_with_retry(self, texts: List[str]) -> List[List[float]]:
        """Call the provider for one batch, retrying transient failures"""
        last_error = None
        attempt = 0

        while attempt < self.max_retries:
            attempt += 1
            try:
                pairs = self.provider.embed_batch(texts)
            except Exception as e:
                last_error = e
                if attempt >= self.max_retries:
                    break

                if self.provider.is_rate_limit_error(e):
                    delay = self._backoff_delay(attempt)
                    self.logger.warning(
                        f"Rate limit hit, waiting {delay:.2f} seconds before retry {attempt}/{self.max_retries - 1}"
                    )
                elif self.retry_on_error:
                    delay = self.initial_backoff
                    self.logger.warning(f"Embedding request failed ({e}), retrying in {delay:.2f} seconds")
                else:
                    break

                self._sleep(delay)
                continue

            return self._validate_response(pairs, len(texts))

        self.logger.error(f"Embedding batch failed after {attempt} attempts: {last_error}")
        raise EmbeddingError(
            f"Failed to generate embeddings after {attempt} attempts: {last_error}",
            last_error=last_error,
            attempts=attempt
        ) from last_error

    def _backoff_delay(self, attempt: int) -> float:
        backoff = self.initial_backoff * (2 ** (attempt - 1))
        return backoff + random.uniform(0, backoff * self.jitter_ratio)

    def _validate_response(self, pairs: List[Tuple[int, List[float]]], expected: int) -> List[List[float]]:
        """Place index-tagged vectors back into request order"""
        if len(pairs) != expected:
            raise EmbeddingResponseError(f"Expected {expected} embeddings, got {len(pairs)}")

        ordered: List[Optional[List[float]]] = [None] * expected
        for index, vector in pairs:
            if not 0 <= index < expected or ordered[index] is not None:
                raise EmbeddingResponseError(f"Unexpected result index {index} in batch of {expected}")
            if len(vector) != self.dimension:
                raise EmbeddingResponseError(
                    f"Expected {self.dimension} dimensions, got {len(vector)}"
                )
            ordered[index] = [float(x) for x in vector]

        return ordered

    def get_provider_info(self) -> dict:
        """Get information about the current provider"""
        info = self.provider.get_provider_info()
        info['cache'] = self.cache.stats()
        return info
