"""Tests for embedding caching, batching, retry and validation."""

import pytest

from code_index.exceptions import EmbeddingError, EmbeddingResponseError
from code_index.indexing.embedding_processor import EmbeddingProcessor, prepare_text
from code_index.indexing.embeddings import EmbeddingCache, hash_text

from conftest import DIMENSION, FakeEmbeddingProvider, RateLimitError, fake_vector


def make_processor(provider, sleeps=None, **kwargs):
    sleep = sleeps.append if sleeps is not None else (lambda seconds: None)
    return EmbeddingProcessor(provider=provider, cache=EmbeddingCache(max_size=100), sleep=sleep, **kwargs)


class TestEmbeddingCache:

    def test_get_counts_hits_and_misses(self):
        cache = EmbeddingCache(max_size=2)
        cache.put("a", [1.0])

        assert cache.get("a") == [1.0]
        assert cache.get("b") is None
        assert cache.stats() == {"size": 1, "max_size": 2, "hits": 1, "misses": 1}

    def test_evicts_oldest_insert_first(self):
        cache = EmbeddingCache(max_size=2)
        cache.put("a", [1.0])
        cache.put("b", [2.0])
        cache.get("a")
        cache.put("c", [3.0])

        assert "a" not in cache
        assert "b" in cache and "c" in cache
        assert len(cache) == 2

    def test_returned_vector_is_a_copy(self):
        cache = EmbeddingCache()
        cache.put("a", [1.0, 2.0])
        cache.get("a").append(3.0)

        assert cache.get("a") == [1.0, 2.0]

    def test_rejects_non_positive_size(self):
        with pytest.raises(ValueError):
            EmbeddingCache(max_size=0)

    def test_clear(self):
        cache = EmbeddingCache()
        cache.put("a", [1.0])
        cache.clear()

        assert len(cache) == 0
        assert cache.stats()["hits"] == 0


class TestPrepareText:

    def test_collapses_whitespace(self):
        assert prepare_text("  def  a():\n\n\treturn 1  ") == "def a(): return 1"

    def test_truncates_to_input_ceiling(self):
        assert len(prepare_text("x" * 100, max_tokens=5)) == 20


class TestEmbed:

    def test_same_text_twice_is_one_call(self, provider):
        processor = make_processor(provider)

        first = processor.embed(["def a(): pass"])
        second = processor.embed(["def a(): pass"])

        assert len(provider.calls) == 1
        assert first == second

    def test_duplicates_in_one_request_are_sent_once(self, provider):
        processor = make_processor(provider)

        vectors = processor.embed(["a", "b", "a"])

        assert provider.calls == [["a", "b"]]
        assert vectors[0] == vectors[2]

    def test_order_follows_input_not_response(self):
        provider = FakeEmbeddingProvider(reverse=True)
        processor = make_processor(provider)

        vectors = processor.embed(["a", "b", "c"])

        assert vectors == [fake_vector("a"), fake_vector("b"), fake_vector("c")]

    def test_cached_and_uncached_texts_keep_positions(self, provider):
        processor = make_processor(provider)
        processor.embed(["b"])

        vectors = processor.embed(["a", "b", "c"])

        assert provider.calls[-1] == ["a", "c"]
        assert vectors == [fake_vector("a"), fake_vector("b"), fake_vector("c")]

    def test_batches_respect_provider_limit(self, provider):
        processor = make_processor(provider, max_batch_size=2)

        vectors = processor.embed([f"text {i}" for i in range(5)])

        assert [len(call) for call in provider.calls] == [2, 2, 1]
        assert len(vectors) == 5

    def test_empty_input(self, provider):
        assert make_processor(provider).embed([]) == []
        assert provider.calls == []

    def test_text_is_prepared_before_hashing(self, provider):
        processor = make_processor(provider)

        processor.embed(["a   b"])
        processor.embed(["a b"])

        assert provider.calls == [["a b"]]
        assert hash_text("a b") in processor.cache

    def test_embed_query(self, provider):
        processor = make_processor(provider)

        assert processor.embed_query("find loader") == fake_vector("find loader")


class TestRetry:

    def test_rate_limit_then_success(self, sleeps):
        provider = FakeEmbeddingProvider(failures=[RateLimitError("slow down")])
        processor = make_processor(provider, sleeps, initial_backoff=1.0, jitter_ratio=0.1)

        vectors = processor.embed(["a"])

        assert vectors == [fake_vector("a")]
        assert len(provider.calls) == 2
        assert len(sleeps) == 1
        assert 1.0 <= sleeps[0] <= 1.1

    def test_backoff_grows_exponentially(self, sleeps):
        provider = FakeEmbeddingProvider(failures=[RateLimitError("429"), RateLimitError("429")])
        processor = make_processor(provider, sleeps, max_retries=3, initial_backoff=1.0, jitter_ratio=0.0)

        processor.embed(["a"])

        assert sleeps == [1.0, 2.0]

    def test_attempt_ceiling_preserves_last_error(self, sleeps):
        errors = [RateLimitError("first"), RateLimitError("second"), RateLimitError("third")]
        provider = FakeEmbeddingProvider(failures=errors)
        processor = make_processor(provider, sleeps, max_retries=3)

        with pytest.raises(EmbeddingError) as exc_info:
            processor.embed(["a"])

        assert exc_info.value.last_error is errors[-1]
        assert exc_info.value.attempts == 3
        assert len(provider.calls) == 3
        assert len(sleeps) == 2

    def test_other_errors_retry_with_fixed_delay(self, sleeps):
        provider = FakeEmbeddingProvider(failures=[ConnectionError("reset"), ConnectionError("reset")])
        processor = make_processor(provider, sleeps, initial_backoff=0.5, retry_on_error=True)

        processor.embed(["a"])

        assert sleeps == [0.5, 0.5]

    def test_other_errors_fail_fast_when_configured(self, sleeps):
        error = ConnectionError("reset")
        provider = FakeEmbeddingProvider(failures=[error])
        processor = make_processor(provider, sleeps, retry_on_error=False)

        with pytest.raises(EmbeddingError) as exc_info:
            processor.embed(["a"])

        assert exc_info.value.last_error is error
        assert exc_info.value.attempts == 1
        assert sleeps == []

    def test_failed_batch_is_not_cached(self, sleeps):
        provider = FakeEmbeddingProvider(failures=[ValueError("bad")])
        processor = make_processor(provider, sleeps, retry_on_error=False)

        with pytest.raises(EmbeddingError):
            processor.embed(["a"])

        assert len(processor.cache) == 0
        assert processor.embed(["a"]) == [fake_vector("a")]


class TestValidation:

    def test_dimension_mismatch_is_not_retried(self, sleeps):
        provider = FakeEmbeddingProvider(response=lambda texts: [(i, [0.0] * 3) for i in range(len(texts))])
        processor = make_processor(provider, sleeps, dimension=DIMENSION)

        with pytest.raises(EmbeddingResponseError):
            processor.embed(["a", "b"])

        assert len(provider.calls) == 1
        assert sleeps == []

    def test_count_mismatch_is_fatal(self):
        provider = FakeEmbeddingProvider(response=lambda texts: [(0, fake_vector(texts[0]))])
        processor = make_processor(provider)

        with pytest.raises(EmbeddingResponseError):
            processor.embed(["a", "b"])
        assert len(provider.calls) == 1

    def test_duplicate_index_is_fatal(self):
        provider = FakeEmbeddingProvider(response=lambda texts: [(0, fake_vector(t)) for t in texts])
        processor = make_processor(provider)

        with pytest.raises(EmbeddingResponseError):
            processor.embed(["a", "b"])

    def test_provider_info_includes_cache_stats(self, provider):
        processor = make_processor(provider)
        processor.embed(["a"])

        info = processor.get_provider_info()

        assert info["provider"] == "fake"
        assert info["cache"]["size"] == 1
