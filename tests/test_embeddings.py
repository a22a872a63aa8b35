"""Tests for profile text building, embedding generation, caching and storage"""

from types import SimpleNamespace

import pytest
from unittest.mock import Mock
from pathlib import Path
import sys

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from faddl_ai.data.schema import EMBEDDING_DIMENSIONS, MaritalStatus, PartnerPreferences
from faddl_ai.embeddings.cache import EmbeddingCache, embedding_cache_key
from faddl_ai.embeddings.generator import EmbeddingGenerator, OpenAIEmbeddingProvider
from faddl_ai.embeddings.store import ChromaEmbeddingStore
from faddl_ai.embeddings.text_builder import (
    ProfileTextBuilder,
    estimate_token_count,
    extract_interests,
    extract_personality,
)
from faddl_ai.errors import EmbeddingGenerationError

from tests.fakes import (
    REFERENCE_YEAR,
    TEST_DIMENSIONS,
    FakeEmbeddingProvider,
    make_embeddings,
    make_profile,
)


class TestEmbeddingCache:
    """TTL, LRU eviction and statistics"""

    def test_get_set(self):
        cache = EmbeddingCache(ttl_seconds=60, max_size=10)
        cache.set("k", [1.0, 2.0])

        assert cache.get("k") == [1.0, 2.0]
        assert cache.get("missing") is None
        assert len(cache) == 1

    def test_expired_entry_is_a_miss(self):
        cache = EmbeddingCache(ttl_seconds=60, max_size=10)
        cache.set("k", [1.0], ttl_seconds=-1)

        assert cache.get("k") is None
        assert cache.get_stats()["expired"] == 1
        assert len(cache) == 0

    def test_lru_eviction(self):
        cache = EmbeddingCache(ttl_seconds=60, max_size=2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.get("a")
        cache.set("c", 3)

        assert cache.get("b") is None
        assert cache.get("a") == 1
        assert cache.get("c") == 3
        assert cache.get_stats()["evictions"] == 1

    def test_delete_and_clear(self):
        cache = EmbeddingCache(ttl_seconds=60, max_size=10)
        cache.set("a", 1)
        cache.set("b", 2)

        assert cache.delete("a") is True
        assert cache.delete("a") is False
        cache.clear()
        assert len(cache) == 0

    def test_hit_rate(self):
        cache = EmbeddingCache(ttl_seconds=60, max_size=10)
        cache.set("a", 1)
        cache.get("a")
        cache.get("b")

        stats = cache.get_stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_rate"] == 0.5

    def test_cache_key_depends_on_bucket_model_and_dimensions(self):
        key = embedding_cache_key("values", "x", "model-v1", 8)

        assert key == embedding_cache_key("values", "x", "model-v1", 8)
        assert key != embedding_cache_key("interests", "x", "model-v1", 8)
        assert key != embedding_cache_key("values", "x", "model-v2", 8)
        assert key != embedding_cache_key("values", "x", "model-v1", 16)
        assert key.startswith("embedding:model-v1:8:values:")


class TestProfileTextBuilder:
    """Bucket texts"""

    @pytest.fixture
    def builder(self):
        return ProfileTextBuilder(reference_year=REFERENCE_YEAR)

    def test_all_buckets_present(self, builder):
        texts = builder.build(make_profile())
        assert set(texts) == set(EMBEDDING_DIMENSIONS)
        assert all(texts.values())

    def test_deterministic(self, builder):
        profile = make_profile()
        assert builder.build(profile) == builder.build(profile)

    def test_profile_text_contents(self, builder):
        profile = make_profile(
            marital_status=MaritalStatus.DIVORCED, has_children=True, children_count=2, profession="Engineer"
        )
        text = builder.profile_text(profile)

        assert "Age 30" in text
        assert "divorced status" in text
        assert "Has 2 children" in text
        assert "Profession: Engineer" in text
        assert "Education" not in text

    def test_values_text_reflects_preferences(self, builder):
        profile = make_profile()
        wants = builder.values_text(profile, PartnerPreferences(wants_children=True))
        flexible = builder.values_text(profile, PartnerPreferences(wants_children=False))

        assert "Desires children" in wants
        assert "Family planning flexible" in flexible

    def test_bio_keywords(self):
        bio = "I enjoy reading, hiking and volunteering. Kind and patient."
        assert extract_interests(bio) == ["reading", "hiking", "volunteering"]
        assert extract_personality(bio) == ["Kind and compassionate", "Patient and understanding"]

    def test_bio_keywords_match_whole_words(self):
        bio = "With all my heart I kindly ask to start a family. Travelling soon."

        assert extract_interests(bio) == []
        assert extract_personality(bio) == []
        assert extract_interests("Islamic art and music") == ["music", "art"]

    def test_interests_capped(self, builder):
        profile = make_profile(bio="reading travel cooking sports music art photography hiking fitness")
        text = builder.interests_text(profile)
        assert text.count(". ") + 1 == 10

    def test_estimate_token_count(self):
        assert estimate_token_count("") == 0
        assert estimate_token_count("abcd") == 1
        assert estimate_token_count("abcde") == 2


class TestEmbeddingGenerator:
    """Generation, cache reuse and failure handling"""

    @pytest.fixture
    def provider(self):
        return FakeEmbeddingProvider()

    @pytest.fixture
    def generator(self, provider):
        return EmbeddingGenerator(
            provider=provider,
            cache=EmbeddingCache(ttl_seconds=60, max_size=100),
            text_builder=ProfileTextBuilder(reference_year=REFERENCE_YEAR),
            max_concurrency=2,
        )

    def test_generate(self, generator, provider):
        result = generator.generate(make_profile("u1"))

        assert result.profile_id == "u1"
        assert result.metadata.model == provider.model_id
        assert result.metadata.dimensions == TEST_DIMENSIONS
        assert result.metadata.token_count > 0
        for dim in EMBEDDING_DIMENSIONS:
            assert len(result.vector(dim)) == TEST_DIMENSIONS
        assert len(provider.calls) == 1
        assert len(provider.calls[0]) == 5

    def test_injected_empty_cache_is_used(self, provider):
        cache = EmbeddingCache(ttl_seconds=60, max_size=100)
        generator = EmbeddingGenerator(provider=provider, cache=cache)

        assert generator.cache is cache
        generator.generate(make_profile("u1"))
        assert len(cache) == 5
        assert generator.get_cache_stats()["size"] == 5

    def test_shared_cache_never_mixes_models(self):
        cache = EmbeddingCache(ttl_seconds=60, max_size=100)
        builder = ProfileTextBuilder(reference_year=REFERENCE_YEAR)
        v1 = FakeEmbeddingProvider(model_id="model-v1")
        v2 = FakeEmbeddingProvider(model_id="model-v2")

        EmbeddingGenerator(provider=v1, cache=cache, text_builder=builder).generate(make_profile("u1"))
        record = EmbeddingGenerator(provider=v2, cache=cache, text_builder=builder).generate(make_profile("u1"))

        assert record.metadata.model == "model-v2"
        assert len(v2.calls) == 1
        assert len(v2.calls[0]) == 5
        assert len(cache) == 10

    def test_cache_reused_for_unchanged_profile(self, generator, provider):
        profile = make_profile("u1")
        first = generator.generate(profile)
        second = generator.generate(profile)

        assert len(provider.calls) == 1
        assert first.values == second.values

    def test_only_changed_buckets_regenerated(self, generator, provider):
        generator.generate(make_profile("u1"))
        generator.generate(make_profile("u1", bio="Quiet person who loves cooking."))

        # Bio feeds profile_text, interests and personality only
        assert len(provider.calls[1]) == 3

    def test_provider_failure_raises(self):
        generator = EmbeddingGenerator(
            provider=FakeEmbeddingProvider(fail=True),
            cache=EmbeddingCache(ttl_seconds=60, max_size=100),
        )
        with pytest.raises(EmbeddingGenerationError) as exc:
            generator.generate(make_profile("u1"))

        assert exc.value.profile_id == "u1"
        assert exc.value.details["profile_id"] == "u1"

    def test_wrong_vector_length_raises(self):
        provider = Mock()
        provider.model_id = "broken"
        provider.dimensions = 4
        provider.embed.return_value = [[0.1, 0.2]] * 5
        generator = EmbeddingGenerator(provider=provider, cache=EmbeddingCache(ttl_seconds=60, max_size=100))

        with pytest.raises(EmbeddingGenerationError):
            generator.generate(make_profile("u1"))

    def test_generate_many_collects_failures(self, provider):
        class FlakyProvider(FakeEmbeddingProvider):
            def embed(self, texts):
                if any("asia_east" in t for t in texts):
                    raise RuntimeError("rate limited")
                return super().embed(texts)

        generator = EmbeddingGenerator(
            provider=FlakyProvider(),
            cache=EmbeddingCache(ttl_seconds=60, max_size=100),
            max_concurrency=3,
        )
        profiles = [
            make_profile("ok_1"),
            make_profile("bad", location_zone="asia_east"),
            make_profile("ok_2", bio="Funny and outgoing"),
        ]
        batch = generator.generate_many(profiles)

        assert set(batch.embeddings) == {"ok_1", "ok_2"}
        assert set(batch.failures) == {"bad"}
        assert isinstance(batch.failures["bad"], EmbeddingGenerationError)

    def test_generate_saves_to_store(self, provider):
        store = Mock()
        generator = EmbeddingGenerator(provider=provider, cache=EmbeddingCache(ttl_seconds=60, max_size=100),
                                       store=store)
        result = generator.generate(make_profile("u1"))
        store.save.assert_called_once_with(result)

    def test_is_stale(self, generator):
        assert generator.is_stale(make_embeddings("u1", model="old-model")) is True
        assert generator.is_stale(make_embeddings("u1", [1.0, 0.0])) is True
        assert generator.is_stale(make_embeddings("u1")) is False

    def test_get_or_generate_uses_fresh_stored(self, provider):
        stored = make_embeddings("u1")
        store = Mock()
        store.load.return_value = stored
        generator = EmbeddingGenerator(provider=provider, cache=EmbeddingCache(ttl_seconds=60, max_size=100),
                                       store=store)

        assert generator.get_or_generate(make_profile("u1")) is stored
        assert provider.calls == []

    def test_get_or_generate_regenerates_stale(self, provider):
        store = Mock()
        store.load.return_value = make_embeddings("u1", model="old-model")
        generator = EmbeddingGenerator(provider=provider, cache=EmbeddingCache(ttl_seconds=60, max_size=100),
                                       store=store)

        result = generator.get_or_generate(make_profile("u1"))

        assert result.metadata.model == provider.model_id
        store.save.assert_called_once_with(result)

    def test_get_cache_stats(self, generator):
        generator.generate(make_profile("u1"))
        stats = generator.get_cache_stats()
        assert stats["sets"] == 5
        assert stats["misses"] == 5


class TestChromaEmbeddingStore:
    """Store round trip through a mocked chromadb client"""

    def test_save_upserts_every_bucket(self):
        client = Mock()
        store = ChromaEmbeddingStore(client=client)
        store.save(make_embeddings("u1"))

        assert client.get_or_create_collection.call_count == 5
        collection = client.get_or_create_collection.return_value
        assert collection.upsert.call_count == 5
        kwargs = collection.upsert.call_args.kwargs
        assert kwargs["ids"] == ["u1"]
        assert kwargs["metadatas"][0]["model"] == "test-embedding"
        assert kwargs["metadatas"][0]["token_count"] == -1

    def test_load_missing_returns_none(self):
        client = Mock()
        client.get_or_create_collection.return_value.get.return_value = {
            "ids": [], "embeddings": [], "metadatas": []
        }
        assert ChromaEmbeddingStore(client=client).load("u1") is None

    def test_load_rebuilds_record(self):
        original = make_embeddings("u1")
        client = Mock()
        client.get_or_create_collection.return_value.get.return_value = {
            "ids": ["u1"],
            "embeddings": [original.values],
            "metadatas": [{
                "model": "test-embedding",
                "dimensions": TEST_DIMENSIONS,
                "generated_at": original.metadata.generated_at.isoformat(),
                "version": "1.0",
                "token_count": 42,
            }],
        }
        loaded = ChromaEmbeddingStore(client=client).load("u1")

        assert loaded.values == original.values
        assert loaded.metadata.model == "test-embedding"
        assert loaded.metadata.token_count == 42

    def test_delete(self):
        client = Mock()
        ChromaEmbeddingStore(client=client).delete("u1")

        collection = client.get_or_create_collection.return_value
        assert collection.delete.call_count == 5
        collection.delete.assert_called_with(ids=["u1"])


class TestOpenAIEmbeddingProvider:
    """Embeddings endpoint wrapper with a mocked client"""

    def _client(self, vectors):
        client = Mock()
        # Returned out of order; the provider sorts by index
        data = [SimpleNamespace(index=i, embedding=v) for i, v in reversed(list(enumerate(vectors)))]
        client.embeddings.create.return_value = SimpleNamespace(data=data)
        return client

    def test_embed(self):
        client = self._client([[1.0, 0.0], [0.0, 1.0]])
        provider = OpenAIEmbeddingProvider(client=client, model_id="text-embedding-3-small", dimensions=2)

        assert provider.embed(["a", "b"]) == [[1.0, 0.0], [0.0, 1.0]]
        client.embeddings.create.assert_called_once_with(
            model="text-embedding-3-small", input=["a", "b"], dimensions=2
        )

    def test_wrong_dimensions_rejected(self):
        provider = OpenAIEmbeddingProvider(client=self._client([[1.0, 0.0, 0.0]]), model_id="m", dimensions=2)
        with pytest.raises(ValueError):
            provider.embed(["a"])

    def test_wrong_count_rejected(self):
        provider = OpenAIEmbeddingProvider(client=self._client([[1.0, 0.0]]), model_id="m", dimensions=2)
        with pytest.raises(ValueError):
            provider.embed(["a", "b"])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
