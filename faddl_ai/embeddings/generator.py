"""
Embedding Generator - turns a profile into five semantic vectors.

A provider failure is a hard failure: the caller gets an EmbeddingGenerationError
carrying the profile id and never a zero vector.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Optional, Protocol

import openai
from loguru import logger
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from faddl_ai.config import settings
from faddl_ai.data.schema import (
    EMBEDDING_DIMENSIONS,
    EmbeddingMetadata,
    PartnerPreferences,
    ProfileEmbeddings,
    UserProfile,
)
from faddl_ai.embeddings.cache import EmbeddingCache, embedding_cache_key
from faddl_ai.embeddings.text_builder import ProfileTextBuilder, estimate_token_count
from faddl_ai.errors import EmbeddingGenerationError


class EmbeddingProvider(Protocol):
    model_id: str
    dimensions: int

    def embed(self, texts: list[str]) -> list[list[float]]:
        ...


class OpenAIEmbeddingProvider:
    """OpenAI embeddings endpoint with explicit output dimensionality"""

    def __init__(self, client=None, model_id: Optional[str] = None, dimensions: Optional[int] = None):
        self._client = client
        self.model_id = model_id or settings.embedding_model
        self.dimensions = dimensions or settings.embedding_dimensions

    @property
    def client(self):
        if self._client is None:
            from faddl_ai.llm.router import openai_client
            self._client = openai_client()
        return self._client

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((openai.RateLimitError, openai.APIConnectionError, openai.APITimeoutError)),
        reraise=True,
    )
    def embed(self, texts: list[str]) -> list[list[float]]:
        resp = self.client.embeddings.create(
            model=self.model_id,
            input=texts,
            dimensions=self.dimensions,
        )
        vectors = [item.embedding for item in sorted(resp.data, key=lambda d: d.index)]
        if len(vectors) != len(texts):
            raise ValueError(f"Expected {len(texts)} embeddings, got {len(vectors)}")
        for vec in vectors:
            if len(vec) != self.dimensions:
                raise ValueError(f"Provider returned {len(vec)} dimensions, expected {self.dimensions}")
        return vectors


@dataclass
class BatchEmbeddingResult:
    embeddings: dict[str, ProfileEmbeddings] = field(default_factory=dict)
    failures: dict[str, EmbeddingGenerationError] = field(default_factory=dict)


class EmbeddingGenerator:
    """
    Generate and cache profile embeddings.

    Bucket texts are cached by content hash, so only buckets whose text changed
    are sent to the provider. When a store is given, fresh embeddings are saved
    to it and stale stored records are regenerated on read.
    """

    def __init__(
        self,
        provider: Optional[EmbeddingProvider] = None,
        cache: Optional[EmbeddingCache] = None,
        text_builder: Optional[ProfileTextBuilder] = None,
        store=None,
        max_concurrency: Optional[int] = None,
    ):
        self.provider = provider or OpenAIEmbeddingProvider()
        self.cache = cache if cache is not None else EmbeddingCache()
        self.text_builder = text_builder or ProfileTextBuilder()
        self.store = store
        self.max_concurrency = max_concurrency or settings.embedding_concurrency
        logger.info(
            f"EmbeddingGenerator initialized: model={self.provider.model_id}, "
            f"dimensions={self.provider.dimensions}"
        )

    def _cache_key(self, bucket: str, text: str) -> str:
        return embedding_cache_key(bucket, text, self.provider.model_id, self.provider.dimensions)

    def generate(
        self, profile: UserProfile, preferences: Optional[PartnerPreferences] = None
    ) -> ProfileEmbeddings:
        """
        Embed the five buckets of one profile.

        Raises:
            EmbeddingGenerationError: If the provider fails or returns bad vectors.
        """
        texts = self.text_builder.build(profile, preferences)

        vectors: dict[str, list[float]] = {}
        missing: list[str] = []
        for bucket in EMBEDDING_DIMENSIONS:
            cached = self.cache.get(self._cache_key(bucket, texts[bucket]))
            if cached is not None:
                vectors[bucket] = cached
            else:
                missing.append(bucket)

        if missing:
            try:
                fresh = self.provider.embed([texts[b] for b in missing])
            except Exception as e:
                logger.error(f"Embedding provider failed for {profile.user_id}: {e}")
                raise EmbeddingGenerationError(profile.user_id, str(e), {"buckets": missing}) from e
            for bucket, vec in zip(missing, fresh):
                vectors[bucket] = vec
                self.cache.set(self._cache_key(bucket, texts[bucket]), vec)

        metadata = EmbeddingMetadata(
            model=self.provider.model_id,
            dimensions=self.provider.dimensions,
            token_count=estimate_token_count(" ".join(texts.values())),
        )
        try:
            result = ProfileEmbeddings(profile_id=profile.user_id, metadata=metadata, **vectors)
        except ValueError as e:
            raise EmbeddingGenerationError(profile.user_id, str(e)) from e

        logger.debug(
            f"Embeddings for {profile.user_id}: {len(missing)} generated, "
            f"{len(EMBEDDING_DIMENSIONS) - len(missing)} from cache"
        )

        if self.store is not None:
            self.store.save(result)
        return result

    def generate_many(
        self,
        profiles: list[UserProfile],
        preferences: Optional[dict[str, PartnerPreferences]] = None,
    ) -> BatchEmbeddingResult:
        """Embed many profiles with bounded concurrency; failures are collected per profile."""
        preferences = preferences or {}
        batch = BatchEmbeddingResult()

        def _one(profile: UserProfile):
            return self.generate(profile, preferences.get(profile.user_id))

        with ThreadPoolExecutor(max_workers=self.max_concurrency) as pool:
            futures = {p.user_id: pool.submit(_one, p) for p in profiles}
            for user_id, future in futures.items():
                try:
                    batch.embeddings[user_id] = future.result()
                except EmbeddingGenerationError as e:
                    batch.failures[user_id] = e

        if batch.failures:
            logger.warning(f"Embedding batch: {len(batch.failures)}/{len(profiles)} profiles failed")
        return batch

    def is_stale(self, embeddings: ProfileEmbeddings) -> bool:
        """True when the record was produced by a different model or dimensionality."""
        return (
            embeddings.metadata.model != self.provider.model_id
            or embeddings.metadata.dimensions != self.provider.dimensions
        )

    def get_or_generate(
        self, profile: UserProfile, preferences: Optional[PartnerPreferences] = None
    ) -> ProfileEmbeddings:
        """Load stored embeddings, regenerating when missing or stale."""
        if self.store is not None:
            stored = self.store.load(profile.user_id)
            if stored is not None and not self.is_stale(stored):
                return stored
            if stored is not None:
                logger.info(
                    f"Stored embeddings for {profile.user_id} are stale "
                    f"({stored.metadata.model}/{stored.metadata.dimensions}), regenerating"
                )
        return self.generate(profile, preferences)

    def get_cache_stats(self) -> dict:
        return self.cache.get_stats()
