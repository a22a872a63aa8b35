"""Profile embedding generation"""

from faddl_ai.embeddings.cache import EmbeddingCache, embedding_cache_key
from faddl_ai.embeddings.generator import (
    BatchEmbeddingResult,
    EmbeddingGenerator,
    OpenAIEmbeddingProvider,
)
from faddl_ai.embeddings.text_builder import ProfileTextBuilder

__all__ = [
    "BatchEmbeddingResult",
    "EmbeddingCache",
    "EmbeddingGenerator",
    "OpenAIEmbeddingProvider",
    "ProfileTextBuilder",
    "embedding_cache_key",
]
