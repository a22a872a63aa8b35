"""ChromaDB-backed store for profile embeddings"""

from datetime import datetime
from pathlib import Path
from typing import Optional

import chromadb
from chromadb.config import Settings
from loguru import logger

from faddl_ai.config import settings
from faddl_ai.data.schema import EMBEDDING_DIMENSIONS, EmbeddingMetadata, ProfileEmbeddings


class ChromaEmbeddingStore:
    """One collection per embedding bucket, keyed by profile id"""

    def __init__(self, db_path: Optional[Path] = None, client=None):
        if client is None:
            self.db_path = db_path or Path(settings.chroma_db_path)
            self.db_path.mkdir(parents=True, exist_ok=True)
            client = chromadb.PersistentClient(
                path=str(self.db_path),
                settings=Settings(anonymized_telemetry=False)
            )
            logger.info(f"ChromaDB embedding store initialized at {self.db_path}")
        self.client = client

    def _collection(self, bucket: str):
        return self.client.get_or_create_collection(
            name=f"profile_embeddings_{bucket}",
            metadata={"hnsw:space": "cosine", "bucket": bucket},
        )

    def save(self, embeddings: ProfileEmbeddings):
        meta = embeddings.metadata
        metadata = {
            "model": meta.model,
            "dimensions": meta.dimensions,
            "generated_at": meta.generated_at.isoformat(),
            "version": meta.version,
            "token_count": meta.token_count if meta.token_count is not None else -1,
        }
        for bucket in EMBEDDING_DIMENSIONS:
            self._collection(bucket).upsert(
                ids=[embeddings.profile_id],
                embeddings=[embeddings.vector(bucket)],
                metadatas=[metadata],
            )
        logger.debug(f"Stored embeddings for profile {embeddings.profile_id}")

    def load(self, profile_id: str) -> Optional[ProfileEmbeddings]:
        vectors: dict[str, list[float]] = {}
        metadata = None
        for bucket in EMBEDDING_DIMENSIONS:
            result = self._collection(bucket).get(ids=[profile_id], include=["embeddings", "metadatas"])
            if not result["ids"]:
                return None
            vectors[bucket] = [float(x) for x in result["embeddings"][0]]
            metadata = result["metadatas"][0]

        token_count = metadata.get("token_count", -1)
        return ProfileEmbeddings(
            profile_id=profile_id,
            metadata=EmbeddingMetadata(
                model=metadata["model"],
                dimensions=metadata["dimensions"],
                generated_at=datetime.fromisoformat(metadata["generated_at"]),
                version=metadata.get("version", "1.0"),
                token_count=None if token_count < 0 else token_count,
            ),
            **vectors,
        )

    def delete(self, profile_id: str):
        for bucket in EMBEDDING_DIMENSIONS:
            self._collection(bucket).delete(ids=[profile_id])
        logger.debug(f"Deleted embeddings for profile {profile_id}")
