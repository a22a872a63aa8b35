"""Configuration management"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # LLM API Keys
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    gemini_api_key: str = ""
    deepseek_api_key: str = ""

    # Local LLM (vLLM / Ollama / llama.cpp server, OpenAI-compatible endpoint)
    local_llm_base_url: str = ""          # e.g. "http://localhost:8080/v1"
    local_llm_model: str = ""
    local_llm_api_key: str = "not-needed"

    # Embeddings
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 1536
    embedding_concurrency: int = 10
    embedding_cache_ttl_seconds: int = 7 * 24 * 60 * 60
    embedding_cache_max_size: int = 10000

    # External embedding store
    chroma_db_path: str = "./chroma_db"

    # Moderation batching (provider rate limits)
    moderation_batch_size: int = 5
    moderation_batch_delay_seconds: float = 1.0

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: str = "http://localhost:3000"

    # Logging
    log_level: str = "INFO"

    @property
    def cors_origins_list(self) -> list[str]:
        """Get CORS origins as list"""
        return [origin.strip() for origin in self.cors_origins.split(",")]


# Global settings instance
settings = Settings()
