"""Exception taxonomy for the matching and moderation pipelines"""

from typing import Any, Optional


class AIIntegrationError(Exception):
    """Base error carrying a machine-readable code and details"""

    code = "AI_INTEGRATION_ERROR"

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "message": self.message, "details": self.details}


class InvalidProfileError(AIIntegrationError):
    code = "INVALID_PROFILE"


class EmbeddingGenerationError(AIIntegrationError):
    """The embedding provider failed; there is no safe default vector."""

    code = "EMBEDDING_ERROR"

    def __init__(self, profile_id: str, reason: str, details: Optional[dict[str, Any]] = None):
        super().__init__(
            f"Failed to generate embeddings for profile {profile_id}: {reason}",
            details={"profile_id": profile_id, **(details or {})},
        )
        self.profile_id = profile_id


class EmbeddingMismatchError(AIIntegrationError):
    """Two embedding records cannot be compared (dimensionality or model differs)."""

    code = "EMBEDDING_MISMATCH"

    def __init__(self, profile_a: str, profile_b: str, reason: str):
        super().__init__(
            f"Cannot compare embeddings of {profile_a} and {profile_b}: {reason}",
            details={"profile_a": profile_a, "profile_b": profile_b, "reason": reason},
        )
        self.profile_a = profile_a
        self.profile_b = profile_b


class ModerationError(AIIntegrationError):
    code = "MODERATION_ERROR"


class ConversationError(AIIntegrationError):
    code = "CONVERSATION_ERROR"


class LLMUnavailableError(RuntimeError):
    """Every provider in a fallback chain failed or none is configured."""
