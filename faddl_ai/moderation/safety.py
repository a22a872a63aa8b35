"""General safety classification via the OpenAI moderation endpoint"""

from typing import Any

from loguru import logger

from faddl_ai.data.schema import SafetyResult


def _as_dict(obj: Any) -> dict:
    if obj is None:
        return {}
    if hasattr(obj, "model_dump"):
        return obj.model_dump(by_alias=True)
    return dict(obj)


class SafetyClassifier:
    """
    Wraps ``client.moderations.create``.

    On any API error the result is conservative: flagged, confidence 0.5,
    violation ``moderation_api_error``.
    """

    def __init__(self, client=None, model: str = "omni-moderation-latest"):
        self._client = client
        self.model = model

    @property
    def client(self):
        if self._client is None:
            from faddl_ai.llm.router import openai_client
            self._client = openai_client()
        return self._client

    def classify(self, text: str) -> SafetyResult:
        try:
            response = self.client.moderations.create(model=self.model, input=text)
            result = response.results[0]
        except Exception as e:
            logger.warning(f"Moderation API failed, using conservative result: {e}")
            return self.fallback()

        categories = {k: bool(v) for k, v in _as_dict(result.categories).items() if v is not None}
        scores = {k: float(v) for k, v in _as_dict(result.category_scores).items() if v is not None}
        flagged = bool(result.flagged)

        max_score = max(scores.values(), default=0.0)
        if flagged:
            confidence = min(0.95, max_score * 1.2)
        else:
            confidence = min(0.95, 1 - max_score)

        return SafetyResult(
            flagged=flagged,
            categories=categories,
            category_scores=scores,
            confidence=max(0.0, confidence),
            violations=[k for k, v in categories.items() if v] if flagged else [],
        )

    @staticmethod
    def fallback() -> SafetyResult:
        return SafetyResult(flagged=True, confidence=0.5, violations=["moderation_api_error"])
