"""LLM-backed cultural-sensitivity and content analyzers

Responses are parsed as JSON and validated against a strict schema. Any
provider, JSON or schema failure yields exactly one typed fallback value.
"""

import json
from typing import Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from faddl_ai.data.schema import (
    ContentAnalysisResult,
    CulturalContext,
    CulturalSensitivityResult,
    Sentiment,
)
from faddl_ai.errors import LLMUnavailableError


def strip_code_fences(text: str) -> str:
    if "```json" in text:
        return text.split("```json")[1].split("```")[0].strip()
    if "```" in text:
        return text.split("```")[1].split("```")[0].strip()
    return text.strip()


class _CulturalPayload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    score: float = Field(ge=0.0, le=1.0)
    confidence: float = Field(ge=0.0, le=1.0)
    concerns: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    cultural_notes: str = Field("", alias="culturalNotes")


class _ContentPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    language: str
    sentiment: Sentiment
    topics: list[str] = Field(default_factory=list)
    appropriateness: float = Field(ge=0.0, le=1.0)


CULTURAL_FALLBACK = CulturalSensitivityResult(
    score=0.7,
    confidence=0.5,
    concerns=["Cultural analysis failed - manual review recommended"],
    suggestions=["Consider cultural context and sensitivity"],
    cultural_notes="Analysis failed - default neutral assessment",
)

CONTENT_FALLBACK = ContentAnalysisResult(
    language="unknown",
    sentiment=Sentiment.NEUTRAL,
    topics=["analysis_failed"],
    appropriateness=0.5,
)

CULTURAL_SYSTEM_PROMPT = """You are a cultural sensitivity expert for Islamic matrimonial platforms. Analyze content for cultural appropriateness across different Muslim communities. Consider Arab, South Asian, Southeast Asian, African, Turkish, Persian, Convert, and Mixed cultural backgrounds.

Respond with a JSON object containing:
- score (0-1): Cultural sensitivity score
- confidence (0-1): Confidence in analysis
- concerns (array of strings): Any cultural concerns
- suggestions (array of strings): Suggestions for improvement
- culturalNotes (string): Relevant cultural context"""

CONTENT_SYSTEM_PROMPT = (
    "You are a content analysis expert. Respond with a JSON object with: "
    "language (string), sentiment (one of positive/neutral/negative), "
    "topics (array of strings), appropriateness (0-1)."
)


class _LLMAnalyzer:
    def __init__(self, llm_router=None):
        self._router = llm_router

    @property
    def router(self):
        if self._router is None:
            from faddl_ai.llm.router import router
            self._router = router
        return self._router


class CulturalSensitivityAnalyzer(_LLMAnalyzer):
    """Cultural appropriateness across Muslim communities"""

    def analyze(self, content: str, cultural_context: Optional[CulturalContext] = None) -> CulturalSensitivityResult:
        from faddl_ai.llm.router import LLMRole

        cultural_context = cultural_context or CulturalContext()
        try:
            raw = self.router.chat(
                role=LLMRole.CULTURAL,
                system=CULTURAL_SYSTEM_PROMPT,
                messages=[{"role": "user", "content": self._build_prompt(content, cultural_context)}],
                temperature=0.3,
                max_tokens=300,
                json_mode=True,
            )
            payload = _CulturalPayload.model_validate(json.loads(strip_code_fences(raw)))
        except (LLMUnavailableError, json.JSONDecodeError, ValidationError, TypeError) as e:
            logger.warning(f"Cultural sensitivity analysis failed, using fallback: {e}")
            return CULTURAL_FALLBACK.model_copy(deep=True)

        return CulturalSensitivityResult(**payload.model_dump())

    @staticmethod
    def _build_prompt(content: str, ctx: CulturalContext) -> str:
        return f"""Analyze this content for cultural sensitivity in Islamic matrimonial context:

Content: "{content}"

Cultural Context:
- Primary Language: {ctx.primary_language}
- Cultural Background: {ctx.cultural_background}
- Religious Level: {ctx.religious_level.value}

Consider:
1. Appropriateness across different Muslim cultures
2. Language formality and respect levels
3. Family involvement expectations
4. Gender interaction guidelines
5. Regional Islamic practices and customs

Rate cultural sensitivity (0-1) and provide specific feedback."""


class ContentAnalyzer(_LLMAnalyzer):
    """Language, sentiment, topics and general appropriateness"""

    def analyze(self, content: str) -> ContentAnalysisResult:
        from faddl_ai.llm.router import LLMRole

        prompt = f"""Analyze this content for an Islamic matrimonial platform:

Content: "{content}"

Provide:
1. Primary language detected
2. Sentiment (positive/neutral/negative)
3. Main topics discussed
4. Overall appropriateness for matrimonial context (0-1 score)"""

        try:
            raw = self.router.chat(
                role=LLMRole.ANALYSIS,
                system=CONTENT_SYSTEM_PROMPT,
                messages=[{"role": "user", "content": prompt}],
                temperature=0.3,
                max_tokens=200,
                json_mode=True,
            )
            payload = _ContentPayload.model_validate(json.loads(strip_code_fences(raw)))
        except (LLMUnavailableError, json.JSONDecodeError, ValidationError, TypeError) as e:
            logger.warning(f"Content analysis failed, using fallback: {e}")
            return CONTENT_FALLBACK.model_copy(deep=True)

        return ContentAnalysisResult(**payload.model_dump())
