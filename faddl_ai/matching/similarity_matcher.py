"""
Similarity Matcher - multi-dimensional compatibility between two profiles.

Blends cosine similarity of the five embedding dimensions with rule-based
demographic, Islamic and cultural compatibility, then asks the LLM router
for a short explanation (template fallback when no provider answers).
"""

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
from loguru import logger

from faddl_ai.data.schema import (
    EMBEDDING_DIMENSIONS,
    PartnerPreferences,
    ProfileEmbeddings,
    SimilarityScore,
    SimilaritySubscores,
    UserProfile,
)
from faddl_ai.errors import EmbeddingMismatchError
from faddl_ai.matching import compatibility_rules as rules
from faddl_ai.matching.scoring_policy import DEFAULT_POLICY, MatchScoringPolicy


AREA_NAMES = {
    "values": "shared Islamic values",
    "lifestyle": "compatible lifestyle",
    "personality": "personality compatibility",
    "interests": "common interests",
    "profile_text": "overall compatibility",
}

EXPLANATION_SYSTEM_PROMPT = (
    "You are an Islamic matrimonial counselor providing thoughtful match explanations "
    "that respect Islamic values and cultural sensitivity. Keep explanations concise, "
    "positive, and focused on compatibility factors that matter for successful Islamic marriage."
)


def cosine_similarity(
    vector_a: Sequence[float],
    vector_b: Sequence[float],
    labels: tuple[str, str] = ("vector_a", "vector_b"),
) -> float:
    """
    Cosine similarity in [-1, 1].

    Returns 0.0 when either vector has zero norm.

    Raises:
        EmbeddingMismatchError: If the vectors differ in length.
    """
    a = np.asarray(vector_a, dtype=float)
    b = np.asarray(vector_b, dtype=float)
    if a.shape != b.shape:
        raise EmbeddingMismatchError(labels[0], labels[1], f"vector lengths {a.size} != {b.size}")

    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    return float(np.clip(np.dot(a, b) / (norm_a * norm_b), -1.0, 1.0))


def _unit(value: float) -> float:
    return float(np.clip(value, 0.0, 1.0))


@dataclass(frozen=True)
class MatchComponents:
    """Deterministic part of a similarity evaluation"""
    similarities: dict[str, float]
    demographics: float
    islamic_alignment: float
    cultural_compatibility: float
    overall: float


class SimilarityMatcher:
    """Compute SimilarityScore records for profile pairs"""

    def __init__(
        self,
        policy: MatchScoringPolicy = DEFAULT_POLICY,
        llm_router=None,
        reference_year: Optional[int] = None,
        use_llm_explanations: bool = True,
    ):
        self.policy = policy
        self._router = llm_router
        self.reference_year = reference_year
        self.use_llm_explanations = use_llm_explanations

    @property
    def router(self):
        if self._router is None:
            from faddl_ai.llm.router import router
            self._router = router
        return self._router

    # ------------------------------------------------------------------
    @staticmethod
    def check_comparable(embeddings_a: ProfileEmbeddings, embeddings_b: ProfileEmbeddings):
        """Raise EmbeddingMismatchError when model or dimensionality differ."""
        meta_a, meta_b = embeddings_a.metadata, embeddings_b.metadata
        if meta_a.dimensions != meta_b.dimensions:
            raise EmbeddingMismatchError(
                embeddings_a.profile_id, embeddings_b.profile_id,
                f"dimensions {meta_a.dimensions} != {meta_b.dimensions}",
            )
        if meta_a.model != meta_b.model:
            raise EmbeddingMismatchError(
                embeddings_a.profile_id, embeddings_b.profile_id,
                f"model {meta_a.model!r} != {meta_b.model!r}",
            )

    def score_components(
        self,
        embeddings_a: ProfileEmbeddings,
        embeddings_b: ProfileEmbeddings,
        profile_a: UserProfile,
        profile_b: UserProfile,
        prefs_a: Optional[PartnerPreferences] = None,
        prefs_b: Optional[PartnerPreferences] = None,
    ) -> MatchComponents:
        self.check_comparable(embeddings_a, embeddings_b)
        prefs_a = prefs_a or PartnerPreferences()
        prefs_b = prefs_b or PartnerPreferences()
        labels = (embeddings_a.profile_id, embeddings_b.profile_id)

        similarities = {
            dim: _unit(cosine_similarity(embeddings_a.vector(dim), embeddings_b.vector(dim), labels))
            for dim in EMBEDDING_DIMENSIONS
        }
        demographics = _unit(rules.demographic_compatibility(
            profile_a, profile_b, prefs_a, prefs_b, self.reference_year
        ))
        islamic = _unit(self.policy.islamic_alignment(
            rules.islamic_factors(profile_a, profile_b, self.policy, self.reference_year)
        ))
        cultural = _unit(rules.cultural_compatibility(profile_a, profile_b))
        overall = self.policy.overall(similarities, demographics, islamic, cultural)

        return MatchComponents(
            similarities=similarities,
            demographics=demographics,
            islamic_alignment=islamic,
            cultural_compatibility=cultural,
            overall=overall,
        )

    def calculate_similarity(
        self,
        embeddings_a: ProfileEmbeddings,
        embeddings_b: ProfileEmbeddings,
        profile_a: UserProfile,
        profile_b: UserProfile,
        prefs_a: Optional[PartnerPreferences] = None,
        prefs_b: Optional[PartnerPreferences] = None,
    ) -> SimilarityScore:
        """
        Score profile B as a match for profile A.

        Raises:
            EmbeddingMismatchError: If the two embedding records are not comparable.
        """
        components = self.score_components(embeddings_a, embeddings_b, profile_a, profile_b, prefs_a, prefs_b)
        explanation = self.generate_explanation(components, profile_a, profile_b)

        logger.debug(
            f"Similarity {profile_a.user_id} ↔ {profile_b.user_id}: overall={components.overall:.3f} "
            f"islamic={components.islamic_alignment:.3f} cultural={components.cultural_compatibility:.3f}"
        )

        return SimilarityScore(
            profile_id=embeddings_b.profile_id,
            overall_score=components.overall,
            subscores=SimilaritySubscores(**components.similarities, demographics=components.demographics),
            explanation=explanation,
            islamic_alignment=components.islamic_alignment,
            cultural_compatibility=components.cultural_compatibility,
        )

    # ------------------------------------------------------------------
    def generate_explanation(
        self, components: MatchComponents, profile_a: UserProfile, profile_b: UserProfile
    ) -> str:
        if not self.use_llm_explanations:
            return self.fallback_explanation(components)

        from faddl_ai.llm.router import LLMRole
        try:
            text = self.router.chat(
                role=LLMRole.EXPLANATION,
                system=EXPLANATION_SYSTEM_PROMPT,
                messages=[{"role": "user", "content": self._explanation_prompt(components, profile_a, profile_b)}],
                temperature=0.7,
                max_tokens=200,
            )
        except Exception as e:
            logger.warning(f"Match explanation generation failed, using template: {e}")
            return self.fallback_explanation(components)

        text = (text or "").strip()
        return text or self.fallback_explanation(components)

    def _explanation_prompt(
        self, components: MatchComponents, profile_a: UserProfile, profile_b: UserProfile
    ) -> str:
        sims = components.similarities

        def children(p: UserProfile) -> str:
            return "Has children" if p.has_children else "No children"

        return f"""Analyze this potential Islamic matrimonial match and provide a brief explanation:

Compatibility Scores:
- Islamic Values Alignment: {components.islamic_alignment * 100:.0f}%
- Values Similarity: {sims['values'] * 100:.0f}%
- Lifestyle Compatibility: {sims['lifestyle'] * 100:.0f}%
- Personality Match: {sims['personality'] * 100:.0f}%
- Cultural Compatibility: {components.cultural_compatibility * 100:.0f}%

Profile Details:
- Ages: {profile_a.age(self.reference_year)} and {profile_b.age(self.reference_year)}
- Prayer Frequency: {profile_a.prayer_frequency.value} and {profile_b.prayer_frequency.value}
- Modest Dress: {profile_a.modest_dress.value} and {profile_b.modest_dress.value}
- Ethnicities: {profile_a.ethnicity} and {profile_b.ethnicity}
- Location: {profile_a.location_zone} and {profile_b.location_zone}
- Children: {children(profile_a)} and {children(profile_b)}

Provide a warm, encouraging explanation of why this could be a good match, focusing on the strongest compatibility areas while being honest about any considerations. Keep it under 150 words."""

    @staticmethod
    def fallback_explanation(components: MatchComponents) -> str:
        """Deterministic explanation naming the strongest embedding dimension."""
        strongest = max(EMBEDDING_DIMENSIONS, key=lambda d: components.similarities[d])
        return (
            f"This match shows promise with strong {AREA_NAMES[strongest]} "
            f"({components.similarities[strongest] * 100:.0f}%) and good Islamic alignment "
            f"({components.islamic_alignment * 100:.0f}%). Both individuals appear to share "
            f"important values for building a successful Islamic marriage."
        )
