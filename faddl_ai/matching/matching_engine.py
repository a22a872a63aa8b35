"""Matching Engine - Rank candidate spouses for a user"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from loguru import logger

from faddl_ai.data.schema import (
    IslamicValuesSummary,
    MatchExplanation,
    PartnerPreferences,
    ProfileEmbeddings,
    SimilarityScore,
    UserProfile,
)
from faddl_ai.errors import EmbeddingMismatchError
from faddl_ai.matching.similarity_matcher import SimilarityMatcher


DEFAULT_RECOMMENDATIONS = (
    "Begin with proper Islamic greetings and introduce families early in the process",
    "Discuss Islamic practice levels, family goals, and life vision openly",
    "Arrange supervised meetings in appropriate Islamic settings",
    "Involve both families in getting-to-know process and decision-making",
    "Make Istikhara (guidance prayer) and seek Allah's guidance throughout the process",
)


@dataclass(frozen=True)
class MatchCandidate:
    profile: UserProfile
    embeddings: ProfileEmbeddings
    preferences: Optional[PartnerPreferences] = None

    @property
    def profile_id(self) -> str:
        return self.profile.user_id


class MatchingEngine:
    """
    Matching engine for recommending compatible spouses

    Features:
    - Rank candidates by overall similarity score
    - Recommend top N matches above a threshold
    - Explain matches as strengths / considerations / Islamic values
    """

    def __init__(self,
                 matcher: Optional[SimilarityMatcher] = None,
                 min_score_threshold: float = 0.5):
        """
        Initialize matching engine

        Args:
            matcher: Custom SimilarityMatcher (if None, uses default)
            min_score_threshold: Minimum overall score to recommend (default 0.5)
        """
        self.matcher = matcher if matcher is not None else SimilarityMatcher()
        self.min_score_threshold = min_score_threshold

    def rank_candidates(
        self,
        user_profile: UserProfile,
        user_embeddings: ProfileEmbeddings,
        candidates: List[MatchCandidate],
        user_preferences: Optional[PartnerPreferences] = None,
        exclude_ids: Optional[List[str]] = None
    ) -> List[SimilarityScore]:
        """
        Rank candidates by overall score, best first

        Candidates whose embeddings cannot be compared with the user's
        (different model or dimensionality) are skipped with a warning.
        """
        if exclude_ids:
            candidates = [c for c in candidates if c.profile_id not in exclude_ids]
        candidates = [c for c in candidates if c.profile_id != user_profile.user_id]

        if len(candidates) == 0:
            logger.warning("No candidates left to rank")
            return []

        ranked: List[SimilarityScore] = []
        for candidate in candidates:
            try:
                score = self.matcher.calculate_similarity(
                    user_embeddings,
                    candidate.embeddings,
                    user_profile,
                    candidate.profile,
                    user_preferences,
                    candidate.preferences,
                )
            except EmbeddingMismatchError as e:
                logger.warning(f"Skipping candidate {candidate.profile_id}: {e.message}")
                continue
            ranked.append(score)

        ranked.sort(key=lambda s: s.overall_score, reverse=True)

        logger.info(
            f"Ranked {len(ranked)} candidates for {user_profile.user_id} "
            f"(scores: {[f'{s.overall_score:.2f}' for s in ranked[:5]]})"
        )
        return ranked

    def recommend_top_n(
        self,
        user_profile: UserProfile,
        user_embeddings: ProfileEmbeddings,
        candidates: List[MatchCandidate],
        n: int = 10,
        user_preferences: Optional[PartnerPreferences] = None,
        exclude_ids: Optional[List[str]] = None
    ) -> List[SimilarityScore]:
        """Top N candidates meeting the minimum score threshold"""
        ranked = self.rank_candidates(
            user_profile=user_profile,
            user_embeddings=user_embeddings,
            candidates=candidates,
            user_preferences=user_preferences,
            exclude_ids=exclude_ids
        )

        filtered = [s for s in ranked if s.overall_score >= self.min_score_threshold]

        if len(filtered) < n:
            logger.warning(
                f"Only {len(filtered)} candidates meet threshold {self.min_score_threshold}, "
                f"requested {n}"
            )

        top_n = filtered[:n]
        logger.info(f"Recommended {len(top_n)} matches: {[(s.profile_id, f'{s.overall_score:.2f}') for s in top_n]}")
        return top_n

    def batch_score(
        self,
        user_profile: UserProfile,
        user_embeddings: ProfileEmbeddings,
        candidates: List[MatchCandidate],
        user_preferences: Optional[PartnerPreferences] = None
    ) -> Dict[str, float]:
        """Overall score per candidate id, without explanation text"""
        scores = {}
        for candidate in candidates:
            try:
                components = self.matcher.score_components(
                    user_embeddings, candidate.embeddings, user_profile, candidate.profile,
                    user_preferences, candidate.preferences,
                )
            except EmbeddingMismatchError as e:
                logger.warning(f"Skipping candidate {candidate.profile_id}: {e.message}")
                continue
            scores[candidate.profile_id] = components.overall
        return scores

    def explain_match(self, similarity: SimilarityScore) -> MatchExplanation:
        """Structured explanation derived from the subscores"""
        return MatchExplanation(
            overall_compatibility=similarity.overall_score,
            strengths=self._strengths(similarity),
            considerations=self._considerations(similarity),
            islamic_values=IslamicValuesSummary(
                score=similarity.islamic_alignment,
                alignment=self._islamic_alignment(similarity),
                areas=self._islamic_discussion_areas(similarity),
            ),
            recommendations=list(DEFAULT_RECOMMENDATIONS),
        )

    # ------------------------------------------------------------------
    @staticmethod
    def _strengths(s: SimilarityScore) -> List[str]:
        strengths = []
        if s.islamic_alignment > 0.8:
            strengths.append("Strong Islamic values alignment - both share similar levels of religious commitment")
        if s.subscores.values > 0.75:
            strengths.append("Excellent compatibility in core life values and family priorities")
        if s.subscores.lifestyle > 0.7:
            strengths.append("Compatible lifestyle approaches and daily life preferences")
        if s.subscores.personality > 0.7:
            strengths.append("Complementary personality traits that could create good balance")
        if s.cultural_compatibility > 0.75:
            strengths.append("Strong cultural understanding and shared traditions")
        if s.subscores.interests > 0.6:
            strengths.append("Shared interests and activities that could strengthen your bond")
        if not strengths:
            strengths.append("Both individuals are seeking marriage with Islamic intentions")
        return strengths[:5]

    @staticmethod
    def _considerations(s: SimilarityScore) -> List[str]:
        considerations = []
        if s.islamic_alignment < 0.6:
            considerations.append("Different levels of religious practice may need discussion and understanding")
        if s.cultural_compatibility < 0.6:
            considerations.append(
                "Different cultural backgrounds - family introduction and cultural bridge-building important"
            )
        if s.subscores.lifestyle < 0.5:
            considerations.append("Different lifestyle preferences - discuss daily routines and life goals")
        if s.subscores.personality < 0.5:
            considerations.append(
                "Different personality types - explore communication styles and conflict resolution"
            )
        if s.overall_score < 0.6:
            considerations.append("Take time for thorough getting-to-know process with family guidance")
        return considerations[:4]

    @staticmethod
    def _islamic_alignment(s: SimilarityScore) -> List[str]:
        if s.islamic_alignment > 0.8:
            return [
                "Very similar levels of Islamic practice and commitment",
                "Shared understanding of Islamic marriage goals",
            ]
        if s.islamic_alignment > 0.6:
            return [
                "Compatible Islamic values with room for mutual growth",
                "Shared commitment to halal lifestyle",
            ]
        return [
            "Both seeking Islamic marriage with family involvement",
            "Opportunity for mutual Islamic learning and growth",
        ]

    @staticmethod
    def _islamic_discussion_areas(s: SimilarityScore) -> List[str]:
        areas = []
        if s.islamic_alignment < 0.7:
            areas.append("Religious practice levels and daily Islamic routines")
            areas.append("Islamic knowledge and learning goals")
        areas.append("Family Islamic traditions and cultural practices")
        areas.append("Children's Islamic education and upbringing plans")
        areas.append("Community involvement and Islamic social activities")
        return areas[:4]
