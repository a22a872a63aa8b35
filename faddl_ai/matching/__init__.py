"""Matching engine modules"""

from faddl_ai.matching.matching_engine import MatchCandidate, MatchingEngine
from faddl_ai.matching.scoring_policy import DEFAULT_POLICY, MatchScoringPolicy
from faddl_ai.matching.similarity_matcher import MatchComponents, SimilarityMatcher, cosine_similarity

__all__ = [
    "DEFAULT_POLICY",
    "MatchCandidate",
    "MatchComponents",
    "MatchScoringPolicy",
    "MatchingEngine",
    "SimilarityMatcher",
    "cosine_similarity",
]
