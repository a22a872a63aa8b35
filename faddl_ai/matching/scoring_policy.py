"""Weights and tables that turn match signals into a score"""

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

import numpy as np


def _frozen(mapping: dict) -> Mapping:
    return MappingProxyType(dict(mapping))


def _check_sum(name: str, weights: Mapping[str, float]):
    total = math.fsum(weights.values())
    if not np.isclose(total, 1.0):
        raise ValueError(f"{name} weights sum to {total}, expected 1.0")
    if any(w < 0 for w in weights.values()):
        raise ValueError(f"{name} weights must be non-negative")


@dataclass(frozen=True)
class MatchScoringPolicy:
    """
    Scoring policy for the Similarity Matcher.

    overall = embedding_share * Σ(embedding_weights · cosine)
            + compatibility_share * Σ(compatibility_weights · {demographics, islamic, cultural})
    """

    embedding_weights: Mapping[str, float] = field(default_factory=lambda: _frozen({
        "values": 0.35,
        "personality": 0.20,
        "lifestyle": 0.20,
        "interests": 0.15,
        "profile_text": 0.10,
    }))
    islamic_weights: Mapping[str, float] = field(default_factory=lambda: _frozen({
        "prayer_alignment": 0.25,
        "lifestyle_alignment": 0.20,
        "family_values_alignment": 0.20,
        "religious_knowledge_balance": 0.15,
        "community_involvement": 0.10,
        "matrimonial_intentions": 0.10,
    }))
    compatibility_weights: Mapping[str, float] = field(default_factory=lambda: _frozen({
        "demographics": 0.2,
        "islamic": 0.5,
        "cultural": 0.3,
    }))
    embedding_share: float = 0.6
    compatibility_share: float = 0.4

    # |level difference| on the never..always scale → alignment
    ordinal_distance: tuple[float, ...] = (1.0, 0.7, 0.4, 0.1)

    community_involvement_default: float = 0.8
    matrimonial_intent_default: float = 1.0

    def __post_init__(self):
        for name in ("embedding_weights", "islamic_weights", "compatibility_weights"):
            value = getattr(self, name)
            if not isinstance(value, MappingProxyType):
                object.__setattr__(self, name, _frozen(value))
        _check_sum("embedding", self.embedding_weights)
        _check_sum("islamic", self.islamic_weights)
        _check_sum("compatibility", self.compatibility_weights)
        _check_sum("blend", {"embedding": self.embedding_share, "compatibility": self.compatibility_share})

    def weighted_embedding_similarity(self, similarities: Mapping[str, float]) -> float:
        return sum(similarities[k] * w for k, w in self.embedding_weights.items())

    def islamic_alignment(self, factors: Mapping[str, float]) -> float:
        return sum(factors[k] * w for k, w in self.islamic_weights.items())

    def compatibility_bonus(self, demographics: float, islamic: float, cultural: float) -> float:
        w = self.compatibility_weights
        return demographics * w["demographics"] + islamic * w["islamic"] + cultural * w["cultural"]

    def overall(
        self, similarities: Mapping[str, float], demographics: float, islamic: float, cultural: float
    ) -> float:
        score = (
            self.weighted_embedding_similarity(similarities) * self.embedding_share
            + self.compatibility_bonus(demographics, islamic, cultural) * self.compatibility_share
        )
        return float(np.clip(score, 0.0, 1.0))

    def level_alignment(self, level_difference: int) -> float:
        idx = min(abs(level_difference), len(self.ordinal_distance) - 1)
        return self.ordinal_distance[idx]


DEFAULT_POLICY = MatchScoringPolicy()
