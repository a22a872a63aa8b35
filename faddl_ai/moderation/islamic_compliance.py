"""
Islamic Compliance Checker - rule-based scoring of matrimonial content.

Pure local computation: content is matched against tiered term tags and
boolean signals, scored from a neutral baseline, scaled by the sender's
religiosity and clamped to [0, 1].
"""

import re
from dataclasses import dataclass, field
from typing import Mapping, Optional

from loguru import logger

from faddl_ai.data.schema import ComplianceResult, ContentType, CulturalContext, PracticeLevel
from faddl_ai.moderation.compliance_rules import (
    BASELINE_SCORE,
    CONTENT_TYPE_GUIDANCE,
    CULTURAL_NOTES,
    CULTURAL_RECOMMENDATIONS,
    DEFAULT_CULTURAL_NOTE,
    DEFAULT_GUIDANCE,
    GUIDANCE_MESSAGES,
    LONG_CONTENT_WORDS,
    MAX_RECOMMENDATIONS,
    MULTIPLE_CONCERNS_THRESHOLD,
    RELIGIOSITY_MULTIPLIERS,
    SHORT_CONTENT_WORDS,
    SIGNAL_RULES,
    TIER_RULES,
    ComplianceSignal,
    SignalRule,
    TermTier,
    TierRule,
    compile_terms,
    get_violation_severity,
    normalize_text,
)


@dataclass(frozen=True)
class ContentSignals:
    """What the term matcher found in one piece of content"""
    tier_tags: Mapping[TermTier, frozenset] = field(default_factory=dict)
    signals: frozenset = frozenset()
    word_count: int = 0

    def count(self, tier: TermTier) -> int:
        return len(self.tier_tags.get(tier, ()))

    def has(self, signal: ComplianceSignal) -> bool:
        return signal in self.signals


class IslamicComplianceChecker:
    """Score content against curated Islamic matrimonial rules"""

    def __init__(
        self,
        tier_rules: Mapping[TermTier, TierRule] = TIER_RULES,
        signal_rules: Mapping[ComplianceSignal, SignalRule] = SIGNAL_RULES,
        religiosity_multipliers: Mapping[PracticeLevel, float] = RELIGIOSITY_MULTIPLIERS,
    ):
        self.tier_rules = tier_rules
        self.signal_rules = signal_rules
        self.religiosity_multipliers = religiosity_multipliers

        self._tier_patterns: dict[TermTier, dict[str, re.Pattern]] = {
            tier: {tag: compile_terms(terms) for tag, terms in rule.tags.items()}
            for tier, rule in tier_rules.items()
        }
        self._signal_patterns: dict[ComplianceSignal, re.Pattern] = {
            signal: compile_terms(rule.terms) for signal, rule in signal_rules.items()
        }

    # ------------------------------------------------------------------
    def check_compliance(
        self,
        content: str,
        content_type: ContentType = ContentType.MESSAGE,
        cultural_context: Optional[CulturalContext] = None,
    ) -> ComplianceResult:
        cultural_context = cultural_context or CulturalContext()
        analysis = self.analyze_content(content)
        violations = self.identify_violations(analysis)

        result = ComplianceResult(
            score=self.calculate_score(analysis, cultural_context.religious_level),
            confidence=self.calculate_confidence(analysis),
            violations=violations,
            guidance=self.generate_guidance(violations, content_type),
            recommendations=self.generate_recommendations(analysis, cultural_context),
            cultural_notes=CULTURAL_NOTES.get(cultural_context.cultural_background, DEFAULT_CULTURAL_NOTE),
        )
        logger.debug(
            f"Compliance: score={result.score:.2f} confidence={result.confidence:.2f} "
            f"violations={violations}"
        )
        return result

    def analyze_content(self, content: str) -> ContentSignals:
        text = normalize_text(content)
        tier_tags = {
            tier: frozenset(tag for tag, pattern in patterns.items() if pattern.search(text))
            for tier, patterns in self._tier_patterns.items()
        }
        signals = frozenset(
            signal for signal, pattern in self._signal_patterns.items() if pattern.search(text)
        )
        return ContentSignals(tier_tags=tier_tags, signals=signals, word_count=len(content.split()))

    # ------------------------------------------------------------------
    def calculate_score(self, analysis: ContentSignals, religious_level: PracticeLevel) -> float:
        score = BASELINE_SCORE
        for signal, rule in self.signal_rules.items():
            if analysis.has(signal):
                score += rule.weight
        for tier, rule in self.tier_rules.items():
            matched = analysis.count(tier)
            if matched:
                score += rule.adjustment(matched)

        score *= self.religiosity_multipliers.get(religious_level, 1.0)
        return max(0.0, min(1.0, score))

    def identify_violations(self, analysis: ContentSignals) -> list[str]:
        violations = [
            rule.violation for signal, rule in self.signal_rules.items()
            if rule.violation and analysis.has(signal)
        ]

        if analysis.count(TermTier.CONCERNING) > MULTIPLE_CONCERNS_THRESHOLD:
            violations.append("multiple_concerns")

        if analysis.word_count > LONG_CONTENT_WORDS:
            if not (analysis.has(ComplianceSignal.ISLAMIC_GREETING) or analysis.has(ComplianceSignal.ISLAMIC_PHRASES)):
                violations.append("missing_islamic_elements")
            if not (analysis.has(ComplianceSignal.MARRIAGE_INTENT) or analysis.has(ComplianceSignal.FAMILY_MENTION)):
                violations.append("unclear_intentions")

        return violations

    def calculate_confidence(self, analysis: ContentSignals) -> float:
        confidence = 0.7

        # Clear indicators
        if analysis.count(TermTier.PROHIBITED) > 0:
            confidence += 0.2
        if analysis.count(TermTier.ENCOURAGED) > 2:
            confidence += 0.15
        if analysis.has(ComplianceSignal.PROHIBITED_CONTENT):
            confidence += 0.1
        if analysis.has(ComplianceSignal.ISLAMIC_GREETING):
            confidence += 0.05

        # Mixed signals or too little text
        if analysis.count(TermTier.CONCERNING) > 0 and analysis.count(TermTier.ENCOURAGED) > 0:
            confidence -= 0.1
        if analysis.word_count < SHORT_CONTENT_WORDS:
            confidence -= 0.2

        return max(0.3, min(0.95, confidence))

    # ------------------------------------------------------------------
    @staticmethod
    def generate_guidance(violations: list[str], content_type: ContentType) -> Optional[str]:
        """Revision advice for the first violation, or None when the content is clean."""
        if not violations:
            return None
        guidance = GUIDANCE_MESSAGES.get(violations[0], DEFAULT_GUIDANCE)
        return guidance + CONTENT_TYPE_GUIDANCE.get(content_type, "")

    @staticmethod
    def generate_recommendations(analysis: ContentSignals, cultural_context: CulturalContext) -> list[str]:
        words = analysis.word_count
        recommendations = []

        if not analysis.has(ComplianceSignal.ISLAMIC_GREETING) and words > 10:
            recommendations.append('Consider starting with "Assalamu alaikum" for Islamic greeting')
        if not analysis.has(ComplianceSignal.RELIGIOUS_CONTENT) and words > 15:
            recommendations.append("Mentioning Islamic values or faith can enhance your message")
        if not analysis.has(ComplianceSignal.FAMILY_MENTION) and words > 25:
            recommendations.append("Islamic marriage involves families - consider mentioning family support")
        if not analysis.has(ComplianceSignal.MARRIAGE_INTENT) and words > 20:
            recommendations.append("Clear marriage intentions align with Islamic matrimonial principles")

        cultural = CULTURAL_RECOMMENDATIONS.get(cultural_context.cultural_background)
        if cultural:
            recommendations.append(cultural)

        return recommendations[:MAX_RECOMMENDATIONS]

    @staticmethod
    def get_violation_severity(violations: list[str]):
        return get_violation_severity(violations)
