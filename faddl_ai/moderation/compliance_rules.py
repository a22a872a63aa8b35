"""Term tiers, signal rules and guidance text for the Islamic compliance checker"""

import re
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from faddl_ai.data.schema import ContentType, PracticeLevel, Severity


class TermTier(str, Enum):
    """Curated tiers of matrimonial vocabulary"""
    ENCOURAGED = "encouraged"
    ACCEPTABLE = "acceptable"
    CONCERNING = "concerning"
    PROHIBITED = "prohibited"


class ComplianceSignal(str, Enum):
    """Boolean content flags with a fixed score contribution"""
    ISLAMIC_GREETING = "islamic_greeting"
    ISLAMIC_PHRASES = "islamic_phrases"
    RELIGIOUS_CONTENT = "religious_content"
    FAMILY_MENTION = "family_mention"
    MARRIAGE_INTENT = "marriage_intent"
    INAPPROPRIATE_TERMS = "inappropriate_terms"
    PHYSICAL_REFERENCES = "physical_references"
    PRIVACY_TERMS = "privacy_terms"
    PROHIBITED_CONTENT = "prohibited_content"


@dataclass(frozen=True)
class TierRule:
    """A tier scores once per matched tag: weight per tag, capped in magnitude"""
    tier: TermTier
    tags: Mapping[str, frozenset]
    weight: float
    cap: float

    def adjustment(self, matched_tags: int) -> float:
        magnitude = min(self.cap, matched_tags * abs(self.weight))
        return magnitude if self.weight >= 0 else -magnitude


@dataclass(frozen=True)
class SignalRule:
    signal: ComplianceSignal
    terms: frozenset
    weight: float
    violation: Optional[str] = None


def _tags(**groups: Iterable[str]) -> Mapping[str, frozenset]:
    return MappingProxyType({tag: frozenset(terms) for tag, terms in groups.items()})


# ============================================================================
# TERM TIERS
# ============================================================================

TIER_RULES: Mapping[TermTier, TierRule] = MappingProxyType({
    TermTier.ENCOURAGED: TierRule(
        tier=TermTier.ENCOURAGED,
        tags=_tags(
            faith=("allah", "islam", "muslim", "islamic", "halal", "sunnah", "prophet", "muhammad", "pbuh"),
            worship=("prayer", "prayers", "salah", "dua", "quran", "hadith", "mosque", "masjid"),
            family=("family", "marriage", "nikah", "parents", "children"),
            modesty=("modest", "modesty", "hijab", "respect", "honor"),
            blessings=("assalam", "assalamu", "alaikum", "inshallah", "mashallah", "subhanallah", "alhamdulillah"),
            piety=("righteous", "pious", "god-fearing", "taqwa", "iman", "faith"),
        ),
        weight=0.03,
        cap=0.15,
    ),
    TermTier.ACCEPTABLE: TierRule(
        tier=TermTier.ACCEPTABLE,
        tags=_tags(
            career=("education", "profession", "career", "work", "job"),
            hobbies=("interests", "hobbies", "travel", "books", "sports"),
            heritage=("culture", "tradition", "language", "heritage"),
            aspirations=("values", "goals", "future", "dreams", "aspirations"),
            wellbeing=("cooking", "food", "health", "fitness", "exercise"),
        ),
        weight=0.02,
        cap=0.10,
    ),
    TermTier.CONCERNING: TierRule(
        tier=TermTier.CONCERNING,
        tags=_tags(
            dating=("date", "dating", "girlfriend", "boyfriend", "partner"),
            romance=("love", "romantic", "romance", "passion", "attraction"),
            physical=("physical", "intimate", "sexual", "kiss", "hug", "touch"),
            secrecy=("alone", "private", "secret", "secretly", "hidden", "sneak"),
            nightlife=("drink", "alcohol", "party", "club", "bar", "nightlife"),
            transgression=("haram", "forbidden", "sin", "sinful", "wrong", "immoral"),
        ),
        weight=-0.10,
        cap=0.30,
    ),
    TermTier.PROHIBITED: TierRule(
        tier=TermTier.PROHIBITED,
        tags=_tags(
            sexual=("sex", "sexual", "intercourse", "intimate", "adult"),
            appearance=("naked", "nude", "body", "appearance", "looks", "beauty"),
            intoxicants=("alcohol", "beer", "wine", "drunk", "drugs", "smoking"),
            unlawful_trade=("pork", "gambling", "riba", "usury", "interest rates"),
            orientation=("homosexual", "gay", "lesbian", "lgbt"),
            disbelief=("atheist", "kafir", "non-believer"),
        ),
        weight=-0.15,
        cap=0.50,
    ),
})

PROHIBITED_TERMS = frozenset().union(*TIER_RULES[TermTier.PROHIBITED].tags.values())


# ============================================================================
# SIGNAL RULES
# ============================================================================

SIGNAL_RULES: Mapping[ComplianceSignal, SignalRule] = MappingProxyType({
    rule.signal: rule for rule in (
        SignalRule(
            ComplianceSignal.ISLAMIC_GREETING,
            frozenset({
                "assalam", "assalamu", "asalamu", "as-salamu", "assalamualaikum", "asalamualaikum",
                "salaam", "salaams", "salam",
            }),
            0.10,
        ),
        SignalRule(
            ComplianceSignal.ISLAMIC_PHRASES,
            frozenset({"inshallah", "insha'allah", "mashallah", "masha'allah", "subhanallah",
                       "alhamdulillah", "barakallahu", "barakallah"}),
            0.05,
        ),
        SignalRule(
            ComplianceSignal.RELIGIOUS_CONTENT,
            frozenset({"allah", "islam", "islamic", "muslim", "prayer", "prayers", "pray", "quran",
                       "hadith", "prophet"}),
            0.10,
        ),
        SignalRule(
            ComplianceSignal.FAMILY_MENTION,
            frozenset({"family", "families", "parents", "guardian", "wali", "mahram"}),
            0.08,
        ),
        SignalRule(
            ComplianceSignal.MARRIAGE_INTENT,
            frozenset({"marriage", "marry", "married", "nikah", "wife", "husband", "spouse"}),
            0.12,
        ),
        SignalRule(
            ComplianceSignal.INAPPROPRIATE_TERMS,
            frozenset({"dating", "date", "girlfriend", "boyfriend", "romantic"}),
            -0.25,
            "inappropriate_terminology",
        ),
        SignalRule(
            ComplianceSignal.PHYSICAL_REFERENCES,
            frozenset({"physical", "intimate", "touch", "kiss", "hug", "appearance", "looks"}),
            -0.30,
            "physical_references",
        ),
        SignalRule(
            ComplianceSignal.PRIVACY_TERMS,
            frozenset({"alone", "private", "privately", "secret", "secretly", "meet privately",
                       "don't tell", "dont tell", "just the two of us"}),
            -0.20,
            "alone_meetings",
        ),
        SignalRule(
            ComplianceSignal.PROHIBITED_CONTENT,
            frozenset({"alcohol", "drugs", "gambling", "haram"}) | PROHIBITED_TERMS,
            -0.40,
            "prohibited_content",
        ),
    )
})


RELIGIOSITY_MULTIPLIERS: Mapping[PracticeLevel, float] = MappingProxyType({
    PracticeLevel.ALWAYS: 1.10,
    PracticeLevel.OFTEN: 1.05,
    PracticeLevel.SOMETIMES: 1.00,
    PracticeLevel.NEVER: 0.95,
})

BASELINE_SCORE = 0.7
LONG_CONTENT_WORDS = 20
SHORT_CONTENT_WORDS = 5
MULTIPLE_CONCERNS_THRESHOLD = 2


# ============================================================================
# GUIDANCE
# ============================================================================

GUIDANCE_MESSAGES: Mapping[str, str] = MappingProxyType({
    "inappropriate_terminology": 'Consider using Islamic matrimonial terminology like "seeking marriage" instead of "dating"',
    "physical_references": "Islamic courtship maintains physical boundaries until marriage",
    "alone_meetings": "Islam encourages supervised meetings with family or mahram present",
    "inappropriate_compliments": "Focus on character and Islamic values rather than physical appearance",
    "religious_obligations": "Discussing religious practice and commitment is encouraged in Islamic matrimony",
    "family_involvement": "Islamic marriage involves families - consider mentioning family support",
    "islamic_greetings": 'Using Islamic greetings like "Assalamu alaikum" is appreciated',
    "halal_activities": "Suggest halal activities and public meeting places",
    "marriage_intentions": "Clear intentions for marriage align with Islamic principles",
    "patience_trust": "Trust in Allah's timing and guidance in matrimonial matters",
})

DEFAULT_GUIDANCE = "Please ensure your content aligns with Islamic values and matrimonial appropriateness"

CONTENT_TYPE_GUIDANCE: Mapping[ContentType, str] = MappingProxyType({
    ContentType.PROFILE: ". Consider highlighting your Islamic values and family-oriented goals.",
    ContentType.MESSAGE: ". Use respectful Islamic communication and maintain appropriate boundaries.",
    ContentType.BIO: ". Focus on character, faith, and marriage intentions rather than physical attributes.",
})

CULTURAL_RECOMMENDATIONS: Mapping[str, str] = MappingProxyType({
    "arab": "Arabic Islamic phrases are highly appreciated in Arab culture",
    "south_asian": "Family honor and educational achievements are culturally important",
    "convert": "Sharing your Islamic journey can be meaningful to other converts",
})

CULTURAL_NOTES: Mapping[str, str] = MappingProxyType({
    "arab": "Arab Islamic culture highly values eloquent religious expression and family honor",
    "south_asian": "South Asian Muslims often emphasize family approval and educational compatibility",
    "southeast_asian": "Southeast Asian Islamic culture values harmony and gentle religious expression",
    "african": "African Islamic traditions emphasize community involvement and collective decision-making",
    "turkish": "Turkish Islamic culture balances traditional values with modern approaches",
    "persian": "Persian Islamic culture appreciates sophisticated religious and literary expression",
    "convert": "New Muslims may be learning Islamic etiquette - patience and guidance appreciated",
    "mixed": "Mixed cultural background allows flexibility in Islamic expression and practices",
})

DEFAULT_CULTURAL_NOTE = "Islamic principles are universal across all cultures"

MAX_RECOMMENDATIONS = 3

VIOLATION_SEVERITY: Mapping[str, Severity] = MappingProxyType({
    "prohibited_content": Severity.HIGH,
    "physical_references": Severity.HIGH,
    "inappropriate_terminology": Severity.MEDIUM,
    "alone_meetings": Severity.MEDIUM,
})


# ============================================================================
# TERM MATCHING
# ============================================================================

def normalize_text(text: str) -> str:
    return text.replace("’", "'").replace("‘", "'").lower()


def compile_terms(terms: Iterable[str]) -> re.Pattern:
    """Whole-word / whole-phrase, case-insensitive alternation"""
    alternation = "|".join(re.escape(t) for t in sorted(terms, key=len, reverse=True))
    return re.compile(rf"(?<![\w-])(?:{alternation})(?![\w-])", re.IGNORECASE)


def get_violation_severity(violations: Iterable[str]) -> Severity:
    return max(
        (VIOLATION_SEVERITY.get(v, Severity.LOW) for v in violations),
        key=lambda s: s.rank,
        default=Severity.LOW,
    )
