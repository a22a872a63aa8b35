"""
Islamic Guidance Provider - stage-appropriate guidance for matrimonial conversations.

Entries are keyed ``<stage>_<suggestion type>`` so a suggestion can look up
the guidance for its own stage and type. Keys prefixed ``general_`` apply to
every stage.
"""

import random
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

from faddl_ai.data.schema import ConversationStage

GENERAL_PREFIX = "general_"


@dataclass(frozen=True)
class GuidanceEntry:
    topic: str
    guidance: str
    source: str
    cultural_adaptations: Mapping[str, str]
    actionable: bool = True
    relevance: float = 0.8


@dataclass(frozen=True)
class IslamicGuidance:
    topic: str
    guidance: str
    source: str
    cultural_adaptation: dict[str, str] = field(default_factory=dict)
    actionable: bool = True
    relevance: float = 0.8


@dataclass(frozen=True)
class IslamicValidationResult:
    is_appropriate: bool
    score: float
    issues: list[str]
    recommendations: list[str]
    islamic_elements: bool


GUIDANCE_DATABASE: Mapping[str, GuidanceEntry] = MappingProxyType({
    "introduction_greeting": GuidanceEntry(
        topic="Proper Islamic Greeting",
        guidance=(
            'Begin with "Assalamu alaikum" as taught by Prophet Muhammad (PBUH). '
            "This creates a blessed foundation for communication."
        ),
        source='Hadith: "Spread salaam among yourselves" (Sahih Muslim)',
        cultural_adaptations=MappingProxyType({
            "arab": 'Use full greeting "Assalamu alaikum wa rahmatullahi wa barakatuh"',
            "south_asian": "Follow with respectful inquiry about health and family",
            "convert": 'Simple "Assalamu alaikum" is perfectly appropriate',
            "general": "The greeting creates barakah (blessing) in the conversation",
        }),
        relevance=1.0,
    ),
    "introduction_intention": GuidanceEntry(
        topic="Declaring Pure Intentions",
        guidance="State your intention for marriage clearly, as Islam values honesty and transparency in all dealings.",
        source='Quran 24:32 - "Marry those among you who are single"',
        cultural_adaptations=MappingProxyType({
            "arab": "Reference seeking Allah's guidance in finding a righteous spouse",
            "south_asian": "Mention family support and blessing for your search",
            "southeast_asian": "Emphasize building a harmonious Muslim household",
            "general": "Honest intentions bring Allah's blessing",
        }),
        relevance=0.9,
    ),
    "getting_to_know_question": GuidanceEntry(
        topic="Appropriate Questions in Islamic Courtship",
        guidance=(
            "Ask about religious practice, family values, and life goals. "
            "Avoid overly personal topics until families are involved."
        ),
        source=(
            'Hadith: "A woman is married for four things: wealth, lineage, beauty, and religion. '
            'Choose the religious one" (Bukhari)'
        ),
        cultural_adaptations=MappingProxyType({
            "arab": "Discuss Islamic knowledge and practice openly",
            "south_asian": "Include questions about family background and education",
            "african": "Community involvement and collective values important",
            "general": "Focus on character and deen (religion) as primary criteria",
        }),
        relevance=0.95,
    ),
    "getting_to_know_boundaries": GuidanceEntry(
        topic="Maintaining Islamic Boundaries",
        guidance="Keep conversations respectful and modest. Avoid private meetings without mahram present.",
        source='Hadith: "When a man is alone with a woman, Satan is the third" (Tirmidhi)',
        cultural_adaptations=MappingProxyType({
            "arab": "Strict adherence to gender interaction guidelines",
            "south_asian": "Family chaperones expected and respected",
            "convert": "Learning these boundaries is part of Islamic growth",
            "general": "Modesty protects both individuals and relationship",
        }),
        relevance=0.9,
    ),
    "family_discussion_family_introduction": GuidanceEntry(
        topic="Involving Families in Islamic Marriage",
        guidance=(
            "Islamic marriage involves families, not just individuals. "
            "Seek your guardian's blessing and guidance."
        ),
        source='Hadith: "No marriage without a guardian" (Abu Dawood)',
        cultural_adaptations=MappingProxyType({
            "arab": "Formal family meetings and negotiations expected",
            "south_asian": "Extended family involvement and approval sought",
            "african": "Community elders may play advisory role",
            "convert": "Islamic community leaders can serve as guardians if needed",
        }),
        relevance=1.0,
    ),
    "family_discussion_question": GuidanceEntry(
        topic="Family Compatibility in Islam",
        guidance="Ensure both families share similar Islamic values and can support the marriage harmoniously.",
        source='Hadith: "A woman is married to a man for his religion, so marry one with good religion" (Bukhari)',
        cultural_adaptations=MappingProxyType({
            "arab": "Family honor and reputation highly important",
            "south_asian": "Educational and social status considerations",
            "turkish": "Balance of traditional and modern family values",
            "general": "Shared Islamic commitment is foundation",
        }),
        relevance=0.85,
    ),
    "meeting_planning_topic_change": GuidanceEntry(
        topic="Arranging Proper Islamic Meetings",
        guidance="Meet in appropriate settings with family present, following Islamic guidelines for gender interaction.",
        source="Prophet's example of allowing limited interaction for marriage compatibility",
        cultural_adaptations=MappingProxyType({
            "arab": "Formal sitting arrangements with clear chaperoning",
            "south_asian": "Family tea/dinner gatherings common",
            "southeast_asian": "Community center or mosque meetings preferred",
            "general": "Public, respectful settings maintain Islamic propriety",
        }),
        relevance=0.9,
    ),
    "general_communication": GuidanceEntry(
        topic="Islamic Etiquette in Communication",
        guidance="Speak with kindness, avoid unnecessary compliments about appearance, focus on character and values.",
        source="Quran 24:30-31 - Guidelines for modest interaction",
        cultural_adaptations=MappingProxyType({
            "arab": "Eloquent, respectful language appreciated",
            "south_asian": "Formal titles and respectful address important",
            "african": "Warm but appropriate communication style",
            "general": "Good character reflected in good speech",
        }),
        relevance=0.8,
    ),
    "general_dua": GuidanceEntry(
        topic="Seeking Allah's Guidance Through Prayer",
        guidance="Make Istikhara (guidance prayer) for important decisions and trust in Allah's wisdom.",
        source="Hadith about Istikhara prayer (Bukhari)",
        cultural_adaptations=MappingProxyType({
            "arab": "Frequent reference to Allah's guidance natural",
            "south_asian": "Family elders often lead in making dua",
            "convert": "Learning to seek Allah's guidance in decisions",
            "general": "Trust in Allah brings peace to the process",
        }),
        relevance=0.75,
    ),
    "general_patience": GuidanceEntry(
        topic="Patience and Trust in Allah's Timing",
        guidance="Trust Allah's timing and wisdom. If it's meant to be, Allah will make it easy.",
        source='Quran 2:216 - "Perhaps you dislike something that is good for you"',
        cultural_adaptations=MappingProxyType({
            "arab": "Inshallah (God willing) commonly used",
            "south_asian": "Tawakkul (trust in Allah) emphasized",
            "african": "Community support during waiting periods",
            "general": "Patience is half of faith",
        }),
        actionable=False,
        relevance=0.7,
    ),
})

STAGE_GUIDANCE: Mapping[ConversationStage, str] = MappingProxyType({
    ConversationStage.INTRODUCTION: "Begin with Islamic greetings and state your pure intentions for marriage.",
    ConversationStage.GETTING_TO_KNOW: (
        "Focus on Islamic values, family importance, and life goals while maintaining appropriate boundaries."
    ),
    ConversationStage.FAMILY_DISCUSSION: (
        "Involve families as Islam emphasizes collective decision-making in marriage."
    ),
    ConversationStage.MEETING_PLANNING: (
        "Arrange meetings in appropriate Islamic settings with proper supervision."
    ),
})
DEFAULT_STAGE_GUIDANCE = "Follow Islamic principles of honesty, respect, and modesty in all communications."

SITUATIONAL_GUIDANCE: Mapping[str, IslamicGuidance] = MappingProxyType({
    "first_message": IslamicGuidance(
        topic="First Message Guidelines",
        guidance=(
            "Begin with Islamic greeting, state pure intentions, "
            "and seek Allah's blessing for the conversation."
        ),
        source="Prophetic example of straightforward, honest communication",
        cultural_adaptation={"general": "Honesty and good intentions bring barakah"},
    ),
    "family_introduction": IslamicGuidance(
        topic="Introducing Families",
        guidance=(
            "Facilitate proper family introduction as Islam emphasizes "
            "family involvement in marriage decisions."
        ),
        source="Islamic tradition of family participation in marriage",
        cultural_adaptation={"general": "Family blessing is crucial for successful Islamic marriage"},
    ),
    "disagreement": IslamicGuidance(
        topic="Handling Disagreements Islamically",
        guidance=(
            "Address differences with patience, respect, and reference to "
            "Islamic principles. Seek wise counsel."
        ),
        source='Quran 4:35 - "If you fear a breach between them, appoint arbiters"',
        cultural_adaptation={"general": "Disagreements can reveal compatibility and conflict resolution skills"},
    ),
    "meeting_delay": IslamicGuidance(
        topic="Patience with Delays",
        guidance="Trust Allah's timing. Delays may be protection or preparation for better outcomes.",
        source='Hadith: "What is meant for you will not pass you by"',
        cultural_adaptation={"general": "Patience and trust in Allah bring peace"},
    ),
})

DAILY_REMINDERS = (
    IslamicGuidance(
        topic="Seeking Allah's Guidance",
        guidance="Make du'a for Allah to guide you to a righteous spouse who will be the coolness of your eyes.",
        source='Quran 25:74 - "Grant us from our spouses and offspring comfort to our eyes"',
        cultural_adaptation={"general": "Universal Islamic guidance for all Muslims"},
    ),
    IslamicGuidance(
        topic="Patience in Search",
        guidance=(
            "Trust Allah's timing in providing the right spouse. "
            "What Allah has written for you will reach you."
        ),
        source='Hadith: "Know that what has passed you by was not meant to reach you"',
        cultural_adaptation={"general": "Universal Islamic guidance for all Muslims"},
    ),
    IslamicGuidance(
        topic="Self-Improvement",
        guidance="Work on becoming the righteous spouse you seek. Improve your deen, character, and skills.",
        source='Hadith: "Each of you is a shepherd and responsible for his flock"',
        cultural_adaptation={"general": "Universal Islamic guidance for all Muslims"},
    ),
    IslamicGuidance(
        topic="Family Involvement",
        guidance=(
            "Include your family in your marriage search. "
            "Their prayers and guidance are valuable assets."
        ),
        source='Quran: "And those who say: Our Lord! Grant us in our wives and offspring comfort to our eyes"',
        cultural_adaptation={"general": "Universal Islamic guidance for all Muslims"},
    ),
)

# Message validation
INAPPROPRIATE_PATTERNS = (
    re.compile(r"\b(dating|girlfriend|boyfriend)\b", re.IGNORECASE),
    re.compile(r"\b(intimate|physical|sexual)\b", re.IGNORECASE),
    re.compile(r"\b(alone|private|secret)\b", re.IGNORECASE),
)
ISLAMIC_PATTERNS = (
    re.compile(r"\b(allah|islamic|muslim|halal|inshallah|mashallah|barakallahu)\b", re.IGNORECASE),
    re.compile(r"\b(family|marriage|values|faith)\b", re.IGNORECASE),
    re.compile(r"assalam", re.IGNORECASE),
)
INAPPROPRIATE_PENALTY = 0.3
MINOR_PENALTY = 0.1
MIN_MESSAGE_CHARS = 10
MAX_MESSAGE_CHARS = 1000
EXPECT_ISLAMIC_ELEMENTS_CHARS = 50


class IslamicGuidanceProvider:
    """Look up guidance by stage, suggestion type, situation or culture"""

    def __init__(self, database: Mapping[str, GuidanceEntry] = GUIDANCE_DATABASE):
        self.database = database

    def get_contextual_guidance(
        self,
        suggestion_type: str,
        stage: ConversationStage,
        cultural_background: Optional[str] = None,
    ) -> str:
        entry = self.database.get(f"{stage.value}_{suggestion_type}")
        if entry is None:
            return STAGE_GUIDANCE.get(stage, DEFAULT_STAGE_GUIDANCE)

        if cultural_background and cultural_background in entry.cultural_adaptations:
            return f"{entry.guidance} Cultural note: {entry.cultural_adaptations[cultural_background]}"

        general = entry.cultural_adaptations.get("general")
        return f"{entry.guidance} {general}" if general else entry.guidance

    def get_stage_guidance(
        self, stage: ConversationStage, cultural_background: Optional[str] = None
    ) -> list[IslamicGuidance]:
        """All guidance for ``stage`` plus general entries, most relevant first."""
        relevant = []
        for key, entry in self.database.items():
            if not (key.startswith(f"{stage.value}_") or key.startswith(GENERAL_PREFIX)):
                continue

            general = entry.cultural_adaptations.get("general", "")
            if cultural_background:
                adaptation = {cultural_background: entry.cultural_adaptations.get(cultural_background, general)}
            else:
                adaptation = {"general": general}

            relevant.append(IslamicGuidance(
                topic=entry.topic,
                guidance=entry.guidance,
                source=entry.source,
                cultural_adaptation=adaptation,
                actionable=entry.actionable,
                relevance=entry.relevance,
            ))

        return sorted(relevant, key=lambda g: g.relevance, reverse=True)

    @staticmethod
    def get_situational_guidance(situation: str) -> Optional[IslamicGuidance]:
        return SITUATIONAL_GUIDANCE.get(situation)

    @staticmethod
    def get_daily_reminder(rng: Optional[random.Random] = None) -> IslamicGuidance:
        return (rng or random).choice(DAILY_REMINDERS)

    @staticmethod
    def validate_islamic_content(message: str) -> IslamicValidationResult:
        issues = []
        recommendations = []
        score = 1.0

        for pattern in INAPPROPRIATE_PATTERNS:
            if pattern.search(message):
                issues.append("Contains terminology not aligned with Islamic courtship")
                score -= INAPPROPRIATE_PENALTY

        islamic_elements = any(p.search(message) for p in ISLAMIC_PATTERNS)
        if not islamic_elements and len(message) > EXPECT_ISLAMIC_ELEMENTS_CHARS:
            recommendations.append("Consider including Islamic greetings or references to faith")
            score -= MINOR_PENALTY

        if len(message) < MIN_MESSAGE_CHARS:
            recommendations.append("Message may be too brief for meaningful Islamic courtship")
            score -= MINOR_PENALTY
        elif len(message) > MAX_MESSAGE_CHARS:
            recommendations.append("Consider breaking long messages into smaller, focused conversations")
            score -= MINOR_PENALTY

        return IslamicValidationResult(
            is_appropriate=not issues,
            score=max(0.0, score),
            issues=issues,
            recommendations=recommendations,
            islamic_elements=islamic_elements,
        )
