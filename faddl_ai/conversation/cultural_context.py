"""
Cultural Context Manager - communication norms across Muslim communities.

Profiles are immutable module-level data. Unknown backgrounds resolve to the
``mixed`` profile.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from faddl_ai.data.schema import ConversationStage, Gender


@dataclass(frozen=True)
class CommonPhrases:
    greeting: str
    blessing: str
    thanks: str
    farewell: str


@dataclass(frozen=True)
class CulturalProfile:
    communication: str          # formal | mixed | adaptable
    family_involvement: str     # high | moderate | variable
    greeting_style: str
    directness: str             # direct | indirect | moderate
    religious_expression: str   # frequent | moderate | learning
    languages: tuple[str, ...]
    phrases: CommonPhrases
    considerations: tuple[str, ...]


@dataclass(frozen=True)
class CulturalAdaptation:
    aspect: str
    suggestion: str
    reason: str


@dataclass(frozen=True)
class CulturalInteraction:
    sender: CulturalProfile
    recipient: CulturalProfile
    recommendations: list[str] = field(default_factory=list)
    common_ground: list[str] = field(default_factory=list)
    adaptations: list[CulturalAdaptation] = field(default_factory=list)


@dataclass(frozen=True)
class ConversationTopic:
    topic: str
    appropriate: str  # "always" or a ConversationStage value
    cultural_notes: str


CULTURAL_PROFILES: Mapping[str, CulturalProfile] = MappingProxyType({
    "arab": CulturalProfile(
        communication="formal",
        family_involvement="high",
        greeting_style="elaborate",
        directness="moderate",
        religious_expression="frequent",
        languages=("arabic", "english"),
        phrases=CommonPhrases(
            greeting="Assalamu alaikum wa rahmatullahi wa barakatuh",
            blessing="Barakallahu feeki/feek",
            thanks="Jazakallahu khayran",
            farewell="Fi amanillah",
        ),
        considerations=(
            "High emphasis on family honor and reputation",
            "Formal address until marriage arrangements discussed",
            "Poetry and eloquent expression appreciated",
            "Religious references natural and expected",
        ),
    ),
    "south_asian": CulturalProfile(
        communication="formal",
        family_involvement="high",
        greeting_style="respectful",
        directness="indirect",
        religious_expression="moderate",
        languages=("english", "urdu", "hindi", "bengali"),
        phrases=CommonPhrases(
            greeting="Assalamu alaikum, how are you?",
            blessing="May Allah bless you",
            thanks="JazakAllahu khair",
            farewell="Allah hafiz",
        ),
        considerations=(
            "Elder respect is paramount",
            "Family izzat (honor) very important",
            "Educational achievements highly valued",
            "Extended family involvement expected",
        ),
    ),
    "southeast_asian": CulturalProfile(
        communication="formal",
        family_involvement="high",
        greeting_style="respectful",
        directness="indirect",
        religious_expression="moderate",
        languages=("english", "malay", "indonesian"),
        phrases=CommonPhrases(
            greeting="Assalamualaikum warahmatullahi wabarakatuh",
            blessing="Semoga Allah memberkati",
            thanks="Jazakallahu khairan",
            farewell="Wassalamualaikum",
        ),
        considerations=(
            "Harmony and avoiding conflict important",
            "Gentle, respectful communication preferred",
            "Community consensus valued",
            "Traditional gender roles often expected",
        ),
    ),
    "african": CulturalProfile(
        communication="formal",
        family_involvement="high",
        greeting_style="warm",
        directness="moderate",
        religious_expression="frequent",
        languages=("english", "arabic", "french", "swahili"),
        phrases=CommonPhrases(
            greeting="As-salamu alaykum sister/brother",
            blessing="May Allah bless you abundantly",
            thanks="Barakallahu feek",
            farewell="May Allah protect you",
        ),
        considerations=(
            "Community and collective decision-making important",
            "Respect for elders and wisdom traditions",
            "Storytelling and personal history sharing valued",
            "Strong emphasis on family unity",
        ),
    ),
    "turkish": CulturalProfile(
        communication="formal",
        family_involvement="high",
        greeting_style="respectful",
        directness="direct",
        religious_expression="moderate",
        languages=("turkish", "english"),
        phrases=CommonPhrases(
            greeting="Selamu aleykum",
            blessing="Allah razi olsun",
            thanks="Teşekkür ederim",
            farewell="Allah'a emanet ol",
        ),
        considerations=(
            "Balance between modern and traditional values",
            "Direct but respectful communication",
            "Family approval significant",
            "Education and career balance important",
        ),
    ),
    "persian": CulturalProfile(
        communication="formal",
        family_involvement="high",
        greeting_style="elaborate",
        directness="indirect",
        religious_expression="moderate",
        languages=("persian", "english"),
        phrases=CommonPhrases(
            greeting="Salamu alaykum va rahmatullahi va barakatuh",
            blessing="Khoda hefzet kone",
            thanks="Moteshakkeram",
            farewell="Be omid-e didar",
        ),
        considerations=(
            "Poetry and literature appreciation common",
            "Elaborate expressions of respect",
            "Family lineage and background important",
            "Artistic and intellectual pursuits valued",
        ),
    ),
    "convert": CulturalProfile(
        communication="mixed",
        family_involvement="variable",
        greeting_style="simple",
        directness="direct",
        religious_expression="learning",
        languages=("english",),
        phrases=CommonPhrases(
            greeting="Assalamu alaikum",
            blessing="May Allah bless you",
            thanks="Thank you, JazakAllah",
            farewell="Assalamu alaikum",
        ),
        considerations=(
            "May be learning Islamic etiquette",
            "Family may not be Muslim",
            "Eager to learn and integrate",
            "Patience with Islamic customs needed",
        ),
    ),
    "mixed": CulturalProfile(
        communication="adaptable",
        family_involvement="moderate",
        greeting_style="flexible",
        directness="moderate",
        religious_expression="moderate",
        languages=("english",),
        phrases=CommonPhrases(
            greeting="Assalamu alaikum",
            blessing="May Allah bless you",
            thanks="JazakAllah",
            farewell="Assalamu alaikum",
        ),
        considerations=(
            "Blend of cultural practices",
            "Flexible approach to traditions",
            "May relate to multiple cultures",
            "Open to different Islamic practices",
        ),
    ),
})

DEFAULT_CULTURE = "mixed"
GENDERED_GREETING_CULTURES = frozenset({"arab", "south_asian"})

UNIVERSAL_TOPICS = (
    ConversationTopic("Islamic values and practice", "always", "Central to all Muslim cultures"),
    ConversationTopic("Family importance", "always", "Universal Islamic value"),
)

CULTURE_TOPICS: Mapping[str, tuple] = MappingProxyType({
    "arab": (
        ConversationTopic("Islamic history and scholarship", "always", "Highly valued in Arab culture"),
        ConversationTopic(
            "Poetry and literature", ConversationStage.GETTING_TO_KNOW.value, "Arabic literary tradition appreciated"
        ),
    ),
    "south_asian": (
        ConversationTopic(
            "Education and career achievements",
            ConversationStage.GETTING_TO_KNOW.value,
            "Highly valued in South Asian families",
        ),
        ConversationTopic(
            "Extended family traditions", ConversationStage.FAMILY_DISCUSSION.value, "Large family networks important"
        ),
    ),
    "convert": (
        ConversationTopic(
            "Islamic learning journey", ConversationStage.GETTING_TO_KNOW.value, "Often eager to share and learn"
        ),
        ConversationTopic(
            "Integrating Islamic practices",
            ConversationStage.GETTING_TO_KNOW.value,
            "May need support and understanding",
        ),
    ),
})


class CulturalContextManager:
    """Cross-cultural communication advice between two participants"""

    def __init__(self, profiles: Mapping[str, CulturalProfile] = CULTURAL_PROFILES):
        self.profiles = profiles

    def get_profile(self, culture: str) -> CulturalProfile:
        return self.profiles.get(culture, self.profiles[DEFAULT_CULTURE])

    def get_cultural_context(self, sender_culture: str, recipient_culture: str) -> CulturalInteraction:
        sender = self.get_profile(sender_culture)
        recipient = self.get_profile(recipient_culture)
        return CulturalInteraction(
            sender=sender,
            recipient=recipient,
            recommendations=self.interaction_recommendations(sender, recipient),
            common_ground=self.common_ground(sender, recipient),
            adaptations=self.suggest_adaptations(sender, recipient),
        )

    @staticmethod
    def interaction_recommendations(sender: CulturalProfile, recipient: CulturalProfile) -> list[str]:
        recs = []

        if sender.communication != recipient.communication:
            if recipient.communication == "formal":
                recs.append("Use formal language and respectful titles")
            elif recipient.communication == "mixed":
                recs.append("Start formal and adapt based on recipient's response style")

        if recipient.family_involvement == "high":
            recs.append("Acknowledge and respect family involvement in decision-making")
            recs.append("Consider mentioning your own family's support")

        if sender.directness == "direct" and recipient.directness == "indirect":
            recs.append("Use gentler, more nuanced language")
            recs.append("Allow for reading between the lines")
        elif sender.directness == "indirect" and recipient.directness == "direct":
            recs.append("Be more straightforward in your communication")
            recs.append("Express intentions clearly")

        if recipient.religious_expression == "frequent":
            recs.append("Include appropriate Islamic phrases and references")
            recs.append("Reference Allah's guidance and blessings naturally")
        elif recipient.religious_expression == "learning":
            recs.append("Be patient with Islamic terminology")
            recs.append("Explain Islamic concepts gently when relevant")

        return recs

    @staticmethod
    def common_ground(sender: CulturalProfile, recipient: CulturalProfile) -> list[str]:
        ground = [
            "Shared commitment to Islamic values and halal marriage",
            "Common goal of building a righteous Muslim family",
        ]

        shared = [lang for lang in sender.languages if lang in recipient.languages]
        if shared:
            ground.append(f"Shared language(s): {', '.join(shared)}")
        if sender.communication == recipient.communication:
            ground.append(f"Both prefer {sender.communication} communication style")
        if sender.family_involvement == recipient.family_involvement:
            ground.append(f"Shared expectations for {sender.family_involvement} family involvement")
        return ground

    @staticmethod
    def suggest_adaptations(sender: CulturalProfile, recipient: CulturalProfile) -> list[CulturalAdaptation]:
        adaptations = []

        if sender.phrases.greeting != recipient.phrases.greeting:
            adaptations.append(CulturalAdaptation(
                aspect="greeting",
                suggestion=f'Consider using: "{recipient.phrases.greeting}"',
                reason="Matches recipient's cultural greeting style",
            ))

        if sender.directness != recipient.directness:
            adaptations.append(CulturalAdaptation(
                aspect="communication_style",
                suggestion=(
                    "Use more subtle, gentle language" if recipient.directness == "indirect"
                    else "Be more direct and clear in your communication"
                ),
                reason=f"Recipient prefers {recipient.directness} communication",
            ))

        for consideration in recipient.considerations:
            adaptations.append(CulturalAdaptation(
                aspect="cultural_awareness",
                suggestion=f"Be aware: {consideration}",
                reason="Important cultural context for recipient's background",
            ))
        return adaptations

    def get_appropriate_greeting(self, culture: str, gender: Gender) -> str:
        greeting = self.get_profile(culture).phrases.greeting
        if culture in GENDERED_GREETING_CULTURES:
            address = "sister" if gender == Gender.FEMALE else "brother"
            return f"{greeting}, dear {address}"
        return greeting

    @staticmethod
    def get_conversation_topics(culture: str) -> list[ConversationTopic]:
        return list(UNIVERSAL_TOPICS) + list(CULTURE_TOPICS.get(culture, ()))
