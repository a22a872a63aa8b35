"""
Conversation Intelligence - Islamic-appropriate conversation assistance.

Suggestions are curated per conversation stage and annotated with guidance.
Message analysis reuses the content moderation pipeline so a conversation
message is scored exactly like any other moderated content.
"""

from typing import Optional

from loguru import logger

from faddl_ai.conversation.cultural_context import CulturalContextManager
from faddl_ai.conversation.islamic_guidance import IslamicGuidanceProvider
from faddl_ai.data.schema import (
    ContentType,
    ConversationAnalysis,
    ConversationContext,
    ConversationParticipant,
    ConversationStage,
    ConversationSuggestion,
    CulturalContext,
    ModerationContext,
    ModerationRequest,
    ModerationResult,
    Sentiment,
    UserProfile,
)
from faddl_ai.errors import ConversationError, LLMUnavailableError, ModerationError

MAX_SUGGESTIONS = 5
MAX_RECOMMENDATIONS = 5

GUARDIAN_APPROPRIATENESS_THRESHOLD = 0.6
GUARDIAN_ISLAMIC_THRESHOLD = 0.7

ANALYSIS_FALLBACK = ConversationAnalysis(
    sentiment="neutral",
    appropriateness=0.5,
    islamic_compliance=0.5,
    cultural_sensitivity=0.5,
    escalation_needed=True,
    recommendations=["Message analysis failed - manual review recommended"],
)

ADAPTATION_SYSTEM_PROMPT = (
    "You are a cultural adaptation specialist for Islamic matrimonial communications. "
    "Adapt messages while preserving Islamic values and respect."
)


def _introduction_suggestions(context: ConversationContext, greeting: str) -> list[ConversationSuggestion]:
    suggestions = [
        ConversationSuggestion(
            type="greeting",
            content=(
                "Assalamu alaikum wa rahmatullahi wa barakatuh. "
                "I hope this message finds you in the best of health and iman."
            ),
            cultural_context="Traditional Islamic greeting showing respect and good intentions",
            confidence=0.95,
            alternatives=[
                f"{greeting}. May Allah bless you with peace and happiness.",
                "Peace be upon you. I pray this message reaches you in good health and faith.",
            ],
        ),
        ConversationSuggestion(
            type="greeting",
            content=(
                "I came across your profile and was impressed by your commitment to Islamic values. "
                "I would be honored to get to know you better, with Allah's guidance."
            ),
            cultural_context="Respectful approach emphasizing Islamic values and divine guidance",
            confidence=0.90,
            alternatives=[
                "Your profile caught my attention, particularly your dedication to faith. "
                "I hope we can learn about each other with Allah's blessing.",
                "I appreciate how you've expressed your Islamic values. I would like to respectfully introduce myself.",
            ],
        ),
    ]

    if context.guardian_involved:
        suggestions.append(ConversationSuggestion(
            type="greeting",
            content=(
                "I am writing with the knowledge and blessing of my family, as they support my search "
                "for a righteous spouse. I hope we can proceed with proper guidance."
            ),
            cultural_context="Emphasizes family involvement and proper Islamic courtship",
            confidence=0.88,
            alternatives=[
                "My family is aware of my interest in getting to know you better, and they support this introduction.",
                "I approach you with my family's blessing and guidance, seeking Allah's will in this matter.",
            ],
        ))
    return suggestions


def _getting_to_know_suggestions(
    context: ConversationContext, recipient: UserProfile
) -> list[ConversationSuggestion]:
    suggestions = [
        ConversationSuggestion(
            type="question",
            content="What aspects of Islam bring you the most peace and fulfillment in your daily life?",
            cultural_context="Focuses on spiritual connection and Islamic practice",
            confidence=0.92,
            alternatives=[
                "How do you incorporate Islamic teachings into your daily routine?",
                "What Islamic values are most important to you in building a family?",
            ],
        ),
        ConversationSuggestion(
            type="question",
            content=(
                "Family is central to Islamic life. What role do you envision your spouse playing "
                "in building a strong Muslim household?"
            ),
            cultural_context="Discusses family building within Islamic framework",
            confidence=0.90,
            alternatives=[
                "How important is family involvement in your decision-making process?",
                "What are your hopes for raising children with strong Islamic values?",
            ],
        ),
    ]

    first, second = context.participants[0], context.participants[1]
    if first.cultural_background != second.cultural_background:
        heritage = recipient.ethnicity.replace("_", " ")
        suggestions.append(ConversationSuggestion(
            type="question",
            content=(
                f"I notice we come from different cultural backgrounds. I'd love to learn about "
                f"{heritage} Islamic traditions and how they've shaped your faith."
            ),
            cultural_context="Shows interest in cultural diversity within Islam",
            confidence=0.85,
            alternatives=[
                "How has your cultural background enriched your understanding of Islam?",
                "I'm curious about the Islamic traditions specific to your cultural heritage.",
            ],
        ))

    suggestions.append(ConversationSuggestion(
        type="question",
        content="How do you balance your professional goals with your Islamic principles and family aspirations?",
        cultural_context="Discusses work-life balance within Islamic framework",
        confidence=0.87,
        alternatives=[
            "What are your career aspirations, and how do they align with your Islamic values?",
            "How do you see balancing work responsibilities with family and religious obligations?",
        ],
    ))
    return suggestions


def _family_discussion_suggestions() -> list[ConversationSuggestion]:
    return [
        ConversationSuggestion(
            type="family_introduction",
            content=(
                "I would be honored to have my family reach out to yours to discuss our mutual "
                "interest in marriage, as is proper in Islam."
            ),
            cultural_context="Initiates formal family involvement following Islamic guidelines",
            confidence=0.95,
            alternatives=[
                "Perhaps it's time for our families to meet and discuss how we can proceed with Allah's blessing.",
                "I believe our families should be introduced to guide us in this important decision.",
            ],
        ),
        ConversationSuggestion(
            type="question",
            content=(
                "What are your family's expectations for marriage, and how can we ensure both "
                "families feel comfortable and respected?"
            ),
            cultural_context="Shows respect for both families' wishes and Islamic customs",
            confidence=0.90,
            alternatives=[
                "How involved would you like our families to be in planning our potential future together?",
                "What traditions are important to your family for Islamic marriage proceedings?",
            ],
        ),
    ]


def _meeting_planning_suggestions() -> list[ConversationSuggestion]:
    return [
        ConversationSuggestion(
            type="topic_change",
            content=(
                "I suggest we arrange a meeting in a respectful setting with our families present, "
                "as is appropriate in Islam."
            ),
            cultural_context="Emphasizes proper Islamic courtship with family supervision",
            confidence=0.95,
            alternatives=[
                "Perhaps we could meet at a local mosque or Islamic center with our guardians present.",
                "I think a family gathering would be the proper way for us to meet in person.",
            ],
        ),
        ConversationSuggestion(
            type="question",
            content=(
                "Would your family prefer to meet at a mosque, Islamic center, or perhaps a "
                "family-friendly restaurant that serves halal food?"
            ),
            cultural_context="Offers appropriate Islamic venue options",
            confidence=0.88,
            alternatives=[
                "What type of setting would make your family most comfortable for our first meeting?",
                "Should we consider meeting after Jummah prayers when families often gather?",
            ],
        ),
    ]


class ConversationIntelligence:
    """Suggest, analyze and adapt messages between matched participants"""

    def __init__(
        self,
        moderation_system=None,
        cultural_manager: Optional[CulturalContextManager] = None,
        guidance_provider: Optional[IslamicGuidanceProvider] = None,
        llm_router=None,
    ):
        self._moderation = moderation_system
        self._router = llm_router
        self.cultural_manager = cultural_manager or CulturalContextManager()
        self.guidance = guidance_provider or IslamicGuidanceProvider()

    @property
    def moderation(self):
        if self._moderation is None:
            from faddl_ai.moderation.content_moderation import ContentModerationSystem
            self._moderation = ContentModerationSystem()
        return self._moderation

    @property
    def router(self):
        if self._router is None:
            from faddl_ai.llm.router import router
            self._router = router
        return self._router

    # ------------------------------------------------------------------
    def generate_suggestions(
        self, context: ConversationContext, recipient_profile: UserProfile
    ) -> list[ConversationSuggestion]:
        """Stage-specific suggestions with guidance attached, at most five."""
        recipient = self._participant(context, recipient_profile.user_id) or context.participants[1]
        try:
            if context.stage == ConversationStage.INTRODUCTION:
                greeting = self.cultural_manager.get_appropriate_greeting(
                    recipient.cultural_background, recipient.gender
                )
                suggestions = _introduction_suggestions(context, greeting)
            elif context.stage == ConversationStage.GETTING_TO_KNOW:
                suggestions = _getting_to_know_suggestions(context, recipient_profile)
            elif context.stage == ConversationStage.FAMILY_DISCUSSION:
                suggestions = _family_discussion_suggestions()
            else:
                suggestions = _meeting_planning_suggestions()

            annotated = [
                s.model_copy(update={
                    "islamic_guidance": self.guidance.get_contextual_guidance(
                        s.type, context.stage, recipient.cultural_background
                    )
                })
                for s in suggestions
            ]
        except Exception as e:
            raise ConversationError(
                "Failed to generate conversation suggestions",
                details={"stage": context.stage.value, "error": str(e)},
            ) from e

        return annotated[:MAX_SUGGESTIONS]

    async def analyze_message(
        self, message: str, context: ConversationContext, sender_profile: UserProfile
    ) -> ConversationAnalysis:
        sender = self._participant(context, sender_profile.user_id) or context.participants[0]
        recipient = next((p for p in context.participants if p.id != sender.id), None)

        request = ModerationRequest(
            content=message,
            content_type=ContentType.MESSAGE,
            user_id=sender_profile.user_id,
            context=ModerationContext(recipient_id=recipient.id if recipient else None),
            cultural_context=CulturalContext(
                primary_language=sender.language_preference,
                cultural_background=sender.cultural_background,
                religious_level=sender_profile.prayer_frequency,
            ),
        )
        try:
            result = await self.moderation.moderate_content(request)
        except ModerationError as e:
            logger.error(f"Message analysis failed for {sender_profile.user_id}: {e.message}")
            return ANALYSIS_FALLBACK.model_copy(deep=True)

        return self.to_conversation_analysis(result)

    @staticmethod
    def to_conversation_analysis(result: ModerationResult) -> ConversationAnalysis:
        escalation = result.escalation
        if escalation.required and result.islamic_compliance.violations:
            sentiment = "concerned"
        else:
            sentiment = Sentiment(result.content_analysis.sentiment).value

        recommendations = []
        if result.islamic_compliance.guidance:
            recommendations.append(result.islamic_compliance.guidance)
        for rec in [*result.islamic_compliance.recommendations, *result.cultural_sensitivity.suggestions]:
            if rec not in recommendations:
                recommendations.append(rec)

        return ConversationAnalysis(
            sentiment=sentiment,
            appropriateness=result.content_analysis.appropriateness,
            islamic_compliance=result.islamic_compliance.score,
            cultural_sensitivity=result.cultural_sensitivity.score,
            escalation_needed=escalation.required,
            recommendations=recommendations[:MAX_RECOMMENDATIONS],
            guardian_alert=escalation.guardian_alert,
        )

    def adapt_message_for_culture(
        self,
        message: str,
        sender_culture: str,
        recipient_culture: str,
        language: Optional[str] = None,
    ) -> str:
        """Rewrite for the recipient's culture. Returns ``message`` unchanged on failure."""
        if sender_culture == recipient_culture:
            return message

        from faddl_ai.llm.router import LLMRole

        prompt = f"""Adapt this Islamic matrimonial message for cultural sensitivity:

Original: "{message}"
Sender culture: {sender_culture}
Recipient culture: {recipient_culture}
Target language: {language or 'English'}

Make minor adjustments for cultural nuances while maintaining Islamic appropriateness and the original meaning. Focus on:
- Appropriate level of formality
- Cultural greeting styles
- Family involvement expectations
- Communication directness/indirectness preferences

Return only the adapted message."""

        try:
            adapted = self.router.chat(
                role=LLMRole.ADAPTATION,
                system=ADAPTATION_SYSTEM_PROMPT,
                messages=[{"role": "user", "content": prompt}],
                temperature=0.5,
                max_tokens=150,
            )
        except LLMUnavailableError as e:
            logger.warning(f"Cultural adaptation failed, keeping original message: {e}")
            return message

        return (adapted or "").strip() or message

    # ------------------------------------------------------------------
    @staticmethod
    def should_notify_guardian(analysis: ConversationAnalysis) -> bool:
        return (
            analysis.escalation_needed
            or analysis.appropriateness < GUARDIAN_APPROPRIATENESS_THRESHOLD
            or analysis.islamic_compliance < GUARDIAN_ISLAMIC_THRESHOLD
            or analysis.guardian_alert is not None
        )

    @staticmethod
    def generate_intervention_message(analysis: ConversationAnalysis) -> str:
        if analysis.guardian_alert is not None:
            alert = analysis.guardian_alert
            return f"Guardian alert: {alert.reason}. Recommended action: {alert.suggested_action}"
        if analysis.islamic_compliance < 0.5:
            return "Content may not align with Islamic values. Guardian review recommended."
        if analysis.appropriateness < 0.5:
            return "Message content requires review for appropriateness in matrimonial context."
        return "Conversation may benefit from guardian guidance."

    @staticmethod
    def _participant(context: ConversationContext, user_id: str) -> Optional[ConversationParticipant]:
        return next((p for p in context.participants if p.id == user_id), None)
