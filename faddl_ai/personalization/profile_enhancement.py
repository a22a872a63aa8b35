"""
Profile Enhancement - suggestions for a more complete, values-forward profile.

Bio, values, interests, photos and preferences are each checked by simple rules.
A bio long enough to review is also sent to the LLM, whose suggestions are
validated like every other LLM response in the service. A culture-specific
suggestion is added where one exists, and the result is ordered by priority and
then estimated impact.
"""

import json
from typing import Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from faddl_ai.data.schema import (
    PartnerPreferences,
    PersonalizationContext,
    PracticeLevel,
    Priority,
    ProfileEnhancementSuggestion,
    ProfileSection,
    UserProfile,
)
from faddl_ai.errors import LLMUnavailableError
from faddl_ai.moderation.analyzers import strip_code_fences
from faddl_ai.moderation.compliance_rules import compile_terms

MAX_SUGGESTIONS = 8
MIN_BIO_LENGTH = 50
DETAILED_BIO_LENGTH = 150
RESTRICTIVE_THRESHOLD = 0.6

INTEREST_TERMS = compile_terms([
    "enjoy", "love", "like", "interest", "interests", "hobby", "hobbies", "passion",
    "reading", "travel", "cooking", "sport", "sports", "music", "art",
])

ISLAMIC_INTEREST_TERMS = compile_terms([
    "quran", "hadith", "islamic", "mosque", "masjid", "community", "volunteer",
    "volunteering", "charity", "study", "studying", "learn", "learning", "knowledge",
    "deen", "faith",
])

BIO_GUIDANCE = {
    "arab": "Arab culture appreciates eloquent expression and reference to Islamic heritage",
    "south_asian": "South Asian families value educational background and family respect",
    "southeast_asian": "Southeast Asian culture values harmony and gentle, respectful presentation",
    "african": "African Muslim culture values community connection and collective values",
    "turkish": "Turkish culture balances modern achievements with traditional Islamic values",
    "persian": "Persian culture appreciates literary expression and cultural sophistication",
    "convert": "New Muslims can share their journey and fresh perspective on Islam",
    "mixed": "Mixed background allows flexibility in cultural expression and practices",
}

INTERESTS_GUIDANCE = {
    "arab": "Consider mentioning Arabic poetry, Islamic history, or scholarly pursuits",
    "south_asian": "Family gatherings, cultural celebrations, and educational activities are valued",
    "southeast_asian": "Community harmony, traditional crafts, and peaceful activities resonate",
    "african": "Community service, storytelling, and collective cultural activities are appreciated",
    "convert": "Share how Islamic interests have shaped your new lifestyle and growth",
    "mixed": "Diverse interests reflecting your multicultural Islamic experience",
}

PHOTO_GUIDANCE = {
    "arab": "Formal, respectful presentation that reflects family honor",
    "south_asian": "Traditional or semi-formal attire that shows cultural respect",
    "southeast_asian": "Gentle, modest presentation in harmony with cultural norms",
    "african": "Warm, community-oriented presentation that reflects collective values",
    "convert": "Authentic Islamic presentation that shows your spiritual journey",
    "mixed": "Balanced presentation reflecting your diverse Islamic identity",
}

CULTURAL_SUGGESTIONS = {
    "arab": ProfileEnhancementSuggestion(
        section=ProfileSection.VALUES,
        suggestion="Consider mentioning your connection to Islamic scholarship and Arabic language if applicable.",
        reasoning="Arab cultural context values Islamic knowledge and linguistic heritage.",
        cultural_consideration="Arabic-speaking families often appreciate Quranic Arabic knowledge and scholarly engagement.",
        priority=Priority.MEDIUM,
        estimated_impact=0.6,
    ),
    "south_asian": ProfileEnhancementSuggestion(
        section=ProfileSection.BIO,
        suggestion="Mention your educational achievements and family background respectfully.",
        reasoning="South Asian families often value educational compatibility and family honor.",
        cultural_consideration="Academic achievements and family respect are culturally significant.",
        priority=Priority.MEDIUM,
        estimated_impact=0.65,
    ),
    "convert": ProfileEnhancementSuggestion(
        section=ProfileSection.BIO,
        suggestion="Share your Islamic journey and what drew you to Islam, if comfortable.",
        reasoning="Your conversion story can be inspiring and help others understand your commitment.",
        islamic_guidance="New Muslims bring fresh perspective and strong conviction to their practice.",
        priority=Priority.HIGH,
        estimated_impact=0.8,
    ),
}

BIO_FALLBACK = ProfileEnhancementSuggestion(
    section=ProfileSection.BIO,
    suggestion="Consider adding more about your Islamic values and marriage goals",
    reasoning="Clear intentions and values help attract compatible matches",
    islamic_guidance="Islam values honesty and clarity in marriage intentions",
    priority=Priority.MEDIUM,
    estimated_impact=0.7,
)

FALLBACK_SUGGESTIONS = (
    ProfileEnhancementSuggestion(
        section=ProfileSection.BIO,
        suggestion="Complete your bio with 150-300 words about your Islamic values, personality, and marriage goals.",
        reasoning="A complete bio significantly improves match quality and compatibility.",
        islamic_guidance="Islam encourages honest and clear communication about marriage intentions.",
        priority=Priority.HIGH,
        estimated_impact=0.85,
    ),
    ProfileEnhancementSuggestion(
        section=ProfileSection.VALUES,
        suggestion="Clearly represent your level of Islamic practice and spiritual goals.",
        reasoning="Religious compatibility is fundamental for successful Islamic marriage.",
        islamic_guidance="Prophet Muhammad (PBUH) advised choosing spouses primarily for their religion.",
        priority=Priority.HIGH,
        estimated_impact=0.9,
    ),
    ProfileEnhancementSuggestion(
        section=ProfileSection.INTERESTS,
        suggestion="Add 3-5 specific interests that reflect your halal lifestyle and personality.",
        reasoning="Shared interests create natural connections and conversation opportunities.",
        islamic_guidance="Islam encourages balanced life with wholesome activities and continuous learning.",
        priority=Priority.MEDIUM,
        estimated_impact=0.7,
    ),
)

BIO_SYSTEM_PROMPT = (
    "You are an Islamic matrimonial counselor helping Muslims create compelling, authentic "
    "profiles that attract compatible spouses while adhering to Islamic values. Respond with a "
    'JSON object {"suggestions": [...]}, each item having suggestion, reasoning, '
    "islamicGuidance, priority (high/medium/low) and estimatedImpact (0-1)."
)


class _BioSuggestionPayload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    suggestion: str = Field(min_length=1)
    reasoning: str = "Better bio attracts more compatible matches"
    islamic_guidance: Optional[str] = Field(None, alias="islamicGuidance")
    priority: Priority = Priority.MEDIUM
    estimated_impact: float = Field(0.7, ge=0.0, le=1.0, alias="estimatedImpact")


def has_interests_mentioned(bio: str) -> bool:
    return INTEREST_TERMS.search(bio) is not None


def has_islamic_interests(bio: str) -> bool:
    return ISLAMIC_INTEREST_TERMS.search(bio) is not None


def preferences_restrictiveness(preferences: PartnerPreferences) -> float:
    """Mean of per-filter restrictiveness, each in [0, 1]; unset filters count as open"""
    age_span = (preferences.max_age or 50) - (preferences.min_age or 18)
    if age_span < 5:
        age = 1.0
    elif age_span < 10:
        age = 0.5
    else:
        age = 0.0

    zones = len(preferences.location_zones)
    location = 1.0 if zones == 1 else 0.5 if zones == 2 else 0.0
    marital = 1.0 if len(preferences.marital_statuses) == 1 else 0.0
    education = 1.0 if preferences.education_level else 0.0

    return (age + location + marital + education) / 4


def calculate_profile_completeness(profile: UserProfile) -> float:
    """
    Weighted share of the profile that is filled in, in [0, 1].

    Bio 30, basic information 20, religious information 30, photos 20. When the
    photo count is unknown one photo is assumed.
    """
    score = 0
    bio = profile.bio or ""

    if len(bio) > DETAILED_BIO_LENGTH:
        score += 30
    elif len(bio) > MIN_BIO_LENGTH:
        score += 20
    elif bio:
        score += 10

    score += 5  # demographics are always present
    score += 5 if profile.education else 0
    score += 5 if profile.profession else 0
    score += 5 if profile.languages else 0

    score += 15  # prayer frequency and modest dress are always present
    score += 15 if bio and has_islamic_interests(bio) else 0

    photos = 1 if profile.photo_count is None else profile.photo_count
    score += 20 if photos >= 3 else 10 if photos >= 1 else 0

    return round(score / 100, 2)


class ProfileEnhancer:
    """
    Generate ranked profile enhancement suggestions.

    The LLM is only consulted for bios of at least MIN_BIO_LENGTH characters;
    everything else is rule-based and deterministic.
    """

    def __init__(self, llm_router=None, reference_year: Optional[int] = None):
        self._router = llm_router
        self.reference_year = reference_year

    @property
    def router(self):
        if self._router is None:
            from faddl_ai.llm.router import router
            self._router = router
        return self._router

    def generate_suggestions(self, context: PersonalizationContext) -> list[ProfileEnhancementSuggestion]:
        try:
            suggestions = [
                *self.analyze_bio(context),
                *self.analyze_values(context),
                *self.analyze_interests(context),
                *self.analyze_photos(context),
                *self.analyze_preferences(context),
            ]
            cultural = CULTURAL_SUGGESTIONS.get(context.cultural_background)
            if cultural is not None:
                suggestions.append(cultural.model_copy())
        except Exception as e:
            logger.error(f"Profile enhancement failed for {context.user_id}: {e}")
            return [s.model_copy() for s in FALLBACK_SUGGESTIONS]

        suggestions.sort(key=lambda s: (s.priority.rank, s.estimated_impact), reverse=True)
        logger.debug(f"{len(suggestions)} enhancement suggestions for {context.user_id}")
        return suggestions[:MAX_SUGGESTIONS]

    def calculate_completeness(self, profile: UserProfile) -> float:
        return calculate_profile_completeness(profile)

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------
    def analyze_bio(self, context: PersonalizationContext) -> list[ProfileEnhancementSuggestion]:
        bio = context.profile.bio or ""
        if len(bio) < MIN_BIO_LENGTH:
            return [ProfileEnhancementSuggestion(
                section=ProfileSection.BIO,
                suggestion="Write a more detailed bio (150-300 words) highlighting your Islamic values, "
                           "personality, and what you seek in a spouse.",
                reasoning="A comprehensive bio helps potential matches understand your character and intentions.",
                islamic_guidance="Islam encourages honesty and clarity in marriage intentions. "
                                 "Share your faith journey and family goals.",
                cultural_consideration=BIO_GUIDANCE.get(
                    context.cultural_background, "Express your authentic Islamic identity and values"
                ),
                priority=Priority.HIGH,
                estimated_impact=0.85,
            )]
        return self.review_bio(bio, context)

    def review_bio(self, bio: str, context: PersonalizationContext) -> list[ProfileEnhancementSuggestion]:
        """LLM review of an existing bio; one generic suggestion when the review fails"""
        from faddl_ai.llm.router import LLMRole

        profile = context.profile
        prompt = f"""Analyze this Islamic matrimonial profile bio and suggest improvements:

Bio: "{bio}"

User context:
- Age: {profile.age(self.reference_year)}
- Gender: {profile.gender.value}
- Prayer frequency: {profile.prayer_frequency.value}
- Cultural background: {context.cultural_background}
- Profile completeness: {round(calculate_profile_completeness(profile) * 100)}%

Provide suggestions for:
1. Islamic values emphasis
2. Marriage intentions clarity
3. Family goals mention
4. Personality expression
5. Cultural sensitivity"""

        try:
            raw = self.router.chat(
                role=LLMRole.ENHANCEMENT,
                system=BIO_SYSTEM_PROMPT,
                messages=[{"role": "user", "content": prompt}],
                temperature=0.7,
                max_tokens=400,
                json_mode=True,
            )
            parsed = json.loads(strip_code_fences(raw))
            items = parsed["suggestions"] if isinstance(parsed, dict) else parsed
            if not isinstance(items, list) or not items:
                raise TypeError("expected a non-empty list of suggestions")
            payloads = [_BioSuggestionPayload.model_validate(item) for item in items]
        except (LLMUnavailableError, json.JSONDecodeError, ValidationError, TypeError, KeyError) as e:
            logger.warning(f"Bio review failed for {context.user_id}, using fallback: {e}")
            return [BIO_FALLBACK.model_copy()]

        return [ProfileEnhancementSuggestion(section=ProfileSection.BIO, **p.model_dump()) for p in payloads]

    def analyze_values(self, context: PersonalizationContext) -> list[ProfileEnhancementSuggestion]:
        profile = context.profile
        suggestions = []
        if profile.prayer_frequency in (PracticeLevel.NEVER, PracticeLevel.SOMETIMES):
            suggestions.append(ProfileEnhancementSuggestion(
                section=ProfileSection.VALUES,
                suggestion="Consider how you present your spiritual journey and growth intentions.",
                reasoning="Many matches value spiritual compatibility and growth potential.",
                islamic_guidance="Islam encourages continuous spiritual improvement and honest self-assessment.",
                priority=Priority.MEDIUM,
                estimated_impact=0.6,
            ))
        if profile.modest_dress != profile.prayer_frequency:
            suggestions.append(ProfileEnhancementSuggestion(
                section=ProfileSection.VALUES,
                suggestion="Ensure your modesty and prayer practices are clearly and consistently represented.",
                reasoning="Consistency in religious practice representation helps set proper expectations.",
                islamic_guidance="Authenticity in representing your Islamic practice builds trust.",
                priority=Priority.MEDIUM,
                estimated_impact=0.65,
            ))
        return suggestions

    def analyze_interests(self, context: PersonalizationContext) -> list[ProfileEnhancementSuggestion]:
        bio = context.profile.bio or ""
        suggestions = []
        if not has_interests_mentioned(bio):
            suggestions.append(ProfileEnhancementSuggestion(
                section=ProfileSection.INTERESTS,
                suggestion="Add 3-5 specific interests or hobbies that reflect your personality and lifestyle.",
                reasoning="Shared interests create natural conversation starters and compatibility indicators.",
                islamic_guidance="Islam encourages balanced life with wholesome activities and learning.",
                cultural_consideration=INTERESTS_GUIDANCE.get(
                    context.cultural_background, "Share halal interests that reflect your personality"
                ),
                priority=Priority.MEDIUM,
                estimated_impact=0.7,
            ))
        if bio and not has_islamic_interests(bio):
            suggestions.append(ProfileEnhancementSuggestion(
                section=ProfileSection.INTERESTS,
                suggestion="Consider mentioning Islamic activities like Quran study, community service, "
                           "or halal recreation.",
                reasoning="Islamic interests show spiritual engagement and attract like-minded matches.",
                islamic_guidance="Seeking knowledge and serving the community are beloved acts in Islam.",
                priority=Priority.HIGH,
                estimated_impact=0.8,
            ))
        return suggestions

    def analyze_photos(self, context: PersonalizationContext) -> list[ProfileEnhancementSuggestion]:
        cultural = PHOTO_GUIDANCE.get(
            context.cultural_background, "Modest, authentic presentation aligned with Islamic values"
        )
        if context.profile.photo_count == 0:
            suggestion = "Add at least one modest photo so families can see you for marriage purposes."
        else:
            suggestion = "Ensure your photos reflect your Islamic values and modest presentation."
        return [ProfileEnhancementSuggestion(
            section=ProfileSection.PHOTOS,
            suggestion=suggestion,
            reasoning="Photos should align with your stated religious practice level and attract appropriate matches.",
            islamic_guidance="Islam encourages modesty in presentation while allowing families "
                             "to see you for marriage purposes.",
            cultural_consideration=cultural,
            priority=Priority.HIGH,
            estimated_impact=0.9,
        )]

    def analyze_preferences(self, context: PersonalizationContext) -> list[ProfileEnhancementSuggestion]:
        preferences = context.preferences
        suggestions = []
        if preferences_restrictiveness(preferences) > RESTRICTIVE_THRESHOLD:
            suggestions.append(ProfileEnhancementSuggestion(
                section=ProfileSection.PREFERENCES,
                suggestion="Consider if some preferences are too restrictive. Focus on essential Islamic "
                           "values over specific demographics.",
                reasoning="Overly restrictive preferences may limit compatible matches who share your core values.",
                islamic_guidance="Prophet Muhammad (PBUH) advised choosing spouses primarily for their "
                                 "religion and character.",
                priority=Priority.MEDIUM,
                estimated_impact=0.75,
            ))
        if not preferences.wants_children and not context.profile.has_children:
            suggestions.append(ProfileEnhancementSuggestion(
                section=ProfileSection.PREFERENCES,
                suggestion="Consider specifying your desires regarding children and family building.",
                reasoning="Family planning compatibility is crucial for long-term marriage success.",
                islamic_guidance="Islam encourages discussing family goals and children intentions before marriage.",
                priority=Priority.HIGH,
                estimated_impact=0.85,
            ))
        return suggestions
