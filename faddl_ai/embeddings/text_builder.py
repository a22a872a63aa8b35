"""Build the five bucket texts that get embedded for a profile"""

from typing import Optional

from faddl_ai.data.schema import PartnerPreferences, UserProfile
from faddl_ai.moderation.compliance_rules import compile_terms


INTEREST_KEYWORDS = (
    "reading", "travel", "cooking", "sports", "music", "art", "photography",
    "hiking", "fitness", "learning", "volunteering", "gardening", "writing",
)

PERSONALITY_KEYWORDS = {
    "kind": "Kind and compassionate",
    "funny": "Humorous and lighthearted",
    "serious": "Serious and focused",
    "outgoing": "Outgoing and social",
    "quiet": "Quiet and reflective",
    "ambitious": "Ambitious and driven",
    "patient": "Patient and understanding",
}

COMMON_INTERESTS = (
    "Quran reading and study",
    "Islamic history and knowledge",
    "Community service and volunteering",
    "Halal food and cooking",
    "Travel to Islamic historical sites",
    "Family gatherings and celebrations",
    "Islamic art and culture",
)

DEFAULT_TRAITS = (
    "God-fearing and humble",
    "Family-loving and caring",
    "Community-minded individual",
    "Knowledge-seeking Muslim",
    "Patient and understanding",
    "Respectful of Islamic values",
)

_INTEREST_PATTERNS = {kw: compile_terms([kw]) for kw in INTEREST_KEYWORDS}
_PERSONALITY_PATTERNS = {kw: compile_terms([kw]) for kw in PERSONALITY_KEYWORDS}

MAX_INTERESTS = 10
MAX_TRAITS = 8


def _sentences(parts) -> str:
    return ". ".join(p for p in parts if p) + "."


class ProfileTextBuilder:
    """
    Groups profile fields into semantic buckets.

    Output is deterministic for a fixed ``reference_year`` so that regenerating
    embeddings for an unchanged profile hits the same cache keys.
    """

    def __init__(self, reference_year: Optional[int] = None):
        self.reference_year = reference_year

    def build(
        self, profile: UserProfile, preferences: Optional[PartnerPreferences] = None
    ) -> dict[str, str]:
        """Return {bucket: text} for every embedding dimension."""
        preferences = preferences or PartnerPreferences()
        return {
            "profile_text": self.profile_text(profile),
            "values": self.values_text(profile, preferences),
            "interests": self.interests_text(profile),
            "lifestyle": self.lifestyle_text(profile),
            "personality": self.personality_text(profile),
        }

    def profile_text(self, profile: UserProfile) -> str:
        return _sentences([
            f"{profile.gender.value} Muslim seeking marriage",
            f"Age {profile.age(self.reference_year)}",
            f"{profile.marital_status.value} status",
            f"Has {profile.children_count} children" if profile.has_children else "No children",
            f"Prayer frequency: {profile.prayer_frequency.value}",
            f"Modest dress: {profile.modest_dress.value}",
            f"Ethnicity: {profile.ethnicity}",
            f"Languages: {', '.join(profile.languages)}",
            f"Location: {profile.location_zone}",
            profile.education and f"Education: {profile.education}",
            profile.profession and f"Profession: {profile.profession}",
            profile.bio and f"About: {profile.bio}",
            "Seeking Allah-fearing spouse for halal marriage",
            "Family-oriented with Islamic values",
        ])

    def values_text(self, profile: UserProfile, preferences: PartnerPreferences) -> str:
        return _sentences([
            f"Prayer: {profile.prayer_frequency.value}",
            f"Modesty: {profile.modest_dress.value}",
            "Islamic marriage intentions",
            "Halal relationship seeking",
            "Open to blended families" if profile.has_children else "Ready for family building",
            "Desires children" if preferences.wants_children else "Family planning flexible",
            "Muslim community engagement",
            "Islamic knowledge seeking",
            "Charitable giving (Zakat)",
            "Sunnah following lifestyle",
            "Mutual Islamic growth",
            "Family integration important",
            "Guardian involvement respected",
            "Islamic wedding planning",
        ])

    def interests_text(self, profile: UserProfile) -> str:
        interests = [f"Enjoys {kw}" for kw in extract_interests(profile.bio or "")]
        interests.extend(COMMON_INTERESTS)
        return _sentences(interests[:MAX_INTERESTS])

    def lifestyle_text(self, profile: UserProfile) -> str:
        return _sentences([
            f"{profile.prayer_frequency.value} prayer practitioner",
            f"{profile.modest_dress.value} modesty observer",
            f"{profile.location_zone} resident",
            "Halal lifestyle adherent",
            "Islamic calendar observer",
            "Muslim community participant",
            "Family-oriented individual",
            "Marriage-seeking Muslim",
        ])

    def personality_text(self, profile: UserProfile) -> str:
        traits = extract_personality(profile.bio or "")
        traits.extend(DEFAULT_TRAITS)
        return _sentences(traits[:MAX_TRAITS])


def extract_interests(bio: str) -> list[str]:
    return [kw for kw, pattern in _INTEREST_PATTERNS.items() if pattern.search(bio)]


def extract_personality(bio: str) -> list[str]:
    return [PERSONALITY_KEYWORDS[kw] for kw, pattern in _PERSONALITY_PATTERNS.items() if pattern.search(bio)]


def estimate_token_count(text: str) -> int:
    """Rough estimate: ~4 characters per token."""
    return -(-len(text) // 4)
