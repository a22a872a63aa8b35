"""Rule-based compatibility checks between two profiles

Every function is pure and returns a value in [0, 1].
"""

from types import MappingProxyType
from typing import Optional

from faddl_ai.data.schema import MaritalStatus, PartnerPreferences, PracticeLevel, UserProfile
from faddl_ai.matching.scoring_policy import DEFAULT_POLICY, MatchScoringPolicy


NEARBY_ZONES = MappingProxyType({
    "north_america_east": frozenset({"north_america_central", "north_america_west"}),
    "north_america_central": frozenset({"north_america_east", "north_america_west"}),
    "north_america_west": frozenset({"north_america_central", "north_america_east"}),
    "europe_west": frozenset({"europe_east", "middle_east"}),
    "europe_east": frozenset({"europe_west", "middle_east"}),
})

COMPATIBLE_ETHNIC_GROUPS = (
    frozenset({"arab", "middle_eastern"}),
    frozenset({"south_asian", "southeast_asian"}),
    frozenset({"african", "afro_caribbean"}),
)

# Converts are treated as compatible with every background
UNIVERSAL_ETHNICITY = "convert"


# ═══════════════════════════════════════════════════════════════════
# Demographics
# ═══════════════════════════════════════════════════════════════════

def in_age_range(age: int, min_age: Optional[int], max_age: Optional[int]) -> bool:
    if min_age is not None and age < min_age:
        return False
    if max_age is not None and age > max_age:
        return False
    return True


def age_match(
    profile_a: UserProfile,
    profile_b: UserProfile,
    prefs_a: PartnerPreferences,
    prefs_b: PartnerPreferences,
    reference_year: Optional[int] = None,
) -> float:
    """1.0 when both preferred ranges include the other's age, 0.5 when one does."""
    a_accepts_b = in_age_range(profile_b.age(reference_year), prefs_a.min_age, prefs_a.max_age)
    b_accepts_a = in_age_range(profile_a.age(reference_year), prefs_b.min_age, prefs_b.max_age)
    if a_accepts_b and b_accepts_a:
        return 1.0
    if a_accepts_b or b_accepts_a:
        return 0.5
    return 0.0


def is_nearby(zone_a: str, zone_b: str) -> bool:
    return zone_b in NEARBY_ZONES.get(zone_a, ()) or zone_a in NEARBY_ZONES.get(zone_b, ())


def location_score(zone_a: str, zone_b: str) -> float:
    if zone_a == zone_b:
        return 1.0
    if is_nearby(zone_a, zone_b):
        return 0.7
    return 0.3


def education_compatible(education: Optional[str], preferred_level: Optional[str]) -> float:
    # Permissive until education levels are ranked
    return 1.0


def marital_compatibility(
    profile_a: UserProfile,
    profile_b: UserProfile,
    prefs_a: PartnerPreferences,
    prefs_b: PartnerPreferences,
) -> float:
    status_a, status_b = profile_a.marital_status, profile_b.marital_status
    never_a = status_a == MaritalStatus.NEVER_MARRIED
    never_b = status_b == MaritalStatus.NEVER_MARRIED

    if never_a and never_b:
        if not profile_a.has_children and not profile_b.has_children:
            return 1.0
        return 0.8

    if status_a.previously_married and status_b.previously_married:
        return 0.9

    if (never_a and status_b.previously_married) or (never_b and status_a.previously_married):
        never_prefs = prefs_a if never_a else prefs_b
        previous = profile_b if never_a else profile_a
        if previous.has_children:
            return 0.8 if never_prefs.accepts_children else 0.3
        return 0.9

    return 0.7


def demographic_compatibility(
    profile_a: UserProfile,
    profile_b: UserProfile,
    prefs_a: PartnerPreferences,
    prefs_b: PartnerPreferences,
    reference_year: Optional[int] = None,
) -> float:
    checks = (
        age_match(profile_a, profile_b, prefs_a, prefs_b, reference_year),
        location_score(profile_a.location_zone, profile_b.location_zone),
        min(
            education_compatible(profile_a.education, prefs_b.education_level),
            education_compatible(profile_b.education, prefs_a.education_level),
        ),
        marital_compatibility(profile_a, profile_b, prefs_a, prefs_b),
    )
    return sum(checks) / len(checks)


# ═══════════════════════════════════════════════════════════════════
# Islamic compatibility
# ═══════════════════════════════════════════════════════════════════

def prayer_alignment(
    level_a: PracticeLevel, level_b: PracticeLevel, policy: MatchScoringPolicy = DEFAULT_POLICY
) -> float:
    """Ordinal distance on the never..always scale; also used for modest dress."""
    return policy.level_alignment(level_a.rank - level_b.rank)


def family_values_alignment(
    profile_a: UserProfile, profile_b: UserProfile, reference_year: Optional[int] = None
) -> float:
    children = 1.0 if profile_a.has_children == profile_b.has_children else 0.6

    age_diff = abs(profile_a.age(reference_year) - profile_b.age(reference_year))
    if age_diff <= 5:
        age = 1.0
    elif age_diff <= 10:
        age = 0.8
    else:
        age = 0.5

    return (children + age) / 2


def religious_balance(
    profile_a: UserProfile, profile_b: UserProfile, policy: MatchScoringPolicy = DEFAULT_POLICY
) -> float:
    # Prayer frequency stands in for religious knowledge
    combined = prayer_alignment(profile_a.prayer_frequency, profile_b.prayer_frequency, policy)
    if profile_a.prayer_frequency == PracticeLevel.ALWAYS and profile_b.prayer_frequency == PracticeLevel.ALWAYS:
        return min(1.0, combined + 0.1)
    return combined


def islamic_factors(
    profile_a: UserProfile,
    profile_b: UserProfile,
    policy: MatchScoringPolicy = DEFAULT_POLICY,
    reference_year: Optional[int] = None,
) -> dict[str, float]:
    return {
        "prayer_alignment": prayer_alignment(profile_a.prayer_frequency, profile_b.prayer_frequency, policy),
        "lifestyle_alignment": prayer_alignment(profile_a.modest_dress, profile_b.modest_dress, policy),
        "family_values_alignment": family_values_alignment(profile_a, profile_b, reference_year),
        "religious_knowledge_balance": religious_balance(profile_a, profile_b, policy),
        "community_involvement": policy.community_involvement_default,
        "matrimonial_intentions": policy.matrimonial_intent_default,
    }


# ═══════════════════════════════════════════════════════════════════
# Cultural compatibility
# ═══════════════════════════════════════════════════════════════════

def ethnicity_compatibility(ethnicity_a: str, ethnicity_b: str) -> float:
    a, b = ethnicity_a.lower(), ethnicity_b.lower()
    if a == b:
        return 1.0
    if UNIVERSAL_ETHNICITY in (a, b):
        return 0.8
    if any(a in group and b in group for group in COMPATIBLE_ETHNIC_GROUPS):
        return 0.8
    # Shared faith is the floor
    return 0.6


def language_overlap(languages_a, languages_b) -> float:
    common = set(languages_a) & set(languages_b)
    if not common:
        # English assumed as a fallback
        return 0.2
    return min(1.0, len(common) * 0.3)


def cultural_compatibility(profile_a: UserProfile, profile_b: UserProfile) -> float:
    return (
        ethnicity_compatibility(profile_a.ethnicity, profile_b.ethnicity)
        + language_overlap(profile_a.languages, profile_b.languages)
    ) / 2
