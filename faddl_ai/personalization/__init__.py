"""Profile personalization modules"""

from faddl_ai.personalization.profile_enhancement import (
    ProfileEnhancer,
    calculate_profile_completeness,
    preferences_restrictiveness,
)

__all__ = [
    "ProfileEnhancer",
    "calculate_profile_completeness",
    "preferences_restrictiveness",
]
