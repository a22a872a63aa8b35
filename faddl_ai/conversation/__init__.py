"""Conversation assistance modules"""

from faddl_ai.conversation.cultural_context import CULTURAL_PROFILES, CulturalContextManager, CulturalProfile
from faddl_ai.conversation.intelligence import ConversationIntelligence
from faddl_ai.conversation.islamic_guidance import IslamicGuidance, IslamicGuidanceProvider

__all__ = [
    "CULTURAL_PROFILES",
    "ConversationIntelligence",
    "CulturalContextManager",
    "CulturalProfile",
    "IslamicGuidance",
    "IslamicGuidanceProvider",
]
