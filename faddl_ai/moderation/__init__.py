"""Content moderation modules"""

from faddl_ai.moderation.analyzers import ContentAnalyzer, CulturalSensitivityAnalyzer
from faddl_ai.moderation.audit import AuditSink, GuardianNotifier, LoguruAuditSink, LoguruGuardianNotifier
from faddl_ai.moderation.content_moderation import (
    DEFAULT_MODERATION_POLICY,
    ContentModerationSystem,
    ModerationPolicy,
)
from faddl_ai.moderation.escalation import EscalationReason, EscalationSystem, requires_scholarly_review
from faddl_ai.moderation.islamic_compliance import IslamicComplianceChecker
from faddl_ai.moderation.safety import SafetyClassifier

__all__ = [
    "AuditSink",
    "ContentAnalyzer",
    "ContentModerationSystem",
    "CulturalSensitivityAnalyzer",
    "DEFAULT_MODERATION_POLICY",
    "EscalationReason",
    "EscalationSystem",
    "GuardianNotifier",
    "IslamicComplianceChecker",
    "LoguruAuditSink",
    "LoguruGuardianNotifier",
    "ModerationPolicy",
    "SafetyClassifier",
    "requires_scholarly_review",
]
