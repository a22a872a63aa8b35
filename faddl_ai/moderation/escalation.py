"""
Escalation System - decide whether moderated content needs human or scholar review.

Rules are independent and additive. Severity and reviewer type only ever rise
as rules fire, so adding violations never lowers the computed priority.
"""

import re
import secrets
import string
import time
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from loguru import logger

from faddl_ai.data.schema import (
    ComplianceResult,
    ContentType,
    CulturalSensitivityResult,
    EscalationResult,
    EscalationTicket,
    GuardianAlert,
    ModerationRequest,
    ReviewerType,
    Severity,
    TicketStatus,
)
from faddl_ai.errors import ModerationError


class EscalationReason(str, Enum):
    LOW_CONFIDENCE = "Low confidence in content assessment"
    ISLAMIC_COMPLIANCE = "Islamic compliance concerns"
    MULTIPLE_VIOLATIONS = "Multiple policy violations detected"
    SCHOLARLY_REVIEW = "Religious content requires scholarly review"
    CULTURAL_SENSITIVITY = "Cultural sensitivity concerns"


# ============================================================================
# THRESHOLDS
# ============================================================================

LOW_CONFIDENCE_THRESHOLD = 0.6
ISLAMIC_RISK_THRESHOLD = 0.7
CULTURAL_RISK_THRESHOLD = 0.7
MULTIPLE_VIOLATIONS_THRESHOLD = 3

GUARDIAN_ISLAMIC_THRESHOLD = 0.5
GUARDIAN_APPROPRIATENESS_THRESHOLD = 0.4
GUARDIAN_CULTURAL_THRESHOLD = 0.5

SEVERITY_PRIORITY = MappingProxyType({Severity.HIGH: 30, Severity.MEDIUM: 20, Severity.LOW: 10})
REVIEWER_PRIORITY = MappingProxyType({ReviewerType.SCHOLAR: 15, ReviewerType.HUMAN: 10, ReviewerType.AI: 5})
GUARDIAN_PRIORITY = MappingProxyType({Severity.HIGH: 20, Severity.MEDIUM: 10, Severity.LOW: 5})
MAX_PRIORITY = 100

REVIEW_BASE_MINUTES = MappingProxyType({ReviewerType.AI: 1, ReviewerType.HUMAN: 15, ReviewerType.SCHOLAR: 60})
SEVERITY_TIME_MULTIPLIER = MappingProxyType({Severity.LOW: 1.0, Severity.MEDIUM: 1.5, Severity.HIGH: 2.0})


# ============================================================================
# SCHOLAR REVIEW TERMS
# ============================================================================

SCHOLAR_TERMS: Mapping[str, frozenset] = MappingProxyType({
    "religious": frozenset({
        "fatwa", "haram", "halal", "sharia", "shariah", "fiqh", "madhab",
        "scholar", "imam", "ruling", "islamic law", "jurisprudence",
    }),
    "complex": frozenset({
        "polygamy", "divorce", "mahr", "dowry", "inheritance", "custody",
        "nikah", "talaq", "iddah", "iddat", "khula",
    }),
    "controversial": frozenset({
        "interfaith", "conversion", "revert", "sect", "denomination",
        "sunni", "shia", "sufi", "salafi", "interpretation",
    }),
})

SCHOLARLY_VIOLATION_MARKERS = ("religious", "interpretation", "doctrine")

_SCHOLAR_PATTERN = re.compile(
    r"(?<![\w-])(?:"
    + "|".join(re.escape(t) for t in sorted(frozenset().union(*SCHOLAR_TERMS.values()), key=len, reverse=True))
    + r")(?![\w-])",
    re.IGNORECASE,
)


def requires_scholarly_review(content: str, violations: Iterable[str] = ()) -> bool:
    if _SCHOLAR_PATTERN.search(content):
        return True
    return any(marker in v for v in violations for marker in SCHOLARLY_VIOLATION_MARKERS)


def _raise_severity(current: Severity, floor: Severity) -> Severity:
    return floor if floor.rank > current.rank else current


def _raise_reviewer(current: ReviewerType, floor: ReviewerType) -> ReviewerType:
    return floor if floor.rank > current.rank else current


def generate_ticket_id() -> str:
    alphabet = string.ascii_uppercase + string.digits
    suffix = "".join(secrets.choice(alphabet) for _ in range(9))
    return f"ESC-{int(time.time() * 1000)}-{suffix}"


class EscalationSystem:
    """Route moderated content to the right reviewer with a priority"""

    def evaluate_escalation(
        self,
        request: ModerationRequest,
        appropriateness: float,
        islamic_compliance: ComplianceResult,
        cultural_sensitivity: CulturalSensitivityResult,
    ) -> EscalationResult:
        reasons: list[EscalationReason] = []
        severity = Severity.LOW
        reviewer = ReviewerType.AI
        violations = islamic_compliance.violations

        if appropriateness < LOW_CONFIDENCE_THRESHOLD:
            reasons.append(EscalationReason.LOW_CONFIDENCE)
            severity = _raise_severity(severity, Severity.MEDIUM)
            reviewer = _raise_reviewer(reviewer, ReviewerType.HUMAN)

        if islamic_compliance.score < ISLAMIC_RISK_THRESHOLD:
            reasons.append(EscalationReason.ISLAMIC_COMPLIANCE)
            severity = _raise_severity(severity, Severity.HIGH)
            reviewer = _raise_reviewer(reviewer, ReviewerType.HUMAN)

        if len(violations) >= MULTIPLE_VIOLATIONS_THRESHOLD:
            reasons.append(EscalationReason.MULTIPLE_VIOLATIONS)
            severity = _raise_severity(severity, Severity.HIGH)
            reviewer = _raise_reviewer(reviewer, ReviewerType.HUMAN)

        if requires_scholarly_review(request.content, violations):
            reasons.append(EscalationReason.SCHOLARLY_REVIEW)
            severity = _raise_severity(severity, Severity.MEDIUM)
            reviewer = _raise_reviewer(reviewer, ReviewerType.SCHOLAR)

        if cultural_sensitivity.score < CULTURAL_RISK_THRESHOLD:
            reasons.append(EscalationReason.CULTURAL_SENSITIVITY)
            severity = _raise_severity(severity, Severity.MEDIUM)
            reviewer = _raise_reviewer(reviewer, ReviewerType.HUMAN)

        guardian_alert = self.evaluate_guardian_notification(
            appropriateness, islamic_compliance, cultural_sensitivity, request.content_type
        )

        result = EscalationResult(
            required=bool(reasons),
            reason="; ".join(r.value for r in reasons) or None,
            severity=severity,
            reviewer_type=reviewer,
            guardian_alert=guardian_alert,
            priority=self.calculate_priority(severity, reviewer, guardian_alert),
            estimated_review_minutes=self.estimate_review_minutes(reviewer, severity),
            recommended_action=self.recommended_action(reasons, severity),
        )
        if result.required:
            logger.info(
                f"Escalation for {request.user_id}: {result.severity.value}/{result.reviewer_type.value} "
                f"priority={result.priority} ({result.reason})"
            )
        return result

    # ------------------------------------------------------------------
    def evaluate_guardian_notification(
        self,
        appropriateness: float,
        islamic_compliance: ComplianceResult,
        cultural_sensitivity: CulturalSensitivityResult,
        content_type: ContentType,
    ) -> Optional[GuardianAlert]:
        alerts: list[str] = []
        severity = Severity.LOW

        if islamic_compliance.score < GUARDIAN_ISLAMIC_THRESHOLD:
            alerts.append("Content may not align with Islamic values")
            severity = Severity.HIGH

        if appropriateness < GUARDIAN_APPROPRIATENESS_THRESHOLD:
            alerts.append("Content appears inappropriate for matrimonial context")
            severity = Severity.HIGH

        if cultural_sensitivity.score < GUARDIAN_CULTURAL_THRESHOLD:
            alerts.append("Cultural sensitivity concerns detected")
            severity = Severity.HIGH

        if "alone_meetings" in islamic_compliance.violations:
            alerts.append("Inappropriate meeting arrangements suggested")
            severity = Severity.HIGH

        if "physical_references" in islamic_compliance.violations:
            alerts.append("Physical references detected in conversation")
            severity = Severity.HIGH

        if not alerts:
            return None

        return GuardianAlert(
            reason="; ".join(alerts),
            severity=severity,
            suggested_action=self.guardian_action(severity, content_type),
        )

    @staticmethod
    def calculate_priority(
        severity: Severity, reviewer: ReviewerType, guardian_alert: Optional[GuardianAlert]
    ) -> int:
        priority = SEVERITY_PRIORITY[severity] + REVIEWER_PRIORITY[reviewer]
        if guardian_alert is not None:
            priority += GUARDIAN_PRIORITY[guardian_alert.severity]
        return min(MAX_PRIORITY, priority)

    @staticmethod
    def estimate_review_minutes(reviewer: ReviewerType, severity: Severity) -> float:
        return REVIEW_BASE_MINUTES[reviewer] * SEVERITY_TIME_MULTIPLIER[severity]

    @staticmethod
    def recommended_action(reasons: list[EscalationReason], severity: Severity) -> str:
        if EscalationReason.SCHOLARLY_REVIEW in reasons:
            return "Route to Islamic scholar for religious content review"
        if EscalationReason.ISLAMIC_COMPLIANCE in reasons:
            return "Review for Islamic matrimonial appropriateness"
        if EscalationReason.CULTURAL_SENSITIVITY in reasons:
            return "Review for cultural sensitivity and appropriateness"
        if severity == Severity.HIGH:
            return "Immediate human review required - potential policy violation"
        if severity == Severity.MEDIUM:
            return "Human review recommended within 24 hours"
        return "Schedule for routine human review"

    @staticmethod
    def guardian_action(severity: Severity, content_type: ContentType) -> str:
        kind = content_type.value
        if severity == Severity.HIGH:
            return f"Immediate attention required - review {kind} and consider conversation intervention"
        if severity == Severity.MEDIUM:
            return f"Review {kind} and provide guidance to family member within 24 hours"
        return f"Review {kind} and consider providing gentle guidance if needed"

    # ------------------------------------------------------------------
    def create_ticket(self, request: ModerationRequest, escalation: EscalationResult) -> EscalationTicket:
        """Materialize a pending review ticket for a required escalation."""
        if not escalation.required:
            raise ModerationError(
                "Cannot create a ticket for content that does not require escalation",
                details={"user_id": request.user_id},
            )

        ticket = EscalationTicket(
            id=generate_ticket_id(),
            created_at=datetime.now(timezone.utc),
            user_id=request.user_id,
            content_type=request.content_type,
            content=request.content,
            reason=escalation.reason or "",
            severity=escalation.severity,
            reviewer_type=escalation.reviewer_type,
            priority=escalation.priority,
            status=TicketStatus.PENDING,
            estimated_review_minutes=escalation.estimated_review_minutes,
            guardian_alert=escalation.guardian_alert,
            context={
                "recipient_id": request.context.recipient_id,
                "conversation_id": request.context.conversation_id,
                "cultural_context": request.cultural_context.model_dump(mode="json"),
            },
        )
        logger.info(f"Escalation ticket {ticket.id} created ({ticket.reviewer_type.value}, priority {ticket.priority})")
        return ticket

    @staticmethod
    def get_escalation_stats(tickets: Iterable[EscalationTicket]) -> dict:
        tickets = list(tickets)
        pending = [t for t in tickets if t.status == TicketStatus.PENDING]
        return {
            "total": len(tickets),
            "total_pending": len(pending),
            "by_reviewer_type": {r.value: sum(1 for t in pending if t.reviewer_type == r) for r in ReviewerType},
            "by_severity": {s.value: sum(1 for t in pending if t.severity == s) for s in Severity},
            "guardians_notified": sum(1 for t in tickets if t.guardian_alert is not None),
            "average_estimated_review_minutes": (
                sum(t.estimated_review_minutes for t in pending) / len(pending) if pending else 0.0
            ),
        }
