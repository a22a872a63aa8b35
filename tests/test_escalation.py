"""Tests for escalation routing, guardian alerts and review tickets"""

import re

import pytest
from pathlib import Path
import sys

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from faddl_ai.data.schema import (
    ComplianceResult,
    ContentType,
    CulturalSensitivityResult,
    ModerationContext,
    ModerationRequest,
    ReviewerType,
    Severity,
    TicketStatus,
)
from faddl_ai.errors import ModerationError
from faddl_ai.moderation.escalation import (
    MAX_PRIORITY,
    EscalationReason,
    EscalationSystem,
    generate_ticket_id,
    requires_scholarly_review,
)


def compliance(score=0.9, violations=()):
    return ComplianceResult(score=score, confidence=0.8, violations=list(violations))


def cultural(score=0.9):
    return CulturalSensitivityResult(score=score, confidence=0.8)


def request(content="Assalamu alaikum, my family would like to meet yours", **kwargs):
    return ModerationRequest(content=content, user_id="user_1", **kwargs)


class TestEscalationRules:
    """Each rule fires independently"""

    @pytest.fixture
    def system(self):
        return EscalationSystem()

    def test_clean_content_not_escalated(self, system):
        result = system.evaluate_escalation(request(), 0.9, compliance(), cultural())

        assert result.required is False
        assert result.reason is None
        assert result.severity == Severity.LOW
        assert result.reviewer_type == ReviewerType.AI
        assert result.guardian_alert is None
        assert result.priority == 15

    def test_low_appropriateness(self, system):
        result = system.evaluate_escalation(request(), 0.55, compliance(), cultural())

        assert result.required
        assert result.severity == Severity.MEDIUM
        assert result.reviewer_type == ReviewerType.HUMAN
        assert EscalationReason.LOW_CONFIDENCE.value in result.reason

    def test_islamic_compliance_risk(self, system):
        result = system.evaluate_escalation(request(), 0.9, compliance(0.65), cultural())

        assert result.severity == Severity.HIGH
        assert result.reviewer_type == ReviewerType.HUMAN
        assert result.recommended_action == "Review for Islamic matrimonial appropriateness"

    def test_multiple_violations(self, system):
        violations = ["inappropriate_terminology", "missing_islamic_elements", "unclear_intentions"]
        result = system.evaluate_escalation(request(), 0.9, compliance(0.9, violations), cultural())

        assert result.severity == Severity.HIGH
        assert EscalationReason.MULTIPLE_VIOLATIONS.value in result.reason

    def test_scholarly_terms_route_to_scholar(self, system):
        result = system.evaluate_escalation(
            request("What is the fatwa on mahr amounts?"), 0.9, compliance(), cultural()
        )

        assert result.reviewer_type == ReviewerType.SCHOLAR
        assert result.severity == Severity.MEDIUM
        assert result.recommended_action.startswith("Route to Islamic scholar")

    def test_scholar_overrides_human_but_keeps_high_severity(self, system):
        result = system.evaluate_escalation(
            request("Is divorce allowed here?"), 0.9, compliance(0.6), cultural()
        )

        assert result.reviewer_type == ReviewerType.SCHOLAR
        assert result.severity == Severity.HIGH

    def test_cultural_sensitivity(self, system):
        result = system.evaluate_escalation(request(), 0.9, compliance(), cultural(0.65))

        assert result.severity == Severity.MEDIUM
        assert result.recommended_action == "Review for cultural sensitivity and appropriateness"

    def test_reasons_joined_in_rule_order(self, system):
        result = system.evaluate_escalation(request(), 0.5, compliance(0.6), cultural(0.6))
        assert result.reason == "; ".join([
            EscalationReason.LOW_CONFIDENCE.value,
            EscalationReason.ISLAMIC_COMPLIANCE.value,
            EscalationReason.CULTURAL_SENSITIVITY.value,
        ])

    def test_priority_never_decreases_with_more_violations(self, system):
        violations = ["alone_meetings", "physical_references", "inappropriate_terminology", "prohibited_content"]
        previous = -1
        for n in range(len(violations) + 1):
            result = system.evaluate_escalation(
                request(), 0.7, compliance(0.75, violations[:n]), cultural()
            )
            assert result.priority >= previous
            previous = result.priority

    def test_priority_capped(self, system):
        result = system.evaluate_escalation(
            request("fatwa on polygamy"), 0.1,
            compliance(0.1, ["alone_meetings", "physical_references", "prohibited_content"]),
            cultural(0.1),
        )
        assert result.priority <= MAX_PRIORITY
        assert result.priority == 30 + 15 + 20

    def test_meet_alone_case(self, system):
        result = system.evaluate_escalation(
            request("Let's meet alone tonight, don't tell anyone"), 0.7,
            compliance(0.4, ["alone_meetings"]), cultural(0.7),
        )

        assert result.required
        assert result.severity == Severity.HIGH
        assert result.reviewer_type == ReviewerType.HUMAN
        assert result.guardian_alert.severity == Severity.HIGH
        assert result.priority == 60
        assert result.estimated_review_minutes == 30.0


class TestGuardianNotification:
    """Guardian alerts are independent of escalation"""

    @pytest.fixture
    def system(self):
        return EscalationSystem()

    def test_no_alert_for_clean_content(self, system):
        assert system.evaluate_guardian_notification(0.9, compliance(), cultural(), ContentType.MESSAGE) is None

    @pytest.mark.parametrize("appropriateness,islamic,culture,violations", [
        (0.9, 0.45, 0.9, ()),
        (0.35, 0.9, 0.9, ()),
        (0.9, 0.9, 0.45, ()),
        (0.9, 0.9, 0.9, ("alone_meetings",)),
        (0.9, 0.9, 0.9, ("physical_references",)),
    ])
    def test_each_trigger_is_high(self, system, appropriateness, islamic, culture, violations):
        alert = system.evaluate_guardian_notification(
            appropriateness, compliance(islamic, violations), cultural(culture), ContentType.MESSAGE
        )
        assert alert is not None
        assert alert.severity == Severity.HIGH
        assert "message" in alert.suggested_action

    def test_alert_without_escalation(self, system):
        """Physical references alone raise an alert even when no escalation rule fires"""
        result = system.evaluate_escalation(
            request(), 0.9, compliance(0.9, ["physical_references"]), cultural()
        )
        assert result.required is False
        assert result.guardian_alert is not None


class TestScholarlyReview:
    def test_whole_word_terms(self):
        assert requires_scholarly_review("We follow the Hanafi madhab")
        assert requires_scholarly_review("Questions about Islamic law")
        assert not requires_scholarly_review("I enjoy Sunday brunch")

    def test_violation_markers(self):
        assert requires_scholarly_review("hello", ["religious_interpretation"])
        assert not requires_scholarly_review("hello", ["alone_meetings"])


class TestTickets:
    """Ticket creation and statistics"""

    @pytest.fixture
    def system(self):
        return EscalationSystem()

    def test_ticket_id_format(self):
        assert re.fullmatch(r"ESC-\d+-[A-Z0-9]{9}", generate_ticket_id())
        assert generate_ticket_id() != generate_ticket_id()

    def test_create_ticket(self, system):
        req = request(
            "Let's meet alone tonight",
            context=ModerationContext(recipient_id="user_2", conversation_id="conv_9"),
        )
        escalation = system.evaluate_escalation(req, 0.7, compliance(0.4, ["alone_meetings"]), cultural())
        ticket = system.create_ticket(req, escalation)

        assert ticket.status == TicketStatus.PENDING
        assert ticket.priority == escalation.priority
        assert ticket.reviewer_type == ReviewerType.HUMAN
        assert ticket.context["recipient_id"] == "user_2"
        assert ticket.context["cultural_context"]["cultural_background"] == "mixed"
        assert ticket.guardian_alert is not None

    def test_ticket_requires_escalation(self, system):
        req = request()
        escalation = system.evaluate_escalation(req, 0.9, compliance(), cultural())
        with pytest.raises(ModerationError):
            system.create_ticket(req, escalation)

    def test_escalation_stats(self, system):
        alone = request("Let's meet alone")
        scholar = request("What does the fatwa say?")
        tickets = [
            system.create_ticket(alone, system.evaluate_escalation(alone, 0.7, compliance(0.4, ["alone_meetings"]), cultural())),
            system.create_ticket(scholar, system.evaluate_escalation(scholar, 0.9, compliance(), cultural())),
        ]
        tickets.append(tickets[0].model_copy(update={"status": TicketStatus.RESOLVED}))

        stats = system.get_escalation_stats(tickets)

        assert stats["total"] == 3
        assert stats["total_pending"] == 2
        assert stats["by_reviewer_type"] == {"ai": 0, "human": 1, "scholar": 1}
        assert stats["by_severity"]["high"] == 1
        assert stats["guardians_notified"] == 2
        # human/high 30 min, scholar/medium 90 min
        assert stats["average_estimated_review_minutes"] == pytest.approx(60.0)

    def test_empty_stats(self, system):
        stats = system.get_escalation_stats([])
        assert stats["total"] == 0
        assert stats["average_estimated_review_minutes"] == 0.0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
