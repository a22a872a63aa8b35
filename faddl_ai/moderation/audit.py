"""Audit and guardian-notification sinks for moderation decisions"""

from typing import Any, Protocol

from loguru import logger

from faddl_ai.data.schema import GuardianAlert, ModerationRequest, ModerationResult


class AuditSink(Protocol):
    def write(self, record: dict[str, Any]) -> None:
        ...


class GuardianNotifier(Protocol):
    def notify(self, request: ModerationRequest, alert: GuardianAlert) -> None:
        ...


class LoguruAuditSink:
    """
    Emit audit records through loguru.

    Records are bound with ``audit=True`` so a deployment can route them with
    ``logger.add(sink, filter=lambda r: r["extra"].get("audit"))``.
    """

    def write(self, record: dict[str, Any]) -> None:
        logger.bind(audit=True, **record).info(
            f"Moderation action: {record['action']} user={record['user_id']} "
            f"type={record['content_type']} confidence={record['confidence']:.2f}"
        )


class LoguruGuardianNotifier:
    def notify(self, request: ModerationRequest, alert: GuardianAlert) -> None:
        logger.bind(guardian_alert=True, user_id=request.user_id).warning(
            f"Guardian alert ({alert.severity.value}) for {request.user_id}: {alert.reason}"
        )


def build_audit_record(request: ModerationRequest, result: ModerationResult, timestamp: str) -> dict[str, Any]:
    return {
        "timestamp": timestamp,
        "user_id": request.user_id,
        "content_type": request.content_type.value,
        "approved": result.approved,
        "confidence": result.confidence,
        "appropriateness": result.content_analysis.appropriateness,
        "islamic_score": result.islamic_compliance.score,
        "cultural_score": result.cultural_sensitivity.score,
        "escalated": result.escalation.required,
        "ticket_id": result.ticket.id if result.ticket else None,
        "action": "approved" if result.approved else "rejected",
    }
