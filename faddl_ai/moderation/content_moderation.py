"""
Content Moderation System - fuse safety, Islamic compliance, cultural
sensitivity and content analysis into one approval decision.

The safety, cultural and content sub-checks are external calls with no data
dependency on each other and run concurrently in worker threads. Each of them
degrades to a documented neutral default on failure, so moderation stays
available when a provider is down.
"""

import asyncio
import threading
import time
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import numpy as np
from loguru import logger

from faddl_ai.config import settings
from faddl_ai.data.schema import (
    ContentAnalysisResult,
    EscalationTicket,
    ModerationRequest,
    ModerationResult,
)
from faddl_ai.errors import ModerationError
from faddl_ai.moderation.analyzers import ContentAnalyzer, CulturalSensitivityAnalyzer
from faddl_ai.moderation.audit import (
    AuditSink,
    GuardianNotifier,
    LoguruAuditSink,
    build_audit_record,
)
from faddl_ai.moderation.escalation import EscalationSystem
from faddl_ai.moderation.islamic_compliance import IslamicComplianceChecker
from faddl_ai.moderation.safety import SafetyClassifier


@dataclass(frozen=True)
class ModerationPolicy:
    """Fusion weights and approval thresholds"""
    safety_weight: float = 0.25
    islamic_weight: float = 0.40
    cultural_weight: float = 0.20
    content_weight: float = 0.15

    reject_below: float = 0.3
    islamic_floor: float = 0.4
    auto_approve_score: float = 0.9
    auto_approve_islamic: float = 0.8
    approve_score: float = 0.6
    approve_islamic: float = 0.6

    def __post_init__(self):
        total = self.safety_weight + self.islamic_weight + self.cultural_weight + self.content_weight
        if not np.isclose(total, 1.0):
            raise ValueError(f"Moderation fusion weights must sum to 1.0, got {total:.4f}")

    def fuse(self, safety: float, islamic: float, cultural: float, content: float) -> float:
        return (
            safety * self.safety_weight
            + islamic * self.islamic_weight
            + cultural * self.cultural_weight
            + content * self.content_weight
        )

    def approve(self, appropriateness: float, islamic: float) -> bool:
        if appropriateness < self.reject_below or islamic < self.islamic_floor:
            return False
        if appropriateness >= self.auto_approve_score and islamic >= self.auto_approve_islamic:
            return True
        return appropriateness >= self.approve_score and islamic >= self.approve_islamic


DEFAULT_MODERATION_POLICY = ModerationPolicy()


class ContentModerationSystem:
    """Moderate profiles, messages, photo captions and bios"""

    def __init__(
        self,
        safety_classifier: Optional[SafetyClassifier] = None,
        compliance_checker: Optional[IslamicComplianceChecker] = None,
        cultural_analyzer: Optional[CulturalSensitivityAnalyzer] = None,
        content_analyzer: Optional[ContentAnalyzer] = None,
        escalation_system: Optional[EscalationSystem] = None,
        policy: ModerationPolicy = DEFAULT_MODERATION_POLICY,
        audit_sink: Optional[AuditSink] = None,
        guardian_notifier: Optional[GuardianNotifier] = None,
        batch_size: Optional[int] = None,
        batch_delay_seconds: Optional[float] = None,
    ):
        self.safety_classifier = safety_classifier or SafetyClassifier()
        self.compliance_checker = compliance_checker or IslamicComplianceChecker()
        self.cultural_analyzer = cultural_analyzer or CulturalSensitivityAnalyzer()
        self.content_analyzer = content_analyzer or ContentAnalyzer()
        self.escalation_system = escalation_system or EscalationSystem()
        self.policy = policy
        self.audit_sink = audit_sink or LoguruAuditSink()
        self.guardian_notifier = guardian_notifier
        self.batch_size = batch_size or settings.moderation_batch_size
        self.batch_delay_seconds = (
            settings.moderation_batch_delay_seconds if batch_delay_seconds is None else batch_delay_seconds
        )

        self._stats_lock = threading.Lock()
        self._counts = Counter()
        self._violations = Counter()
        self._score_total = 0.0
        self._elapsed_total = 0.0
        self._tickets: list[EscalationTicket] = []

    # ------------------------------------------------------------------
    async def moderate_content(self, request: ModerationRequest) -> ModerationResult:
        started = time.perf_counter()
        try:
            safety, cultural, analysis = await asyncio.gather(
                asyncio.to_thread(self.safety_classifier.classify, request.content),
                asyncio.to_thread(self.cultural_analyzer.analyze, request.content, request.cultural_context),
                asyncio.to_thread(self.content_analyzer.analyze, request.content),
            )
            compliance = self.compliance_checker.check_compliance(
                request.content, request.content_type, request.cultural_context
            )

            appropriateness = self.policy.fuse(
                safety.score, compliance.score, cultural.score, analysis.appropriateness
            )
            approved = self.policy.approve(appropriateness, compliance.score)
            escalation = self.escalation_system.evaluate_escalation(
                request, appropriateness, compliance, cultural
            )
            ticket = self.escalation_system.create_ticket(request, escalation) if escalation.required else None

            result = ModerationResult(
                approved=approved,
                confidence=min(safety.confidence, compliance.confidence, cultural.confidence),
                safety=safety,
                islamic_compliance=compliance,
                cultural_sensitivity=cultural,
                content_analysis=ContentAnalysisResult(
                    language=analysis.language,
                    sentiment=analysis.sentiment,
                    topics=analysis.topics,
                    appropriateness=float(np.clip(appropriateness, 0.0, 1.0)),
                ),
                escalation=escalation,
                ticket=ticket,
            )
        except Exception as e:
            logger.error(f"Content moderation failed for {request.user_id}: {e}")
            raise ModerationError(
                "Content moderation failed",
                details={
                    "user_id": request.user_id,
                    "content_type": request.content_type.value,
                    "error": str(e),
                },
            ) from e

        self.audit_sink.write(
            build_audit_record(request, result, datetime.now(timezone.utc).isoformat())
        )
        self._record(result, time.perf_counter() - started)

        if escalation.guardian_alert is not None and self.guardian_notifier is not None:
            try:
                self.guardian_notifier.notify(request, escalation.guardian_alert)
            except Exception as e:
                logger.warning(f"Guardian notification failed for {request.user_id}: {e}")
        return result

    async def moderate_content_batch(self, requests: list[ModerationRequest]) -> list[ModerationResult]:
        """Moderate in fixed-size chunks with a pause between chunks. Order is preserved."""
        results: list[ModerationResult] = []
        for start in range(0, len(requests), self.batch_size):
            chunk = requests[start:start + self.batch_size]
            results.extend(await asyncio.gather(*(self.moderate_content(r) for r in chunk)))
            if start + self.batch_size < len(requests):
                await asyncio.sleep(self.batch_delay_seconds)
        logger.info(f"Moderated batch of {len(requests)} items")
        return results

    # ------------------------------------------------------------------
    def _record(self, result: ModerationResult, elapsed: float):
        with self._stats_lock:
            self._counts["total"] += 1
            self._counts["approved" if result.approved else "rejected"] += 1
            if result.escalation.required:
                self._counts["escalated"] += 1
            self._violations.update(result.islamic_compliance.violations)
            self._violations.update(result.safety.violations)
            self._score_total += result.content_analysis.appropriateness
            self._elapsed_total += elapsed
            if result.ticket is not None:
                self._tickets.append(result.ticket)

    @property
    def tickets(self) -> list[EscalationTicket]:
        with self._stats_lock:
            return list(self._tickets)

    def get_moderation_stats(self) -> dict:
        with self._stats_lock:
            total = self._counts["total"]
            return {
                "total_moderated": total,
                "approved": self._counts["approved"],
                "rejected": self._counts["rejected"],
                "escalated": self._counts["escalated"],
                "average_score": self._score_total / total if total else 0.0,
                "common_violations": [v for v, _ in self._violations.most_common(5)],
                "average_processing_ms": 1000 * self._elapsed_total / total if total else 0.0,
            }
