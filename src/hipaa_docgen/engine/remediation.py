"""
Remediation Action Generator
=============================
Derives a remediation worklist from PARTIAL and NON_COMPLIANT answers.

Severity follows the answer's risk level (CRITICAL, HIGH, otherwise
MEDIUM) and sets the due date: 30, 60 or 90 days after generation time
by default.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Iterable

from ..config import Settings, get_settings
from ..models.answer import ComplianceStatus, QuestionAnswer, RiskLevel
from ..models.document import RemediationAction, RemediationSeverity
from ..registry.bindings import BindingRegistry

logger = logging.getLogger(__name__)


def remediation_severity(level: RiskLevel) -> RemediationSeverity:
    if level == RiskLevel.CRITICAL:
        return RemediationSeverity.CRITICAL
    if level == RiskLevel.HIGH:
        return RemediationSeverity.HIGH
    return RemediationSeverity.MEDIUM


def due_in_days(severity: RemediationSeverity, settings: Settings | None = None) -> int:
    settings = settings or get_settings()
    if severity == RemediationSeverity.CRITICAL:
        return settings.critical_due_days
    if severity == RemediationSeverity.HIGH:
        return settings.high_due_days
    return settings.medium_due_days


def finding_for(question_id: str) -> str:
    return f"Compliance gap identified in: {question_id}"


def generate_remediation_actions(
    answers: Iterable[QuestionAnswer],
    registry: BindingRegistry,
    *,
    now: datetime | None = None,
    settings: Settings | None = None,
) -> list[RemediationAction]:
    """
    One action per non-compliant or partially compliant answer, in input order.

    Args:
        answers: Answers of the generation run.
        registry: Binding registry providing the required-action text.
        now: Generation time; defaults to the current UTC time. Naive values
            are taken as UTC.
    """
    settings = settings or get_settings()
    generated_at = now or datetime.now(tz=timezone.utc)
    if generated_at.tzinfo is None:
        generated_at = generated_at.replace(tzinfo=timezone.utc)

    actions: list[RemediationAction] = []
    for answer in answers:
        if answer.compliance_status == ComplianceStatus.COMPLIANT:
            continue
        binding = registry.get_binding(answer.question_id)
        if binding is None:
            continue
        required_action = binding.legal_statement(answer.compliance_status)
        if required_action is None:
            continue

        severity = remediation_severity(answer.risk_level)
        actions.append(
            RemediationAction(
                finding=finding_for(answer.question_id),
                required_action=required_action,
                severity=severity,
                due_date=generated_at + timedelta(days=due_in_days(severity, settings)),
                question_id=answer.question_id,
                affected_fields=tuple(binding.targets_by_priority()),
            )
        )

    logger.debug("Generated %d remediation action(s)", len(actions))
    return actions
