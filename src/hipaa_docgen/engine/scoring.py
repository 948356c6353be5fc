"""
Classification and Risk Scoring
================================
Pure, total functions used per answer and during field merges:

- classify()          raw answer option -> ComplianceStatus
- risk_level()        (status, numeric option score) -> RiskLevel
- resolve_conflict()  worst-status-wins resolution of two statuses
- merge_risk_proxy()  numeric score stand-in used when re-scoring a merge
"""

from __future__ import annotations

import logging

from ..models.answer import ComplianceStatus, RiskLevel

logger = logging.getLogger(__name__)

COMPLIANT_OPTIONS = frozenset({"yes", "yes-current", "yes-regular"})
PARTIAL_OPTIONS = frozenset({"partial", "informal", "yes-old", "yes-occasional"})
NON_COMPLIANT_OPTIONS = frozenset({"no"})

# Options outside the three sets above are treated as partially compliant.
UNKNOWN_OPTION_STATUS = ComplianceStatus.PARTIAL


def classify(question_id: str, selected_option: str) -> ComplianceStatus:
    """Map a selected answer option to a compliance status."""
    if selected_option in COMPLIANT_OPTIONS:
        return ComplianceStatus.COMPLIANT
    if selected_option in PARTIAL_OPTIONS:
        return ComplianceStatus.PARTIAL
    if selected_option in NON_COMPLIANT_OPTIONS:
        return ComplianceStatus.NON_COMPLIANT
    logger.debug(
        "Option %r of %s is not a known status option; using %s",
        selected_option,
        question_id,
        UNKNOWN_OPTION_STATUS.value,
    )
    return UNKNOWN_OPTION_STATUS


def risk_level(status: ComplianceStatus, score: int | float) -> RiskLevel:
    """
    Risk level for a status and numeric risk score (0-5).

    Rules are checked in order, so a high score escalates even a
    COMPLIANT status: (COMPLIANT, 5) is CRITICAL.
    """
    if status == ComplianceStatus.COMPLIANT and score == 0:
        return RiskLevel.LOW
    if status == ComplianceStatus.NON_COMPLIANT or score >= 4:
        return RiskLevel.CRITICAL
    if status == ComplianceStatus.PARTIAL or score >= 2:
        return RiskLevel.HIGH
    return RiskLevel.MEDIUM


def resolve_conflict(first: ComplianceStatus, second: ComplianceStatus) -> ComplianceStatus:
    """Worst status wins: NON_COMPLIANT > PARTIAL > COMPLIANT."""
    if ComplianceStatus.NON_COMPLIANT in (first, second):
        return ComplianceStatus.NON_COMPLIANT
    if ComplianceStatus.PARTIAL in (first, second):
        return ComplianceStatus.PARTIAL
    return ComplianceStatus.COMPLIANT


def merge_risk_proxy(level: RiskLevel) -> int:
    """
    Numeric score substituted for a merging answer's real option score.

    Answers only carry their derived RiskLevel, so a merge re-scores the
    field with 5 for a CRITICAL contributor and 3 for anything else.
    """
    return 5 if level == RiskLevel.CRITICAL else 3
