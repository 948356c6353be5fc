"""
Weighted Assessment Scoring
============================
Overall risk level of a raw questionnaire, from the question catalog.

Each answered question contributes ``score * weight`` where the weight is
the category weight, doubled (by default) for important questions. The
percentage of the maximum attainable total sets the initial level, then
three overrides apply in order:

1. An unreported breach forces HIGH.
2. Two or more critical failures force HIGH.
3. A single critical failure lifts LOW to MEDIUM.

A critical failure is a critical-tier question answered with its
highest-scoring option.

Example::

    from hipaa_docgen import calculate_risk_score, risk_level_explanation

    result = calculate_risk_score({"security-officer": "no", "breach-history": "no"})
    print(result.risk_level, result.risk_percentage)
    print(risk_level_explanation(result))
"""

from __future__ import annotations

import logging
from typing import Mapping

from ..models.answer import RiskLevel
from ..models.assessment import QuestionScore, ScoringResult
from ..registry.catalog import QuestionCatalog, default_catalog

logger = logging.getLogger(__name__)

UNREPORTED_BREACH = "unreported-breach-high-risk"
MULTIPLE_CRITICAL_FAILURES = "multiple-critical-failures-high-risk"
CRITICAL_FAILURE_MINIMUM = "critical-failure-minimum-medium-risk"


def critical_failures(
    answers: Mapping[str, str],
    catalog: QuestionCatalog | None = None,
) -> list[str]:
    """Critical-tier questions answered with their highest-scoring option."""
    catalog = catalog or default_catalog()
    failures: list[str] = []
    for question in catalog:
        if question.tier != "critical" or question.is_skipped(answers):
            continue
        score = question.risk_score(answers.get(question.id, ""))
        if score is not None and question.max_score > 0 and score == question.max_score:
            failures.append(question.id)
    return failures


def calculate_risk_score(
    answers: Mapping[str, str],
    catalog: QuestionCatalog | None = None,
) -> ScoringResult:
    """
    Score raw questionnaire answers (question id -> selected option).

    Questions without an answer, answered with an option the catalog does
    not know, or skipped by their skip condition contribute nothing to
    either total.
    """
    catalog = catalog or default_catalog()
    config = catalog.scoring

    scores: list[QuestionScore] = []
    total = 0.0
    maximum = 0.0
    for question in catalog:
        option = answers.get(question.id)
        if not option or question.is_skipped(answers):
            continue
        score = question.risk_score(option)
        if score is None:
            logger.debug("Not scoring %s: unknown option %r", question.id, option)
            continue

        weight = config.category_weight(question.category)
        if question.tier == "important":
            weight *= config.important_multiplier
        weighted = score * weight
        total += weighted
        maximum += question.max_score * weight
        scores.append(QuestionScore(
            question_id=question.id,
            category=question.category,
            citation=question.citation,
            severity_weight=question.severity_weight,
            option=option,
            risk_score=score,
            weight=weight,
            weighted_score=weighted,
            max_weighted_score=question.max_score * weight,
        ))

    percentage = total / maximum * 100 if maximum > 0 else 0.0
    if percentage < config.medium_threshold:
        initial = RiskLevel.LOW
    elif percentage < config.high_threshold:
        initial = RiskLevel.MEDIUM
    else:
        initial = RiskLevel.HIGH

    failures = critical_failures(answers, catalog)
    breach = config.unreported_breach
    level = initial
    overrides: list[str] = []
    if breach is not None and answers.get(breach.question_id) == breach.answer:
        level = RiskLevel.HIGH
        overrides.append(UNREPORTED_BREACH)
    elif len(failures) >= 2:
        level = RiskLevel.HIGH
        overrides.append(MULTIPLE_CRITICAL_FAILURES)
    elif len(failures) == 1 and initial == RiskLevel.LOW:
        level = RiskLevel.MEDIUM
        overrides.append(CRITICAL_FAILURE_MINIMUM)

    logger.info(
        "Assessment scored %.2f%% (%s -> %s, %d critical failure(s))",
        percentage, initial.value, level.value, len(failures),
    )
    return ScoringResult(
        total_risk_score=total,
        max_possible_score=maximum,
        risk_percentage=round(percentage, 2),
        risk_level=level,
        critical_failures=failures,
        applied_overrides=overrides,
        question_scores=scores,
    )


def risk_level_explanation(
    result: ScoringResult,
    catalog: QuestionCatalog | None = None,
) -> str:
    """One or more sentences explaining how the risk level was reached."""
    parts: list[str] = []
    if UNREPORTED_BREACH in result.applied_overrides:
        parts.append("Unreported breach history indicates significant compliance risk.")
    if MULTIPLE_CRITICAL_FAILURES in result.applied_overrides:
        parts.append("Multiple critical HIPAA safeguards are missing.")
    if CRITICAL_FAILURE_MINIMUM in result.applied_overrides and result.critical_failures:
        failure = result.critical_failures[0]
        question = (catalog or default_catalog()).get(failure)
        citation = f" ({question.citation})" if question and question.citation else ""
        parts.append(f"Critical safeguard missing: {failure}{citation}.")
    if not parts:
        parts.append(
            f"Risk level based on overall compliance score of {result.risk_percentage:g}%."
        )
    return " ".join(parts)
