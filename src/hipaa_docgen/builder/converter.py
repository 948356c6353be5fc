"""
Answer Conversion
==================
Turns raw questionnaire output into QuestionAnswer records:

    {"security-officer": "informal", ...}            # selected options
    {"security-officer": {"files": [...],            # evidence per question
                          "attestation_signed": true,
                          "timestamp": "...",
                          "ip_address": "..."}}

Each option is classified, scored through the question catalog, and
combined with its evidence. Unknown questions and options are skipped.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Mapping

from pydantic import BaseModel, Field, ValidationError

from ..engine.scoring import classify, risk_level
from ..models.answer import EvidenceFile, QuestionAnswer
from ..registry.catalog import QuestionCatalog, default_catalog

logger = logging.getLogger(__name__)


class AnswerEvidence(BaseModel):
    """Evidence and attestation data collected for one question."""

    files: list[EvidenceFile] = Field(default_factory=list)
    attestation_signed: bool = False
    timestamp: str | None = None
    ip_address: str | None = None


def convert_answers(
    raw_answers: Mapping[str, str],
    evidence_data: Mapping[str, AnswerEvidence | Mapping] | None = None,
    *,
    catalog: QuestionCatalog | None = None,
    now: datetime | None = None,
) -> list[QuestionAnswer]:
    """
    Convert selected options to QuestionAnswer records, keeping input order.

    Args:
        raw_answers: question id -> selected option value.
        evidence_data: question id -> evidence/attestation data.
        catalog: Question catalog with option risk scores.
        now: Timestamp for answers without one; defaults to current UTC time.
    """
    catalog = catalog or default_catalog()
    evidence_data = evidence_data or {}
    default_timestamp = (now or datetime.now(tz=timezone.utc)).isoformat()

    answers: list[QuestionAnswer] = []
    for question_id, selected_option in raw_answers.items():
        question = catalog.get(question_id)
        if question is None:
            logger.debug("Question %s is not in the catalog; skipped", question_id)
            continue
        score = question.risk_score(selected_option)
        if score is None:
            logger.warning(
                "Option %r is not valid for question %s; skipped", selected_option, question_id
            )
            continue
        if question.is_skipped(raw_answers):
            logger.debug("Question %s skipped by its skip condition", question_id)
            continue

        status = classify(question_id, selected_option)
        evidence = evidence_data.get(question_id)
        if evidence is not None and not isinstance(evidence, AnswerEvidence):
            try:
                evidence = AnswerEvidence.model_validate(evidence)
            except ValidationError as e:
                logger.warning(
                    "Ignoring malformed evidence for %s: %d error(s)", question_id, e.error_count()
                )
                evidence = None
        if evidence is not None and evidence.files:
            logger.debug(
                "Found %d evidence file(s) for %s", len(evidence.files), question_id
            )

        answers.append(
            QuestionAnswer(
                question_id=question_id,
                selected_option=selected_option,
                compliance_status=status,
                risk_level=risk_level(status, score),
                evidence_files=tuple(evidence.files) if evidence else (),
                attestation_signed=evidence.attestation_signed if evidence else False,
                timestamp=(evidence.timestamp if evidence and evidence.timestamp else default_timestamp),
                ip_address=(evidence.ip_address if evidence and evidence.ip_address else "unknown"),
            )
        )
    return answers
