"""
Field Aggregator
=================
Folds an ordered sequence of answers into per-document, per-field values.

For each answer and each field its binding affects, the first contributor
creates the field and every later contributor is merged into it:

- status:  worst status wins (see scoring.resolve_conflict)
- text:    merged by merge_legal_statements(), order-sensitive
- risk:    re-scored from the resolved status and merge_risk_proxy()
- sources, evidence, attestations:  appended, never deduplicated here

The fold is strictly left to right. Reordering the input changes the
merged text even though the resolved status does not change.
"""

from __future__ import annotations

import logging
from typing import Iterable

from ..models.answer import ComplianceStatus, QuestionAnswer
from ..models.document import DocumentData, DocumentFieldValue
from ..registry.bindings import BindingRegistry
from .scoring import merge_risk_proxy, resolve_conflict, risk_level

logger = logging.getLogger(__name__)

PREVIOUS_ASSESSMENT_NOTE = "Note: Previous assessment indicated: "
ADDITIONAL_ASSESSMENT_NOTE = "Additional assessment: "


def merge_legal_statements(
    existing: str,
    new: str,
    existing_status: ComplianceStatus,
    new_status: ComplianceStatus,
) -> str:
    """
    Merge the text of a field with a newly contributed statement.

    A NON_COMPLIANT contribution leads, with the earlier text kept as a note.
    An existing NON_COMPLIANT text stays in front of later, better findings.
    Every other combination is concatenated in submission order.
    """
    if existing_status == new_status:
        return f"{existing}\n\n{new}"
    if new_status == ComplianceStatus.NON_COMPLIANT:
        return f"{new}\n\n{PREVIOUS_ASSESSMENT_NOTE}{existing}"
    if existing_status == ComplianceStatus.NON_COMPLIANT:
        return f"{existing}\n\n{ADDITIONAL_ASSESSMENT_NOTE}{new}"
    # PARTIAL and COMPLIANT mixed
    return f"{existing}\n\n{new}"


def _new_field(
    field_name: str,
    statement: str,
    answer: QuestionAnswer,
    signer_name: str,
) -> DocumentFieldValue:
    attestation = answer.attestation(signer_name)
    return DocumentFieldValue(
        field_name=field_name,
        value=statement,
        compliance_status=answer.compliance_status,
        risk_level=answer.risk_level,
        source_questions=[answer.question_id],
        evidence_files=list(answer.evidence_files),
        attestations=[attestation] if attestation else [],
    )


def _merge_field(
    existing: DocumentFieldValue,
    statement: str,
    answer: QuestionAnswer,
    signer_name: str,
) -> DocumentFieldValue:
    status = resolve_conflict(existing.compliance_status, answer.compliance_status)
    attestation = answer.attestation(signer_name)
    return DocumentFieldValue(
        field_name=existing.field_name,
        value=merge_legal_statements(
            existing.value,
            statement,
            existing.compliance_status,
            answer.compliance_status,
        ),
        compliance_status=status,
        risk_level=risk_level(status, merge_risk_proxy(answer.risk_level)),
        source_questions=[*existing.source_questions, answer.question_id],
        evidence_files=[*existing.evidence_files, *answer.evidence_files],
        attestations=(
            [*existing.attestations, attestation] if attestation else list(existing.attestations)
        ),
    )


def aggregate_fields(
    answers: Iterable[QuestionAnswer],
    registry: BindingRegistry,
    *,
    signer_name: str = "User",
    skipped: list[str] | None = None,
) -> dict[str, DocumentData]:
    """
    Build document field values from answers, in input order.

    Answers whose question has no binding, or whose status has no legal
    statement, contribute nothing. Their ids are appended to ``skipped``
    when a list is given.

    Returns:
        document name -> DocumentData, documents in first-touched order.
    """
    documents: dict[str, DocumentData] = {}

    for answer in answers:
        if answer.has_evidence():
            logger.debug(
                "Processing %s with %d evidence file(s)",
                answer.question_id,
                len(answer.evidence_files),
            )

        binding = registry.get_binding(answer.question_id)
        if binding is None:
            if answer.has_evidence():
                logger.warning(
                    "Question %s has evidence but no binding; its evidence is dropped",
                    answer.question_id,
                )
            else:
                logger.debug("No binding for question %s", answer.question_id)
            if skipped is not None:
                skipped.append(answer.question_id)
            continue

        statement = binding.legal_statement(answer.compliance_status)
        if statement is None:
            logger.warning(
                "Question %s has unsupported compliance status %r; skipped",
                answer.question_id,
                answer.compliance_status,
            )
            if skipped is not None:
                skipped.append(answer.question_id)
            continue

        for fb in binding.affects:
            document = documents.setdefault(
                fb.document_name, DocumentData(document_name=fb.document_name)
            )
            existing = document.fields.get(fb.field_name)
            if existing is None:
                document.fields[fb.field_name] = _new_field(
                    fb.field_name, statement, answer, signer_name
                )
            else:
                document.fields[fb.field_name] = _merge_field(
                    existing, statement, answer, signer_name
                )
                logger.debug(
                    "Merged %s into %s.%s -> %s",
                    answer.question_id,
                    fb.document_name,
                    fb.field_name,
                    document.fields[fb.field_name].compliance_status.value,
                )

    return documents
