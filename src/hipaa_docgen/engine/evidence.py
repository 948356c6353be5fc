"""
Evidence & Attestation Collector
=================================
Second, document-scoped pass over aggregated fields. Writes the supporting
evidence and attestation wording into field text:

1. Deduplicate the document's evidence by (file_name, uploaded_at) and its
   attestations by (timestamp, ip_address).
2. Overwrite the audit evidence list field with the deduplicated list and
   the retention sentence, or the fallback sentence when there is none.
3. Append the risk-analysis subset of the list to the risk-analysis field.
4. Append each remaining field's own evidence and first attestation.
5. On the master document, append the first document attestation to the
   security posture field.

Field and document names come from Settings.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from ..config import Settings, get_settings
from ..models.answer import Attestation, EvidenceFile
from ..models.document import DocumentData
from ..registry.bindings import BindingRegistry

logger = logging.getLogger(__name__)

BULLET = "  • "


# ---------------------------------------------------------------------------
# Date formatting
# ---------------------------------------------------------------------------


def _parse_timestamp(value: str) -> datetime | None:
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
    except (ValueError, OverflowError):
        # out-of-range offsets near datetime.min/max cannot be converted
        return None


def format_date(value: str) -> str:
    """'2025-01-15T14:30:00Z' -> 'January 15, 2025'. Unparseable input is returned as-is."""
    parsed = _parse_timestamp(value)
    if parsed is None:
        return value
    return f"{parsed:%B} {parsed.day}, {parsed.year}"


def format_datetime(value: str) -> str:
    """'2025-01-15T14:30:00Z' -> 'January 15, 2025 at 02:30 PM' (UTC)."""
    parsed = _parse_timestamp(value)
    if parsed is None:
        return value
    return f"{parsed:%B} {parsed.day}, {parsed.year} at {parsed:%I:%M %p}"


# ---------------------------------------------------------------------------
# Collection
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CollectedEvidence:
    """A deduplicated evidence file, tagged with the field's first source question."""
    question_id: str
    file: EvidenceFile


@dataclass
class DocumentEvidence:
    document_name: str
    evidence: list[CollectedEvidence]
    attestations: list[Attestation]


def collect_document_evidence(document: DocumentData) -> DocumentEvidence:
    """Deduplicated evidence and attestations across every field of a document."""
    evidence: list[CollectedEvidence] = []
    seen_files: set[tuple[str, str]] = set()
    attestations: list[Attestation] = []
    seen_attestations: set[tuple[str, str]] = set()

    for fv in document.fields.values():
        for ev in fv.evidence_files:
            key = (ev.file_name, ev.uploaded_at)
            if key in seen_files:
                continue
            seen_files.add(key)
            evidence.append(CollectedEvidence(question_id=fv.primary_question, file=ev))
        for att in fv.attestations:
            key = (att.timestamp, att.ip_address)
            if key in seen_attestations:
                continue
            seen_attestations.add(key)
            attestations.append(att)

    return DocumentEvidence(document.document_name, evidence, attestations)


# ---------------------------------------------------------------------------
# Text
# ---------------------------------------------------------------------------


def _evidence_list(entries: list[CollectedEvidence], *, with_question: bool) -> str:
    lines = []
    for ev in entries:
        uploaded = format_date(ev.file.uploaded_at)
        if with_question:
            detail = f"(Question ID: {ev.question_id}, Uploaded: {uploaded})"
        else:
            detail = f"(Uploaded: {uploaded})"
        lines.append(f"{BULLET}{ev.file.reference()} {detail}")
    return "\n".join(lines)


def _field_evidence_list(files: list[EvidenceFile]) -> str:
    return "\n".join(
        f"{BULLET}{ev.reference()} (Uploaded: {format_date(ev.uploaded_at)})" for ev in files
    )


def attestation_sentence(attestation: Attestation) -> str:
    return (
        "This statement is supported by a legally binding attestation recorded on "
        f"{format_datetime(attestation.timestamp)} from IP address {attestation.ip_address}."
    )


def policy_attestation_sentence(attestation: Attestation) -> str:
    return (
        "This policy is supported by legally binding attestations recorded on "
        f"{format_datetime(attestation.timestamp)} from IP address {attestation.ip_address}."
    )


def _matches_prefix(
    question_id: str,
    prefixes: tuple[str, ...],
    registry: BindingRegistry | None,
) -> bool:
    candidates = [question_id]
    if registry is not None:
        evidence_id = registry.evidence_id(question_id)
        if evidence_id:
            candidates.append(evidence_id)
    return any(c.startswith(prefixes) for c in candidates)


# ---------------------------------------------------------------------------
# Pass
# ---------------------------------------------------------------------------


def apply_document_evidence(
    document: DocumentData,
    *,
    registry: BindingRegistry | None = None,
    settings: Settings | None = None,
) -> DocumentEvidence:
    """Run the evidence pass on one document, in place."""
    settings = settings or get_settings()
    collected = collect_document_evidence(document)
    fields = document.fields
    special = {settings.audit_evidence_field, settings.risk_analysis_field}

    audit_field = fields.get(settings.audit_evidence_field)
    if audit_field is not None:
        if collected.evidence:
            audit_field.value = (
                f"{settings.evidence_list_intro}\n\n"
                f"{_evidence_list(collected.evidence, with_question=True)}\n\n"
                f"{settings.evidence_retention_statement}"
            )
        else:
            audit_field.value = settings.evidence_fallback_statement

    sra_field = fields.get(settings.risk_analysis_field)
    if sra_field is not None and collected.evidence:
        subset = [
            ev
            for ev in collected.evidence
            if _matches_prefix(ev.question_id, settings.risk_analysis_prefixes, registry)
        ]
        if subset:
            sra_field.value += (
                "\n\nSupporting Documentation:\n"
                f"{_evidence_list(subset, with_question=False)}"
            )

    for fv in fields.values():
        if fv.field_name in special:
            continue
        if fv.evidence_files:
            fv.value += (
                "\n\nSupporting Evidence on File:\n"
                f"{_field_evidence_list(fv.evidence_files)}"
            )
        if fv.attestations:
            fv.value += f"\n\n{attestation_sentence(fv.attestations[0])}"

    if document.document_name == settings.master_document and collected.attestations:
        posture = fields.get(settings.security_posture_field)
        if posture is not None:
            posture.value += f"\n\n{policy_attestation_sentence(collected.attestations[0])}"

    logger.debug(
        "Evidence pass on %s: %d unique file(s), %d unique attestation(s)",
        document.document_name,
        len(collected.evidence),
        len(collected.attestations),
    )
    return collected


def apply_evidence(
    documents: dict[str, DocumentData],
    *,
    registry: BindingRegistry | None = None,
    settings: Settings | None = None,
) -> dict[str, DocumentData]:
    """Run the evidence pass on every document and return the same mapping."""
    for document in documents.values():
        apply_document_evidence(document, registry=registry, settings=settings)
    return documents
