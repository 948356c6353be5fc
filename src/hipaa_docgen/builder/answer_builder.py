"""
QuestionAnswer Builder
=======================
Fluent builder API for constructing QuestionAnswer records.

Status and risk level are derived from the selected option and its risk
score unless set explicitly.

Example::

    from hipaa_docgen import AnswerBuilder

    answer = (
        AnswerBuilder("risk-assessment-conducted")
        .option("yes-old")
        .scored(3)
        .with_evidence("SRA_Report_2024.pdf", uploaded_at="2024-11-02T09:15:00Z")
        .attest(ip_address="203.0.113.7")
        .build()
    )
"""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from ..engine.scoring import classify, risk_level
from ..models.answer import ComplianceStatus, EvidenceFile, QuestionAnswer, RiskLevel


def _utc_now_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat().replace("+00:00", "Z")


class AnswerBuilder:
    """
    Fluent builder for QuestionAnswer records.

    A bare ``AnswerBuilder(qid).option("yes").build()`` yields a COMPLIANT,
    LOW-risk answer stamped with the current time.
    """

    def __init__(self, question_id: str) -> None:
        self._question_id = question_id
        self._option: str = "yes"
        self._status: ComplianceStatus | None = None
        self._risk: RiskLevel | None = None
        self._score: int | None = None
        self._evidence: list[EvidenceFile] = []
        self._attested: bool = False
        self._ip_address: str = "unknown"
        # Auto-stamp submission time
        self._timestamp: str = _utc_now_iso()

    # --- Answer ---

    def option(self, selected_option: str) -> "AnswerBuilder":
        self._option = selected_option
        return self

    def status(self, status: ComplianceStatus | str) -> "AnswerBuilder":
        """Override the status classify() would derive from the option."""
        self._status = ComplianceStatus(status)
        return self

    def risk(self, level: RiskLevel | str) -> "AnswerBuilder":
        """Override the risk level derived from status and score."""
        self._risk = RiskLevel(level)
        return self

    def scored(self, score: int) -> "AnswerBuilder":
        """Numeric risk score (0-5) of the selected option."""
        if not 0 <= score <= 5:
            raise ValueError("risk score must be between 0 and 5")
        self._score = score
        return self

    # --- Evidence ---

    def with_evidence(
        self,
        file_name: str,
        *,
        uploaded_at: str | None = None,
        file_id: str | None = None,
        storage_path: str | None = None,
        download_url: str | None = None,
    ) -> "AnswerBuilder":
        """Attach one evidence file; repeat for more."""
        self._evidence.append(
            EvidenceFile(
                file_id=file_id or str(uuid4()),
                file_name=file_name,
                uploaded_at=uploaded_at or _utc_now_iso(),
                storage_path=storage_path,
                download_url=download_url,
            )
        )
        return self

    # --- Attestation ---

    def attest(self, ip_address: str, timestamp: str | None = None) -> "AnswerBuilder":
        """Mark the answer as signed from ``ip_address``."""
        self._attested = True
        self._ip_address = ip_address
        if timestamp:
            self._timestamp = timestamp
        return self

    def at(self, timestamp: str) -> "AnswerBuilder":
        """Submission time (ISO 8601)."""
        self._timestamp = timestamp
        return self

    # --- Build ---

    def build(self) -> QuestionAnswer:
        status = self._status or classify(self._question_id, self._option)
        if self._risk is not None:
            level = self._risk
        else:
            score = self._score
            if score is None:
                score = 0 if status == ComplianceStatus.COMPLIANT else 3
            level = risk_level(status, score)
        return QuestionAnswer(
            question_id=self._question_id,
            selected_option=self._option,
            compliance_status=status,
            risk_level=level,
            evidence_files=tuple(self._evidence),
            attestation_signed=self._attested,
            timestamp=self._timestamp,
            ip_address=self._ip_address,
        )
