"""
Assessment Answers – Model
===========================
Input side of the document synthesis engine: one QuestionAnswer per
submitted question, already classified and risk-scored upstream, carrying
the evidence references and attestation data collected with it.

Answers are immutable once constructed and never mutated by the engine.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class ComplianceStatus(str, Enum):
    """Compliance classification of a single answer."""
    COMPLIANT = "COMPLIANT"
    PARTIAL = "PARTIAL"
    NON_COMPLIANT = "NON_COMPLIANT"

    @property
    def severity_rank(self) -> int:
        """0 for COMPLIANT, 1 for PARTIAL, 2 for NON_COMPLIANT."""
        return _STATUS_RANK[self]

    def is_worse_than(self, other: ComplianceStatus) -> bool:
        return self.severity_rank > other.severity_rank


_STATUS_RANK = {
    ComplianceStatus.COMPLIANT: 0,
    ComplianceStatus.PARTIAL: 1,
    ComplianceStatus.NON_COMPLIANT: 2,
}


class RiskLevel(str, Enum):
    """Risk level derived from compliance status and numeric option score."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


# ---------------------------------------------------------------------------
# Evidence and attestation
# ---------------------------------------------------------------------------

class EvidenceFile(BaseModel):
    """
    Reference to a supporting file attached to an answer.

    The engine never opens the file; storage_path and download_url are
    resolved by the storage layer before answers are handed over.
    """
    model_config = ConfigDict(frozen=True)

    file_id: str = Field(..., description="Identifier assigned by the storage layer")
    file_name: str = Field(..., description="Original file name shown in documents")
    uploaded_at: str = Field(..., description="Upload timestamp (ISO 8601)")
    storage_path: str | None = Field(None, description="Object storage key")
    download_url: str | None = Field(None, description="Pre-signed download reference")

    def reference(self) -> str:
        """File name, followed by the download reference when one exists."""
        if self.download_url:
            return f"{self.file_name} [Download: {self.download_url}]"
        return self.file_name


class Attestation(BaseModel):
    """A signed, timestamped, IP-logged assertion accompanying an answer."""
    model_config = ConfigDict(frozen=True)

    timestamp: str = Field(..., description="Signing time (ISO 8601)")
    ip_address: str = Field(..., description="IP address the attestation was signed from")
    signer_name: str = Field("User", description="Display name of the signer")


# ---------------------------------------------------------------------------
# QuestionAnswer
# ---------------------------------------------------------------------------

class QuestionAnswer(BaseModel):
    """One submitted question for one generation run."""
    model_config = ConfigDict(frozen=True)

    question_id: str
    selected_option: str
    compliance_status: ComplianceStatus
    risk_level: RiskLevel
    evidence_files: tuple[EvidenceFile, ...] = Field(
        default_factory=tuple,
        description="Evidence references in upload order",
    )
    attestation_signed: bool = False
    timestamp: str = Field(..., description="Submission time (ISO 8601)")
    ip_address: str = "unknown"

    def attestation(self, signer_name: str = "User") -> Attestation | None:
        """The attestation entry this answer contributes, if it was signed."""
        if not self.attestation_signed:
            return None
        return Attestation(
            timestamp=self.timestamp,
            ip_address=self.ip_address,
            signer_name=signer_name,
        )

    def has_evidence(self) -> bool:
        return len(self.evidence_files) > 0

    def __repr__(self) -> str:
        return (
            f"QuestionAnswer(question_id={self.question_id!r}, "
            f"status={self.compliance_status.value}, risk={self.risk_level.value}, "
            f"evidence={len(self.evidence_files)}, attested={self.attestation_signed})"
        )
