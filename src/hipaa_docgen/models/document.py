"""
Document Fields – Model
========================
Registry bindings and the per-run output structures of the engine:
accumulated field values grouped by document, and remediation actions.

QuestionBinding and DocumentFieldBinding are frozen registry records.
DocumentFieldValue is the mutable accumulator the aggregator folds answers
into; it is created fresh for every generation run.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .answer import Attestation, ComplianceStatus, EvidenceFile, RiskLevel


# ---------------------------------------------------------------------------
# Registry records
# ---------------------------------------------------------------------------

class DocumentFieldBinding(BaseModel):
    """One document field a question writes into."""
    model_config = ConfigDict(frozen=True)

    document_name: str = Field(..., min_length=1)
    field_name: str = Field(..., min_length=1)
    priority: int = Field(
        1,
        ge=1,
        description="Lower value = primary target when listing affected documents",
    )

    @property
    def target(self) -> str:
        return f"{self.document_name}.{self.field_name}"


class QuestionBinding(BaseModel):
    """
    Registry entry connecting a question to the document fields it affects
    and the legal statement emitted for each compliance status.
    """
    model_config = ConfigDict(frozen=True)

    question_id: str = Field(..., min_length=1)
    affects: tuple[DocumentFieldBinding, ...] = Field(default_factory=tuple)
    legal_statements: dict[ComplianceStatus, str]
    evidence_id: str | None = Field(
        None,
        description="Identifier of the question in the evidence-driven questionnaire",
    )

    @model_validator(mode="after")
    def validate_statement_coverage(self) -> "QuestionBinding":
        missing = [s.value for s in ComplianceStatus if s not in self.legal_statements]
        if missing:
            raise ValueError(
                f"binding {self.question_id!r} has no legal statement for {', '.join(missing)}"
            )
        return self

    def legal_statement(self, status: Any) -> str | None:
        """Statement for ``status``; None when it is not a ComplianceStatus."""
        try:
            return self.legal_statements.get(ComplianceStatus(status))
        except ValueError:
            return None

    def targets_by_priority(self) -> list[str]:
        """'Document.FIELD' targets, primary first; ties keep registry order."""
        ordered = sorted(enumerate(self.affects), key=lambda pair: (pair[1].priority, pair[0]))
        return [fb.target for _, fb in ordered]


# ---------------------------------------------------------------------------
# Per-run output
# ---------------------------------------------------------------------------

class DocumentFieldValue(BaseModel):
    """Accumulated value of one document field."""

    field_name: str
    value: str
    compliance_status: ComplianceStatus
    risk_level: RiskLevel
    source_questions: list[str] = Field(default_factory=list)
    evidence_files: list[EvidenceFile] = Field(default_factory=list)
    attestations: list[Attestation] = Field(default_factory=list)

    @property
    def primary_question(self) -> str:
        return self.source_questions[0] if self.source_questions else "unknown"


class DocumentData(BaseModel):
    """All assembled fields of one generated document."""

    document_name: str
    fields: dict[str, DocumentFieldValue] = Field(default_factory=dict)

    def field_values(self) -> dict[str, str]:
        """Flat field_name -> text mapping, as consumed by renderers."""
        return {name: fv.value for name, fv in self.fields.items()}

    def worst_status(self) -> ComplianceStatus | None:
        if not self.fields:
            return None
        return max(
            (fv.compliance_status for fv in self.fields.values()),
            key=lambda s: s.severity_rank,
        )


class RemediationSeverity(str, Enum):
    """Severity of a remediation action; LOW risk never produces an action."""
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class RemediationAction(BaseModel):
    """A scheduled corrective task derived from a PARTIAL or NON_COMPLIANT answer."""
    model_config = ConfigDict(frozen=True)

    finding: str
    required_action: str
    severity: RemediationSeverity
    due_date: datetime
    question_id: str
    affected_fields: tuple[str, ...] = Field(
        default_factory=tuple,
        description="'Document.FIELD' targets ordered by binding priority",
    )

    @field_validator("due_date")
    @classmethod
    def require_timezone(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            raise ValueError("due_date must be timezone-aware")
        return v


class GenerationResult(BaseModel):
    """Both outputs of one generation run."""

    documents: dict[str, DocumentData] = Field(default_factory=dict)
    remediation_actions: list[RemediationAction] = Field(default_factory=list)
    skipped_questions: list[str] = Field(
        default_factory=list,
        description="Question ids that had no registry binding",
    )
    generated_at: datetime

    def summary(self) -> dict[str, Any]:
        by_severity: dict[str, int] = {s.value: 0 for s in RemediationSeverity}
        for action in self.remediation_actions:
            by_severity[action.severity.value] += 1
        return {
            "generated_at": self.generated_at.isoformat(),
            "document_count": len(self.documents),
            "field_count": sum(len(d.fields) for d in self.documents.values()),
            "remediation_count": len(self.remediation_actions),
            "remediation_by_severity": by_severity,
            "skipped_questions": list(self.skipped_questions),
        }
