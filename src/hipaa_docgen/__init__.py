"""
hipaa-docgen – Compliance Document Synthesis
=============================================
Turns HIPAA Security Rule risk assessment answers into the text of the
policy documents an organization keeps on file, together with a
remediation worklist for every gap the answers reveal.

Each answer is routed through a declarative binding registry to the
document fields it affects. Answers that touch the same field are merged
worst-status-first, evidence files and signed attestations are written
into the field text, and the assembled fields can be injected into
``{{FIELD_NAME}}`` placeholders of a document template.

Quick Start::

    from hipaa_docgen import AnswerBuilder, DocumentGenerator

    answers = [
        AnswerBuilder("security-officer").option("yes").attest("203.0.113.7").build(),
        AnswerBuilder("risk-assessment-conducted")
        .option("yes-old")
        .scored(3)
        .with_evidence("SRA_Report_2024.pdf", uploaded_at="2024-11-02T09:15:00Z")
        .build(),
    ]

    generator = DocumentGenerator()
    result = generator.generate(answers)

    for name, document in result.documents.items():
        print(name, document.worst_status())

    for action in result.remediation_actions:
        print(action.severity, action.due_date.date(), action.finding)
"""

__version__ = "0.1.0"

# Core models
from .models.answer import (
    Attestation,
    ComplianceStatus,
    EvidenceFile,
    QuestionAnswer,
    RiskLevel,
)
from .models.document import (
    DocumentData,
    DocumentFieldBinding,
    DocumentFieldValue,
    GenerationResult,
    QuestionBinding,
    RemediationAction,
    RemediationSeverity,
)
from .models.assessment import QuestionScore, ScoringResult

# Configuration and errors
from .config import Settings, get_settings
from .exceptions import (
    AnswerFileError,
    CatalogLoadError,
    DocGenError,
    RegistryLoadError,
    RegistryValidationError,
)

# Declarative data
from .registry.bindings import BindingRegistry, default_registry, load_registry
from .registry.catalog import (
    CatalogQuestion,
    QuestionCatalog,
    ScoringConfig,
    default_catalog,
    load_catalog,
)

# Engine
from .engine.scoring import classify, merge_risk_proxy, resolve_conflict, risk_level
from .engine.aggregator import aggregate_fields, merge_legal_statements
from .engine.evidence import (
    apply_document_evidence,
    apply_evidence,
    collect_document_evidence,
    format_date,
    format_datetime,
)
from .engine.remediation import generate_remediation_actions
from .engine.injector import find_placeholders, inject_document_fields, unresolved_placeholders
from .engine.generator import DocumentGenerator
from .engine.assessment import calculate_risk_score, critical_failures, risk_level_explanation

# Builders
from .builder.answer_builder import AnswerBuilder
from .builder.converter import AnswerEvidence, convert_answers
from .builder.answer_file import load_answers, load_raw_answers

# Validator
from .validator.registry_check import (
    IssueLevel,
    RegistryValidator,
    TemplateValidator,
    ValidationIssue,
    ValidationResult,
)

__all__ = [
    # Models
    "Attestation",
    "ComplianceStatus",
    "EvidenceFile",
    "QuestionAnswer",
    "RiskLevel",
    "DocumentData",
    "DocumentFieldBinding",
    "DocumentFieldValue",
    "GenerationResult",
    "QuestionBinding",
    "RemediationAction",
    "RemediationSeverity",
    "QuestionScore",
    "ScoringResult",
    # Configuration and errors
    "Settings",
    "get_settings",
    "DocGenError",
    "RegistryLoadError",
    "RegistryValidationError",
    "CatalogLoadError",
    "AnswerFileError",
    # Declarative data
    "BindingRegistry",
    "load_registry",
    "default_registry",
    "CatalogQuestion",
    "QuestionCatalog",
    "ScoringConfig",
    "load_catalog",
    "default_catalog",
    # Engine
    "classify",
    "risk_level",
    "resolve_conflict",
    "merge_risk_proxy",
    "aggregate_fields",
    "merge_legal_statements",
    "apply_document_evidence",
    "apply_evidence",
    "collect_document_evidence",
    "format_date",
    "format_datetime",
    "generate_remediation_actions",
    "inject_document_fields",
    "find_placeholders",
    "unresolved_placeholders",
    "DocumentGenerator",
    "calculate_risk_score",
    "critical_failures",
    "risk_level_explanation",
    # Builders
    "AnswerBuilder",
    "AnswerEvidence",
    "convert_answers",
    "load_answers",
    "load_raw_answers",
    # Validation
    "IssueLevel",
    "RegistryValidator",
    "TemplateValidator",
    "ValidationIssue",
    "ValidationResult",
]
