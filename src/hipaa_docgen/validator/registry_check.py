"""
Registry Validator
===================
Audits a BindingRegistry (and templates against it) beyond what the load
schema enforces. Returns structured ValidationResult objects with
error/warning/info issues per rule.

Example::

    from hipaa_docgen import RegistryValidator, load_registry

    result = RegistryValidator().validate(load_registry())
    if not result.passed:
        for issue in result.issues:
            print(f"[{issue.level}] {issue.rule_id}: {issue.message}")
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum

from ..engine.injector import find_placeholders, placeholder_for
from ..registry.bindings import BindingRegistry


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


class IssueLevel(str, Enum):
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"


@dataclass
class ValidationIssue:
    rule_id: str
    level: IssueLevel
    message: str
    question_id: str | None = None


@dataclass
class ValidationResult:
    """Result of a validation run."""
    passed: bool
    subject: str
    issues: list[ValidationIssue] = field(default_factory=list)
    rule_count: int = 0

    @property
    def errors(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.level == IssueLevel.ERROR]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.level == IssueLevel.WARNING]

    def __str__(self) -> str:
        status = "PASS" if self.passed else "FAIL"
        return (
            f"[{status}] {self.subject} "
            f"– {len(self.errors)} error(s), {len(self.warnings)} warning(s)"
        )


# ---------------------------------------------------------------------------
# Registry Validator
# ---------------------------------------------------------------------------


class RegistryValidator:
    """
    Validates a binding registry.

    Rules implemented:
    - REG-001  Every binding affects at least one field
    - REG-002  Bound documents must be declared under /documents
    - REG-003  Bound fields must be declared for their document
    - REG-004  Legal statements must be non-blank
    - REG-005  Statements for different statuses should differ
    - REG-006  A binding should not list the same field twice
    - REG-007  Declared fields that no binding writes
    - REG-008  Evidence ids mapped for questions without a binding
    - REG-009  Evidence ids must be unique
    """

    def validate(self, registry: BindingRegistry) -> ValidationResult:
        issues: list[ValidationIssue] = []
        rules_run = 0

        def add(rule_id: str, level: IssueLevel, msg: str, qid: str | None = None) -> None:
            issues.append(ValidationIssue(rule_id, level, msg, qid))

        declared = registry.documents
        bound: set[tuple[str, str]] = set()

        for binding in registry:
            qid = binding.question_id

            # REG-001 affects present
            if not binding.affects:
                add("REG-001", IssueLevel.ERROR, "Binding affects no document fields", qid)

            for fb in binding.affects:
                bound.add((fb.document_name, fb.field_name))
                if not declared:
                    continue
                # REG-002 declared document
                if fb.document_name not in declared:
                    add(
                        "REG-002",
                        IssueLevel.ERROR,
                        f"Document {fb.document_name!r} is not declared",
                        qid,
                    )
                # REG-003 declared field
                elif fb.field_name not in declared[fb.document_name]:
                    add(
                        "REG-003",
                        IssueLevel.ERROR,
                        f"Field {fb.target!r} is not declared for its document",
                        qid,
                    )

            # REG-004 non-blank statements
            for status, text in binding.legal_statements.items():
                if not text.strip():
                    add("REG-004", IssueLevel.ERROR, f"Blank legal statement for {status.value}", qid)

            # REG-005 distinct statements
            texts = Counter(t.strip() for t in binding.legal_statements.values() if t.strip())
            if any(n > 1 for n in texts.values()):
                add(
                    "REG-005",
                    IssueLevel.WARNING,
                    "Two compliance statuses share the same legal statement",
                    qid,
                )

            # REG-006 duplicate targets
            targets = Counter(fb.target for fb in binding.affects)
            for target, n in targets.items():
                if n > 1:
                    add("REG-006", IssueLevel.WARNING, f"Field {target!r} listed {n} times", qid)
        rules_run += 6

        # REG-007 declared but never bound
        rules_run += 1
        for document_name, fields in declared.items():
            for field_name in fields:
                if (document_name, field_name) not in bound:
                    add(
                        "REG-007",
                        IssueLevel.INFO,
                        f"Declared field {document_name}.{field_name} is never written",
                    )

        # REG-008 evidence ids of unbound questions
        rules_run += 1
        for qid, evidence_id in registry.evidence_ids.items():
            if qid not in registry:
                add(
                    "REG-008",
                    IssueLevel.INFO,
                    f"Evidence id {evidence_id} maps to question {qid!r}, which has no binding",
                    qid,
                )

        # REG-009 unique evidence ids
        rules_run += 1
        counts = Counter(registry.evidence_ids.values())
        for evidence_id, n in counts.items():
            if n > 1:
                add("REG-009", IssueLevel.ERROR, f"Evidence id {evidence_id} is mapped {n} times")

        passed = not any(i.level == IssueLevel.ERROR for i in issues)
        return ValidationResult(
            passed=passed,
            subject=f"Registry {registry.registry_version} ({len(registry)} bindings)",
            issues=issues,
            rule_count=rules_run,
        )


# ---------------------------------------------------------------------------
# Template Validator
# ---------------------------------------------------------------------------


class TemplateValidator:
    """
    Checks a document template against the fields the registry can populate.

    Rules implemented:
    - TPL-001  Document must be known to the registry
    - TPL-002  Placeholders no binding writes stay literal in the output
    - TPL-003  Template without placeholders
    """

    def validate(
        self,
        template: str,
        document_name: str,
        registry: BindingRegistry,
    ) -> ValidationResult:
        issues: list[ValidationIssue] = []
        writable = {
            fb.field_name
            for binding in registry
            for fb in binding.affects
            if fb.document_name == document_name
        }
        placeholders = find_placeholders(template)

        # TPL-001
        if document_name not in registry.documents and not writable:
            issues.append(
                ValidationIssue(
                    "TPL-001", IssueLevel.ERROR, f"Unknown document {document_name!r}"
                )
            )

        # TPL-002
        for name in placeholders:
            if name not in writable:
                issues.append(
                    ValidationIssue(
                        "TPL-002",
                        IssueLevel.WARNING,
                        f"No binding writes {placeholder_for(name)}; it will stay literal",
                    )
                )

        # TPL-003
        if not placeholders:
            issues.append(
                ValidationIssue("TPL-003", IssueLevel.INFO, "Template contains no placeholders")
            )

        return ValidationResult(
            passed=not any(i.level == IssueLevel.ERROR for i in issues),
            subject=f"Template for {document_name}",
            issues=issues,
            rule_count=3,
        )
