"""
Examples for hipaa-docgen
==========================
Three complete examples of generating compliance documents from risk
assessment answers.

Run:
    python examples/examples.py
"""

from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from hipaa_docgen import (
    AnswerBuilder,
    DocumentGenerator,
    RegistryValidator,
    TemplateValidator,
    convert_answers,
    default_registry,
    unresolved_placeholders,
)


# ---------------------------------------------------------------------------
# Example 1: Small practice, mixed answers
# ---------------------------------------------------------------------------


def example_mixed_answers() -> None:
    """
    Example 1: A clinic with an informal Security Officer role.

    Two answers write the master policy's security posture. The field
    resolves to the worse PARTIAL status and a remediation action is
    scheduled for the informal role.
    """
    print("\n" + "="*60)
    print("EXAMPLE 1: Mixed Answers on a Shared Field")
    print("="*60)

    answers = [
        AnswerBuilder("privacy-officer").option("yes").attest("203.0.113.7").build(),
        AnswerBuilder("security-officer").option("informal").scored(2).build(),
    ]

    generator = DocumentGenerator()
    result = generator.generate(answers)

    posture = result.documents["MasterPolicy"].fields["SECURITY_POSTURE"]
    print(f"  Posture status: {posture.compliance_status.value} ({posture.risk_level.value})")
    print(f"  Sources: {', '.join(posture.source_questions)}")
    print(f"  Text:\n    {posture.value[:160]}...")

    for action in result.remediation_actions:
        print(f"  Action: {action.finding} – {action.severity.value}, due {action.due_date:%Y-%m-%d}")
    print("  ✓ Example 1 complete")


# ---------------------------------------------------------------------------
# Example 2: Raw questionnaire output with evidence
# ---------------------------------------------------------------------------


def example_evidence() -> None:
    """
    Example 2: Raw questionnaire answers with uploaded evidence.

    The risk analysis report is listed in the audit evidence list and under
    the risk analysis documentation of the SRA policy.
    """
    print("\n" + "="*60)
    print("EXAMPLE 2: Evidence and Attestations")
    print("="*60)

    raw = {
        "risk-assessment-conducted": "yes-current",
        "risk-management-plan": "yes",
        "cloud-services": "no",
        "cloud-baa": "no",  # skipped: no cloud services in use
    }
    evidence = {
        "risk-assessment-conducted": {
            "files": [
                {
                    "file_id": "f-001",
                    "file_name": "SRA_Report_2024.pdf",
                    "uploaded_at": "2024-11-02T09:15:00Z",
                    "download_url": "https://files.example.org/f-001",
                }
            ],
            "attestation_signed": True,
            "timestamp": "2024-11-02T09:20:00Z",
            "ip_address": "198.51.100.24",
        }
    }

    answers = convert_answers(raw, evidence)
    print(f"  Converted {len(answers)} of {len(raw)} raw answers")

    documents = DocumentGenerator().generate_documents(answers)
    print(f"\n  AuditLogsPolicy.AUDIT_EVIDENCE_LIST:\n{documents['AuditLogsPolicy'].fields['AUDIT_EVIDENCE_LIST'].value}")
    print(f"\n  SRAPolicy.SRA_DOCUMENTATION:\n{documents['SRAPolicy'].fields['SRA_DOCUMENTATION'].value}")
    print("  ✓ Example 2 complete")


# ---------------------------------------------------------------------------
# Example 3: Rendering a template
# ---------------------------------------------------------------------------


def example_template() -> None:
    """
    Example 3: Checking and rendering a master policy template.
    """
    print("\n" + "="*60)
    print("EXAMPLE 3: Template Rendering")
    print("="*60)

    registry = default_registry()
    print(f"  Registry check: {RegistryValidator().validate(registry)}")

    template = (
        "MASTER SECURITY POLICY\n\n"
        "1. Security Posture\n{{SECURITY_POSTURE}}\n\n"
        "2. Risk Analysis\n{{SRA_STATEMENT}}\n\n"
        "3. Contingency Planning\n{{CONTINGENCY_STATUS}}\n"
    )
    print(f"  Template check: {TemplateValidator().validate(template, 'MasterPolicy', registry)}")

    generator = DocumentGenerator(registry)
    answers = [
        AnswerBuilder("security-officer").option("yes").build(),
        AnswerBuilder("risk-assessment-conducted").option("no").build(),
    ]
    result = generator.generate(answers, now=datetime(2025, 1, 1, tzinfo=timezone.utc))
    rendered = generator.render(template, "MasterPolicy", result.documents)

    print(f"  Unresolved: {unresolved_placeholders(template, result.documents['MasterPolicy'])}")
    print("\n" + "\n".join("    " + line for line in rendered.splitlines()[:8]))
    print("  ✓ Example 3 complete")


# ---------------------------------------------------------------------------
# Run all examples
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    example_mixed_answers()
    example_evidence()
    example_template()

    print("\n" + "="*60)
    print("All examples completed successfully.")
    print("="*60 + "\n")
