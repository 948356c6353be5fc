"""
Test Suite for hipaa-docgen
============================
Tests for models, scoring, field aggregation, the evidence pass,
remediation, template injection, weighted assessment scoring, declarative
data loading, validators, answer input, and the CLI.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from click.testing import CliRunner

import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from hipaa_docgen import (
    AnswerBuilder,
    AnswerEvidence,
    AnswerFileError,
    BindingRegistry,
    CatalogLoadError,
    CatalogQuestion,
    ComplianceStatus,
    DocGenError,
    DocumentData,
    DocumentFieldValue,
    DocumentGenerator,
    IssueLevel,
    QuestionAnswer,
    QuestionBinding,
    QuestionCatalog,
    RegistryLoadError,
    RegistryValidationError,
    RegistryValidator,
    RemediationSeverity,
    RiskLevel,
    ScoringConfig,
    Settings,
    TemplateValidator,
    aggregate_fields,
    apply_evidence,
    calculate_risk_score,
    classify,
    collect_document_evidence,
    convert_answers,
    default_catalog,
    default_registry,
    find_placeholders,
    format_date,
    format_datetime,
    generate_remediation_actions,
    inject_document_fields,
    load_answers,
    load_catalog,
    load_raw_answers,
    load_registry,
    merge_legal_statements,
    merge_risk_proxy,
    resolve_conflict,
    risk_level,
    risk_level_explanation,
    unresolved_placeholders,
)
from hipaa_docgen.cli.main import cli


TS = "2025-01-15T14:30:00Z"
UPLOADED = "2025-01-10T09:00:00Z"
NOW = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

C = ComplianceStatus.COMPLIANT
P = ComplianceStatus.PARTIAL
NC = ComplianceStatus.NON_COMPLIANT

STATEMENTS = {"COMPLIANT": "field ok", "PARTIAL": "field partial", "NON_COMPLIANT": "field gap"}


# ===========================================================================
# Fixtures
# ===========================================================================


def _registry_data() -> dict:
    return {
        "schema_version": 1,
        "registry_version": "test",
        "documents": {
            "Doc": ["FIELD", "OTHER", "AUDIT_EVIDENCE_LIST", "SRA_DOCUMENTATION"],
            "MasterPolicy": ["SECURITY_POSTURE"],
        },
        "evidence_ids": {"q-sra": "ADM-003"},
        "bindings": [
            {
                "question_id": "q1",
                "affects": [
                    {"document_name": "Doc", "field_name": "FIELD", "priority": 2},
                    {"document_name": "Doc", "field_name": "AUDIT_EVIDENCE_LIST", "priority": 1},
                ],
                "legal_statements": dict(STATEMENTS),
            },
            {
                "question_id": "q2",
                "affects": [
                    {"document_name": "Doc", "field_name": "FIELD", "priority": 1},
                    {"document_name": "Doc", "field_name": "OTHER", "priority": 1},
                ],
                "legal_statements": dict(STATEMENTS),
            },
            {
                "question_id": "q-sra",
                "affects": [
                    {"document_name": "Doc", "field_name": "SRA_DOCUMENTATION"},
                    {"document_name": "MasterPolicy", "field_name": "SECURITY_POSTURE"},
                ],
                "legal_statements": {
                    "COMPLIANT": "sra ok",
                    "PARTIAL": "sra partial",
                    "NON_COMPLIANT": "sra gap",
                },
            },
        ],
    }


@pytest.fixture
def registry() -> BindingRegistry:
    """Small in-memory registry: two questions sharing Doc.FIELD."""
    return BindingRegistry.from_dict(_registry_data())


@pytest.fixture
def settings() -> Settings:
    return Settings()


def answer(qid: str, status: ComplianceStatus, level: RiskLevel, **kw) -> QuestionAnswer:
    builder = AnswerBuilder(qid).status(status).risk(level).at(TS)
    for file_name in kw.get("files", ()):
        builder.with_evidence(file_name, uploaded_at=UPLOADED, file_id=file_name)
    if kw.get("attested"):
        builder.attest(kw.get("ip", "203.0.113.7"))
    return builder.build()


# ===========================================================================
# Scoring
# ===========================================================================


class TestClassify:
    @pytest.mark.parametrize("option", ["yes", "yes-current", "yes-regular"])
    def test_compliant_options(self, option):
        assert classify("q", option) == C

    @pytest.mark.parametrize("option", ["partial", "informal", "yes-old", "yes-occasional"])
    def test_partial_options(self, option):
        assert classify("q", option) == P

    def test_no_is_non_compliant(self):
        assert classify("q", "no") == NC

    def test_unknown_option_is_partial(self):
        assert classify("q", "maybe") == P
        assert classify("q", "") == P


class TestRiskLevel:
    @pytest.mark.parametrize("status,score,expected", [
        (C, 0, RiskLevel.LOW),
        (C, 1, RiskLevel.MEDIUM),
        (C, 2, RiskLevel.HIGH),
        (C, 4, RiskLevel.CRITICAL),
        (C, 5, RiskLevel.CRITICAL),
        (P, 0, RiskLevel.HIGH),
        (P, 1, RiskLevel.HIGH),
        (P, 4, RiskLevel.CRITICAL),
        (NC, 0, RiskLevel.CRITICAL),
    ])
    def test_table(self, status, score, expected):
        assert risk_level(status, score) == expected

    def test_merge_proxy(self):
        assert merge_risk_proxy(RiskLevel.CRITICAL) == 5
        for level in (RiskLevel.LOW, RiskLevel.MEDIUM, RiskLevel.HIGH):
            assert merge_risk_proxy(level) == 3


class TestResolveConflict:
    @pytest.mark.parametrize("a", [C, P, NC])
    @pytest.mark.parametrize("b", [C, P, NC])
    def test_commutative_and_worst_wins(self, a, b):
        result = resolve_conflict(a, b)
        assert result == resolve_conflict(b, a)
        assert result.severity_rank == max(a.severity_rank, b.severity_rank)

    @pytest.mark.parametrize("s", [C, P, NC])
    def test_idempotent(self, s):
        assert resolve_conflict(s, s) == s

    def test_is_worse_than(self):
        assert NC.is_worse_than(P)
        assert not C.is_worse_than(P)


# ===========================================================================
# Aggregation
# ===========================================================================


class TestMergeStatements:
    def test_same_status_concatenates(self):
        assert merge_legal_statements("a", "b", P, P) == "a\n\nb"

    def test_new_non_compliant_leads(self):
        assert merge_legal_statements("a", "b", C, NC) == (
            "b\n\nNote: Previous assessment indicated: a"
        )

    def test_existing_non_compliant_stays_first(self):
        assert merge_legal_statements("a", "b", NC, P) == "a\n\nAdditional assessment: b"

    def test_partial_and_compliant_concatenate(self):
        assert merge_legal_statements("a", "b", C, P) == "a\n\nb"
        assert merge_legal_statements("a", "b", P, C) == "a\n\nb"


class TestAggregateFields:
    def test_single_answer_creates_fields(self, registry):
        docs = aggregate_fields([answer("q1", P, RiskLevel.MEDIUM)], registry)
        assert list(docs) == ["Doc"]
        fv = docs["Doc"].fields["FIELD"]
        assert fv.value == "field partial"
        assert fv.compliance_status == P
        assert fv.risk_level == RiskLevel.MEDIUM
        assert fv.source_questions == ["q1"]
        assert set(docs["Doc"].fields) == {"FIELD", "AUDIT_EVIDENCE_LIST"}

    def test_compliant_answers_merge(self, registry):
        docs = aggregate_fields(
            [answer("q1", C, RiskLevel.LOW), answer("q2", C, RiskLevel.LOW)], registry
        )
        fv = docs["Doc"].fields["FIELD"]
        assert fv.value == "field ok\n\nfield ok"
        assert fv.compliance_status == C
        assert fv.source_questions == ["q1", "q2"]
        # re-scored with the proxy score of 3
        assert fv.risk_level == RiskLevel.HIGH

    def test_later_gap_takes_the_lead(self, registry):
        docs = aggregate_fields(
            [answer("q1", C, RiskLevel.LOW), answer("q2", NC, RiskLevel.CRITICAL)], registry
        )
        fv = docs["Doc"].fields["FIELD"]
        assert fv.value == "field gap\n\nNote: Previous assessment indicated: field ok"
        assert fv.compliance_status == NC
        assert fv.risk_level == RiskLevel.CRITICAL

    def test_order_changes_text_not_status(self, registry):
        docs = aggregate_fields(
            [answer("q1", NC, RiskLevel.CRITICAL), answer("q2", C, RiskLevel.LOW)], registry
        )
        fv = docs["Doc"].fields["FIELD"]
        assert fv.value == "field gap\n\nAdditional assessment: field ok"
        assert fv.compliance_status == NC
        assert fv.risk_level == RiskLevel.CRITICAL

    def test_unknown_question_contributes_nothing(self, registry):
        skipped: list[str] = []
        unknown = answer("not-bound", NC, RiskLevel.CRITICAL, files=["x.pdf"])
        docs = aggregate_fields([unknown], registry, skipped=skipped)
        assert docs == {}
        assert skipped == ["not-bound"]

    def test_evidence_and_attestations_accumulate(self, registry):
        docs = aggregate_fields(
            [
                answer("q1", C, RiskLevel.LOW, files=["a.pdf"], attested=True),
                answer("q2", C, RiskLevel.LOW, files=["b.pdf"]),
            ],
            registry,
            signer_name="Jane Officer",
        )
        fv = docs["Doc"].fields["FIELD"]
        assert [ev.file_name for ev in fv.evidence_files] == ["a.pdf", "b.pdf"]
        assert len(fv.attestations) == 1
        assert fv.attestations[0].signer_name == "Jane Officer"
        assert fv.attestations[0].ip_address == "203.0.113.7"

    def test_answers_are_not_mutated(self, registry):
        a = answer("q1", C, RiskLevel.LOW, files=["a.pdf"])
        docs = aggregate_fields([a, answer("q2", C, RiskLevel.LOW, files=["b.pdf"])], registry)
        assert len(a.evidence_files) == 1
        assert docs["Doc"].fields["FIELD"].evidence_files is not a.evidence_files

    def test_runs_are_independent(self, registry):
        answers = [answer("q1", C, RiskLevel.LOW)]
        first = aggregate_fields(answers, registry)
        second = aggregate_fields(answers, registry)
        first["Doc"].fields["FIELD"].value = "changed"
        assert second["Doc"].fields["FIELD"].value == "field ok"


# ===========================================================================
# Evidence pass
# ===========================================================================


class TestEvidenceFormatting:
    def test_format_date(self):
        assert format_date(TS) == "January 15, 2025"
        assert format_date("2025-03-05") == "March 5, 2025"

    def test_format_datetime(self):
        assert format_datetime(TS) == "January 15, 2025 at 02:30 PM"
        assert format_datetime("2025-01-15T09:05:00+00:00") == "January 15, 2025 at 09:05 AM"

    def test_unparseable_is_returned(self):
        assert format_date("last Tuesday") == "last Tuesday"
        assert format_datetime("") == ""

    @pytest.mark.parametrize("value", [
        "0001-01-01T00:00:00+05:00",
        "9999-12-31T23:59:59-05:00",
    ])
    def test_out_of_range_offset_is_returned(self, value):
        assert format_date(value) == value
        assert format_datetime(value) == value


class TestEvidencePass:
    def _docs(self, registry, answers):
        docs = aggregate_fields(answers, registry)
        return apply_evidence(docs, registry=registry, settings=Settings())

    def test_document_list_is_deduplicated(self, registry, settings):
        docs = self._docs(registry, [
            answer("q1", C, RiskLevel.LOW, files=["policy.pdf"]),
            answer("q2", C, RiskLevel.LOW, files=["policy.pdf"]),
        ])
        audit = docs["Doc"].fields["AUDIT_EVIDENCE_LIST"].value
        assert audit == (
            f"{settings.evidence_list_intro}\n\n"
            "  • policy.pdf (Question ID: q1, Uploaded: January 10, 2025)\n\n"
            f"{settings.evidence_retention_statement}"
        )
        field = docs["Doc"].fields["FIELD"].value
        assert field.count("  • policy.pdf (Uploaded: January 10, 2025)") == 2
        assert "\n\nSupporting Evidence on File:\n" in field

    def test_collect_deduplicates(self, registry):
        docs = aggregate_fields([
            answer("q1", C, RiskLevel.LOW, files=["policy.pdf"], attested=True),
            answer("q2", C, RiskLevel.LOW, files=["policy.pdf"], attested=True),
        ], registry)
        collected = collect_document_evidence(docs["Doc"])
        assert len(collected.evidence) == 1
        assert collected.evidence[0].file.reference() == "policy.pdf"
        assert len(collected.attestations) == 1

    def test_fallback_without_evidence(self, registry, settings):
        docs = self._docs(registry, [answer("q1", C, RiskLevel.LOW)])
        assert docs["Doc"].fields["AUDIT_EVIDENCE_LIST"].value == settings.evidence_fallback_statement
        assert docs["Doc"].fields["FIELD"].value == "field ok"

    def test_download_reference(self, registry):
        a = (
            AnswerBuilder("q1").option("yes").at(TS)
            .with_evidence("log.csv", uploaded_at=UPLOADED, download_url="https://files.example/log")
            .build()
        )
        docs = self._docs(registry, [a])
        assert "log.csv [Download: https://files.example/log]" in docs["Doc"].fields["FIELD"].value

    def test_risk_analysis_documentation_by_evidence_id(self, registry):
        docs = self._docs(registry, [answer("q-sra", C, RiskLevel.LOW, files=["sra.pdf"])])
        sra = docs["Doc"].fields["SRA_DOCUMENTATION"].value
        assert sra == "sra ok\n\nSupporting Documentation:\n  • sra.pdf (Uploaded: January 10, 2025)"

    def test_risk_analysis_prefix_needs_registry(self, registry):
        docs = aggregate_fields([answer("q-sra", C, RiskLevel.LOW, files=["sra.pdf"])], registry)
        apply_evidence(docs, settings=Settings())
        assert docs["Doc"].fields["SRA_DOCUMENTATION"].value == "sra ok"

    def test_field_attestation_sentence(self, registry):
        docs = self._docs(registry, [answer("q1", C, RiskLevel.LOW, attested=True)])
        assert docs["Doc"].fields["FIELD"].value == (
            "field ok\n\nThis statement is supported by a legally binding attestation "
            "recorded on January 15, 2025 at 02:30 PM from IP address 203.0.113.7."
        )

    def test_master_document_posture(self, registry):
        docs = self._docs(registry, [answer("q-sra", C, RiskLevel.LOW, attested=True)])
        posture = docs["MasterPolicy"].fields["SECURITY_POSTURE"].value
        assert posture.endswith(
            "This policy is supported by legally binding attestations recorded on "
            "January 15, 2025 at 02:30 PM from IP address 203.0.113.7."
        )
        assert posture.startswith("sra ok\n\nThis statement is supported")


# ===========================================================================
# Remediation
# ===========================================================================


class TestRemediation:
    def test_partial_high(self, registry):
        actions = generate_remediation_actions(
            [answer("q1", P, RiskLevel.HIGH)], registry, now=NOW
        )
        assert len(actions) == 1
        action = actions[0]
        assert action.severity == RemediationSeverity.HIGH
        assert action.due_date == NOW + timedelta(days=60)
        assert action.finding == "Compliance gap identified in: q1"
        assert action.required_action == "field partial"
        assert action.question_id == "q1"
        assert action.affected_fields == ("Doc.AUDIT_EVIDENCE_LIST", "Doc.FIELD")

    def test_severity_schedule(self, registry):
        actions = generate_remediation_actions(
            [
                answer("q1", NC, RiskLevel.CRITICAL),
                answer("q2", P, RiskLevel.MEDIUM),
                answer("q-sra", C, RiskLevel.LOW),
            ],
            registry,
            now=NOW,
        )
        assert [(a.question_id, a.severity) for a in actions] == [
            ("q1", RemediationSeverity.CRITICAL),
            ("q2", RemediationSeverity.MEDIUM),
        ]
        assert actions[0].due_date == NOW + timedelta(days=30)
        assert actions[1].due_date == NOW + timedelta(days=90)
        assert actions[0].required_action == "field gap"

    def test_unknown_question_has_no_action(self, registry):
        assert generate_remediation_actions(
            [answer("nope", NC, RiskLevel.CRITICAL)], registry, now=NOW
        ) == []

    def test_naive_now_is_utc(self, registry):
        actions = generate_remediation_actions(
            [answer("q1", NC, RiskLevel.CRITICAL)], registry, now=datetime(2025, 1, 1)
        )
        assert actions[0].due_date.tzinfo is not None
        assert actions[0].due_date == datetime(2025, 1, 31, tzinfo=timezone.utc)

    def test_due_days_from_environment(self, registry, monkeypatch):
        monkeypatch.setenv("HIPAA_DOCGEN_HIGH_DUE_DAYS", "45")
        actions = generate_remediation_actions(
            [answer("q1", P, RiskLevel.HIGH)], registry, now=NOW, settings=Settings()
        )
        assert actions[0].due_date == NOW + timedelta(days=45)


# ===========================================================================
# Template injection
# ===========================================================================


def _document(**values: str) -> DocumentData:
    return DocumentData(
        document_name="Doc",
        fields={
            name: DocumentFieldValue(
                field_name=name, value=value, compliance_status=C, risk_level=RiskLevel.LOW
            )
            for name, value in values.items()
        },
    )


class TestInjector:
    def test_replaces_every_occurrence(self):
        doc = _document(FIELD="text")
        assert inject_document_fields("{{FIELD}} and {{FIELD}}", doc) == "text and text"

    def test_unresolved_placeholder_stays(self):
        doc = _document(FIELD="text")
        template = "{{FIELD}} / {{MISSING}}"
        assert inject_document_fields(template, doc) == "text / {{MISSING}}"
        assert unresolved_placeholders(template, doc) == ["MISSING"]

    def test_special_characters_in_field_name(self):
        doc = _document(**{"A.B+C": "x"})
        assert inject_document_fields("{{A.B+C}} {{AXB+C}}", doc) == "x {{AXB+C}}"

    def test_value_inserted_verbatim(self):
        doc = _document(FIELD=r"C:\new\1 $1")
        assert inject_document_fields("[{{FIELD}}]", doc) == r"[C:\new\1 $1]"

    def test_single_braces_untouched(self):
        doc = _document(FIELD="x")
        assert inject_document_fields("{FIELD} {{ FIELD }}", doc) == "{FIELD} {{ FIELD }}"

    def test_find_placeholders(self):
        assert find_placeholders("{{B}} {{A}} {{B}}") == ["B", "A"]


# ===========================================================================
# Generator
# ===========================================================================


class TestDocumentGenerator:
    def test_generate_with_bundled_registry(self):
        answers = [
            AnswerBuilder("security-officer").option("no").at(TS).attest("198.51.100.4").build(),
            AnswerBuilder("privacy-officer").option("yes").at(TS).build(),
            AnswerBuilder("not-a-question").option("no").build(),
        ]
        result = DocumentGenerator().generate(answers, now=NOW)
        assert "MasterPolicy" in result.documents
        posture = result.documents["MasterPolicy"].fields["SECURITY_POSTURE"]
        assert posture.compliance_status == NC
        assert posture.source_questions == ["security-officer", "privacy-officer"]
        assert "198.51.100.4" in posture.value
        assert [a.question_id for a in result.remediation_actions] == ["security-officer"]
        assert result.remediation_actions[0].due_date == NOW + timedelta(days=30)
        assert result.skipped_questions == ["not-a-question"]
        summary = result.summary()
        assert summary["remediation_by_severity"]["CRITICAL"] == 1

    def test_extreme_upload_timestamp(self):
        answers = [
            AnswerBuilder("risk-assessment-conducted").option("yes-current").at(TS)
            .with_evidence("sra.pdf", uploaded_at="0001-01-01T00:00:00+05:00")
            .build(),
        ]
        result = DocumentGenerator().generate(answers, now=NOW)
        evidence = result.documents["AuditLogsPolicy"].fields["AUDIT_EVIDENCE_LIST"].value
        assert "sra.pdf (Question ID: risk-assessment-conducted, Uploaded: 0001-01-01T00:00:00+05:00)" in evidence

    def test_render(self, registry):
        generator = DocumentGenerator(registry=registry)
        docs = generator.generate_documents([answer("q2", C, RiskLevel.LOW)])
        assert generator.render("<{{OTHER}}>", "Doc", docs) == "<field ok>"
        assert generator.render("<{{OTHER}}>", "Unknown", docs) == "<{{OTHER}}>"


# ===========================================================================
# Registry and catalog
# ===========================================================================


class TestRegistry:
    def test_lookups(self, registry):
        assert len(registry) == 3
        assert "q1" in registry
        assert registry.get_binding("missing") is None
        assert registry.fields_for_question("missing") == []
        assert registry.legal_statement("q1", NC) == "field gap"
        assert registry.legal_statement("q1", "UNKNOWN") is None
        assert registry.evidence_id("q-sra") == "ADM-003"
        assert registry.question_for_evidence_id("ADM-003") == "q-sra"

    def test_targets_by_priority_keeps_registry_order_on_ties(self):
        binding = QuestionBinding(
            question_id="q",
            affects=[
                {"document_name": "B", "field_name": "F"},
                {"document_name": "A", "field_name": "F", "priority": 2},
                {"document_name": "C", "field_name": "F"},
            ],
            legal_statements=STATEMENTS,
        )
        assert binding.targets_by_priority() == ["B.F", "C.F", "A.F"]

    def test_missing_status_is_rejected(self):
        data = _registry_data()
        del data["bindings"][0]["legal_statements"]["PARTIAL"]
        with pytest.raises(RegistryValidationError):
            BindingRegistry.from_dict(data)

    def test_statement_tables_are_independent(self):
        data = _registry_data()
        del data["bindings"][0]["legal_statements"]["PARTIAL"]
        data["bindings"][1]["legal_statements"]["COMPLIANT"] = "changed"
        assert data["bindings"][1]["legal_statements"]["PARTIAL"] == "field partial"
        assert _registry_data()["bindings"][0]["legal_statements"] == STATEMENTS

    def test_duplicate_binding_is_rejected(self):
        data = _registry_data()
        data["bindings"].append(data["bindings"][0])
        with pytest.raises(RegistryValidationError):
            BindingRegistry.from_dict(data)

    def test_unsupported_schema_version(self):
        data = _registry_data()
        data["schema_version"] = 99
        with pytest.raises(RegistryValidationError) as exc:
            BindingRegistry.from_dict(data)
        assert exc.value.code == "DG_REGISTRY_VALIDATION_ERROR"

    def test_unknown_keys_are_rejected(self):
        data = _registry_data()
        data["bindings"][0]["extra"] = True
        with pytest.raises(RegistryValidationError):
            BindingRegistry.from_dict(data)

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(RegistryLoadError) as exc:
            load_registry(tmp_path / "missing.yaml")
        assert exc.value.details["path"].endswith("missing.yaml")

    def test_load_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("bindings: [unclosed", encoding="utf-8")
        with pytest.raises(RegistryLoadError):
            load_registry(path)

    def test_load_invalid_utf8(self, tmp_path):
        path = tmp_path / "registry.yaml"
        path.write_bytes(b"\xff\xfe\x00schema_version: 1\n")
        with pytest.raises(RegistryLoadError) as exc:
            load_registry(path)
        assert exc.value.code == "DG_REGISTRY_LOAD_ERROR"

    def test_load_json(self, tmp_path):
        path = tmp_path / "registry.json"
        path.write_text(json.dumps(_registry_data()), encoding="utf-8")
        assert len(load_registry(path)) == 3

    def test_bundled_registry(self):
        reg = default_registry()
        assert reg.registry_version == "2024.11"
        assert len(reg) == 150
        assert reg.evidence_id("risk-assessment-conducted") == "ADM-003"
        assert reg.get_binding("security-officer").targets_by_priority()[0] == (
            "MasterPolicy.SECURITY_POSTURE"
        )


class TestCatalog:
    def test_bundled_catalog(self):
        catalog = default_catalog()
        assert "security-officer" in catalog
        assert catalog.risk_score("security-officer", "no") == 5
        assert catalog.risk_score("security-officer", "maybe") is None
        assert catalog.get("cloud-baa").is_skipped({"cloud-services": "no"})

    def test_option_keys_are_strings(self):
        for question in default_catalog():
            assert all(isinstance(k, str) for k in question.options)

    def test_unknown_option_is_none_not_zero(self):
        question = CatalogQuestion(id="q", category="technical", options={"yes": 0, "no": 5})
        assert question.risk_score("yes") == 0
        assert question.risk_score("maybe") is None
        catalog = QuestionCatalog([question])
        assert catalog.risk_score("q", "maybe") is None
        assert catalog.risk_score("other", "yes") is None

    def test_bundled_scoring_data(self):
        catalog = default_catalog()
        assert catalog.scoring.category_weight("administrative") == 1.5
        assert catalog.scoring.unreported_breach.question_id == "breach-history"
        assert catalog.get("breach-history").tier == "critical"
        assert catalog.get("sanction-policy").tier == "important"
        assert catalog.get("security-officer").max_score == 5

    def test_invalid_catalog(self, tmp_path):
        path = tmp_path / "catalog.yaml"
        path.write_text("schema_version: 1\nquestions:\n  - id: q\n", encoding="utf-8")
        with pytest.raises(CatalogLoadError):
            load_catalog(path)

    def test_inverted_thresholds(self, tmp_path):
        path = tmp_path / "catalog.yaml"
        path.write_text(
            "schema_version: 1\n"
            "scoring: {medium_threshold: 60, high_threshold: 40}\n"
            "questions: []\n",
            encoding="utf-8",
        )
        with pytest.raises(CatalogLoadError):
            load_catalog(path)

    def test_invalid_utf8(self, tmp_path):
        path = tmp_path / "catalog.yaml"
        path.write_bytes(b"schema_version: 1\nquestions: \xff\xfe\n")
        with pytest.raises(CatalogLoadError):
            load_catalog(path)


# ===========================================================================
# Weighted assessment scoring
# ===========================================================================


def _scoring_catalog(**scoring) -> QuestionCatalog:
    questions = [
        CatalogQuestion(id="crit-a", category="physical", tier="critical",
                        citation="45 CFR §164.310(a)(1)", options={"yes": 0, "no": 5}),
        CatalogQuestion(id="crit-b", category="physical", tier="critical",
                        options={"yes": 0, "partial": 2, "no": 4}),
        CatalogQuestion(id="imp", category="physical", tier="important",
                        options={"yes": 0, "no": 5}),
        CatalogQuestion(id="admin", category="administrative", options={"yes": 0, "no": 5}),
        CatalogQuestion(id="plain", category="physical", options={"yes": 0, "no": 5}),
        CatalogQuestion(id="breach", category="administrative", tier="critical",
                        options={"no": 0, "yes-reported": 1, "yes-unreported": 5}),
    ]
    scoring.setdefault("unreported_breach", {"question_id": "breach", "answer": "yes-unreported"})
    return QuestionCatalog(questions, ScoringConfig(**scoring))


class TestAssessmentScoring:
    def test_all_compliant_is_low(self):
        result = calculate_risk_score({"crit-a": "yes", "plain": "yes", "breach": "no"}, _scoring_catalog())
        assert result.risk_percentage == 0
        assert result.risk_level == RiskLevel.LOW
        assert result.applied_overrides == []
        assert risk_level_explanation(result) == (
            "Risk level based on overall compliance score of 0%."
        )

    def test_weights(self):
        catalog = _scoring_catalog()
        result = calculate_risk_score({"imp": "no", "admin": "no", "plain": "no"}, catalog)
        weights = {s.question_id: s.weight for s in result.question_scores}
        assert weights == {"imp": 2.0, "admin": 1.5, "plain": 1.0}
        assert result.total_risk_score == pytest.approx(22.5)
        assert result.max_possible_score == pytest.approx(22.5)
        assert result.risk_level == RiskLevel.HIGH

    def test_percentage_bands(self):
        catalog = _scoring_catalog()
        # imp: 0 of 10, plain: 5 of 5 -> 33.33%
        result = calculate_risk_score({"imp": "yes", "plain": "no"}, catalog)
        assert result.risk_percentage == 33.33
        assert result.risk_level == RiskLevel.MEDIUM
        assert risk_level_explanation(result, catalog) == (
            "Risk level based on overall compliance score of 33.33%."
        )

    def test_unanswered_unknown_and_skipped_are_ignored(self):
        catalog = QuestionCatalog([
            CatalogQuestion(id="svc", category="technical", options={"yes": 0, "no": 1}),
            CatalogQuestion(id="baa", category="technical", tier="critical",
                            skip_if={"question_id": "svc", "answer": "no"},
                            options={"yes": 0, "no": 5}),
            CatalogQuestion(id="other", category="technical", options={"yes": 0, "no": 5}),
        ])
        result = calculate_risk_score({"svc": "no", "baa": "no", "other": "maybe"}, catalog)
        assert [s.question_id for s in result.question_scores] == ["svc"]
        assert result.critical_failures == []
        assert result.risk_percentage == 100

    def test_single_critical_failure_lifts_low_to_medium(self):
        catalog = _scoring_catalog()
        answers = {"crit-a": "no", "imp": "yes", "admin": "yes", "plain": "yes", "breach": "no"}
        result = calculate_risk_score(answers, catalog)
        assert result.risk_percentage < 20
        assert result.critical_failures == ["crit-a"]
        assert result.risk_level == RiskLevel.MEDIUM
        assert result.applied_overrides == ["critical-failure-minimum-medium-risk"]
        assert risk_level_explanation(result, catalog) == (
            "Critical safeguard missing: crit-a (45 CFR §164.310(a)(1))."
        )

    def test_single_critical_failure_keeps_higher_level(self):
        result = calculate_risk_score({"crit-a": "no"}, _scoring_catalog())
        assert result.risk_level == RiskLevel.HIGH
        assert result.applied_overrides == []

    def test_failure_requires_worst_option(self):
        result = calculate_risk_score({"crit-b": "partial"}, _scoring_catalog())
        assert result.critical_failures == []

    def test_multiple_critical_failures_force_high(self):
        catalog = _scoring_catalog(medium_threshold=90, high_threshold=95)
        answers = {"crit-a": "no", "crit-b": "no", "imp": "yes", "admin": "yes", "plain": "yes"}
        result = calculate_risk_score(answers, catalog)
        assert result.critical_failures == ["crit-a", "crit-b"]
        assert result.risk_level == RiskLevel.HIGH
        assert result.applied_overrides == ["multiple-critical-failures-high-risk"]
        assert risk_level_explanation(result, catalog) == (
            "Multiple critical HIPAA safeguards are missing."
        )

    def test_unreported_breach_takes_priority(self):
        catalog = _scoring_catalog(medium_threshold=90, high_threshold=95)
        answers = {"breach": "yes-unreported", "crit-a": "no", "imp": "yes", "admin": "yes"}
        result = calculate_risk_score(answers, catalog)
        assert result.risk_level == RiskLevel.HIGH
        assert result.applied_overrides == ["unreported-breach-high-risk"]
        assert result.is_overridden
        assert risk_level_explanation(result, catalog) == (
            "Unreported breach history indicates significant compliance risk."
        )

    def test_bundled_catalog(self):
        result = calculate_risk_score({"security-officer": "yes", "breach-history": "yes-unreported"})
        assert result.risk_level == RiskLevel.HIGH
        assert result.critical_failures == ["breach-history"]
        score = next(s for s in result.question_scores if s.question_id == "security-officer")
        assert score.citation == "45 CFR §164.308(a)(2)"
        assert score.severity_weight == 5


# ===========================================================================
# Validators
# ===========================================================================


class TestRegistryValidator:
    def test_bundled_registry_passes(self):
        result = RegistryValidator().validate(default_registry())
        assert result.passed, [str(i) for i in result.errors]
        assert result.rule_count == 9

    def test_undeclared_targets(self):
        data = _registry_data()
        data["bindings"][0]["affects"].append({"document_name": "Nowhere", "field_name": "X"})
        data["bindings"][1]["affects"].append({"document_name": "Doc", "field_name": "NEW"})
        result = RegistryValidator().validate(BindingRegistry.from_dict(data))
        assert not result.passed
        assert {i.rule_id for i in result.errors} == {"REG-002", "REG-003"}

    def test_informational_rules(self):
        data = _registry_data()
        data["documents"]["Doc"].append("UNUSED")
        data["evidence_ids"]["unbound"] = "ADM-999"
        data["bindings"][0]["legal_statements"] = {
            "COMPLIANT": "same", "PARTIAL": "same", "NON_COMPLIANT": "gap",
        }
        result = RegistryValidator().validate(BindingRegistry.from_dict(data))
        assert result.passed
        rules = {i.rule_id: i.level for i in result.issues}
        assert rules["REG-005"] == IssueLevel.WARNING
        assert rules["REG-007"] == IssueLevel.INFO
        assert rules["REG-008"] == IssueLevel.INFO

    def test_blank_statement(self):
        data = _registry_data()
        data["bindings"][0]["legal_statements"]["PARTIAL"] = "  "
        result = RegistryValidator().validate(BindingRegistry.from_dict(data))
        assert "REG-004" in {i.rule_id for i in result.errors}


class TestTemplateValidator:
    def test_known_document(self, registry):
        result = TemplateValidator().validate("{{FIELD}} {{NOPE}}", "Doc", registry)
        assert result.passed
        assert [i.rule_id for i in result.issues] == ["TPL-002"]
        assert "{{NOPE}}" in result.issues[0].message

    def test_unknown_document(self, registry):
        result = TemplateValidator().validate("plain text", "Ghost", registry)
        assert not result.passed
        assert {i.rule_id for i in result.issues} == {"TPL-001", "TPL-003"}


# ===========================================================================
# Answer input
# ===========================================================================


class TestAnswerBuilder:
    def test_defaults(self):
        a = AnswerBuilder("q").build()
        assert a.compliance_status == C
        assert a.risk_level == RiskLevel.LOW
        assert a.attestation() is None
        assert a.timestamp.endswith("Z")

    def test_derived_from_option(self):
        a = AnswerBuilder("q").option("no").build()
        assert a.compliance_status == NC
        assert a.risk_level == RiskLevel.CRITICAL
        assert AnswerBuilder("q").option("informal").scored(1).build().risk_level == RiskLevel.HIGH

    def test_score_range(self):
        with pytest.raises(ValueError):
            AnswerBuilder("q").scored(6)

    def test_attestation(self):
        a = AnswerBuilder("q").attest("10.0.0.1", timestamp=TS).with_evidence("a.pdf").build()
        att = a.attestation("Officer")
        assert (att.ip_address, att.timestamp, att.signer_name) == ("10.0.0.1", TS, "Officer")
        assert a.has_evidence()


class TestConvertAnswers:
    def test_scores_through_catalog(self):
        answers = convert_answers({"security-officer": "informal"}, now=NOW)
        assert len(answers) == 1
        a = answers[0]
        assert a.compliance_status == P
        assert a.risk_level == RiskLevel.HIGH
        assert a.timestamp == NOW.isoformat()
        assert a.ip_address == "unknown"

    def test_skips_unknown_and_conditional(self):
        answers = convert_answers({
            "unknown-question": "yes",
            "security-officer": "sometimes",
            "cloud-services": "no",
            "cloud-baa": "no",
        })
        assert [a.question_id for a in answers] == ["cloud-services"]

    def test_evidence(self):
        evidence = {
            "security-officer": {
                "files": [{"file_id": "f1", "file_name": "role.pdf", "uploaded_at": UPLOADED}],
                "attestation_signed": True,
                "timestamp": TS,
                "ip_address": "203.0.113.7",
            },
            "privacy-officer": {"files": "not-a-list"},
        }
        answers = convert_answers({"security-officer": "yes", "privacy-officer": "yes"}, evidence)
        by_id = {a.question_id: a for a in answers}
        assert by_id["security-officer"].evidence_files[0].file_name == "role.pdf"
        assert by_id["security-officer"].attestation_signed
        assert by_id["security-officer"].timestamp == TS
        assert not by_id["privacy-officer"].has_evidence()

    def test_evidence_model(self):
        ev = AnswerEvidence(attestation_signed=True, ip_address="1.2.3.4")
        a = convert_answers({"security-officer": "yes"}, {"security-officer": ev})[0]
        assert a.ip_address == "1.2.3.4"


class TestLoadAnswers:
    def test_yaml_records(self, tmp_path):
        path = tmp_path / "answers.yaml"
        path.write_text(
            "answers:\n"
            "  - question_id: q1\n"
            "    selected_option: yes\n"
            "    compliance_status: COMPLIANT\n"
            "    risk_level: LOW\n"
            "    timestamp: 2025-01-15T14:30:00Z\n"
            "  - question_id: broken\n"
            "    selected_option: no\n",
            encoding="utf-8",
        )
        answers = load_answers(path)
        assert len(answers) == 1
        assert answers[0].selected_option == "yes"
        assert answers[0].timestamp == "2025-01-15T14:30:00+00:00"

    def test_json_list(self, tmp_path):
        path = tmp_path / "answers.json"
        record = answer("q1", P, RiskLevel.HIGH).model_dump(mode="json")
        path.write_text(json.dumps([record]), encoding="utf-8")
        assert load_answers(path)[0].compliance_status == P

    def test_raw_yaml(self, tmp_path):
        path = tmp_path / "raw.yaml"
        path.write_text(
            "answers:\n"
            "  security-officer: no\n"
            "  privacy-officer: yes\n"
            "evidence:\n"
            "  privacy-officer:\n"
            "    files:\n"
            "      - {file_id: f1, file_name: po.pdf, uploaded_at: 2025-01-10}\n",
            encoding="utf-8",
        )
        answers = load_answers(path, raw=True)
        assert [(a.question_id, a.compliance_status) for a in answers] == [
            ("security-officer", NC),
            ("privacy-officer", C),
        ]
        assert answers[1].evidence_files[0].uploaded_at == "2025-01-10"

    def test_raw_requires_mapping(self, tmp_path):
        path = tmp_path / "raw.yaml"
        path.write_text("answers: [a, b]\n", encoding="utf-8")
        with pytest.raises(AnswerFileError):
            load_answers(path, raw=True)

    @pytest.mark.parametrize("evidence", ["[a, b]", "just text", "3"])
    def test_raw_evidence_requires_mapping(self, tmp_path, evidence):
        path = tmp_path / "raw.yaml"
        path.write_text(f"answers:\n  security-officer: yes\nevidence: {evidence}\n", encoding="utf-8")
        with pytest.raises(AnswerFileError) as exc:
            load_answers(path, raw=True)
        assert exc.value.details["path"] == str(path)

    def test_raw_without_evidence(self, tmp_path):
        path = tmp_path / "raw.yaml"
        path.write_text("answers:\n  security-officer: no\nevidence:\n", encoding="utf-8")
        selected, evidence = load_raw_answers(path)
        assert selected == {"security-officer": "no"}
        assert evidence == {}

    @pytest.mark.parametrize("raw", [False, True])
    def test_invalid_utf8(self, tmp_path, raw):
        path = tmp_path / "answers.yaml"
        path.write_bytes(b"answers:\n  security-officer: \xff\xfe\n")
        with pytest.raises(AnswerFileError):
            load_answers(path, raw=raw)

    def test_missing_file(self, tmp_path):
        with pytest.raises(AnswerFileError) as exc:
            load_answers(tmp_path / "none.yaml")
        assert isinstance(exc.value, DocGenError)
        assert exc.value.to_dict()["code"] == "DG_ANSWER_FILE_ERROR"
        assert str(exc.value).startswith("[DG_ANSWER_FILE_ERROR]")


# ===========================================================================
# CLI
# ===========================================================================


@pytest.fixture
def answers_file(tmp_path) -> Path:
    path = tmp_path / "answers.yaml"
    path.write_text(
        "answers:\n"
        "  security-officer: informal\n"
        "  privacy-officer: yes\n",
        encoding="utf-8",
    )
    return path


class TestCLI:
    def test_version(self):
        result = CliRunner().invoke(cli, ["version"])
        assert result.exit_code == 0
        assert "hipaa-docgen" in result.stdout

    def test_generate_json(self, answers_file):
        result = CliRunner().invoke(cli, ["generate", str(answers_file), "--raw", "--json-output"])
        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert payload["summary"]["remediation_count"] == 1
        posture = payload["documents"]["MasterPolicy"]["fields"]["SECURITY_POSTURE"]
        assert posture["compliance_status"] == "PARTIAL"

    def test_generate_table(self, answers_file):
        result = CliRunner().invoke(cli, ["generate", str(answers_file), "--raw"])
        assert result.exit_code == 0, result.output
        assert "Generation" in result.stdout

    def test_generate_template(self, answers_file, tmp_path):
        template = tmp_path / "master.md"
        template.write_text("# Posture\n{{SECURITY_POSTURE}}\n{{UNKNOWN}}\n", encoding="utf-8")
        out = tmp_path / "master.out.md"
        result = CliRunner().invoke(cli, [
            "generate", str(answers_file), "--raw",
            "--template", str(template), "--document", "MasterPolicy", "-o", str(out),
        ])
        assert result.exit_code == 0, result.output
        rendered = out.read_text(encoding="utf-8")
        assert "Security Officer" in rendered
        assert "{{SECURITY_POSTURE}}" not in rendered
        assert "{{UNKNOWN}}" in rendered

    def test_template_requires_document(self, answers_file, tmp_path):
        template = tmp_path / "t.md"
        template.write_text("{{X}}", encoding="utf-8")
        result = CliRunner().invoke(cli, ["generate", str(answers_file), "--template", str(template)])
        assert result.exit_code == 1

    def test_remediation_json(self, answers_file):
        result = CliRunner().invoke(cli, [
            "remediation", str(answers_file), "--raw", "--json-output",
            "--now", "2025-01-01T12:00:00Z",
        ])
        assert result.exit_code == 0, result.output
        actions = json.loads(result.stdout)
        assert len(actions) == 1
        assert actions[0]["question_id"] == "security-officer"
        assert actions[0]["severity"] == "HIGH"
        assert actions[0]["due_date"].startswith("2025-03-02")

    def test_validate_registry(self):
        result = CliRunner().invoke(cli, ["validate-registry", "--json-output"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["passed"] is True

    def test_validate_broken_registry(self, tmp_path):
        path = tmp_path / "reg.yaml"
        path.write_text("schema_version: 7\n", encoding="utf-8")
        result = CliRunner().invoke(cli, ["validate-registry", "--registry", str(path), "--json-output"])
        assert result.exit_code == 2
        assert json.loads(result.stdout)["error"]["code"] == "DG_REGISTRY_VALIDATION_ERROR"

    def test_check_template(self, tmp_path):
        template = tmp_path / "t.md"
        template.write_text("{{SECURITY_POSTURE}}", encoding="utf-8")
        result = CliRunner().invoke(cli, ["check-template", str(template), "--document", "MasterPolicy"])
        assert result.exit_code == 0, result.output

    def test_bad_answer_file(self, tmp_path):
        path = tmp_path / "a.yaml"
        path.write_text("answers: [unclosed", encoding="utf-8")
        result = CliRunner().invoke(cli, ["generate", str(path)])
        assert result.exit_code == 2
        assert "DG_ANSWER_FILE_ERROR" in result.stdout

    def test_undecodable_answer_file(self, tmp_path):
        path = tmp_path / "a.yaml"
        path.write_bytes(b"answers:\n  security-officer: \xff\n")
        result = CliRunner().invoke(cli, ["generate", str(path), "--raw"])
        assert result.exit_code == 2
        assert "DG_ANSWER_FILE_ERROR" in result.stdout

    def test_evidence_list_in_raw_file(self, tmp_path):
        path = tmp_path / "a.yaml"
        path.write_text("answers:\n  security-officer: yes\nevidence: [x]\n", encoding="utf-8")
        result = CliRunner().invoke(cli, ["remediation", str(path), "--raw"])
        assert result.exit_code == 2
        assert "DG_ANSWER_FILE_ERROR" in result.stdout

    def test_score_json(self, tmp_path):
        path = tmp_path / "raw.yaml"
        path.write_text(
            "answers:\n"
            "  security-officer: yes\n"
            "  breach-history: yes-unreported\n",
            encoding="utf-8",
        )
        result = CliRunner().invoke(cli, ["score", str(path), "--json-output"])
        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert payload["risk_level"] == "HIGH"
        assert payload["applied_overrides"] == ["unreported-breach-high-risk"]
        assert payload["explanation"].startswith("Unreported breach history")

    def test_score_table(self, answers_file):
        result = CliRunner().invoke(cli, ["score", str(answers_file)])
        assert result.exit_code == 0, result.output
        assert "Assessment Score" in result.stdout

    def test_score_bad_catalog(self, answers_file, tmp_path):
        catalog = tmp_path / "catalog.yaml"
        catalog.write_text("schema_version: 2\nquestions: []\n", encoding="utf-8")
        result = CliRunner().invoke(cli, ["score", str(answers_file), "--catalog", str(catalog)])
        assert result.exit_code == 2
        assert "DG_CATALOG_LOAD_ERROR" in result.stdout
