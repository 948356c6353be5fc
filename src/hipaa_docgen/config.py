"""
Settings
=========
Runtime configuration for hipaa-docgen, read from environment variables
with the HIPAA_DOCGEN_ prefix (or a local .env file).

Covers where the declarative data lives, the conventional document and
field names the evidence pass looks for, and remediation scheduling.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_DATA_DIR = Path(__file__).parent / "data"


class Settings(BaseSettings):
    """
    Settings for hipaa-docgen.

    Environment variable prefix: HIPAA_DOCGEN_
    """

    model_config = SettingsConfigDict(
        env_prefix="HIPAA_DOCGEN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Declarative data
    # -------------------------------------------------------------------------

    registry_path: Path = Field(
        default=_DATA_DIR / "question_bindings.yaml",
        description="YAML file holding the question-to-document binding registry.",
    )
    catalog_path: Path = Field(
        default=_DATA_DIR / "question_catalog.yaml",
        description="YAML file holding answer-option risk scores per question.",
    )

    # -------------------------------------------------------------------------
    # Conventional names used by the evidence pass
    # -------------------------------------------------------------------------

    audit_evidence_field: str = "AUDIT_EVIDENCE_LIST"
    risk_analysis_field: str = "SRA_DOCUMENTATION"
    master_document: str = "MasterPolicy"
    security_posture_field: str = "SECURITY_POSTURE"
    risk_analysis_prefixes: tuple[str, ...] = Field(
        default=("SRA-", "ADM-"),
        description="Question id prefixes whose evidence is listed under the risk-analysis field.",
    )
    default_signer_name: str = "User"

    evidence_list_intro: str = (
        "The following evidence documents are maintained on file to support "
        "compliance with this policy:"
    )
    evidence_retention_statement: str = (
        "All evidence documents are retained for a minimum of six (6) years in "
        "accordance with HIPAA retention requirements."
    )
    evidence_fallback_statement: str = (
        "Evidence documentation is maintained in accordance with the Audit Logs "
        "& Documentation Retention Policy (POL-009)."
    )

    # -------------------------------------------------------------------------
    # Remediation scheduling (days from generation time)
    # -------------------------------------------------------------------------

    critical_due_days: int = Field(default=30, ge=1)
    high_due_days: int = Field(default=60, ge=1)
    medium_due_days: int = Field(default=90, ge=1)

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------

    log_level: str = Field(default="WARNING", description="Level used by the CLI log handler.")


@lru_cache
def get_settings() -> Settings:
    """Process-wide settings, read once."""
    return Settings()
