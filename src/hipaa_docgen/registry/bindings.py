"""
Binding Registry
=================
Read-only lookup from question id to the QuestionBinding that says which
document fields the question writes and what legal text it emits.

The registry content is configuration data, loaded from a YAML file::

    schema_version: 1
    registry_version: "2024.11"
    documents:
      MasterPolicy: [SECURITY_POSTURE, SRA_STATEMENT]
    evidence_ids:
      security-officer: ADM-001
    bindings:
      - question_id: security-officer
        affects:
          - {document_name: MasterPolicy, field_name: SECURITY_POSTURE, priority: 1}
        legal_statements:
          COMPLIANT: ...
          PARTIAL: ...
          NON_COMPLIANT: ...

Adding a question only requires a new entry under ``bindings``.

Example::

    from hipaa_docgen import load_registry

    registry = load_registry()
    binding = registry.get_binding("security-officer")
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterator, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..config import get_settings
from ..exceptions import RegistryLoadError, RegistryValidationError
from ..models.answer import ComplianceStatus
from ..models.document import DocumentFieldBinding, QuestionBinding

logger = logging.getLogger(__name__)

SUPPORTED_SCHEMA_VERSIONS = frozenset({1})


# ---------------------------------------------------------------------------
# File schema
# ---------------------------------------------------------------------------


class _BindingEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    question_id: str = Field(..., min_length=1)
    affects: list[DocumentFieldBinding] = Field(default_factory=list)
    legal_statements: dict[ComplianceStatus, str]


class RegistryFile(BaseModel):
    """Top-level shape of a binding registry document."""
    model_config = ConfigDict(extra="forbid")

    schema_version: int
    registry_version: str = "unversioned"
    documents: dict[str, list[str]] = Field(default_factory=dict)
    evidence_ids: dict[str, str] = Field(default_factory=dict)
    bindings: list[_BindingEntry] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class BindingRegistry:
    """
    Immutable question id -> QuestionBinding map.

    Lookups of unknown ids return None: a question without a binding simply
    contributes nothing. Instances hold no mutable state after construction
    and may be shared by any number of concurrent generations.
    """

    def __init__(
        self,
        bindings: list[QuestionBinding],
        *,
        documents: Mapping[str, list[str]] | None = None,
        evidence_ids: Mapping[str, str] | None = None,
        registry_version: str = "unversioned",
    ) -> None:
        index: dict[str, QuestionBinding] = {}
        for binding in bindings:
            if binding.question_id in index:
                raise RegistryValidationError(
                    message=f"Duplicate binding for question {binding.question_id!r}",
                    details={"question_id": binding.question_id},
                )
            index[binding.question_id] = binding
        self._bindings: Mapping[str, QuestionBinding] = MappingProxyType(index)
        self._documents: Mapping[str, tuple[str, ...]] = MappingProxyType(
            {name: tuple(fields) for name, fields in (documents or {}).items()}
        )
        ids = dict(evidence_ids or {})
        ids.update({b.question_id: b.evidence_id for b in bindings if b.evidence_id})
        self._evidence_ids: Mapping[str, str] = MappingProxyType(ids)
        self._evidence_to_question: Mapping[str, str] = MappingProxyType(
            {ev: qid for qid, ev in ids.items()}
        )
        self.registry_version = registry_version

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_binding(self, question_id: str) -> QuestionBinding | None:
        return self._bindings.get(question_id)

    def fields_for_question(self, question_id: str) -> list[DocumentFieldBinding]:
        binding = self.get_binding(question_id)
        return list(binding.affects) if binding else []

    def legal_statement(self, question_id: str, status: Any) -> str | None:
        """Statement for (question, status); None when either is unknown."""
        binding = self.get_binding(question_id)
        if binding is None:
            return None
        return binding.legal_statement(status)

    def evidence_id(self, question_id: str) -> str | None:
        """Evidence-questionnaire id (e.g. 'ADM-001') of a question, if mapped."""
        return self._evidence_ids.get(question_id)

    def question_for_evidence_id(self, evidence_id: str) -> str | None:
        return self._evidence_to_question.get(evidence_id)

    @property
    def evidence_ids(self) -> Mapping[str, str]:
        """Question id -> evidence-questionnaire id, including unbound questions."""
        return self._evidence_ids

    @property
    def documents(self) -> Mapping[str, tuple[str, ...]]:
        """Declared fields per document name."""
        return self._documents

    def __contains__(self, question_id: object) -> bool:
        return question_id in self._bindings

    def __iter__(self) -> Iterator[QuestionBinding]:
        return iter(self._bindings.values())

    def __len__(self) -> int:
        return len(self._bindings)

    def __repr__(self) -> str:
        return (
            f"BindingRegistry(version={self.registry_version!r}, "
            f"bindings={len(self)}, documents={len(self._documents)})"
        )

    # ------------------------------------------------------------------
    # Construction from data
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Any, *, source: str = "<memory>") -> "BindingRegistry":
        """Validate a parsed registry document and build the registry."""
        if not isinstance(data, dict):
            raise RegistryValidationError(
                message="Registry document must be a mapping",
                details={"path": source, "type": type(data).__name__},
            )
        version = data.get("schema_version")
        if version not in SUPPORTED_SCHEMA_VERSIONS:
            raise RegistryValidationError(
                message=f"Unsupported registry schema_version: {version!r}",
                details={"path": source, "supported": sorted(SUPPORTED_SCHEMA_VERSIONS)},
            )
        try:
            parsed = RegistryFile.model_validate(data)
            bindings = [
                QuestionBinding(
                    question_id=entry.question_id,
                    affects=tuple(entry.affects),
                    legal_statements=entry.legal_statements,
                    evidence_id=parsed.evidence_ids.get(entry.question_id),
                )
                for entry in parsed.bindings
            ]
        except ValidationError as e:
            raise RegistryValidationError(
                message=f"Registry validation failed: {e.error_count()} error(s)",
                details={"path": source, "errors": e.errors(include_url=False)},
            ) from e

        registry = cls(
            bindings,
            documents=parsed.documents,
            evidence_ids=parsed.evidence_ids,
            registry_version=parsed.registry_version,
        )
        logger.debug(
            "Loaded binding registry %s from %s: %d bindings, %d documents",
            registry.registry_version,
            source,
            len(registry),
            len(registry.documents),
        )
        return registry


def _read_structured(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        return json.loads(text)
    return yaml.safe_load(text)


def load_registry(path: str | Path | None = None) -> BindingRegistry:
    """
    Load a binding registry from a YAML or JSON file.

    Args:
        path: Registry file; defaults to the configured registry path.

    Raises:
        RegistryLoadError: The file cannot be read or parsed.
        RegistryValidationError: The content does not match the registry schema.
    """
    if path is None:
        path = get_settings().registry_path
    path = Path(path)
    try:
        data = _read_structured(path)
    except (OSError, UnicodeDecodeError, yaml.YAMLError, json.JSONDecodeError) as e:
        raise RegistryLoadError(
            message=f"Failed to load binding registry: {e}",
            details={"path": str(path), "error": str(e)},
        ) from e
    return BindingRegistry.from_dict(data, source=str(path))


@lru_cache(maxsize=1)
def default_registry() -> BindingRegistry:
    """The registry at the configured path, loaded once per process."""
    return load_registry()
