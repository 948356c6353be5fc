"""
hipaa-docgen Exception Hierarchy
=================================
Raised only while loading configuration data (binding registry, question
catalog) or input files. The generation engine itself never raises on
malformed answers; it skips them and logs.

Error codes follow the pattern: DG_<CATEGORY>_<SPECIFIC>
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class DocGenError(Exception):
    """
    Base exception for all hipaa-docgen errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (DG_*)
        details: Additional context about the error
    """
    message: str
    code: str = "DG_INTERNAL_ERROR"
    details: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Serialize exception for logging/CLI output."""
        result: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            result["details"] = self.details
        return result


@dataclass
class RegistryLoadError(DocGenError):
    """Binding registry file could not be read or parsed."""
    code: str = "DG_REGISTRY_LOAD_ERROR"


@dataclass
class RegistryValidationError(DocGenError):
    """Binding registry content does not match the registry schema."""
    code: str = "DG_REGISTRY_VALIDATION_ERROR"


@dataclass
class CatalogLoadError(DocGenError):
    """Question catalog could not be read, parsed, or validated."""
    code: str = "DG_CATALOG_LOAD_ERROR"


@dataclass
class AnswerFileError(DocGenError):
    """An answers input file could not be read or has the wrong shape."""
    code: str = "DG_ANSWER_FILE_ERROR"
