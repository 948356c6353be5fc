"""
Question Catalog
=================
Numeric risk scores for every answer option of the assessment
questionnaire, plus category, regulatory citation, severity weight, and an
optional skip condition per question. Loaded from YAML::

    schema_version: 1
    questions:
      - id: cloud-baa
        category: technical
        citation: "45 CFR §164.308(b)"
        severity_weight: 5
        tier: critical
        skip_if: {question_id: cloud-services, answer: "no"}
        options:
          "yes-all": 0
          "no": 5

Option keys must be quoted: YAML 1.1 reads bare yes/no as booleans.

An optional top-level ``scoring`` block sets the category weights and
thresholds used by weighted assessment scoring; defaults apply when absent.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Iterator, Literal, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from ..config import get_settings
from ..exceptions import CatalogLoadError

logger = logging.getLogger(__name__)


class SkipCondition(BaseModel):
    """Skip a question when another question was answered with ``answer``."""
    model_config = ConfigDict(frozen=True)

    question_id: str
    answer: str


Category = Literal["administrative", "physical", "technical"]


class CatalogQuestion(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    category: Category
    tier: Literal["critical", "important"] | None = None
    citation: str | None = None
    severity_weight: int | None = Field(None, ge=1, le=5)
    skip_if: SkipCondition | None = None
    options: dict[str, int] = Field(..., min_length=1)

    @property
    def max_score(self) -> int:
        return max(self.options.values())

    def risk_score(self, option: str) -> int | None:
        """
        Score of ``option``, or None when the option is not in the catalog.

        None means "unknown", not "no risk": callers must not read it as 0.
        """
        return self.options.get(option)

    def is_skipped(self, answers: Mapping[str, str]) -> bool:
        return self.skip_if is not None and answers.get(self.skip_if.question_id) == self.skip_if.answer


class ScoringConfig(BaseModel):
    """Weights and thresholds for weighted assessment scoring."""
    model_config = ConfigDict(frozen=True)

    category_weights: dict[Category, float] = Field(
        default_factory=lambda: {"administrative": 1.5, "technical": 1.2, "physical": 1.0}
    )
    important_multiplier: float = Field(2.0, gt=0)
    medium_threshold: float = Field(20, ge=0, le=100)
    high_threshold: float = Field(50, ge=0, le=100)
    unreported_breach: SkipCondition | None = SkipCondition(
        question_id="breach-history", answer="yes-unreported"
    )

    @model_validator(mode="after")
    def _ordered_thresholds(self) -> ScoringConfig:
        if self.medium_threshold > self.high_threshold:
            raise ValueError("medium_threshold must not exceed high_threshold")
        return self

    def category_weight(self, category: str) -> float:
        return self.category_weights.get(category, 1.0)


class _CatalogFile(BaseModel):
    schema_version: Literal[1]
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    questions: list[CatalogQuestion]


class QuestionCatalog:
    """Read-only question id -> CatalogQuestion map, with its scoring config."""

    def __init__(
        self,
        questions: list[CatalogQuestion],
        scoring: ScoringConfig | None = None,
    ) -> None:
        self.scoring = scoring or ScoringConfig()
        index: dict[str, CatalogQuestion] = {}
        for q in questions:
            if q.id in index:
                raise CatalogLoadError(
                    message=f"Duplicate catalog entry for question {q.id!r}",
                    details={"question_id": q.id},
                )
            index[q.id] = q
        self._questions: Mapping[str, CatalogQuestion] = MappingProxyType(index)

    def get(self, question_id: str) -> CatalogQuestion | None:
        return self._questions.get(question_id)

    def risk_score(self, question_id: str, option: str) -> int | None:
        """
        Score of an option; None when the question or option is unknown.

        Unknown answers are not risk-free. The questionnaire itself treats an
        unscored option as the worst score (5), so never coerce None to 0.
        """
        question = self.get(question_id)
        return question.risk_score(option) if question else None

    def __contains__(self, question_id: object) -> bool:
        return question_id in self._questions

    def __iter__(self) -> Iterator[CatalogQuestion]:
        return iter(self._questions.values())

    def __len__(self) -> int:
        return len(self._questions)


def load_catalog(path: str | Path | None = None) -> QuestionCatalog:
    """
    Load the question catalog from YAML.

    Raises:
        CatalogLoadError: The file cannot be read, parsed, or validated.
    """
    path = Path(path) if path is not None else get_settings().catalog_path
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
        parsed = _CatalogFile.model_validate(data)
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
        raise CatalogLoadError(
            message=f"Failed to load question catalog: {e}",
            details={"path": str(path)},
        ) from e
    except ValidationError as e:
        raise CatalogLoadError(
            message=f"Question catalog validation failed: {e.error_count()} error(s)",
            details={"path": str(path), "errors": e.errors(include_url=False)},
        ) from e
    catalog = QuestionCatalog(parsed.questions, parsed.scoring)
    logger.debug("Loaded question catalog from %s: %d questions", path, len(catalog))
    return catalog


@lru_cache(maxsize=1)
def default_catalog() -> QuestionCatalog:
    return load_catalog()
