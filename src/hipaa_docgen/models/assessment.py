"""
Assessment Score – Model
=========================
Result of weighted scoring over a whole raw questionnaire: per-question
contributions, the overall percentage and level, and the critical
safeguards that forced the level upward.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from .answer import RiskLevel


class QuestionScore(BaseModel):
    """Contribution of one answered question to the overall score."""
    model_config = ConfigDict(frozen=True)

    question_id: str
    category: str
    citation: str | None = None
    severity_weight: int | None = None
    option: str
    risk_score: int
    weight: float
    weighted_score: float
    max_weighted_score: float


class ScoringResult(BaseModel):
    """
    Overall risk of an assessment.

    risk_level is LOW, MEDIUM or HIGH; the percentage band sets the initial
    level and applied_overrides lists the rules that raised it.
    """
    model_config = ConfigDict(frozen=True)

    total_risk_score: float
    max_possible_score: float
    risk_percentage: float
    risk_level: RiskLevel
    critical_failures: list[str] = Field(default_factory=list)
    applied_overrides: list[str] = Field(default_factory=list)
    question_scores: list[QuestionScore] = Field(default_factory=list)

    @property
    def is_overridden(self) -> bool:
        return bool(self.applied_overrides)
