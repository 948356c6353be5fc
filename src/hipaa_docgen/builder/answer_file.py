"""
Answer Files
=============
Reads answer sets from YAML or JSON files for the CLI.

Two layouts are accepted. Classified answers, one record per question::

    answers:
      - question_id: security-officer
        selected_option: informal
        compliance_status: PARTIAL
        risk_level: HIGH
        timestamp: "2025-01-15T14:30:00Z"

Raw questionnaire output, converted through the question catalog::

    answers:
      security-officer: informal
    evidence:
      security-officer:
        files: [{file_id: f1, file_name: role.pdf, uploaded_at: "2025-01-10"}]
        attestation_signed: true
        timestamp: "2025-01-15T14:30:00Z"
        ip_address: 203.0.113.7

A record that fails validation is logged and skipped; the rest of the file
is still used.
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from ..exceptions import AnswerFileError
from ..models.answer import QuestionAnswer
from ..registry.catalog import QuestionCatalog
from .converter import convert_answers

logger = logging.getLogger(__name__)


def _read(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
        if path.suffix.lower() == ".json":
            return json.loads(text)
        return _iso_dates(yaml.safe_load(text))
    except (OSError, UnicodeDecodeError, yaml.YAMLError, json.JSONDecodeError) as e:
        raise AnswerFileError(
            message=f"Failed to read answer file: {e}",
            details={"path": str(path)},
        ) from e


def _iso_dates(value: Any) -> Any:
    # YAML loads unquoted timestamps as date/datetime objects
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _iso_dates(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_iso_dates(v) for v in value]
    return value


def _option_text(value: Any) -> str:
    # unquoted yes/no in YAML load as booleans
    if isinstance(value, bool):
        return "yes" if value else "no"
    return str(value)


def parse_answer_records(records: Any) -> list[QuestionAnswer]:
    """Validate classified answer records, skipping the invalid ones."""
    if not isinstance(records, list):
        raise AnswerFileError(
            message="Classified answers must be a list of records",
            details={"type": type(records).__name__},
        )
    answers: list[QuestionAnswer] = []
    for index, record in enumerate(records):
        if isinstance(record, dict) and "selected_option" in record:
            record = {**record, "selected_option": _option_text(record["selected_option"])}
        try:
            answers.append(QuestionAnswer.model_validate(record))
        except ValidationError as e:
            qid = record.get("question_id") if isinstance(record, dict) else None
            logger.warning(
                "Skipping answer #%d (%s): %d validation error(s)",
                index,
                qid or "no question_id",
                e.error_count(),
            )
    return answers


def load_raw_answers(path: str | Path) -> tuple[dict[str, str], dict[str, Any]]:
    """
    Read raw questionnaire output: selected option and evidence per question.

    Raises:
        AnswerFileError: The file cannot be read or is not in the raw layout.
    """
    path = Path(path)
    data = _read(path)
    body = data.get("answers") if isinstance(data, dict) else data
    if not isinstance(body, dict):
        raise AnswerFileError(
            message="Raw answers must map question ids to selected options",
            details={"path": str(path)},
        )
    evidence = data.get("evidence") or {}
    if not isinstance(evidence, dict):
        raise AnswerFileError(
            message="Evidence must map question ids to evidence records",
            details={"path": str(path), "type": type(evidence).__name__},
        )
    selected = {str(k): _option_text(v) for k, v in body.items()}
    return selected, {str(k): v for k, v in evidence.items()}


def load_answers(
    path: str | Path,
    *,
    raw: bool = False,
    catalog: QuestionCatalog | None = None,
) -> list[QuestionAnswer]:
    """
    Load an answer set from ``path``.

    Args:
        path: YAML or JSON file.
        raw: The file holds raw questionnaire output (option per question).
        catalog: Catalog used to score raw answers.

    Raises:
        AnswerFileError: The file cannot be read or has the wrong layout.
    """
    if raw:
        selected, evidence = load_raw_answers(path)
        return convert_answers(selected, evidence, catalog=catalog)

    path = Path(path)
    data = _read(path)
    body = data.get("answers") if isinstance(data, dict) else data

    answers = parse_answer_records(body)
    logger.debug("Loaded %d answer(s) from %s", len(answers), path)
    return answers
