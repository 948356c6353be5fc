"""
Document Generator
===================
Entry point tying the passes together::

    answers ──► aggregate_fields ──► apply_evidence ──► documents
        └─────► generate_remediation_actions ─────────► remediation actions

Every call builds its own accumulator and returns it; the generator keeps
no per-run state, so one instance can serve concurrent callers.

Example::

    from hipaa_docgen import DocumentGenerator

    generator = DocumentGenerator()
    result = generator.generate(answers)
    text = generator.render(template, "MasterPolicy", result.documents)
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable

from ..config import Settings, get_settings
from ..models.answer import QuestionAnswer
from ..models.document import DocumentData, GenerationResult, RemediationAction
from ..registry.bindings import BindingRegistry, default_registry
from .aggregator import aggregate_fields
from .evidence import apply_evidence
from .injector import inject_document_fields
from .remediation import generate_remediation_actions

logger = logging.getLogger(__name__)


class DocumentGenerator:
    """Runs the synthesis passes against one registry and one set of settings."""

    def __init__(
        self,
        registry: BindingRegistry | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.registry = registry or default_registry()
        self.settings = settings or get_settings()

    def generate_documents(
        self,
        answers: Iterable[QuestionAnswer],
        *,
        skipped: list[str] | None = None,
    ) -> dict[str, DocumentData]:
        """Aggregate fields and run the evidence pass."""
        documents = aggregate_fields(
            answers,
            self.registry,
            signer_name=self.settings.default_signer_name,
            skipped=skipped,
        )
        return apply_evidence(documents, registry=self.registry, settings=self.settings)

    def generate_remediation(
        self,
        answers: Iterable[QuestionAnswer],
        *,
        now: datetime | None = None,
    ) -> list[RemediationAction]:
        return generate_remediation_actions(
            answers, self.registry, now=now, settings=self.settings
        )

    def generate(
        self,
        answers: Iterable[QuestionAnswer],
        *,
        now: datetime | None = None,
    ) -> GenerationResult:
        """Both outputs for one answer set, stamped with a single generation time."""
        answers = list(answers)
        generated_at = now or datetime.now(tz=timezone.utc)
        if generated_at.tzinfo is None:
            generated_at = generated_at.replace(tzinfo=timezone.utc)

        skipped: list[str] = []
        documents = self.generate_documents(answers, skipped=skipped)
        actions = self.generate_remediation(answers, now=generated_at)

        if skipped:
            logger.info("%d answer(s) contributed nothing: %s", len(skipped), ", ".join(skipped))
        logger.info(
            "Generated %d document(s) and %d remediation action(s) from %d answer(s)",
            len(documents),
            len(actions),
            len(answers),
        )
        return GenerationResult(
            documents=documents,
            remediation_actions=actions,
            skipped_questions=skipped,
            generated_at=generated_at,
        )

    @staticmethod
    def render(
        template: str,
        document_name: str,
        documents: dict[str, DocumentData],
    ) -> str:
        """
        Inject a document's fields into its template.

        An unknown document leaves the template unchanged.
        """
        document = documents.get(document_name)
        if document is None:
            logger.debug("No generated fields for document %s", document_name)
            return template
        return inject_document_fields(template, document)
