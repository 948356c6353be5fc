"""
hipaa-docgen CLI
=================
Command-line interface for the hipaa-docgen library.

Commands:
    generate            Generate document fields (and optionally render a template)
    remediation         List remediation actions for an answer set
    score               Weighted overall risk level of raw questionnaire answers
    validate-registry   Audit the binding registry
    check-template      Check a template's placeholders against the registry
    version             Show version information

Usage::

    hipaa-docgen generate answers.yaml
    hipaa-docgen generate answers.yaml --raw --template master.md --document MasterPolicy
    hipaa-docgen remediation answers.yaml --json-output
    hipaa-docgen score raw_answers.yaml
    hipaa-docgen validate-registry --strict
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import NoReturn

import click
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .. import __version__
from ..builder.answer_file import load_answers, load_raw_answers
from ..config import get_settings
from ..engine.assessment import calculate_risk_score, risk_level_explanation
from ..engine.generator import DocumentGenerator
from ..exceptions import DocGenError
from ..registry.bindings import BindingRegistry, default_registry, load_registry
from ..registry.catalog import default_catalog, load_catalog
from ..validator.registry_check import IssueLevel, RegistryValidator, TemplateValidator

console = Console()
logger = logging.getLogger(__name__)

_STATUS_STYLE = {
    "COMPLIANT": "green",
    "PARTIAL": "yellow",
    "NON_COMPLIANT": "red",
}
_SEVERITY_STYLE = {
    "CRITICAL": "bold red",
    "HIGH": "red",
    "MEDIUM": "yellow",
}
_RISK_STYLE = {
    "LOW": "green",
    "MEDIUM": "yellow",
    "HIGH": "red",
}
_LEVEL_STYLE = {
    IssueLevel.ERROR: "red",
    IssueLevel.WARNING: "yellow",
    IssueLevel.INFO: "blue",
}


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _registry(path: Path | None) -> BindingRegistry:
    return load_registry(path) if path else default_registry()


def _fail(error: DocGenError) -> NoReturn:
    console.print(f"[red]{escape(str(error))}[/red]")
    sys.exit(2)


@click.group()
@click.version_option(version=__version__, prog_name="hipaa-docgen")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Log level (default: HIPAA_DOCGEN_LOG_LEVEL or WARNING)",
)
def cli(log_level: str | None) -> None:
    """
    hipaa-docgen – compliance document synthesis.

    Turns risk assessment answers into policy document field text and a
    remediation worklist.
    """
    _configure_logging(log_level or get_settings().log_level)


# ---------------------------------------------------------------------------
# generate
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("answers_path", type=click.Path(exists=True, path_type=Path))
@click.option("--raw", is_flag=True, help="Answers file holds raw options per question")
@click.option("--registry", "registry_path", type=click.Path(exists=True, path_type=Path),
              default=None, help="Binding registry file (default: bundled registry)")
@click.option("--template", "template_path", type=click.Path(exists=True, path_type=Path),
              default=None, help="Template with {{FIELD}} placeholders to render")
@click.option("--document", "document_name", default=None,
              help="Document whose fields fill the template")
@click.option("--output", "-o", type=click.Path(path_type=Path), default=None,
              help="Write rendered template here instead of stdout")
@click.option("--json-output", is_flag=True, help="Output generated documents as JSON")
def generate(
    answers_path: Path,
    raw: bool,
    registry_path: Path | None,
    template_path: Path | None,
    document_name: str | None,
    output: Path | None,
    json_output: bool,
) -> None:
    """Generate document field values from an answers file."""
    if template_path and not document_name:
        console.print("[red]--document is required with --template[/red]")
        sys.exit(1)

    try:
        generator = DocumentGenerator(registry=_registry(registry_path))
        answers = load_answers(answers_path, raw=raw)
    except DocGenError as e:
        _fail(e)

    result = generator.generate(answers)

    if template_path:
        template = template_path.read_text(encoding="utf-8")
        logger.debug("Rendering %s into template %s", document_name, template_path)
        rendered = generator.render(template, document_name, result.documents)
        if output:
            output.write_text(rendered, encoding="utf-8")
            console.print(f"[green]✓[/green] Rendered {document_name} into [bold]{output}[/bold]")
        else:
            click.echo(rendered)
        return

    if json_output:
        payload = {
            "summary": result.summary(),
            "documents": {
                name: doc.model_dump(mode="json") for name, doc in result.documents.items()
            },
        }
        click.echo(json.dumps(payload, indent=2))
        return

    summary = result.summary()
    console.print()
    console.print(Panel(
        f"[bold]{answers_path.name}[/bold]\n"
        f"Answers: {len(answers)}  |  Documents: {summary['document_count']}  |  "
        f"Fields: {summary['field_count']}  |  Remediation: {summary['remediation_count']}",
        title="hipaa-docgen Generation",
        border_style="blue",
    ))

    for name, doc in result.documents.items():
        t = Table(title=name, box=box.SIMPLE)
        t.add_column("Field")
        t.add_column("Status")
        t.add_column("Risk")
        t.add_column("Sources")
        t.add_column("Evidence")
        t.add_column("Attested")
        for fv in doc.fields.values():
            style = _STATUS_STYLE[fv.compliance_status.value]
            t.add_row(
                fv.field_name,
                f"[{style}]{fv.compliance_status.value}[/{style}]",
                fv.risk_level.value,
                str(len(fv.source_questions)),
                str(len(fv.evidence_files)),
                "✓" if fv.attestations else "—",
            )
        console.print(t)

    if result.skipped_questions:
        console.print(
            f"[yellow]No binding for:[/yellow] {', '.join(result.skipped_questions)}"
        )
    console.print()


# ---------------------------------------------------------------------------
# remediation
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("answers_path", type=click.Path(exists=True, path_type=Path))
@click.option("--raw", is_flag=True, help="Answers file holds raw options per question")
@click.option("--registry", "registry_path", type=click.Path(exists=True, path_type=Path),
              default=None)
@click.option("--now", "now_text", default=None,
              help="Generation time as ISO 8601 (default: current time)")
@click.option("--json-output", is_flag=True)
def remediation(
    answers_path: Path,
    raw: bool,
    registry_path: Path | None,
    now_text: str | None,
    json_output: bool,
) -> None:
    """List remediation actions for non-compliant and partial answers."""
    try:
        generator = DocumentGenerator(registry=_registry(registry_path))
        answers = load_answers(answers_path, raw=raw)
    except DocGenError as e:
        _fail(e)

    now = None
    if now_text:
        try:
            now = datetime.fromisoformat(now_text.replace("Z", "+00:00"))
        except ValueError:
            console.print(f"[red]Invalid --now value: {now_text}[/red]")
            sys.exit(1)

    actions = generator.generate_remediation(answers, now=now)

    if json_output:
        click.echo(json.dumps([a.model_dump(mode="json") for a in actions], indent=2))
        return

    if not actions:
        console.print("\n[green]No remediation actions – every answer is compliant.[/green]\n")
        return

    t = Table(title="Remediation Actions", box=box.ROUNDED)
    t.add_column("#", style="dim")
    t.add_column("Question")
    t.add_column("Severity")
    t.add_column("Due")
    t.add_column("Primary document")
    for i, action in enumerate(actions, 1):
        style = _SEVERITY_STYLE[action.severity.value]
        t.add_row(
            str(i),
            action.question_id,
            f"[{style}]{action.severity.value}[/{style}]",
            action.due_date.date().isoformat(),
            action.affected_fields[0] if action.affected_fields else "—",
        )
    console.print()
    console.print(t)
    console.print()


# ---------------------------------------------------------------------------
# score
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("answers_path", type=click.Path(exists=True, path_type=Path))
@click.option("--catalog", "catalog_path", type=click.Path(exists=True, path_type=Path),
              default=None, help="Question catalog file (default: bundled catalog)")
@click.option("--json-output", is_flag=True)
def score(answers_path: Path, catalog_path: Path | None, json_output: bool) -> None:
    """Weighted overall risk level of a raw answers file."""
    try:
        catalog = load_catalog(catalog_path) if catalog_path else default_catalog()
        selected, _ = load_raw_answers(answers_path)
    except DocGenError as e:
        _fail(e)

    result = calculate_risk_score(selected, catalog)
    explanation = risk_level_explanation(result, catalog)

    if json_output:
        payload = result.model_dump(mode="json")
        payload["explanation"] = explanation
        click.echo(json.dumps(payload, indent=2))
        return

    style = _RISK_STYLE[result.risk_level.value]
    console.print()
    console.print(Panel(
        f"[bold]{answers_path.name}[/bold]\n"
        f"Risk: [{style}]{result.risk_level.value}[/{style}]  |  "
        f"Score: {result.risk_percentage:g}%  |  "
        f"Critical failures: {len(result.critical_failures)}\n"
        f"{escape(explanation)}",
        title="Assessment Score",
        border_style="blue",
    ))
    if result.critical_failures:
        t = Table(title="Critical Failures", box=box.SIMPLE)
        t.add_column("Question")
        t.add_column("Citation")
        for question_id in result.critical_failures:
            question = catalog.get(question_id)
            t.add_row(question_id, question.citation if question and question.citation else "—")
        console.print(t)
    console.print()


# ---------------------------------------------------------------------------
# validate-registry
# ---------------------------------------------------------------------------


@cli.command("validate-registry")
@click.option("--registry", "registry_path", type=click.Path(exists=True, path_type=Path),
              default=None)
@click.option("--strict", is_flag=True, help="Exit with code 1 if any warnings")
@click.option("--json-output", is_flag=True)
def validate_registry(registry_path: Path | None, strict: bool, json_output: bool) -> None:
    """Audit the binding registry."""
    try:
        registry = _registry(registry_path)
    except DocGenError as e:
        if json_output:
            click.echo(json.dumps({"passed": False, "error": e.to_dict()}, indent=2, default=str))
            sys.exit(2)
        _fail(e)

    result = RegistryValidator().validate(registry)

    if json_output:
        click.echo(json.dumps({
            "passed": result.passed,
            "subject": result.subject,
            "rule_count": result.rule_count,
            "issues": [
                {"rule": i.rule_id, "level": i.level.value, "msg": i.message,
                 "question_id": i.question_id}
                for i in result.issues
            ],
        }, indent=2))
    else:
        status_str = "[bold green]PASS[/bold green]" if result.passed else "[bold red]FAIL[/bold red]"
        console.print()
        console.print(Panel(
            f"[bold]{result.subject}[/bold]\n"
            f"Status: {status_str}  |  Documents: {len(registry.documents)}  |  "
            f"Errors: {len(result.errors)}  |  Warnings: {len(result.warnings)}",
            title="Registry Validation",
            border_style="blue",
        ))
        for issue in result.issues:
            color = _LEVEL_STYLE[issue.level]
            where = f" ({issue.question_id})" if issue.question_id else ""
            console.print(f"  [{color}]{issue.level.value}[/{color}] [{issue.rule_id}]{where} {issue.message}")
        console.print()

    exit_code = 0
    if not result.passed:
        exit_code = 1
    elif strict and result.warnings:
        exit_code = 1
    sys.exit(exit_code)


# ---------------------------------------------------------------------------
# check-template
# ---------------------------------------------------------------------------


@cli.command("check-template")
@click.argument("template_path", type=click.Path(exists=True, path_type=Path))
@click.option("--document", "document_name", required=True)
@click.option("--registry", "registry_path", type=click.Path(exists=True, path_type=Path),
              default=None)
def check_template(template_path: Path, document_name: str, registry_path: Path | None) -> None:
    """Check that a template's placeholders can be populated."""
    try:
        registry = _registry(registry_path)
    except DocGenError as e:
        _fail(e)

    result = TemplateValidator().validate(
        template_path.read_text(encoding="utf-8"), document_name, registry
    )
    console.print(str(result))
    for issue in result.issues:
        color = _LEVEL_STYLE[issue.level]
        console.print(f"  [{color}]{issue.level.value}[/{color}] [{issue.rule_id}] {issue.message}")
    sys.exit(0 if result.passed else 1)


# ---------------------------------------------------------------------------
# version info
# ---------------------------------------------------------------------------


@cli.command("version")
def show_version() -> None:
    """Show version and data information."""
    settings = get_settings()
    try:
        registry = default_registry()
        registry_line = f"Registry: {registry.registry_version} ({len(registry)} bindings)"
    except DocGenError as e:
        registry_line = f"Registry: unavailable ({e.code})"
    console.print(Panel(
        f"[bold cyan]hipaa-docgen[/bold cyan] v{__version__}\n\n"
        "Compliance document synthesis engine\n"
        f"{registry_line}\n"
        f"Registry file: {settings.registry_path}\n"
        f"Catalog file:  {settings.catalog_path}",
        title="hipaa-docgen",
        border_style="cyan",
    ))
