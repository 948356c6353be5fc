"""
Template Injector
==================
Substitutes ``{{FIELD_NAME}}`` placeholders in a literal document template
with assembled field text. The double-brace delimiter is part of the
template contract and is matched byte-for-byte.

Placeholders without a matching field are left in place.
"""

from __future__ import annotations

import re

from ..models.document import DocumentData

PLACEHOLDER_PATTERN = re.compile(r"\{\{([^{}]+)\}\}")


def placeholder_for(field_name: str) -> str:
    return "{{" + field_name + "}}"


def inject_document_fields(template: str, document: DocumentData) -> str:
    """Replace every placeholder of each field in ``document`` with its value."""
    processed = template
    for field_name, value in document.field_values().items():
        pattern = re.compile(re.escape(placeholder_for(field_name)))
        # value inserted verbatim, no backslash or group expansion
        processed = pattern.sub(lambda _m, text=value: text, processed)
    return processed


def find_placeholders(template: str) -> list[str]:
    """Placeholder names in order of first appearance."""
    names: list[str] = []
    for match in PLACEHOLDER_PATTERN.finditer(template):
        name = match.group(1)
        if name not in names:
            names.append(name)
    return names


def unresolved_placeholders(template: str, document: DocumentData) -> list[str]:
    """Placeholder names the document has no field for."""
    return [name for name in find_placeholders(template) if name not in document.fields]
