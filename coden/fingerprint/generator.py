"""Fingerprint generation for inserted code fragments."""

from __future__ import annotations

import re

from coden.config.models import FingerprintConfig
from coden.fingerprint.models import Fingerprint, StructuralElement
from coden.fingerprint.rules import rules_for
from coden.fingerprint.text import count_lines, extract_identifiers, hash_text, unique

_CALL_RE = re.compile(r"\b([a-zA-Z][a-zA-Z0-9_]*)\s*\([^(]*\)")
_PROPERTY_RE = re.compile(r"\b([a-zA-Z][a-zA-Z0-9_]*)\s*\.\s*([a-zA-Z][a-zA-Z0-9_]*)")

# flag -> predicate over raw text
IDIOM_DETECTORS = {
    "arrow_function": lambda text: "=>" in text,
    "class_definition": lambda text: "class" in text,
    "import_statement": lambda text: "import" in text,
    "async_code": lambda text: "async" in text,
    "error_handling": lambda text: "try" in text and ("catch" in text or "except" in text),
}


def generate_fingerprint(
    text: str,
    language: str,
    config: FingerprintConfig | None = None,
) -> Fingerprint:
    """Build the immutable fingerprint of *text* for later re-identification.

    Never raises for string input; anything unrecognizable just produces
    empty extraction results.
    """
    config = config or FingerprintConfig()
    if not isinstance(text, str):
        text = str(text)
    language = language or "plaintext"

    return Fingerprint(
        hash=hash_text(text),
        original_text=text,
        line_count=count_lines(text),
        structural_elements=tuple(extract_structural_elements(text, language, config)),
        identifiers=tuple(
            extract_identifiers(text, config.stoplist, config.min_identifier_length)
        ),
        semantic_patterns=tuple(extract_semantic_patterns(text, config)),
        language=language,
    )


def extract_structural_elements(
    text: str,
    language: str,
    config: FingerprintConfig | None = None,
) -> list[StructuralElement]:
    """Apply the language's ordered rules; overlapping matches are kept."""
    config = config or FingerprintConfig()
    elements: list[StructuralElement] = []
    for rule in rules_for(language).rules:
        importance = config.importance.for_kind(rule.kind)
        for name, matched in rule.matches(text):
            elements.append(StructuralElement(
                kind=rule.kind,
                name=name.strip(),
                match_pattern=matched,
                importance=importance,
            ))
    return elements


def extract_semantic_patterns(text: str, config: FingerprintConfig | None = None) -> list[str]:
    """Call shapes, property-access shapes, then idiom flags."""
    config = config or FingerprintConfig()
    patterns: list[str] = []

    for match in _CALL_RE.finditer(text):
        if len(match.group(1)) >= config.min_call_name_length:
            patterns.append(match.group(0))

    patterns.extend(match.group(0) for match in _PROPERTY_RE.finditer(text))

    patterns.extend(flag for flag, detect in IDIOM_DETECTORS.items() if detect(text))

    return unique(patterns)
