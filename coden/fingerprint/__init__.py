"""Fragment fingerprinting: structural elements, identifiers, semantic patterns."""

from coden.fingerprint.generator import (
    IDIOM_DETECTORS,
    extract_semantic_patterns,
    extract_structural_elements,
    generate_fingerprint,
)
from coden.fingerprint.models import IDIOM_FLAGS, Fingerprint, StructuralElement
from coden.fingerprint.rules import RULE_SETS, language_for_path, rules_for

__all__ = [
    "IDIOM_DETECTORS",
    "IDIOM_FLAGS",
    "RULE_SETS",
    "Fingerprint",
    "StructuralElement",
    "extract_semantic_patterns",
    "extract_structural_elements",
    "generate_fingerprint",
    "language_for_path",
    "rules_for",
]
