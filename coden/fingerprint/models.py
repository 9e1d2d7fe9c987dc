"""Data models for fragment fingerprints."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ElementKind = Literal["function", "class", "import", "variable", "other"]

# Idiom flags recorded alongside call/access shapes. Flags are not source text,
# so existence checks re-detect them instead of searching for the flag name.
IDIOM_FLAGS = (
    "arrow_function",
    "class_definition",
    "import_statement",
    "async_code",
    "error_handling",
)


class StructuralElement(BaseModel):
    """A pattern-detected construct (function, class, import, variable)."""

    model_config = ConfigDict(frozen=True)

    kind: ElementKind
    name: str
    match_pattern: str
    importance: float = Field(ge=0, le=1)


class Fingerprint(BaseModel):
    """Immutable descriptor of a fragment, captured once at insertion."""

    model_config = ConfigDict(frozen=True)

    hash: str
    original_text: str
    line_count: int = Field(ge=1)
    structural_elements: tuple[StructuralElement, ...] = ()
    identifiers: tuple[str, ...] = ()
    semantic_patterns: tuple[str, ...] = ()
    language: str = "plaintext"

    def elements_of(self, kind: ElementKind) -> list[StructuralElement]:
        return [el for el in self.structural_elements if el.kind == kind]
