"""Per-language structural extraction rules via registry pattern.

Supporting a new language requires only defining a rule set class and
appending an instance to RULE_SETS. Languages with no registered rule set use
GenericRules.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import PurePath
from typing import Protocol, runtime_checkable

from coden.fingerprint.models import ElementKind

# Words that the call-shaped function rule picks up from control flow
_CONTROL_WORDS = {"if", "for", "while", "switch", "catch", "return", "function", "elif", "with"}


@dataclass(frozen=True)
class PatternRule:
    """One regex producing structural elements of a single kind."""

    kind: ElementKind
    pattern: re.Pattern[str]

    def matches(self, text: str) -> Iterator[tuple[str, str]]:
        """Yield (name, matched_text) for each match in *text*."""
        for match in self.pattern.finditer(text):
            name = next((g for g in match.groups() if g), match.group(0))
            if self.kind == "function" and name in _CONTROL_WORDS:
                continue
            yield name, match.group(0)


_FUNCTION = PatternRule(
    "function",
    re.compile(
        r"function\s+([a-zA-Z0-9_]+)\s*\("
        r"|([a-zA-Z0-9_]+)\s*=\s*function\s*\("
        r"|([a-zA-Z0-9_]+)\s*=\s*\([^)]*\)\s*=>"
        r"|([a-zA-Z0-9_]+)\s*\([^)]*\)\s*{"
    ),
)
_CLASS = PatternRule("class", re.compile(r"class\s+([a-zA-Z0-9_]+)"))
_VARIABLE = PatternRule(
    "variable",
    re.compile(
        r"(?:const|let|var)\s+([a-zA-Z0-9_]+)\s*="
        r"|([a-zA-Z0-9_]+)\s*:\s*[a-zA-Z0-9_<>\[\]]+\s*="
    ),
)


@runtime_checkable
class RuleSet(Protocol):
    """Ordered structural rules for a family of languages."""

    languages: tuple[str, ...]
    rules: tuple[PatternRule, ...]


class ScriptRules:
    """JavaScript / TypeScript and their JSX variants."""

    languages = ("javascript", "typescript", "javascriptreact", "typescriptreact")
    rules = (
        PatternRule(
            "import",
            re.compile(r"""import\s+(?:{[^}]+}|[^{;]+)\s+from\s+['"]([^'"]+)['"]"""),
        ),
        _FUNCTION,
        _CLASS,
        _VARIABLE,
    )


class PythonRules:
    """Python modules."""

    languages = ("python",)
    rules = (
        PatternRule("import", re.compile(r"(?:from\s+([^\s]+)\s+import|import\s+([^\s]+))")),
        PatternRule("function", re.compile(r"def\s+([a-zA-Z_][a-zA-Z0-9_]*)\s*\(")),
        _FUNCTION,
        _CLASS,
        PatternRule("variable", re.compile(r"^[ \t]*([a-zA-Z_][a-zA-Z0-9_]*)[ \t]*=(?!=)", re.MULTILINE)),
    )


class JavaRules:
    languages = ("java",)
    rules = (
        PatternRule("import", re.compile(r"import\s+([^;]+);")),
        _FUNCTION,
        _CLASS,
        _VARIABLE,
    )


class CSharpRules:
    languages = ("csharp",)
    rules = (
        PatternRule("import", re.compile(r"using\s+([^;]+);")),
        _FUNCTION,
        _CLASS,
        _VARIABLE,
    )


class GenericRules:
    """Fallback for languages without a dedicated rule set."""

    languages = ()
    rules = (
        PatternRule("import", re.compile(r"\b(?:import|using|include|require)\b")),
        _FUNCTION,
        _CLASS,
        _VARIABLE,
    )


# Registry: add new rule sets here. The first set listing a language wins.
RULE_SETS: list[RuleSet] = [
    ScriptRules(),
    PythonRules(),
    JavaRules(),
    CSharpRules(),
]

_GENERIC = GenericRules()


def rules_for(language: str) -> RuleSet:
    """Return the rule set registered for *language*, or the generic one."""
    lang = (language or "").lower()
    for rule_set in RULE_SETS:
        if lang in rule_set.languages:
            return rule_set
    return _GENERIC


_EXTENSION_LANGUAGES = {
    ".py": "python",
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".jsx": "javascriptreact",
    ".ts": "typescript",
    ".tsx": "typescriptreact",
    ".java": "java",
    ".cs": "csharp",
    ".go": "go",
    ".rs": "rust",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".hpp": "cpp",
    ".rb": "ruby",
}


def language_for_path(path: str | PurePath) -> str:
    """Best-effort language tag from a file extension."""
    return _EXTENSION_LANGUAGES.get(PurePath(path).suffix.lower(), "plaintext")
