"""Heuristics for spotting machine-inserted text and describing it."""

from __future__ import annotations

import math
import re

from coden.config.models import IntegrationConfig
from coden.fingerprint.text import count_lines
from coden.storage.models import SuggestionContext

_CODE_STRUCTURES_RE = re.compile(r"[(){}\[\];]")
_KEYWORDS_RE = re.compile(r"\b(?:if|else|for|while|switch|case|class|import|export)\b")
_AUTOCOMPLETE_MARKERS = ("=>", "function", "return", "const ", "let ", "var ")

LANGUAGE_PATTERNS: dict[str, re.Pattern[str]] = {
    "python": re.compile(r"\b(?:def|class|import|from|with|as)\b"),
    "javascript": re.compile(
        r"\b(?:async|await|const|let|var|function|class|interface|import|export)\b"
    ),
    "csharp": re.compile(
        r"\b(?:using|namespace|class|interface|void|public|private|protected|static)\b"
    ),
    "java": re.compile(
        r"\b(?:public|private|protected|class|interface|enum|import|package|extends|implements)\b"
    ),
}
LANGUAGE_PATTERNS["typescript"] = LANGUAGE_PATTERNS["javascript"]

_COMPLETIONS_URL_RE = re.compile(
    r"(https?://\S+(?:githubcopilot|copilot)\S*/v1/\S+/completions)"
)


def is_probably_machine_suggestion(
    text: str,
    language: str,
    config: IntegrationConfig | None = None,
) -> bool:
    """Guess whether a single inserted chunk came from a completion engine.

    Typing produces one or two characters per change; completions arrive as
    larger, code-shaped chunks.
    """
    cfg = config or IntegrationConfig()
    if len(text) < cfg.min_insert_chars:
        return False

    structures = bool(_CODE_STRUCTURES_RE.search(text))
    autocomplete = any(marker in text for marker in _AUTOCOMPLETE_MARKERS)
    keywords = bool(_KEYWORDS_RE.search(text))
    pattern = LANGUAGE_PATTERNS.get(language)
    language_specific = bool(pattern and pattern.search(text))

    if count_lines(text) > 1 and (structures or keywords or language_specific):
        return True
    return (structures and autocomplete) or language_specific


def infer_probable_model(text: str, language: str, context: str = "") -> str:
    """Best guess at the engine behind a suggestion. Purely cosmetic."""
    match = _COMPLETIONS_URL_RE.search(context)
    if match:
        return f"API URL: {match.group(1)}"
    if len(text) > 500 or count_lines(text) > 10:
        return "Likely GPT-4 or GPT-4o"
    if language == "python" and ("def __init__" in text or "class " in text):
        return "Likely GPT-3.5 or GPT-4"
    if language == "typescript" and "interface " in text:
        return "Likely GPT-4"
    return "GitHub Copilot (model uncertain)"


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / 4)


def extract_context(
    document_text: str,
    start_line: int,
    end_line: int,
    config: IntegrationConfig | None = None,
) -> SuggestionContext:
    """Up to ``context_lines`` lines either side of a span, clipped to ``max_context_chars``.

    *document_text* is the content after the insertion; *end_line* is the
    last line the inserted text occupies.
    """
    cfg = config or IntegrationConfig()
    lines = document_text.split("\n")
    first = max(0, start_line - cfg.context_lines)
    last = min(len(lines) - 1, end_line + cfg.context_lines)

    before = "\n".join(lines[first:start_line]) if first < start_line else ""
    after = "\n".join(lines[end_line + 1:last + 1]) if last > end_line else ""
    return SuggestionContext(
        before=before[-cfg.max_context_chars:] if len(before) > cfg.max_context_chars else before,
        after=after[:cfg.max_context_chars],
    )
