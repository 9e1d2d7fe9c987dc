"""Text helpers shared by fingerprinting, tracking and the ledger."""

from __future__ import annotations

import hashlib
import re
from collections.abc import Iterable

IDENTIFIER_RE = re.compile(r"\b[a-zA-Z][a-zA-Z0-9_]*\b")
_WHITESPACE_RE = re.compile(r"\s+")


def compute_hash(content: bytes) -> str:
    """SHA-256 hash, truncated to the first 12 hex characters."""
    return hashlib.sha256(content).hexdigest()[:12]


def hash_text(text: str) -> str:
    return compute_hash(text.encode("utf-8", errors="replace"))


def count_lines(text: str) -> int:
    return len(text.split("\n"))


def unique(items: Iterable[str]) -> list[str]:
    """De-duplicate while keeping first-occurrence order."""
    return list(dict.fromkeys(items))


def extract_identifiers(text: str, stoplist: Iterable[str], min_length: int = 3) -> list[str]:
    """Identifier-shaped words of at least *min_length* chars, minus the stoplist."""
    stop = set(stoplist)
    return unique(
        word for word in IDENTIFIER_RE.findall(text)
        if len(word) >= min_length and word not in stop
    )


def significant_tokens(text: str, stoplist: Iterable[str], min_length: int = 3) -> list[str]:
    """Identifiers of *text*, falling back to any non-stoplist word when none qualify."""
    stop = set(stoplist)
    tokens = extract_identifiers(text, stop, min_length)
    if tokens:
        return tokens
    return unique(word for word in IDENTIFIER_RE.findall(text) if word not in stop)


def contains_token(token: str, text: str) -> bool:
    return re.search(rf"\b{re.escape(token)}\b", text) is not None


def token_overlap(tokens: Iterable[str], text: str) -> float:
    """Fraction of *tokens* found as whole words in *text* (0.0 when empty)."""
    tokens = list(tokens)
    if not tokens:
        return 0.0
    found = sum(1 for token in tokens if contains_token(token, text))
    return found / len(tokens)


def normalize_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def strip_line_comment(line: str) -> str:
    """Drop a trailing `//` or `#` comment that sits outside string literals.

    `#` only opens a comment at the start of the line or after whitespace,
    and `#include` is kept.
    """
    quote: str | None = None
    escaped = False
    for i, ch in enumerate(line):
        if quote is not None:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == quote:
                quote = None
        elif ch in "\"'`":
            quote = ch
        elif line.startswith("//", i):
            return line[:i]
        elif ch == "#" and (i == 0 or line[i - 1].isspace()) and not line.startswith("#include", i):
            return line[:i]
    return line


def normalize_line(line: str) -> str:
    """Strip line comments and collapse whitespace."""
    return normalize_whitespace(strip_line_comment(line))


def is_short_statement(text: str, max_chars: int = 30) -> bool:
    """A single-line fragment whose stripped text is shorter than *max_chars*."""
    stripped = text.strip()
    return len(stripped) < max_chars and "\n" not in stripped
