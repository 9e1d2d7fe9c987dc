"""Independent change-detection strategies over a tracked region.

Each method inspects one region against the live document and returns an
immutable MethodVerdict, or None when it has nothing to say about this
fragment. Adding a strategy requires only defining a class with a ``name``
and a ``run`` method and appending an instance to DETECTION_METHODS.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from coden.config.models import FingerprintConfig, TrackerConfig
from coden.fingerprint.models import Fingerprint
from coden.fingerprint.text import (
    contains_token,
    extract_identifiers,
    normalize_line,
    normalize_whitespace,
    significant_tokens,
    token_overlap,
    unique,
)
from coden.tracking.models import DocumentState, MethodVerdict


@dataclass(frozen=True)
class TrackingContext:
    """Everything a detection method may look at for one region."""

    fingerprint: Fingerprint
    document: DocumentState
    snapshot: str | None
    short: bool
    config: TrackerConfig
    fingerprint_config: FingerprintConfig

    @property
    def text(self) -> str:
        return self.fingerprint.original_text

    @property
    def current(self) -> str:
        return self.document.text

    @property
    def verbatim(self) -> bool:
        return self.text in self.document.text

    def tokens(self) -> list[str]:
        return significant_tokens(
            self.text,
            self.fingerprint_config.stoplist,
            self.fingerprint_config.min_identifier_length,
        )


@runtime_checkable
class DetectionMethod(Protocol):
    """Protocol for region change-detection strategies."""

    name: str

    def run(self, ctx: TrackingContext) -> MethodVerdict | None:
        """Judge the region, or return None when not applicable."""
        ...


def _unchanged(name: str, confidence: float) -> MethodVerdict:
    return MethodVerdict(method=name, confidence=confidence)


def _modified(name: str, confidence: float, kind: str, details: list[str]) -> MethodVerdict:
    return MethodVerdict(
        method=name,
        confidence=confidence,
        modification_detected=True,
        modification_type=kind,
        modifications=tuple(details),
    )


def _deleted(name: str, confidence: float, kind: str, details: list[str]) -> MethodVerdict:
    return MethodVerdict(
        method=name,
        confidence=confidence,
        deletion_detected=True,
        modification_type=kind,
        modifications=tuple(details),
    )


# ── Line similarity ──────────────────────────────────────────────────


def positional_similarity(a: str, b: str) -> float:
    """Share of equal characters at equal positions, over the longer length."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    same = sum(1 for x, y in zip(a, b) if x == y)
    return same / longest


class LineSimilarityMethod:
    """Matches each fragment line against its best-scoring document line.

    Short statements are too small for per-character similarity, so they
    are judged by significant-token overlap instead.
    """

    name = "line_similarity"

    def run(self, ctx: TrackingContext) -> MethodVerdict | None:
        cfg = ctx.config
        confidence = cfg.line_similarity_confidence
        if ctx.short:
            return self._run_short(ctx, confidence)

        original = [line for line in (normalize_line(l) for l in ctx.text.split("\n")) if line]
        if not original:
            return None

        doc_lines = unique(
            line for line in (normalize_line(l) for l in ctx.current.split("\n")) if line
        )
        doc_set = set(doc_lines)

        matched = 0
        missing: list[str] = []
        for line in original:
            best = 1.0 if line in doc_set else max(
                (positional_similarity(line, candidate) for candidate in doc_lines),
                default=0.0,
            )
            if best >= self._line_threshold(len(line), cfg):
                matched += 1
            else:
                missing.append(line)

        survival = matched / len(original)
        complexity = ctx.fingerprint.line_count + len(ctx.text) / cfg.survival_chars_per_unit
        bar = min(cfg.survival_cap, cfg.survival_base + cfg.survival_per_complexity * complexity)
        details = [f"{matched}/{len(original)} lines survive (bar {bar:.2f})"]

        if survival < bar:
            return _deleted(self.name, confidence, "deleted", details)
        if ctx.verbatim:
            return _unchanged(self.name, confidence)
        kind = "partial_deletion" if missing else "inline_edit"
        details.extend(f"missing line: {line}" for line in missing)
        return _modified(self.name, confidence, kind, details)

    @staticmethod
    def _line_threshold(length: int, cfg: TrackerConfig) -> float:
        # Shorter strings need stricter agreement to avoid false positives
        if length < cfg.tiny_line_chars:
            return cfg.tiny_line_similarity
        if length < cfg.small_line_chars:
            return cfg.small_line_similarity
        return cfg.line_similarity

    def _run_short(self, ctx: TrackingContext, confidence: float) -> MethodVerdict:
        tokens = ctx.tokens()
        if tokens:
            overlap = token_overlap(tokens, ctx.current)
            present = overlap >= ctx.config.token_overlap_threshold
            details = [f"token overlap {overlap:.2f} of {len(tokens)} token(s)"]
        else:
            present = normalize_whitespace(ctx.text) in normalize_whitespace(ctx.current)
            details = ["no significant tokens; compared normalized text"]

        if ctx.verbatim:
            return _unchanged(self.name, confidence)
        if present:
            return _modified(self.name, confidence, "statement_exists", details)
        return _deleted(self.name, confidence, "deleted", details)


# ── Semantic anchors ─────────────────────────────────────────────────

_DECLARATION_RE = re.compile(
    r"\b(?:function|def|class|const|let|var|interface|struct|enum|fn)\s+[A-Za-z_]\w*"
)
_IMPORT_HEAD_RE = re.compile(
    r"""\bfrom\s+['"][^'"]+['"]"""
    r"""|\bimport\s+['"][^'"]+['"]"""
    r"""|\brequire\s*\(\s*['"][^'"]+['"]\s*\)"""
    r"|\bfrom\s+[\w.]+\s+import\b"
    r"|^[ \t]*import\s+[\w.]+",
    re.MULTILINE,
)
_ANCHOR_CALL_RE = re.compile(r"\b([A-Za-z_]\w*)\s*\([^()]*\)")
_NOT_CALLS = {"if", "for", "while", "switch", "catch", "return", "function", "elif", "with", "def"}
_WS_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class Anchor:
    kind: str  # "declaration" | "import" | "call" | "identifier"
    text: str
    callee: str | None = None


def extract_anchors(
    text: str,
    stoplist: list[str] | tuple[str, ...] = (),
    min_identifier_length: int = 6,
) -> list[Anchor]:
    """Coarse structural anchors: declarations, import heads, calls, long identifiers."""
    anchors: list[Anchor] = []
    anchors.extend(Anchor("declaration", m.group(0)) for m in _DECLARATION_RE.finditer(text))
    anchors.extend(Anchor("import", m.group(0).strip()) for m in _IMPORT_HEAD_RE.finditer(text))
    for m in _ANCHOR_CALL_RE.finditer(text):
        callee = m.group(1)
        if callee in _NOT_CALLS or len(callee) < 3:
            continue
        anchors.append(Anchor("call", m.group(0), callee))
    anchors.extend(
        Anchor("identifier", ident)
        for ident in extract_identifiers(text, stoplist, min_identifier_length)
    )

    seen: set[str] = set()
    result: list[Anchor] = []
    for anchor in anchors:
        if anchor.text and anchor.text not in seen:
            seen.add(anchor.text)
            result.append(anchor)
    return result


class SemanticAnchorMethod:
    """Checks each coarse anchor for exact or fuzzy presence."""

    name = "semantic_anchor"

    def run(self, ctx: TrackingContext) -> MethodVerdict | None:
        cfg = ctx.config
        anchors = extract_anchors(
            ctx.text, ctx.fingerprint_config.stoplist, cfg.anchor_min_identifier_length
        )
        if not anchors:
            return None

        confidence = cfg.anchor_short_confidence if ctx.short else cfg.anchor_confidence
        bar = cfg.anchor_short_deletion if ctx.short else cfg.anchor_deletion
        squeezed = _WS_RE.sub("", ctx.current)

        exact = fuzzy = 0
        missing: list[str] = []
        for anchor in anchors:
            state = self._locate(anchor, ctx.current, squeezed)
            if state == "exact":
                exact += 1
            elif state == "fuzzy":
                fuzzy += 1
            else:
                missing.append(anchor.text)

        survival = (exact + fuzzy) / len(anchors)
        details = [f"anchors: {exact} exact, {fuzzy} fuzzy, {len(missing)} missing"]
        details.extend(f"missing anchor: {text}" for text in missing)

        if survival < bar:
            return _deleted(self.name, confidence, "deleted", details)
        if ctx.verbatim:
            return _unchanged(self.name, confidence)
        kind = "anchor_loss" if missing else "anchor_drift"
        return _modified(self.name, confidence, kind, details)

    @staticmethod
    def _locate(anchor: Anchor, current: str, squeezed: str) -> str:
        if anchor.kind == "identifier":
            return "exact" if contains_token(anchor.text, current) else "missing"
        if anchor.text in current:
            return "exact"
        if _WS_RE.sub("", anchor.text) in squeezed:
            return "fuzzy"
        if anchor.callee and re.search(rf"\b{re.escape(anchor.callee)}\s*\(", current):
            return "fuzzy"
        return "missing"


# ── Snapshot diff ────────────────────────────────────────────────────


class SnapshotDiffMethod:
    """Compares fragment presence between the last saved snapshot and now."""

    name = "snapshot_diff"

    def run(self, ctx: TrackingContext) -> MethodVerdict | None:
        snapshot = ctx.snapshot
        if snapshot is None or not ctx.text.strip() or ctx.text not in snapshot:
            return None

        cfg = ctx.config
        confidence = cfg.snapshot_short_confidence if ctx.short else cfg.snapshot_confidence
        if ctx.verbatim:
            return _unchanged(self.name, confidence)

        delta = (len(ctx.current) - len(snapshot)) / max(len(snapshot), 1)
        if delta < -cfg.snapshot_length_tolerance:
            kind = "partial_deletion"
        elif delta > cfg.snapshot_length_tolerance:
            kind = "addition_modification"
        else:
            kind = "content_change"

        doc_lines = {normalize_line(l) for l in ctx.current.split("\n")}
        frag_lines = [line for line in (normalize_line(l) for l in ctx.text.split("\n")) if line]
        surviving = sum(1 for line in frag_lines if line in doc_lines)
        overlap = token_overlap(ctx.tokens(), ctx.current)
        details = [
            f"document length change {delta:+.1%}",
            f"{surviving}/{len(frag_lines)} lines survive, token overlap {overlap:.2f}",
        ]

        if surviving == 0 and overlap < cfg.token_overlap_threshold:
            return _deleted(self.name, confidence, kind, details)
        return _modified(self.name, confidence, kind, details)


# ── Import specific ──────────────────────────────────────────────────

_IMPORT_PREFIXES = ("import ", "import{", "import\t", "from ", "using ", "#include")
_REQUIRE_DECL_RE = re.compile(r"^(?:(?:const|let|var)\s+[\w{}\s,]+=\s*)?require\s*\(")

_MODULE_PATTERNS = (
    re.compile(r"""\bfrom\s+['"]([^'"]+)['"]"""),
    re.compile(r"""^[ \t]*import\s+['"]([^'"]+)['"]""", re.MULTILINE),
    re.compile(r"""\brequire\s*\(\s*['"]([^'"]+)['"]\s*\)"""),
    re.compile(r"^[ \t]*from\s+([\w.]+)\s+import\b", re.MULTILINE),
    re.compile(r"""^[ \t]*import\s+(?:static\s+)?([\w.*]+(?:[ \t]*,[ \t]*[\w.*]+)*)(?![^\n]*['"])""", re.MULTILINE),
    re.compile(r"^[ \t]*using\s+(?:static\s+)?([\w.]+)\s*;", re.MULTILINE),
    re.compile(r"""^[ \t]*#include\s*[<"]([^>"]+)[>"]""", re.MULTILINE),
)
_BRACED_NAMES_RE = re.compile(r"\bimport\s+(?:type\s+)?(?:\w+\s*,\s*)?{([^}]*)}")
_FROM_NAMES_RE = re.compile(
    r"^[ \t]*from\s+[\w.]+\s+import[ \t]+(?:\(([^)]*)\)|([\w \t,*]+))", re.MULTILINE
)


def is_import_fragment(text: str) -> bool:
    """Lexical prefix check for import/include-style statements."""
    stripped = text.strip()
    return stripped.startswith(_IMPORT_PREFIXES) or bool(_REQUIRE_DECL_RE.match(stripped))


def imported_modules(text: str) -> list[str]:
    """Target modules of every import statement in *text*, in order."""
    modules: list[str] = []
    for pattern in _MODULE_PATTERNS:
        for match in pattern.finditer(text):
            modules.extend(part.strip() for part in match.group(1).split(",") if part.strip())
    return unique(modules)


def imported_names(text: str) -> list[str]:
    """Names pulled in by grouped imports (``{ a, b }`` / ``from m import a, b``)."""
    names: list[str] = []
    for pattern in (_BRACED_NAMES_RE, _FROM_NAMES_RE):
        for match in pattern.finditer(text):
            group = next(g for g in match.groups() if g is not None)
            for part in group.split(","):
                name = part.strip().split()[0] if part.strip() else ""
                if name:
                    names.append(name)
    return unique(names)


class ImportSpecificMethod:
    """Import-syntax-aware presence check for import/include fragments."""

    name = "import_specific"

    def run(self, ctx: TrackingContext) -> MethodVerdict | None:
        if not is_import_fragment(ctx.text):
            return None
        modules = imported_modules(ctx.text)
        if not modules:
            return None

        confidence = ctx.config.import_confidence
        if ctx.verbatim:
            return _unchanged(self.name, confidence)

        still_imported = set(imported_modules(ctx.current))
        missing_modules = [m for m in modules if m not in still_imported]
        missing_names = [n for n in imported_names(ctx.text) if not contains_token(n, ctx.current)]
        details = [f"module no longer imported: {m}" for m in missing_modules]
        details.extend(f"name no longer imported: {n}" for n in missing_names)

        if len(missing_modules) == len(modules):
            return _deleted(self.name, confidence, "import_removed", details)
        return _modified(self.name, confidence, "import_regrouped", details)


# Registry: add new detection methods here. Order only affects diagnostics.
DETECTION_METHODS: list[DetectionMethod] = [
    LineSimilarityMethod(),
    SemanticAnchorMethod(),
    SnapshotDiffMethod(),
    ImportSpecificMethod(),
]
