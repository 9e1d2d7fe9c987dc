"""Fingerprint existence evaluation against a live document body."""

from __future__ import annotations

from coden.config.models import EvaluatorConfig
from coden.fingerprint.generator import IDIOM_DETECTORS
from coden.fingerprint.models import Fingerprint, StructuralElement
from coden.tracking.models import ExistenceResult, MatchDetails, ScoreBreakdown


def evaluate(
    fingerprint: Fingerprint,
    current_text: str,
    config: EvaluatorConfig | None = None,
) -> ExistenceResult:
    """Decide whether the fingerprinted fragment still exists in *current_text*.

    1. Verbatim containment short-circuits to an unmodified, certain match.
    2. Otherwise structural, identifier and pattern scores are blended,
       damped for short fragments, and compared to an adaptive threshold.
    """
    config = config or EvaluatorConfig()

    if fingerprint.original_text in current_text:
        return ExistenceResult(
            exists=True,
            modified=False,
            confidence=1.0,
            threshold=existence_threshold(fingerprint, config),
            match_details=MatchDetails(type="exact_match"),
        )

    details = MatchDetails(
        structural=check_structural_elements(fingerprint.structural_elements, current_text),
        identifiers=check_strings(fingerprint.identifiers, current_text),
        patterns=check_patterns(fingerprint.semantic_patterns, current_text),
    )
    confidence = calculate_confidence(details, fingerprint, config)
    threshold = existence_threshold(fingerprint, config)
    exists = confidence >= threshold

    return ExistenceResult(
        exists=exists,
        modified=exists and confidence < threshold + config.modification_margin,
        confidence=confidence,
        threshold=threshold,
        match_details=details,
    )


def check_structural_elements(
    elements: tuple[StructuralElement, ...] | list[StructuralElement],
    content: str,
) -> ScoreBreakdown:
    """Importance-weighted share of elements whose matched text is still present."""
    found: list[str] = []
    not_found: list[str] = []
    total_weight = 0.0
    found_weight = 0.0
    for element in elements:
        total_weight += element.importance
        if element.match_pattern in content:
            found.append(element.match_pattern)
            found_weight += element.importance
        else:
            not_found.append(element.match_pattern)
    score = found_weight / total_weight if total_weight > 0 else 0.0
    return ScoreBreakdown(found=tuple(found), not_found=tuple(not_found), score=score)


def check_strings(items: tuple[str, ...] | list[str], content: str) -> ScoreBreakdown:
    found = [item for item in items if item in content]
    not_found = [item for item in items if item not in content]
    score = len(found) / len(items) if items else 0.0
    return ScoreBreakdown(found=tuple(found), not_found=tuple(not_found), score=score)


def check_patterns(patterns: tuple[str, ...] | list[str], content: str) -> ScoreBreakdown:
    """Like check_strings, but idiom flags are re-detected in *content*."""
    found: list[str] = []
    not_found: list[str] = []
    for pattern in patterns:
        detect = IDIOM_DETECTORS.get(pattern)
        present = detect(content) if detect is not None else pattern in content
        (found if present else not_found).append(pattern)
    score = len(found) / len(patterns) if patterns else 0.0
    return ScoreBreakdown(found=tuple(found), not_found=tuple(not_found), score=score)


def complexity_factor(fingerprint: Fingerprint, config: EvaluatorConfig | None = None) -> float:
    config = config or EvaluatorConfig()
    return min(1.0, config.complexity_base + fingerprint.line_count * config.complexity_per_line)


def calculate_confidence(
    details: MatchDetails,
    fingerprint: Fingerprint,
    config: EvaluatorConfig | None = None,
) -> float:
    config = config or EvaluatorConfig()
    weighted = (
        details.structural.score * config.structural_weight
        + details.identifiers.score * config.identifier_weight
        + details.patterns.score * config.pattern_weight
    )
    # Short fragments are intrinsically harder to attribute
    weighted *= complexity_factor(fingerprint, config)
    return max(0.0, min(1.0, weighted))


def existence_threshold(fingerprint: Fingerprint, config: EvaluatorConfig | None = None) -> float:
    """Adaptive bar: more lines and more structure make existence easier to claim."""
    config = config or EvaluatorConfig()
    threshold = config.base_threshold
    if fingerprint.line_count <= 1:
        threshold = config.single_line_threshold
    elif fingerprint.line_count >= config.large_block_lines:
        threshold = config.large_block_threshold

    element_count = len(fingerprint.structural_elements)
    if element_count == 0:
        threshold += config.structure_adjustment
    elif element_count >= config.rich_structure_elements:
        threshold -= config.structure_adjustment

    return max(config.min_threshold, min(config.max_threshold, threshold))
