"""
Similarity fallback engine.

Deterministic, network-free best guess for one source field:
    1. Synonym rule table (English/German), first matching rule wins
    2. Normalized Levenshtein similarity against every catalog name
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence
import structlog
from rapidfuzz.distance import Levenshtein

from config.field_vocabulary import FALLBACK_RULES
from utils.text_utils import fold_accents

logger = structlog.get_logger(__name__)


MIN_FALLBACK_CONFIDENCE = 0.2


@dataclass(frozen=True)
class FallbackMatch:
    """Best catalog match for a source field."""
    target_field: str
    confidence: float
    similarity: float
    matched_rule: Optional[str] = None

    @property
    def reason(self) -> str:
        if self.matched_rule:
            return f"Rule match on '{self.matched_rule}' (fallback)"
        return "String similarity match (fallback)"


def levenshtein_distance(a: str, b: str) -> int:
    """
    Edit distance with unit insert/delete/substitute costs.

    Case-sensitive; callers fold case beforehand.
    """
    return Levenshtein.distance(a, b)


def calculate_similarity(a: str, b: str) -> float:
    """
    1 - distance / length of the longer string.

    Two empty strings are identical (1.0).
    """
    return Levenshtein.normalized_similarity(a, b)


def find_rule_match(
    source_field: str,
    target_names: Iterable[str],
    rules: Sequence[tuple[str, Sequence[str]]] = FALLBACK_RULES,
) -> Optional[tuple[str, str]]:
    """
    Look the source field up in the synonym table.

    Only rules whose target exists in the catalog are considered.

    Returns:
        (target name, matched pattern) or None
    """
    catalog = set(target_names)
    source_lower = fold_accents(source_field.strip().lower())

    for target_name, patterns in rules:
        if target_name not in catalog:
            continue
        for pattern in patterns:
            if pattern in source_lower:
                return target_name, pattern

    return None


def find_best_match(
    source_field: str,
    target_names: Sequence[str],
    min_similarity: float = 0.0,
    rules: Sequence[tuple[str, Sequence[str]]] = FALLBACK_RULES,
) -> Optional[FallbackMatch]:
    """
    Find the best catalog target for one source field.

    Args:
        source_field: Source field name as uploaded
        target_names: Catalog names, in catalog order
        min_similarity: Similarity below this is "no match" (rule hits always count)
        rules: Ordered synonym table

    Returns:
        FallbackMatch, or None for an empty catalog or a weak best match
    """
    names = [name for name in target_names if name]
    if not names:
        return None

    source_lower = source_field.strip().lower()

    rule_hit = find_rule_match(source_field, names, rules)
    if rule_hit is not None:
        target_name, pattern = rule_hit
        similarity = calculate_similarity(source_lower, target_name.lower())
        return FallbackMatch(
            target_field=target_name,
            confidence=max(MIN_FALLBACK_CONFIDENCE, similarity),
            similarity=similarity,
            matched_rule=pattern
        )

    best_name = names[0]
    best_similarity = -1.0
    for name in names:
        similarity = calculate_similarity(source_lower, name.lower())
        # Strictly greater: ties keep the earlier catalog entry
        if similarity > best_similarity:
            best_name = name
            best_similarity = similarity

    if best_similarity < min_similarity:
        logger.debug(
            "similarity_below_threshold",
            source_field=source_field,
            best_target=best_name,
            similarity=round(best_similarity, 3),
            min_similarity=min_similarity
        )
        return None

    return FallbackMatch(
        target_field=best_name,
        confidence=max(MIN_FALLBACK_CONFIDENCE, best_similarity),
        similarity=best_similarity
    )
