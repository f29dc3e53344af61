"""
Data quality report for one mapped record.

Status per mapped field, in priority order:
    duplicate  target used by more than one mapping
    critical   catalog target without a value
    missing    no value
    complete   otherwise

Blank cells and "-" count as no value. Catalog fields that no mapping
targets are reported as "(Missing)" critical entries.
"""

from collections import Counter
from typing import Any, Iterable, Mapping, Optional, Sequence
import structlog

from models.mapping import MappingResult
from models.quality import FieldQuality, QualityMetrics, QualityReport, QualityStatus
from services.field_mapping_service import TargetFieldInput, normalize_target_names
from utils.text_utils import has_value

logger = structlog.get_logger(__name__)


MISSING_FIELD_NAME = "(Missing)"
MISSING_FIELD_REASON = "Required field not mapped"


def build_quality_report(
    record: Optional[Mapping[str, Any]],
    results: Sequence[MappingResult],
    target_fields: Optional[Iterable[TargetFieldInput]] = None
) -> QualityReport:
    """
    Build the quality report for a record and its mappings.

    Args:
        record: Source record (field → value); values decide completeness
        results: Mapping results; synthetic "(Missing) ..." entries are ignored
            because uncovered catalog fields are recomputed here
        target_fields: Catalog (objects, dicts or names)

    Returns:
        QualityReport with required/additional fields and metrics
    """
    record = record or {}
    catalog_names = normalize_target_names(target_fields)
    catalog = set(catalog_names)
    mappings = [r for r in results if not r.is_missing_placeholder]

    target_counts = Counter(r.target_field for r in mappings)

    qualities = []
    for mapping in mappings:
        value = record.get(mapping.source_field)
        present = has_value(value)
        is_required = mapping.target_field in catalog
        duplicate_count = target_counts[mapping.target_field]
        is_duplicate = duplicate_count > 1

        if is_duplicate:
            status = QualityStatus.DUPLICATE
        elif not present and is_required:
            status = QualityStatus.CRITICAL
        elif not present:
            status = QualityStatus.MISSING
        else:
            status = QualityStatus.COMPLETE

        qualities.append(FieldQuality(
            field_name=mapping.source_field,
            source_value=value,
            target_field=mapping.target_field,
            confidence=mapping.confidence,
            status=status,
            reason=(
                f"Duplicate mapping ({duplicate_count}x) - manual selection required"
                if is_duplicate else mapping.reason
            ),
            has_value=present,
            is_required=is_required,
            is_duplicate=is_duplicate,
            duplicate_count=duplicate_count if is_duplicate else None
        ))

    mapped_targets = {q.target_field for q in qualities}
    missing_entries = [
        FieldQuality(
            field_name=MISSING_FIELD_NAME,
            source_value=None,
            target_field=name,
            confidence=0.0,
            status=QualityStatus.CRITICAL,
            reason=MISSING_FIELD_REASON,
            has_value=False,
            is_required=True
        )
        for name in catalog_names
        if name not in mapped_targets
    ]

    required_fields = [q for q in qualities if q.is_required] + missing_entries
    additional_fields = [q for q in qualities if not q.is_required]

    complete_required = sum(1 for q in required_fields if q.status == QualityStatus.COMPLETE)
    metrics = QualityMetrics(
        total_fields=len(qualities) + len(missing_entries),
        complete_fields=sum(1 for q in qualities if q.status == QualityStatus.COMPLETE),
        incomplete_fields=sum(
            1 for q in qualities
            if q.status in (QualityStatus.MISSING, QualityStatus.DUPLICATE)
        ),
        critical_fields=sum(1 for q in qualities if q.status == QualityStatus.CRITICAL) + len(missing_entries),
        avg_confidence=(
            sum(q.confidence for q in qualities) / len(qualities) if qualities else 0.0
        ),
        quality_score=(
            complete_required / len(catalog_names) * 100 if catalog_names else 0.0
        )
    )

    logger.info(
        "quality_report_built",
        fields=metrics.total_fields,
        complete=metrics.complete_fields,
        critical=metrics.critical_fields,
        quality_score=round(metrics.quality_score, 1)
    )

    return QualityReport(
        required_fields=required_fields,
        additional_fields=additional_fields,
        metrics=metrics
    )
