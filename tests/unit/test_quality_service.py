"""
Unit tests for the quality report.

Run: pytest tests/unit/test_quality_service.py -v
"""

import pytest

from models.quality import QualityStatus
from services.quality_service import MISSING_FIELD_NAME, build_quality_report
from tests.factories import MappingResultFactory


CATALOG = ["Article Number/SKU", "GTIN", "Portal Name"]


def by_target(fields):
    return {f.target_field: f for f in fields}


class TestBuildQualityReport:
    """Tests for build_quality_report()"""

    def test_statuses(self):
        """Should classify complete, critical and missing fields."""
        # Arrange
        record = {"SKU": "WETA1", "EAN": "", "Theme": "-"}
        mappings = [
            MappingResultFactory.required("SKU", "Article Number/SKU", confidence=1.0),
            MappingResultFactory.required("EAN", "GTIN", confidence=0.8),
            MappingResultFactory.optional("Theme", confidence=0.6),
        ]

        # Act
        report = build_quality_report(record, mappings, CATALOG)

        # Assert
        required = by_target(report.required_fields)
        assert required["Article Number/SKU"].status == QualityStatus.COMPLETE
        assert required["GTIN"].status == QualityStatus.CRITICAL
        assert report.additional_fields[0].status == QualityStatus.MISSING
        assert not report.additional_fields[0].has_value

    def test_uncovered_catalog_field_is_critical(self):
        """Should add a (Missing) entry for catalog names nobody maps to."""
        record = {"SKU": "WETA1"}
        mappings = [MappingResultFactory.required("SKU", "Article Number/SKU")]

        report = build_quality_report(record, mappings, CATALOG)

        missing = [f for f in report.required_fields if f.field_name == MISSING_FIELD_NAME]
        assert [f.target_field for f in missing] == ["GTIN", "Portal Name"]
        assert all(f.status == QualityStatus.CRITICAL for f in missing)

    def test_duplicates_take_priority(self):
        """Should mark every mapping to a shared target as duplicate."""
        record = {"EAN": "123", "Barcode": ""}
        mappings = [
            MappingResultFactory.required("EAN", "GTIN"),
            MappingResultFactory.required("Barcode", "GTIN"),
        ]

        report = build_quality_report(record, mappings, ["GTIN"])

        assert all(f.status == QualityStatus.DUPLICATE for f in report.required_fields)
        assert report.required_fields[0].duplicate_count == 2
        assert report.required_fields[0].reason == "Duplicate mapping (2x) - manual selection required"

    def test_placeholder_mappings_are_ignored(self):
        """Should recompute uncovered fields instead of using (Missing) entries."""
        mappings = [
            MappingResultFactory.required("SKU", "Article Number/SKU"),
            MappingResultFactory.required("(Missing) GTIN", "GTIN", confidence=0.0),
        ]

        report = build_quality_report({"SKU": "A1"}, mappings, ["Article Number/SKU", "GTIN"])

        names = [f.field_name for f in report.required_fields]
        assert names == ["SKU", MISSING_FIELD_NAME]

    def test_metrics(self):
        """Should compute counts, average confidence and quality score."""
        # Arrange
        record = {"SKU": "WETA1", "EAN": "", "Theme": ""}
        mappings = [
            MappingResultFactory.required("SKU", "Article Number/SKU", confidence=1.0),
            MappingResultFactory.required("EAN", "GTIN", confidence=0.8),
            MappingResultFactory.optional("Theme", confidence=0.6),
        ]

        # Act
        metrics = build_quality_report(record, mappings, CATALOG).metrics

        # Assert
        assert metrics.total_fields == 4
        assert metrics.complete_fields == 1
        assert metrics.incomplete_fields == 1
        assert metrics.critical_fields == 2
        assert metrics.avg_confidence == pytest.approx(0.8)
        assert metrics.quality_score == pytest.approx(100 / 3)

    def test_required_follows_catalog_not_flag(self):
        """Should treat a target outside the catalog as additional."""
        mappings = [MappingResultFactory.required("Theme", "Licence Name (Theme)")]

        report = build_quality_report({"Theme": "Star Wars"}, mappings, [])

        assert report.required_fields == []
        assert report.additional_fields[0].status == QualityStatus.COMPLETE

    def test_empty_inputs(self):
        """Should return zero metrics without mappings or catalog."""
        report = build_quality_report(None, [], None)

        assert report.metrics.total_fields == 0
        assert report.metrics.avg_confidence == 0.0
        assert report.metrics.quality_score == 0.0
