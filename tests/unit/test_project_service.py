"""
Unit tests for ProjectService.

Run: pytest tests/unit/test_project_service.py -v
"""

import pytest

from exceptions import DatabaseError, ProjectNotFoundError
from models.project import ProjectCreate, ProjectStatus
from services.project_service import INSERT_BATCH_SIZE, ProjectService, get_project_service
from tests.factories import MappingResultFactory, ProjectFactory


class TestProjects:
    """Tests for project rows."""

    def test_create_project(self, mock_db, mock_supabase):
        """Should insert a processing project and return it."""
        # Arrange
        service = ProjectService()
        data = ProjectCreate(name="supplier.xlsx", file_name="supplier.xlsx", file_size=1024, total_rows=3)

        # Act
        project = service.create_project(data)

        # Assert
        assert project.id
        assert project.status == ProjectStatus.PROCESSING
        inserted = mock_supabase.calls_for("projects", "insert")[0]
        assert inserted["status"] == "processing"
        assert "user_id" not in inserted

    def test_update_status(self, mock_db, mock_supabase):
        """Should update the status of an existing project."""
        mock_supabase.set_table_data("projects", [ProjectFactory.create(id="p-1", status="processing")])
        service = ProjectService()

        project = service.update_status("p-1", ProjectStatus.COMPLETED)

        assert project.status == ProjectStatus.COMPLETED

    def test_update_status_unknown_project(self, mock_db, mock_supabase):
        """Should raise ProjectNotFoundError when no row matches."""
        service = ProjectService()

        with pytest.raises(ProjectNotFoundError):
            service.update_status("missing", ProjectStatus.ERROR)

    def test_get_project_not_found(self, mock_db, mock_supabase):
        """Should raise ProjectNotFoundError for unknown ids."""
        mock_supabase.set_table_data("projects", [ProjectFactory.create(id="p-1")])
        service = ProjectService()

        with pytest.raises(ProjectNotFoundError) as exc_info:
            service.get_project("p-2")

        assert exc_info.value.status_code == 404

    def test_list_projects_respects_limit(self, mock_db, mock_supabase):
        """Should return at most `limit` projects."""
        mock_supabase.set_table_data("projects", ProjectFactory.create_batch(5))
        service = ProjectService()

        projects = service.list_projects(limit=2)

        assert len(projects) == 2

    def test_database_failure_raises_database_error(self, mock_db, mock_supabase):
        """Should wrap client errors in DatabaseError."""
        mock_supabase.fail_on = "projects"
        service = ProjectService()

        with pytest.raises(DatabaseError):
            service.list_projects()


class TestRecords:
    """Tests for source record rows."""

    def test_save_records_numbers_rows_from_one(self, mock_db, mock_supabase):
        """Should store row_number starting at 1 with pending status."""
        # Arrange
        service = ProjectService()
        records = [{"SKU": "A1"}, {"SKU": "A2"}]

        # Act
        count = service.save_records("p-1", records)

        # Assert
        assert count == 2
        rows = mock_supabase.calls_for("product_data", "insert")[0]
        assert [r["row_number"] for r in rows] == [1, 2]
        assert rows[0]["source_data"] == {"SKU": "A1"}
        assert rows[0]["validation_status"] == "pending"

    def test_save_records_in_batches(self, mock_db, mock_supabase):
        """Should split large inserts into batches."""
        service = ProjectService()
        records = [{"SKU": f"A{i}"} for i in range(INSERT_BATCH_SIZE + 1)]

        count = service.save_records("p-1", records)

        assert count == INSERT_BATCH_SIZE + 1
        assert len(mock_supabase.calls_for("product_data", "insert")) == 2

    def test_get_records(self, mock_db, mock_supabase):
        """Should return only the project's records."""
        service = ProjectService()
        service.save_records("p-1", [{"SKU": "A1"}])
        service.save_records("p-2", [{"SKU": "B1"}])

        records = service.get_records("p-1")

        assert len(records) == 1
        assert records[0].source_data == {"SKU": "A1"}


class TestSaveMappings:
    """Tests for ProjectService.save_mappings()"""

    @pytest.fixture
    def results(self):
        return [
            MappingResultFactory.required("SKU", "Article Number/SKU", confidence=0.97),
            MappingResultFactory.required("Colour", "Color", confidence=1.0, reason="Manual override"),
            MappingResultFactory.optional("Theme", confidence=0.5),
            MappingResultFactory.optional("Serie", "Release Name", confidence=0.6, reason="Series name"),
            MappingResultFactory.required("(Missing) GTIN", "GTIN", confidence=0.0),
        ]

    def test_splits_by_classification(self, mock_db, mock_supabase, results):
        """Should write required and optional rows to their tables."""
        # Act
        saved = ProjectService().save_mappings("p-1", results, record={"Theme": "Star Wars", "Serie": None})

        # Assert
        assert saved.required_saved == 2
        assert saved.optional_saved == 2
        assert saved.skipped == 1

        required = mock_supabase.calls_for("field_mappings", "insert")[0]
        assert [r["source_field"] for r in required] == ["SKU", "Colour"]
        assert [r["is_manual"] for r in required] == [False, True]

        optional = mock_supabase.calls_for("optional_fields", "insert")[0]
        theme, serie = optional
        assert theme["source_value"] == "Star Wars"
        assert theme["target_field"] is None
        assert theme["is_mapped"] is False
        assert serie["source_value"] == ""
        assert serie["target_field"] == "Release Name"
        assert serie["suggested_target"] == "Release Name"
        assert serie["is_mapped"] is True
        assert serie["reason"] == "Series name"

    def test_replaces_previous_mappings(self, mock_db, mock_supabase, results):
        """Should delete earlier rows of the project before inserting."""
        mock_supabase.set_table_data("field_mappings", [
            {"id": "old", "project_id": "p-1", "source_field": "Old", "target_field": "GTIN"},
            {"id": "other", "project_id": "p-2", "source_field": "Keep", "target_field": "GTIN"},
        ])

        ProjectService().save_mappings("p-1", results)

        stored = mock_supabase.rows("field_mappings")
        assert [r["source_field"] for r in stored] == ["Keep", "SKU", "Colour"]

    def test_only_placeholders_writes_nothing(self, mock_db, mock_supabase):
        """Should skip inserts when every entry is synthetic."""
        results = [MappingResultFactory.required("(Missing) GTIN", "GTIN", confidence=0.0)]

        saved = ProjectService().save_mappings("p-1", results)

        assert saved.skipped == 1
        assert mock_supabase.calls_for("field_mappings", "insert") == []


class TestGetProjectService:
    """Tests for the singleton getter."""

    def test_returns_same_instance(self, mock_db):
        assert get_project_service() is get_project_service()
