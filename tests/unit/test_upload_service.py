"""
Unit tests for upload orchestration.

Run: pytest tests/unit/test_upload_service.py -v
"""

from unittest.mock import MagicMock

import pytest

from config.database import ConnectionError as ConfigConnectionError
from exceptions import DatabaseError, FileTooLargeError, NoSourceFieldsError, UnsupportedFileTypeError
from models.normalization import SheetLayout
from models.project import ProjectStatus
from services.project_service import ProjectService
from services.session_cache_service import retrieve_session
from services.upload_service import LOCAL_ID_PREFIX, UploadService


CSV_BYTES = b"SKU,Name,Colour\nWETA1,Gollum Statue,Grey\nWETA2,Frodo Statue,Green\n"


def unavailable_storage():
    raise ConfigConnectionError("Supabase credentials not configured")


class TestIngestPersisted:
    """Uploads with storage available."""

    def test_creates_project_and_records(self, mock_db, mock_supabase, offline_settings):
        """Should persist the project, its records and mark it completed."""
        # Arrange
        service = UploadService(settings=offline_settings, project_service_factory=ProjectService)

        # Act
        result = service.ingest(CSV_BYTES, "supplier.csv", content_type="text/csv")

        # Assert
        assert result.persisted
        assert not result.project_id.startswith(LOCAL_ID_PREFIX)
        assert result.normalization.layout == SheetLayout.FLAT
        assert result.normalization.source_fields == ["SKU", "Name", "Colour"]

        project = mock_supabase.rows("projects")[0]
        assert project["id"] == result.project_id
        assert project["status"] == "completed"
        assert project["total_rows"] == 2
        assert len(mock_supabase.rows("product_data")) == 2

    def test_response_shape(self, mock_db, mock_supabase, offline_settings):
        """Should expose records and fields in the response."""
        service = UploadService(settings=offline_settings, project_service_factory=ProjectService)

        response = service.ingest(CSV_BYTES, "supplier.csv").to_response()

        assert response.row_count == 2
        assert response.records[0] == {"SKU": "WETA1", "Name": "Gollum Statue", "Colour": "Grey"}
        assert response.layout == SheetLayout.FLAT

    def test_session_is_cached(self, mock_db, mock_supabase, offline_settings):
        """Should keep the upload in the session cache under its id."""
        service = UploadService(settings=offline_settings, project_service_factory=ProjectService)

        result = service.ingest(CSV_BYTES, "supplier.csv")

        assert retrieve_session(result.project_id) is result
        assert service.get_session(result.project_id) is result


class TestIngestLocal:
    """Uploads that stay in memory."""

    def test_storage_not_configured(self, offline_settings):
        """Should fall back to a local id when storage is missing."""
        service = UploadService(settings=offline_settings, project_service_factory=unavailable_storage)

        result = service.ingest(CSV_BYTES, "supplier.csv")

        assert not result.persisted
        assert result.project_id.startswith(LOCAL_ID_PREFIX)
        assert retrieve_session(result.project_id) is result

    def test_failure_after_create_marks_project_error(self, offline_settings):
        """Should mark an already created project as error."""
        # Arrange
        project_service = MagicMock()
        project_service.create_project.return_value.id = "p-1"
        project_service.save_records.side_effect = DatabaseError("insert", "timeout")
        service = UploadService(settings=offline_settings, project_service_factory=lambda: project_service)

        # Act
        result = service.ingest(CSV_BYTES, "supplier.csv")

        # Assert
        assert not result.persisted
        assert result.project_id.startswith(LOCAL_ID_PREFIX)
        project_service.update_status.assert_called_once_with("p-1", ProjectStatus.ERROR)


class TestIngestRejected:
    """Uploads that cannot become a session."""

    def test_no_source_fields(self, offline_settings):
        """Should reject files without usable columns."""
        service = UploadService(settings=offline_settings, project_service_factory=unavailable_storage)

        with pytest.raises(NoSourceFieldsError) as exc_info:
            service.ingest(b"", "empty.csv")

        assert exc_info.value.code == "NO_COLUMN_HEADERS"

    def test_unsupported_extension(self, offline_settings):
        """Should reject unknown file types before parsing."""
        service = UploadService(settings=offline_settings, project_service_factory=unavailable_storage)

        with pytest.raises(UnsupportedFileTypeError):
            service.ingest(b"data", "catalog.docx")

    def test_size_limit_from_settings(self, offline_settings):
        """Should enforce the configured upload limit."""
        settings = offline_settings.model_copy(update={"max_upload_size_mb": 0})
        service = UploadService(settings=settings, project_service_factory=unavailable_storage)

        with pytest.raises(FileTooLargeError):
            service.ingest(CSV_BYTES, "supplier.csv")
