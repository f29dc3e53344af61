"""
Upload orchestration.

bytes → rows → normalized records → best-effort save → session cache.

Persistence never blocks an upload: when Supabase is missing or fails,
the session gets a "local-<ms>" id and lives in memory only.
"""

import time
from dataclasses import dataclass
from typing import Callable, Optional
import structlog

from config.database import DatabaseError as ConfigDatabaseError
from config.settings import Settings, get_settings
from exceptions import AppError, NoSourceFieldsError
from models.project import ProjectCreate, ProjectStatus, UploadResponse
from parsers.file_reader import read_rows
from parsers.sheet_normalizer import NormalizationResult, normalize_rows
from services.project_service import ProjectService, get_project_service
from services.session_cache_service import retrieve_session, store_session

logger = structlog.get_logger(__name__)


LOCAL_ID_PREFIX = "local-"


@dataclass
class UploadResult:
    """One ingested file."""
    project_id: str
    file_name: str
    persisted: bool
    normalization: NormalizationResult

    def to_response(self) -> UploadResponse:
        return UploadResponse(
            project_id=self.project_id,
            file_name=self.file_name,
            persisted=self.persisted,
            layout=self.normalization.layout,
            row_count=len(self.normalization.records),
            source_fields=self.normalization.source_fields,
            records=self.normalization.records,
            field_descriptions=self.normalization.field_descriptions
        )


def local_project_id() -> str:
    return f"{LOCAL_ID_PREFIX}{int(time.time() * 1000)}"


class UploadService:
    """Ingest uploaded files into mapping sessions."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        project_service_factory: Callable[[], ProjectService] = get_project_service
    ):
        self.settings = settings or get_settings()
        self.project_service_factory = project_service_factory

    def ingest(
        self,
        file_bytes: bytes,
        filename: str,
        content_type: Optional[str] = None
    ) -> UploadResult:
        """
        Read, normalize and store one upload.

        Args:
            file_bytes: Raw file content
            filename: Original file name
            content_type: Declared MIME type

        Returns:
            UploadResult (persisted=False when kept in memory only)

        Raises:
            FileTooLargeError, UnsupportedFileTypeError, FileParseError: Unreadable upload
            NoSourceFieldsError: Nothing usable after normalization
        """
        rows = read_rows(
            file_bytes,
            filename,
            content_type=content_type,
            max_bytes=self.settings.max_upload_bytes
        )
        normalization = normalize_rows(rows)

        if not normalization.has_fields:
            logger.warning("upload_has_no_fields", filename=filename, rows=len(rows))
            raise NoSourceFieldsError(filename=filename, row_count=len(rows))

        project_id, persisted = self._persist(filename, len(file_bytes), normalization)

        result = UploadResult(
            project_id=project_id,
            file_name=filename,
            persisted=persisted,
            normalization=normalization
        )
        store_session(project_id, result, ttl_minutes=self.settings.session_ttl_minutes)

        logger.info(
            "upload_ingested",
            project_id=project_id,
            filename=filename,
            layout=normalization.layout.value,
            records=len(normalization.records),
            fields=len(normalization.source_fields),
            persisted=persisted
        )
        return result

    def get_session(self, project_id: str) -> Optional[UploadResult]:
        return retrieve_session(project_id)

    def _persist(
        self,
        filename: str,
        file_size: int,
        normalization: NormalizationResult
    ) -> tuple[str, bool]:
        """Save project and records; (local id, False) on any storage failure."""
        project_id: Optional[str] = None
        try:
            service = self.project_service_factory()
            project = service.create_project(ProjectCreate(
                name=filename,
                file_name=filename,
                file_size=file_size,
                total_rows=len(normalization.records)
            ))
            project_id = project.id
            service.save_records(project_id, normalization.records)
            service.update_status(project_id, ProjectStatus.COMPLETED)
            return project_id, True

        except (ConfigDatabaseError, AppError) as e:
            logger.warning(
                "upload_persist_failed",
                filename=filename,
                project_id=project_id,
                error=str(e),
                error_type=type(e).__name__
            )
            if project_id is not None:
                self._mark_failed(project_id)
            return local_project_id(), False

    def _mark_failed(self, project_id: str) -> None:
        try:
            self.project_service_factory().update_status(project_id, ProjectStatus.ERROR)
        except (ConfigDatabaseError, AppError) as e:
            logger.warning("project_status_error_not_saved", project_id=project_id, error=str(e))


def get_upload_service() -> UploadService:
    """Create UploadService from current settings."""
    return UploadService()
