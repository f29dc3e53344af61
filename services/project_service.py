"""
Project service: uploads, their records and accepted mappings in Supabase.

Tables:
    projects        one row per uploaded file
    product_data    one row per normalized source record
    field_mappings  accepted required mappings
    optional_fields accepted optional mappings
"""

from typing import Any, Mapping, Optional, Sequence
import structlog

from config import get_supabase_client
from exceptions import DatabaseError, ProjectNotFoundError
from models.mapping import MappingResult, SaveMappingsResult
from models.project import (
    ProductDataResponse,
    ProjectCreate,
    ProjectResponse,
    ProjectStatus,
)
from utils.text_utils import is_blank

logger = structlog.get_logger(__name__)


DEFAULT_OPTIONAL_REASON = "AI classified as optional field"

# Supabase rejects very large single inserts
INSERT_BATCH_SIZE = 500


class ProjectService:
    """
    Project persistence.

    Raises config.ConnectionError on construction when Supabase is not
    configured; upload orchestration treats that as "keep in memory".
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.projects_table = "projects"
        self.records_table = "product_data"
        self.required_table = "field_mappings"
        self.optional_table = "optional_fields"

    # ===================
    # PROJECTS
    # ===================

    def create_project(self, data: ProjectCreate) -> ProjectResponse:
        """
        Create a project row.

        Args:
            data: Project metadata

        Returns:
            Created project
        """
        logger.info("creating_project", name=data.name, file_name=data.file_name, total_rows=data.total_rows)

        try:
            result = (
                self.db.table(self.projects_table)
                .insert(data.model_dump(mode="json", exclude_none=True))
                .execute()
            )
        except Exception as e:
            logger.error("create_project_failed", name=data.name, error=str(e))
            raise DatabaseError("insert", str(e))

        if not result.data:
            raise DatabaseError("insert", "No project row returned")

        project = ProjectResponse(**result.data[0])
        logger.info("project_created", project_id=project.id)
        return project

    def update_status(self, project_id: str, status: ProjectStatus) -> ProjectResponse:
        """
        Set the project status.

        Raises:
            ProjectNotFoundError: Unknown project
        """
        try:
            result = (
                self.db.table(self.projects_table)
                .update({"status": status.value})
                .eq("id", project_id)
                .execute()
            )
        except Exception as e:
            logger.error("update_project_status_failed", project_id=project_id, error=str(e))
            raise DatabaseError("update", str(e))

        if not result.data:
            raise ProjectNotFoundError(project_id)

        logger.info("project_status_updated", project_id=project_id, status=status.value)
        return ProjectResponse(**result.data[0])

    def get_project(self, project_id: str) -> ProjectResponse:
        """
        Get one project.

        Raises:
            ProjectNotFoundError: Unknown project
        """
        try:
            result = (
                self.db.table(self.projects_table)
                .select("*")
                .eq("id", project_id)
                .execute()
            )
        except Exception as e:
            logger.error("get_project_failed", project_id=project_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            raise ProjectNotFoundError(project_id)

        return ProjectResponse(**result.data[0])

    def list_projects(self, limit: int = 50) -> list[ProjectResponse]:
        """Newest projects first."""
        try:
            result = (
                self.db.table(self.projects_table)
                .select("*")
                .order("created_at", desc=True)
                .limit(limit)
                .execute()
            )
        except Exception as e:
            logger.error("list_projects_failed", error=str(e))
            raise DatabaseError("select", str(e))

        return [ProjectResponse(**row) for row in result.data]

    # ===================
    # RECORDS
    # ===================

    def save_records(self, project_id: str, records: Sequence[Mapping[str, Any]]) -> int:
        """
        Store normalized source records (row_number starts at 1).

        Returns:
            Number of rows inserted
        """
        rows = [
            {
                "project_id": project_id,
                "row_number": index,
                "source_data": dict(record),
                "mapped_data": None,
                "validation_status": "pending",
                "quality_score": 0,
            }
            for index, record in enumerate(records, start=1)
        ]

        inserted = 0
        try:
            for start in range(0, len(rows), INSERT_BATCH_SIZE):
                batch = rows[start:start + INSERT_BATCH_SIZE]
                self.db.table(self.records_table).insert(batch).execute()
                inserted += len(batch)
        except Exception as e:
            logger.error("save_records_failed", project_id=project_id, inserted=inserted, error=str(e))
            raise DatabaseError("insert", str(e))

        logger.info("records_saved", project_id=project_id, count=inserted)
        return inserted

    def get_records(self, project_id: str) -> list[ProductDataResponse]:
        """Records of a project in row order."""
        try:
            result = (
                self.db.table(self.records_table)
                .select("*")
                .eq("project_id", project_id)
                .order("row_number")
                .execute()
            )
        except Exception as e:
            logger.error("get_records_failed", project_id=project_id, error=str(e))
            raise DatabaseError("select", str(e))

        return [ProductDataResponse(**row) for row in result.data]

    # ===================
    # MAPPINGS
    # ===================

    def save_mappings(
        self,
        project_id: str,
        results: Sequence[MappingResult],
        record: Optional[Mapping[str, Any]] = None
    ) -> SaveMappingsResult:
        """
        Store accepted mappings, split by classification.

        Replaces previously saved mappings of the project. Synthetic
        "(Missing) ..." entries have no source field and are skipped.

        Args:
            project_id: Project UUID
            results: Accepted mapping results
            record: Source record used to fill optional source values

        Returns:
            Counts of saved and skipped entries
        """
        record = record or {}
        saved = [r for r in results if not r.is_missing_placeholder]
        skipped = len(results) - len(saved)

        required_rows = [
            {
                "project_id": project_id,
                "source_field": r.source_field,
                "target_field": r.target_field,
                "confidence_score": r.confidence,
                "is_manual": r.is_manual,
            }
            for r in saved if r.is_required
        ]

        optional_rows = []
        for r in saved:
            if not r.is_optional:
                continue
            renamed = r.target_field != r.source_field
            value = record.get(r.source_field)
            optional_rows.append({
                "project_id": project_id,
                "source_field": r.source_field,
                "source_value": "" if is_blank(value) else str(value),
                "target_field": r.target_field if renamed else None,
                "field_type": "text",
                "confidence_score": r.confidence,
                "is_mapped": renamed,
                "is_suggested": True,
                "suggested_target": r.target_field if renamed else None,
                "reason": r.reason or DEFAULT_OPTIONAL_REASON,
            })

        logger.info(
            "saving_mappings",
            project_id=project_id,
            required=len(required_rows),
            optional=len(optional_rows),
            skipped=skipped
        )

        try:
            self.db.table(self.required_table).delete().eq("project_id", project_id).execute()
            self.db.table(self.optional_table).delete().eq("project_id", project_id).execute()

            if required_rows:
                self.db.table(self.required_table).insert(required_rows).execute()
            if optional_rows:
                self.db.table(self.optional_table).insert(optional_rows).execute()
        except Exception as e:
            logger.error("save_mappings_failed", project_id=project_id, error=str(e))
            raise DatabaseError("insert", str(e))

        return SaveMappingsResult(
            project_id=project_id,
            required_saved=len(required_rows),
            optional_saved=len(optional_rows),
            skipped=skipped
        )


# Singleton instance
_service: Optional[ProjectService] = None


def get_project_service() -> ProjectService:
    """Get or create ProjectService instance."""
    global _service
    if _service is None:
        _service = ProjectService()
    return _service
