"""
Target field catalog stored in the target_fields table.
"""

from typing import Optional
import structlog

from config import get_supabase_client
from exceptions import DatabaseError, TargetFieldExistsError
from models.mapping import TargetField

logger = structlog.get_logger(__name__)


class TargetFieldService:
    """Read and extend the target schema catalog."""

    def __init__(self):
        self.db = get_supabase_client()
        self.table = "target_fields"

    def get_target_fields(self) -> list[TargetField]:
        """
        Get the catalog ordered by name.

        Returns:
            List of TargetField
        """
        try:
            result = (
                self.db.table(self.table)
                .select("id, field_name")
                .order("field_name")
                .execute()
            )
        except Exception as e:
            logger.error("get_target_fields_failed", error=str(e))
            raise DatabaseError("select", str(e))

        fields = [TargetField(**row) for row in result.data if row.get("field_name")]
        logger.info("target_fields_retrieved", count=len(fields))
        return fields

    def create_target_field(self, field_name: str) -> TargetField:
        """
        Add a field to the catalog.

        Raises:
            TargetFieldExistsError: Name already in the catalog
        """
        name = field_name.strip()

        try:
            existing = (
                self.db.table(self.table)
                .select("id")
                .eq("field_name", name)
                .execute()
            )
        except Exception as e:
            logger.error("check_target_field_failed", field_name=name, error=str(e))
            raise DatabaseError("select", str(e))

        if existing.data:
            raise TargetFieldExistsError(name)

        try:
            result = self.db.table(self.table).insert({"field_name": name}).execute()
        except Exception as e:
            logger.error("create_target_field_failed", field_name=name, error=str(e))
            raise DatabaseError("insert", str(e))

        if not result.data:
            raise DatabaseError("insert", "No target field row returned")

        logger.info("target_field_created", field_name=name)
        return TargetField(**result.data[0])


# Singleton instance
_service: Optional[TargetFieldService] = None


def get_target_field_service() -> TargetFieldService:
    """Get or create TargetFieldService instance."""
    global _service
    if _service is None:
        _service = TargetFieldService()
    return _service
