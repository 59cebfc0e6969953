# app/reporting/dao.py
"""Data access for custom property definitions consumed by the field registry."""

from typing import List
from sqlalchemy.orm import Session

from app.core.base_dao import BaseDAO
from app.reporting.models import CustomPropertyDefinition


class CustomPropertyDefinitionDAO(BaseDAO[CustomPropertyDefinition]):
    """Read-only DAO for tenant custom property definitions."""

    def __init__(self, db: Session):
        super().__init__(CustomPropertyDefinition, db)

    def get_active_for_entity(self, organization_id: str, entity_kind: str) -> List[CustomPropertyDefinition]:
        """Active definitions for one organization and entity kind, in display order."""
        stmt = (
            self.scoped_select(organization_id, entity_type=entity_kind)
            .where(CustomPropertyDefinition.is_active.is_(True))
            .order_by(
                CustomPropertyDefinition.group_name,
                CustomPropertyDefinition.display_order,
                CustomPropertyDefinition.key,
            )
        )
        result = self.db.execute(stmt)
        return list(result.scalars().all())
