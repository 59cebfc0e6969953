# app/reporting/models.py - Tenant-defined custom property definitions

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, JSON, Index
from datetime import datetime
from app.core.database import Base


class CustomPropertyDefinition(Base):
    """Per-organization custom field definition for an entity kind.

    Values live in the owning entity's ``custom_fields`` JSON column under ``key``.
    """

    __tablename__ = "custom_property_definitions"
    __table_args__ = (
        Index("ix_custom_property_org_entity", "organization_id", "entity_type"),
    )

    id = Column(String(36), primary_key=True)
    organization_id = Column(String(36), nullable=False)
    entity_type = Column(String(20), nullable=False)  # 'CASE', 'INVESTIGATION', 'PERSON', 'RIU'
    name = Column(String(255), nullable=False)
    key = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    data_type = Column(String(20), nullable=False)  # TEXT, NUMBER, DATE, SELECT, ...
    options = Column(JSON, nullable=True)
    display_order = Column(Integer, nullable=False, default=0)
    group_name = Column(String(100), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)
