# app/core/base_dao.py
"""Generic read-only base DAO for tenant-scoped tables."""

from typing import Generic, TypeVar, Type
from sqlalchemy.orm import Session
from sqlalchemy import Select, select, and_
from abc import ABC
from app.core.database import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseDAO(Generic[ModelType], ABC):
    """Generic DAO whose reads are always restricted to one organization."""

    def __init__(self, model: Type[ModelType], db: Session):
        self.model = model
        self.db = db

    def _filter_conditions(self, filters: dict) -> list:
        conditions = []
        for key, value in filters.items():
            if hasattr(self.model, key) and value is not None:
                conditions.append(getattr(self.model, key) == value)
        return conditions

    def scoped_select(self, organization_id: str, **filters) -> Select:
        """``SELECT`` of the model limited to ``organization_id`` plus equality filters."""
        conditions = [self.model.organization_id == organization_id]
        conditions.extend(self._filter_conditions(filters))
        return select(self.model).where(and_(*conditions))

