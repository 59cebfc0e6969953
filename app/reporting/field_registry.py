# app/reporting/field_registry.py
"""Field registry: the whitelist of reportable fields per (entity type, organization).

Nothing downstream of the registry may reference a column or relation that
is not part of a catalog returned here.
"""

import logging
import threading
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import event

from app.core.config import REPORT_FIELD_CACHE_ENABLED
from app.reporting.dao import CustomPropertyDefinitionDAO
from app.reporting.errors import UnknownEntityTypeError, UnknownFieldError, ValidationError
from app.reporting.field_catalog import (
    CATALOG_GROUP_ORDER,
    CUSTOM_PROPERTIES_GROUP,
    CUSTOM_PROPERTY_ENTITY_KINDS,
    FieldDescriptor,
    get_static_fields,
    parse_capabilities,
)
from app.reporting.models import CustomPropertyDefinition
from app.reporting.schemas import DataType, EntityType, SourceKind

logger = logging.getLogger(__name__)

CUSTOM_FIELD_PREFIX = "custom_"

# Custom property data types -> engine data types. Anything unlisted is a string.
PROPERTY_TYPE_MAP: Dict[str, DataType] = {
    "TEXT": DataType.STRING,
    "URL": DataType.STRING,
    "EMAIL": DataType.STRING,
    "PHONE": DataType.STRING,
    "NUMBER": DataType.NUMBER,
    "CURRENCY": DataType.CURRENCY,
    "DATE": DataType.DATE,
    "DATETIME": DataType.DATE,
    "SELECT": DataType.ENUM,
    "MULTI_SELECT": DataType.ENUM,
    "BOOLEAN": DataType.BOOLEAN,
}

_KIND_TO_ENTITY: Dict[str, EntityType] = {kind: entity for entity, kind in CUSTOM_PROPERTY_ENTITY_KINDS.items()}


def resolve_entity_type(entity_type: Any) -> EntityType:
    """Parse an entity type name, raising a validation error naming it when unknown."""
    if isinstance(entity_type, EntityType):
        return entity_type
    try:
        return EntityType(entity_type)
    except ValueError:
        raise UnknownEntityTypeError(str(entity_type))


def _custom_capabilities(property_type: str) -> str:
    caps = "F"
    if property_type != "MULTI_SELECT":
        caps += "S"
    if property_type in ("SELECT", "BOOLEAN"):
        caps += "G"
    if property_type in ("NUMBER", "CURRENCY"):
        caps += "A"
    return caps


def _custom_enum_values(options: Any) -> Optional[Tuple[str, ...]]:
    """Extract option values from ``{"options": [...]}`` or a bare list."""
    if not options:
        return None
    if isinstance(options, dict):
        options = options.get("options") or []
    values = []
    for option in options:
        if isinstance(option, dict):
            value = option.get("value")
        else:
            value = option
        if value is not None:
            values.append(str(value))
    return tuple(values) or None


def custom_property_to_descriptor(definition: CustomPropertyDefinition) -> FieldDescriptor:
    """Map one custom property definition onto a field descriptor."""
    property_type = (definition.data_type or "").upper()
    data_type = PROPERTY_TYPE_MAP.get(property_type, DataType.STRING)
    return FieldDescriptor(
        field_id=f"{CUSTOM_FIELD_PREFIX}{definition.key}",
        label=definition.name,
        data_type=data_type,
        group=definition.group_name or CUSTOM_PROPERTIES_GROUP,
        capabilities=parse_capabilities(_custom_capabilities(property_type)),
        source_kind=SourceKind.CUSTOM,
        enum_values=_custom_enum_values(definition.options) if data_type == DataType.ENUM else None,
        temporal=property_type == "DATETIME",
        custom_key=definition.key,
    )


class FieldCatalogCache:
    """Resolved catalogs keyed by ``(organization_id, entity_type)``.

    Entries are immutable tuples. Invalidation is explicit and happens
    synchronously whenever a custom property definition is written.
    """

    def __init__(self, enabled: bool = False):
        self.enabled = enabled
        self._lock = threading.Lock()
        self._entries: Dict[Tuple[str, EntityType], Tuple[FieldDescriptor, ...]] = {}

    def get(self, organization_id: str, entity_type: EntityType) -> Optional[Tuple[FieldDescriptor, ...]]:
        if not self.enabled:
            return None
        with self._lock:
            return self._entries.get((organization_id, entity_type))

    def put(self, organization_id: str, entity_type: EntityType, fields: Tuple[FieldDescriptor, ...]) -> None:
        if not self.enabled:
            return
        with self._lock:
            self._entries[(organization_id, entity_type)] = fields

    def invalidate(self, organization_id: str, entity_type: Optional[EntityType] = None) -> None:
        with self._lock:
            if entity_type is None:
                for key in [key for key in self._entries if key[0] == organization_id]:
                    del self._entries[key]
            else:
                self._entries.pop((organization_id, entity_type), None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


field_catalog_cache = FieldCatalogCache(enabled=REPORT_FIELD_CACHE_ENABLED)


def _invalidate_for_definition(mapper, connection, target: CustomPropertyDefinition) -> None:
    entity_type = _KIND_TO_ENTITY.get((target.entity_type or "").upper())
    if target.organization_id is None:
        return
    field_catalog_cache.invalidate(target.organization_id, entity_type)
    logger.debug(
        "Invalidated field catalog cache for organization %s (%s)",
        target.organization_id,
        entity_type.value if entity_type else "all entity types",
    )


for _event_name in ("after_insert", "after_update", "after_delete"):
    event.listen(CustomPropertyDefinition, _event_name, _invalidate_for_definition)


class FieldRegistry:
    """Merges the static field catalog with an organization's custom properties."""

    def __init__(self, dao: CustomPropertyDefinitionDAO, cache: Optional[FieldCatalogCache] = None):
        self.dao = dao
        self.cache = cache if cache is not None else field_catalog_cache

    def get_supported_entity_types(self) -> List[EntityType]:
        return list(EntityType)

    def get_catalog(self, entity_type: Any, organization_id: str) -> List[FieldDescriptor]:
        """Static fields followed by the organization's active custom fields."""
        return list(self._resolve_catalog(resolve_entity_type(entity_type), organization_id))

    def resolve_field(self, entity_type: Any, organization_id: str, field_id: str) -> FieldDescriptor:
        """Resolve a single field id, or raise ``UnknownFieldError`` naming it."""
        entity = resolve_entity_type(entity_type)
        return self.resolve_fields(entity, organization_id, [field_id])[field_id]

    def resolve_fields(
        self, entity_type: Any, organization_id: str, field_ids: Iterable[str]
    ) -> Dict[str, FieldDescriptor]:
        """Resolve many field ids against one catalog lookup.

        The first id that does not resolve raises; another organization's
        custom field is indistinguishable from one that never existed.
        """
        entity = resolve_entity_type(entity_type)
        by_id = {field.field_id: field for field in self._resolve_catalog(entity, organization_id)}
        resolved: Dict[str, FieldDescriptor] = {}
        for field_id in field_ids:
            if not isinstance(field_id, str) or not field_id:
                raise ValidationError("Field id must be a non-empty string", field=str(field_id), value=field_id)
            descriptor = by_id.get(field_id)
            if descriptor is None:
                raise UnknownFieldError(entity.value, field_id)
            resolved[field_id] = descriptor
        return resolved

    def validate_fields(self, entity_type: Any, organization_id: str, field_ids: Iterable[str]) -> List[str]:
        """Return the ids that do not resolve for this entity type and organization."""
        entity = resolve_entity_type(entity_type)
        known = {field.field_id for field in self._resolve_catalog(entity, organization_id)}
        return [field_id for field_id in field_ids if field_id not in known]

    def get_field_groups(self, entity_type: Any, organization_id: str) -> Dict[str, List[FieldDescriptor]]:
        """Catalog grouped for the field picker, groups in display order.

        Groups missing from ``CATALOG_GROUP_ORDER`` (e.g. custom group names)
        follow the known groups alphabetically.
        """
        grouped: Dict[str, List[FieldDescriptor]] = {}
        for field in self.get_catalog(entity_type, organization_id):
            grouped.setdefault(field.group, []).append(field)

        order = {name: index for index, name in enumerate(CATALOG_GROUP_ORDER)}
        sorted_names = sorted(grouped, key=lambda name: (order.get(name, len(order)), name))
        return {name: grouped[name] for name in sorted_names}

    def invalidate(self, organization_id: str, entity_type: Optional[EntityType] = None) -> None:
        self.cache.invalidate(organization_id, entity_type)

    def _resolve_catalog(self, entity_type: EntityType, organization_id: str) -> Tuple[FieldDescriptor, ...]:
        cached = self.cache.get(organization_id, entity_type)
        if cached is not None:
            return cached

        static_fields = get_static_fields(entity_type)
        custom_fields = self._get_custom_fields(entity_type, organization_id, {f.field_id for f in static_fields})
        catalog = tuple(static_fields) + tuple(custom_fields)
        self.cache.put(organization_id, entity_type, catalog)
        return catalog

    def _get_custom_fields(
        self, entity_type: EntityType, organization_id: str, taken_ids: set
    ) -> List[FieldDescriptor]:
        entity_kind = CUSTOM_PROPERTY_ENTITY_KINDS.get(entity_type)
        if entity_kind is None:
            return []

        fields = []
        for definition in self.dao.get_active_for_entity(organization_id, entity_kind):
            descriptor = custom_property_to_descriptor(definition)
            if descriptor.field_id in taken_ids:
                logger.warning(
                    "Skipping duplicate custom property '%s' for %s in organization %s",
                    definition.key,
                    entity_type.value,
                    organization_id,
                )
                continue
            taken_ids.add(descriptor.field_id)
            fields.append(descriptor)
        return fields
