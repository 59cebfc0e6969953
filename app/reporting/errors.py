# app/reporting/errors.py
"""Error taxonomy for the report query engine."""

from typing import Any, Dict, Optional


class ReportEngineError(Exception):
    """Base class for all report engine errors."""

    error_type = "report_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.error_type, "message": self.message}


class ValidationError(ReportEngineError):
    """The report query is invalid. Raised before any storage access.

    ``field`` names the offending field id (or spec attribute) so a report
    designer can highlight exactly what to fix.
    """

    error_type = "validation_error"

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        super().__init__(message)
        self.field = field
        self.value = value

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        if self.field is not None:
            payload["field"] = self.field
        return payload


class UnknownEntityTypeError(ValidationError):
    """Entity type is not one of the reportable entity types."""

    def __init__(self, entity_type: str):
        super().__init__(f"Unknown entity type: {entity_type}", field="entityType", value=entity_type)
        self.entity_type = entity_type


class UnknownFieldError(ValidationError):
    """Field id does not resolve for this entity type and organization.

    Raised identically whether the field never existed or belongs to
    another organization.
    """

    def __init__(self, entity_type: str, field_id: str):
        super().__init__(f"Unknown field '{field_id}' for entity type '{entity_type}'", field=field_id)
        self.entity_type = entity_type
        self.field_id = field_id


class AuthorizationError(ReportEngineError):
    """No authenticated organization is available for the request."""

    error_type = "authorization_error"


class ExecutionError(ReportEngineError):
    """The underlying storage failed (timeout, connection loss, ...). Not retried."""

    error_type = "execution_error"

    def __init__(self, message: str, entity_type: Optional[str] = None):
        super().__init__(message)
        self.entity_type = entity_type
