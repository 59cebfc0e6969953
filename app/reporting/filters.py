# app/reporting/filters.py
"""Filter validation and type coercion.

Filters are a list of items combined with AND. Each item is either a single
condition or an ``anyOf`` group whose conditions are combined with OR, so the
resulting predicate is always a shallow AND-of-ORs tree.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Tuple, Union

from app.reporting.errors import ValidationError
from app.reporting.field_catalog import FieldDescriptor
from app.reporting.schemas import Capability, DataType, FilterCondition, FilterGroup, FilterOperator

RANGE_OPERATORS = (
    FilterOperator.GT,
    FilterOperator.GTE,
    FilterOperator.LT,
    FilterOperator.LTE,
    FilterOperator.BETWEEN,
)
LIST_OPERATORS = (FilterOperator.IN, FilterOperator.NOT_IN)
NULL_OPERATORS = (FilterOperator.IS_NULL, FilterOperator.IS_NOT_NULL)


@dataclass(frozen=True)
class Comparison:
    """A validated condition with its value already coerced to the field type.

    ``value`` is a scalar, a tuple for ``in``/``notIn``, a ``(low, high)``
    pair for ``between`` and ``None`` for the null checks.
    """

    field: FieldDescriptor
    operator: FilterOperator
    value: Any = None


@dataclass(frozen=True)
class AnyOf:
    conditions: Tuple[Comparison, ...]


@dataclass(frozen=True)
class AllOf:
    items: Tuple[Union[Comparison, AnyOf], ...] = ()

    def __bool__(self) -> bool:
        return bool(self.items)

    def comparisons(self) -> List[Comparison]:
        """Every comparison in the tree, depth first."""
        result: List[Comparison] = []
        for item in self.items:
            if isinstance(item, AnyOf):
                result.extend(item.conditions)
            else:
                result.append(item)
        return result


Predicate = AllOf


def is_date_only(value: Any) -> bool:
    return isinstance(value, date) and not isinstance(value, datetime)


def _as_datetime(value: Union[date, datetime]) -> datetime:
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    return datetime.combine(value, time.min)


class FilterEvaluator:
    """Validates filter items against resolved fields and builds the predicate tree."""

    def evaluate(self, items: Iterable[Union[FilterCondition, FilterGroup]], fields: Dict[str, FieldDescriptor]) -> AllOf:
        """Build the predicate for ``items``.

        ``fields`` maps every referenced field id to its resolved descriptor;
        resolution itself is the registry's job.
        """
        built: List[Union[Comparison, AnyOf]] = []
        for item in items:
            if isinstance(item, FilterGroup):
                built.append(AnyOf(tuple(self.evaluate_condition(c, fields[c.field_id]) for c in item.any_of)))
            else:
                built.append(self.evaluate_condition(item, fields[item.field_id]))
        return AllOf(tuple(built))

    def evaluate_condition(self, condition: FilterCondition, field: FieldDescriptor) -> Comparison:
        operator = self._parse_operator(condition.operator, field)

        if field.computed:
            raise ValidationError(
                f"Field '{field.field_id}' is computed after fetch and cannot be filtered",
                field=field.field_id,
            )
        if not field.has(Capability.FILTERABLE):
            raise ValidationError(f"Field '{field.field_id}' is not filterable", field=field.field_id)

        self._check_operator_type(operator, field)

        if operator in NULL_OPERATORS:
            if condition.value is not None or condition.value_to is not None:
                raise ValidationError(
                    f"Operator '{operator.value}' does not take a value for field '{field.field_id}'",
                    field=field.field_id,
                    value=condition.value,
                )
            return Comparison(field, operator)

        if operator in LIST_OPERATORS:
            values = condition.value
            if not isinstance(values, (list, tuple)) or not values:
                raise ValidationError(
                    f"Operator '{operator.value}' requires a non-empty list of values for field '{field.field_id}'",
                    field=field.field_id,
                    value=values,
                )
            coerced = tuple(self.coerce(field, v) for v in values)
            return Comparison(field, operator, tuple(dict.fromkeys(coerced)))

        if operator == FilterOperator.BETWEEN:
            return Comparison(field, operator, self._coerce_range(condition, field))

        if condition.value_to is not None:
            raise ValidationError(
                f"Operator '{operator.value}' does not take a second value for field '{field.field_id}'",
                field=field.field_id,
                value=condition.value_to,
            )
        if condition.value is None:
            raise ValidationError(
                f"Operator '{operator.value}' requires a value for field '{field.field_id}'",
                field=field.field_id,
            )
        if isinstance(condition.value, (list, tuple, dict)):
            raise ValidationError(
                f"Operator '{operator.value}' requires a single value for field '{field.field_id}'",
                field=field.field_id,
                value=condition.value,
            )

        if operator == FilterOperator.CONTAINS:
            value = self.coerce(field, condition.value)
            if value == "":
                raise ValidationError(
                    f"Operator 'contains' requires a non-empty value for field '{field.field_id}'",
                    field=field.field_id,
                    value=condition.value,
                )
            return Comparison(field, operator, value)

        return Comparison(field, operator, self.coerce(field, condition.value))

    # ===== OPERATORS =====

    def _parse_operator(self, operator: Any, field: FieldDescriptor) -> FilterOperator:
        if isinstance(operator, FilterOperator):
            return operator
        try:
            return FilterOperator(operator)
        except ValueError:
            raise ValidationError(
                f"Unsupported operator '{operator}' for field '{field.field_id}'",
                field=field.field_id,
                value=operator,
            )

    def _check_operator_type(self, operator: FilterOperator, field: FieldDescriptor) -> None:
        if operator in RANGE_OPERATORS and not field.is_ordered:
            raise ValidationError(
                f"Operator '{operator.value}' is not supported for {field.data_type.value} field '{field.field_id}'",
                field=field.field_id,
                value=operator.value,
            )
        if operator == FilterOperator.CONTAINS and field.data_type != DataType.STRING:
            raise ValidationError(
                f"Operator 'contains' is not supported for {field.data_type.value} field '{field.field_id}'",
                field=field.field_id,
                value=operator.value,
            )

    def _coerce_range(self, condition: FilterCondition, field: FieldDescriptor) -> Tuple[Any, Any]:
        if condition.value_to is not None:
            bounds = [condition.value, condition.value_to]
        else:
            bounds = condition.value
        if not isinstance(bounds, (list, tuple)) or len(bounds) != 2 or any(b is None for b in bounds):
            raise ValidationError(
                f"Operator 'between' requires exactly two values for field '{field.field_id}'",
                field=field.field_id,
                value=condition.value,
            )

        low, high = (self.coerce(field, bound) for bound in bounds)
        if field.data_type == DataType.DATE:
            out_of_order = _as_datetime(low) > _as_datetime(high)
        else:
            out_of_order = low > high
        if out_of_order:
            raise ValidationError(
                f"Range start {bounds[0]!r} is after range end {bounds[1]!r} for field '{field.field_id}'",
                field=field.field_id,
                value=list(bounds),
            )
        return low, high

    # ===== COERCION =====

    def coerce(self, field: FieldDescriptor, value: Any) -> Any:
        """Coerce one scalar to the field's data type or raise naming field and value."""
        coercer = {
            DataType.STRING: self._coerce_string,
            DataType.NUMBER: self._coerce_number,
            DataType.CURRENCY: self._coerce_number,
            DataType.DATE: self._coerce_date,
            DataType.BOOLEAN: self._coerce_boolean,
            DataType.ENUM: self._coerce_enum,
        }[field.data_type]
        try:
            return coercer(field, value)
        except (TypeError, ValueError, InvalidOperation):
            raise ValidationError(
                f"Invalid value {value!r} for {field.data_type.value} field '{field.field_id}'",
                field=field.field_id,
                value=value,
            )

    def _coerce_string(self, field: FieldDescriptor, value: Any) -> str:
        if isinstance(value, bool) or not isinstance(value, (str, int, float, Decimal)):
            raise TypeError(value)
        return str(value)

    def _coerce_number(self, field: FieldDescriptor, value: Any) -> Union[int, float, Decimal]:
        if isinstance(value, bool):
            raise TypeError(value)
        if isinstance(value, str):
            text = value.strip()
            try:
                value = int(text)
            except ValueError:
                value = float(text)
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            if not math.isfinite(value):
                raise ValueError(value)
            return value
        if isinstance(value, Decimal):
            if not value.is_finite():
                raise ValueError(value)
            return value
        raise TypeError(value)

    def _coerce_date(self, field: FieldDescriptor, value: Any) -> Union[date, datetime]:
        if isinstance(value, datetime):
            parsed = value.replace(tzinfo=None)
        elif isinstance(value, date):
            parsed = value
        elif isinstance(value, str):
            text = value.strip()
            if len(text) == 10:
                parsed = date.fromisoformat(text)
            else:
                if text.endswith("Z"):
                    text = text[:-1] + "+00:00"
                parsed = datetime.fromisoformat(text).replace(tzinfo=None)
        else:
            raise TypeError(value)

        # Calendar-date columns compare against calendar dates only.
        if not field.temporal and isinstance(parsed, datetime):
            return parsed.date()
        return parsed

    def _coerce_boolean(self, field: FieldDescriptor, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in ("true", "false"):
            return value.strip().lower() == "true"
        raise ValueError(value)

    def _coerce_enum(self, field: FieldDescriptor, value: Any) -> str:
        if not isinstance(value, str):
            raise TypeError(value)
        if not field.enum_values:
            return value
        for allowed in field.enum_values:
            if allowed.lower() == value.strip().lower():
                return allowed
        raise ValidationError(
            f"Invalid value {value!r} for enum field '{field.field_id}'. Allowed: {', '.join(field.enum_values)}",
            field=field.field_id,
            value=value,
        )
