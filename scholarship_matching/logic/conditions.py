"""
Condition Evaluator

Three closed condition kinds (range, boolean, list), each a Pydantic model tagged
by `kind` with its own operator enum. Evaluation is pure: one condition against
one applicant value.

Every evaluator returns:
    True / False  - the condition holds / does not hold
    None          - the applicant value is missing, so the condition cannot be
                    evaluated; the caller decides based on importance tier
"""

import math
from enum import Enum
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError, model_validator

from .contracts import CustomCondition
from .exceptions import MalformedConditionError
from .normalizers import has_value, normalize_string, fuzzy_contains, to_number, format_list


# =============================================================================
# OPERATORS
# =============================================================================

class RangeOperator(str, Enum):
    LT = "lt"
    LTE = "lte"
    GT = "gt"
    GTE = "gte"
    EQ = "eq"
    NEQ = "neq"
    BETWEEN = "between"
    BETWEEN_EXCLUSIVE = "betweenExclusive"
    OUTSIDE = "outside"


class BooleanOperator(str, Enum):
    IS = "is"
    IS_NOT = "isNot"
    IS_TRUE = "isTrue"
    IS_FALSE = "isFalse"
    IS_TRUTHY = "isTruthy"
    IS_FALSY = "isFalsy"


class ListOperator(str, Enum):
    IN = "in"
    NOT_IN = "notIn"
    INCLUDES = "includes"
    INCLUDES_ANY = "includesAny"
    INCLUDES_ALL = "includesAll"
    EXCLUDES = "excludes"
    EXCLUDES_ALL = "excludesAll"
    MATCHES_ANY = "matchesAny"
    MATCHES_ALL = "matchesAll"


SINGLE_THRESHOLD_OPERATORS = (
    RangeOperator.LT,
    RangeOperator.LTE,
    RangeOperator.GT,
    RangeOperator.GTE,
    RangeOperator.EQ,
    RangeOperator.NEQ,
)

# A missing applicant value satisfies these list operators
ABSENCE_PASSES = (ListOperator.NOT_IN, ListOperator.EXCLUDES, ListOperator.EXCLUDES_ALL)

FUZZY_OPERATORS = (ListOperator.MATCHES_ANY, ListOperator.MATCHES_ALL)


# =============================================================================
# CONDITION VARIANTS
# =============================================================================

class RangeCondition(BaseModel):
    kind: Literal["range"] = "range"
    operator: RangeOperator
    value: Optional[float] = None
    min_value: Optional[float] = None
    max_value: Optional[float] = None

    @model_validator(mode="after")
    def _check_threshold(self):
        if self.operator in SINGLE_THRESHOLD_OPERATORS and self.value is None:
            raise ValueError(f"operator '{self.operator.value}' needs a threshold value")
        return self


class BooleanCondition(BaseModel):
    kind: Literal["boolean"] = "boolean"
    operator: BooleanOperator
    value: Optional[bool] = None

    @model_validator(mode="after")
    def _check_expected(self):
        if self.operator in (BooleanOperator.IS, BooleanOperator.IS_NOT) and self.value is None:
            raise ValueError(f"operator '{self.operator.value}' needs an expected value")
        return self


class ListCondition(BaseModel):
    kind: Literal["list"] = "list"
    operator: ListOperator
    values: List[Any] = Field(default_factory=list)
    fuzzy: bool = False


Condition = Annotated[
    Union[RangeCondition, BooleanCondition, ListCondition],
    Field(discriminator="kind"),
]

_condition_adapter = TypeAdapter(Condition)


# =============================================================================
# EVALUATORS
# =============================================================================

def evaluate_range(condition: RangeCondition, actual: Any) -> Optional[bool]:
    number = to_number(actual)
    if number is None:
        return None

    op = condition.operator
    if op == RangeOperator.LT:
        return number < condition.value
    if op == RangeOperator.LTE:
        return number <= condition.value
    if op == RangeOperator.GT:
        return number > condition.value
    if op == RangeOperator.GTE:
        return number >= condition.value
    if op == RangeOperator.EQ:
        return number == condition.value
    if op == RangeOperator.NEQ:
        return number != condition.value

    low = condition.min_value if condition.min_value is not None else -math.inf
    high = condition.max_value if condition.max_value is not None else math.inf
    if op == RangeOperator.BETWEEN:
        return low <= number <= high
    if op == RangeOperator.BETWEEN_EXCLUSIVE:
        return low < number < high
    if op == RangeOperator.OUTSIDE:
        return number < low or number > high
    raise MalformedConditionError(f"Unknown range operator: {op}")


_bool_adapter = TypeAdapter(bool)


def _as_bool(actual: Any) -> Optional[bool]:
    """Coerce with the same rule profile fields use; None when not boolean-like."""
    try:
        return _bool_adapter.validate_python(actual)
    except ValidationError:
        return None


def evaluate_boolean(condition: BooleanCondition, actual: Any) -> Optional[bool]:
    op = condition.operator
    # truthiness operators accept a missing value as falsy
    if op == BooleanOperator.IS_TRUTHY:
        return bool(actual)
    if op == BooleanOperator.IS_FALSY:
        return not bool(actual)

    if actual is None:
        return None
    if op == BooleanOperator.IS:
        return actual == condition.value
    if op == BooleanOperator.IS_NOT:
        return actual != condition.value
    if op == BooleanOperator.IS_TRUE:
        return _as_bool(actual) is True
    if op == BooleanOperator.IS_FALSE:
        return _as_bool(actual) is False
    raise MalformedConditionError(f"Unknown boolean operator: {op}")


def _as_items(actual: Any) -> List[Any]:
    if isinstance(actual, (list, tuple, set)):
        return [item for item in actual if has_value(item)]
    return [actual]


def _item_matches(left: Any, right: Any, fuzzy: bool) -> bool:
    if fuzzy:
        return fuzzy_contains(left, right)
    return normalize_string(left) == normalize_string(right)


def _contains(items: List[Any], target: Any, fuzzy: bool) -> bool:
    return any(_item_matches(item, target, fuzzy) for item in items)


def evaluate_list(condition: ListCondition, actual: Any) -> Optional[bool]:
    op = condition.operator
    values = [v for v in condition.values if has_value(v)]
    if not values:
        return True

    if not has_value(actual):
        return True if op in ABSENCE_PASSES else None

    fuzzy = condition.fuzzy or op in FUZZY_OPERATORS
    items = _as_items(actual)

    if op == ListOperator.IN:
        return any(_contains(values, item, fuzzy) for item in items)
    if op == ListOperator.NOT_IN:
        return not any(_contains(values, item, fuzzy) for item in items)
    if op == ListOperator.INCLUDES:
        return _contains(items, values[0], fuzzy)
    if op == ListOperator.INCLUDES_ANY:
        return any(_contains(items, v, fuzzy) for v in values)
    if op == ListOperator.INCLUDES_ALL:
        return all(_contains(items, v, fuzzy) for v in values)
    if op == ListOperator.EXCLUDES:
        return not _contains(items, values[0], fuzzy)
    if op == ListOperator.EXCLUDES_ALL:
        return not any(_contains(items, v, fuzzy) for v in values)
    if op == ListOperator.MATCHES_ANY:
        return any(_contains(values, item, True) for item in items)
    if op == ListOperator.MATCHES_ALL:
        return all(_contains(items, v, True) for v in values)
    raise MalformedConditionError(f"Unknown list operator: {op}")


def evaluate_condition(condition: Any, actual: Any) -> Optional[bool]:
    """
    Evaluate any condition variant against an applicant value.

    Raises:
        TypeError: condition is not one of the three known variants
    """
    if isinstance(condition, RangeCondition):
        return evaluate_range(condition, actual)
    if isinstance(condition, BooleanCondition):
        return evaluate_boolean(condition, actual)
    if isinstance(condition, ListCondition):
        return evaluate_list(condition, actual)
    raise TypeError(f"Unsupported condition type: {type(condition).__name__}")


# =============================================================================
# DISPLAY & COMPILATION
# =============================================================================

_RANGE_SYMBOLS = {
    RangeOperator.LT: "<",
    RangeOperator.LTE: "≤",
    RangeOperator.GT: ">",
    RangeOperator.GTE: "≥",
    RangeOperator.EQ: "=",
    RangeOperator.NEQ: "≠",
}


def describe_condition(condition: Any) -> str:
    """Human-readable form of the required value."""
    if isinstance(condition, RangeCondition):
        if condition.operator in _RANGE_SYMBOLS:
            return f"{_RANGE_SYMBOLS[condition.operator]} {condition.value:g}"
        low = "-∞" if condition.min_value is None else f"{condition.min_value:g}"
        high = "∞" if condition.max_value is None else f"{condition.max_value:g}"
        if condition.operator == RangeOperator.OUTSIDE:
            return f"outside {low} - {high}"
        return f"{low} - {high}"
    if isinstance(condition, BooleanCondition):
        if condition.operator in (BooleanOperator.IS_TRUE, BooleanOperator.IS_TRUTHY):
            return "Yes"
        if condition.operator in (BooleanOperator.IS_FALSE, BooleanOperator.IS_FALSY):
            return "No"
        expected = "Yes" if condition.value else "No"
        return expected if condition.operator == BooleanOperator.IS else f"not {expected}"
    if isinstance(condition, ListCondition):
        listed = format_list(condition.values)
        if condition.operator in ABSENCE_PASSES:
            return f"not {listed}"
        return listed
    raise TypeError(f"Unsupported condition type: {type(condition).__name__}")


def parse_condition(data: dict):
    """Validate a plain dict into the matching condition variant."""
    try:
        return _condition_adapter.validate_python(data)
    except ValidationError as exc:
        raise MalformedConditionError(str(exc)) from exc


def compile_custom_condition(custom: CustomCondition):
    """
    Turn a loosely typed administrator condition into a condition variant.

    Raises:
        MalformedConditionError: unknown kind/operator or missing thresholds
    """
    if not custom.field_path:
        raise MalformedConditionError(f"Condition '{custom.name}' has no field path")

    kind = normalize_string(custom.kind)
    data = {"kind": kind, "operator": custom.operator}
    if kind == "range":
        data.update(value=custom.value, min_value=custom.min_value, max_value=custom.max_value)
    elif kind == "boolean":
        data["value"] = custom.value
    elif kind == "list":
        values = custom.values
        if not values and isinstance(custom.value, (list, tuple)):
            values = list(custom.value)
        elif not values and has_value(custom.value):
            values = [custom.value]
        data.update(values=values, fuzzy=custom.fuzzy)
    else:
        raise MalformedConditionError(f"Condition '{custom.name}' has unknown kind '{custom.kind}'")
    return parse_condition(data)
