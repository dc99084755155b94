"""
Label and field filter matching
"""

from typing import Any, FrozenSet, Iterable, List, Sequence

from ..errors import UnsupportedFieldError
from ..models import FieldFilter, LabelFilter, Operation, Resource


def field_selector_value(value: Any) -> str:
    """
    Render a field value the way field selectors see it

    Missing fields read as "", booleans as "true"/"false".
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _compare(operation: Operation, actual: str, expected: str) -> bool:
    if operation == Operation.EQUAL:
        return actual == expected
    return actual != expected


def match_label_filter(resource: Resource, label_filter: LabelFilter) -> bool:
    """Equal needs the label present with that value; a missing label is Different"""
    if label_filter.key not in resource.labels:
        return label_filter.operation == Operation.DIFFERENT
    return _compare(label_filter.operation, resource.labels[label_filter.key], label_filter.value)


def match_label_filters(resource: Resource, label_filters: Iterable[LabelFilter]) -> bool:
    return all(match_label_filter(resource, f) for f in label_filters)


def check_field_filters(
    field_filters: Sequence[FieldFilter],
    supported: FrozenSet[str],
    kind: str
):
    """
    Make sure every field filter uses a supported field selector

    Raises:
        UnsupportedFieldError: for the first unsupported field
    """
    for field_filter in field_filters:
        if field_filter.field not in supported:
            raise UnsupportedFieldError(field_filter.field, kind, supported)


def match_field_filter(resource: Resource, field_filter: FieldFilter) -> bool:
    actual = field_selector_value(resource.field_value(field_filter.field))
    return _compare(field_filter.operation, actual, field_filter.value)


def match_field_filters(resource: Resource, field_filters: Iterable[FieldFilter]) -> bool:
    return all(match_field_filter(resource, f) for f in field_filters)


def select(
    resources: Iterable[Resource],
    label_filters: Sequence[LabelFilter] = (),
    field_filters: Sequence[FieldFilter] = ()
) -> List[Resource]:
    """Resources passing every label and field filter"""
    return [
        r for r in resources
        if match_label_filters(r, label_filters) and match_field_filters(r, field_filters)
    ]
