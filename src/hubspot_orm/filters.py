"""
Search filter builder.

Turns keyword-style filters such as ``{"email_contains": "acme.com",
"age_gte": 21}`` into a HubSpot ``filterGroups`` list. All filters land in
one group, so they are ANDed together.
"""

from typing import Any, Mapping

OPERATOR_MAP = {
    "_contains": "CONTAINS_TOKEN",
    "_gte": "GTE",
    "_lte": "LTE",
    "_neq": "NEQ",
    "_gt": "GT",
    "_lt": "LT",
    "_in": "IN",
}


def is_blank(value: Any) -> bool:
    """None, False, and empty strings/containers are blank."""
    if isinstance(value, str):
        return not value.strip()
    if hasattr(value, "__len__"):
        return len(value) == 0
    return value is None or value is False


def extract_property_and_operator(key: str, value: Any) -> dict[str, str]:
    """Split ``name_suffix`` into a property name and operator."""
    key = str(key)
    if is_blank(value):
        return {"propertyName": key, "operator": "NOT_HAS_PROPERTY"}

    for suffix, operator in OPERATOR_MAP.items():
        if key.endswith(suffix):
            return {"propertyName": key[: -len(suffix)], "operator": operator}

    return {"propertyName": key, "operator": "EQ"}


def build_filters(filters: Mapping[str, Any]) -> list[dict[str, Any]]:
    """Build the filter dicts for one group."""
    built = []
    for key, value in filters.items():
        item: dict[str, Any] = extract_property_and_operator(key, value)
        if not is_blank(value):
            if isinstance(value, (list, tuple, set)):
                item["values"] = list(value)
            else:
                item["value"] = value
        built.append(item)
    return built


def build_filter_groups(filters: Mapping[str, Any]) -> list[dict[str, Any]]:
    return [{"filters": build_filters(filters)}]
