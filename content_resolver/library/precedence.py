"""Per-field override precedence.

Every overridable field is resolved by walking the tiers from most specific
to least specific (client, program, library) and taking the first value that
counts as set under the field's rule:

- NON_EMPTY: None and "" never win; the next tier is consulted instead.
- PRESENT: any value stored under the key wins, including "" and None.

A key missing from a tier is UNSET for that tier under both rules.
"""

from collections.abc import Mapping
from enum import Enum
from typing import Any, Final


class _Unset:
    _instance = None

    def __new__(cls) -> "_Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Final = _Unset()


class FieldRule(str, Enum):
    NON_EMPTY = "non_empty"
    PRESENT = "present"


SESSION_FIELD_RULES: Final[dict[str, FieldRule]] = {
    "title": FieldRule.NON_EMPTY,
    "description": FieldRule.NON_EMPTY,
    "image_url": FieldRule.PRESENT,
    "order": FieldRule.PRESENT,
}

MODULE_FIELD_RULES: Final[dict[str, FieldRule]] = {
    "title": FieldRule.NON_EMPTY,
    "description": FieldRule.NON_EMPTY,
}

PROGRAM_FIELD_RULES: Final[dict[str, FieldRule]] = {
    "title": FieldRule.NON_EMPTY,
    "description": FieldRule.NON_EMPTY,
    "image_url": FieldRule.NON_EMPTY,
}


def override_value(layer: Mapping[str, Any] | None, field: str, rule: FieldRule) -> Any:
    """Return the value a tier contributes for field, or UNSET."""
    if not layer or field not in layer:
        return UNSET
    value = layer[field]
    if value is UNSET:
        return UNSET
    if rule is FieldRule.NON_EMPTY and (value is None or value == ""):
        return UNSET
    return value


def pick(field: str, rule: FieldRule, *layers: Mapping[str, Any] | None, default: Any = UNSET) -> Any:
    """Resolve field across layers, most specific first."""
    for layer in layers:
        value = override_value(layer, field, rule)
        if value is not UNSET:
            return value
    return default


def rule_for(field: str, rules: Mapping[str, FieldRule]) -> FieldRule:
    return rules.get(field, FieldRule.PRESENT)


def merge_fields(
    base: Mapping[str, Any],
    override: Mapping[str, Any] | None,
    rules: Mapping[str, FieldRule],
    *,
    exclude: frozenset[str] = frozenset(),
    only: frozenset[str] | None = None,
) -> dict[str, Any]:
    """Shallow-merge override onto base, honoring each field's rule.

    Args:
        base: Lower-precedence record
        override: Higher-precedence partial record
        rules: Field rules; fields not listed use PRESENT
        exclude: Override keys never copied (collections merged elsewhere)
        only: When given, restrict the merge to these override keys

    Returns:
        A new dict; neither input is modified
    """
    merged = dict(base)
    if not override:
        return merged
    for field in override:
        if field in exclude or (only is not None and field not in only):
            continue
        value = override_value(override, field, rule_for(field, rules))
        if value is not UNSET:
            merged[field] = value
    return merged
