"""Validation for the opaque JSON payloads stored alongside messages, query logs and invoices."""

from typing import Any

from pydantic import JsonValue, TypeAdapter, ValidationError

_JSON_ADAPTER = TypeAdapter(JsonValue)


def validate_json(value: Any) -> JsonValue:
    """
    Return `value` if it is made only of str, int, float, bool, None, lists
    and str-keyed dicts. Raises ValueError otherwise.
    """
    if value is None:
        return None
    try:
        return _JSON_ADAPTER.validate_python(value)
    except ValidationError as exc:
        raise ValueError(f"payload is not JSON-shaped: {exc.error_count()} error(s)") from exc
