"""Validation of tool arguments against JSON-Schema-shaped parameter specs.

Covers the subset of JSON Schema that tool declarations use in practice:
object shape, required keys, primitive types, enums, numeric bounds, string
length, additionalProperties=false and nested objects/arrays. Unknown
keywords are ignored.
"""

from typing import Any, Optional

_TYPE_NAMES = {
    bool: "boolean",
    int: "integer",
    float: "number",
    str: "string",
    list: "array",
    dict: "object",
    type(None): "null",
}


def json_type_name(value: Any) -> str:
    """Name of the JSON type of a Python value."""
    for py_type, name in _TYPE_NAMES.items():
        # bool is checked first so True is not reported as an integer
        if type(value) is py_type:
            return name
    if isinstance(value, dict):
        return "object"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, str):
        return "string"
    return type(value).__name__


def _matches_type(value: Any, expected: str) -> bool:
    actual = json_type_name(value)
    if expected == "number":
        return actual in ("number", "integer")
    if expected == "integer" and actual == "number":
        return float(value).is_integer()
    return actual == expected


def validate_against_schema(schema: dict[str, Any], data: Any, path: str = "") -> Optional[str]:
    """Validate data against a JSON schema.

    Args:
        schema: Schema dict (empty dict accepts anything object-shaped at the root)
        data: Value to validate
        path: Location prefix used in error messages

    Returns:
        Error message if validation fails, None if valid
    """
    where = f"'{path}'" if path else "arguments"

    if not path and not isinstance(data, dict):
        return f"Expected an object for arguments, but received {json_type_name(data)}"

    expected = schema.get("type")
    if expected is not None:
        options = expected if isinstance(expected, list) else [expected]
        if not any(_matches_type(data, str(option).lower()) for option in options):
            return (
                f"Type mismatch for {where}: expected {' or '.join(map(str, options))}, "
                f"got {json_type_name(data)}"
            )

    enum = schema.get("enum")
    if isinstance(enum, list) and data not in enum:
        return f"Value for {where} must be one of {enum}, got {data!r}"

    if isinstance(data, (int, float)) and not isinstance(data, bool):
        minimum = schema.get("minimum")
        if minimum is not None and data < minimum:
            return f"Value for {where} must be at least {minimum}, but got {data}"
        maximum = schema.get("maximum")
        if maximum is not None and data > maximum:
            return f"Value for {where} must be at most {maximum}, but got {data}"

    if isinstance(data, str):
        min_length = schema.get("minLength")
        if min_length is not None and len(data) < min_length:
            return f"Value for {where} must be at least {min_length} characters"

    if isinstance(data, dict):
        return _validate_object(schema, data, path)

    if isinstance(data, list):
        items = schema.get("items")
        if isinstance(items, dict):
            for index, item in enumerate(data):
                error = validate_against_schema(items, item, f"{path or 'arguments'}[{index}]")
                if error:
                    return error

    return None


def _validate_object(schema: dict[str, Any], data: dict[str, Any], path: str) -> Optional[str]:
    prefix = f"{path}." if path else ""

    required = schema.get("required")
    if isinstance(required, list):
        for field in required:
            if data.get(field) is None:
                return f"Missing required field: '{prefix}{field}'"

    properties = schema.get("properties")
    if not isinstance(properties, dict):
        properties = {}

    if schema.get("additionalProperties") is False:
        unknown = sorted(set(data) - set(properties))
        if unknown:
            return f"Unknown parameters: {', '.join(prefix + name for name in unknown)}"

    for key, prop in properties.items():
        if key not in data or data[key] is None or not isinstance(prop, dict):
            continue
        error = validate_against_schema(prop, data[key], f"{prefix}{key}")
        if error:
            return error

    return None
