"""
Argument validation against a tool's JSON-schema-shaped parameter description.

Covers the subset the catalogue uses: object/string/number/integer/boolean/
array types, required, enum, minimum/maximum, minLength and
additionalProperties. Nested object properties are checked recursively.
"""
from typing import Any, Dict, Optional, Tuple

_TYPE_CHECKS = {
    "string": lambda v: isinstance(v, str),
    "number": lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
    "integer": lambda v: isinstance(v, int) and not isinstance(v, bool),
    "boolean": lambda v: isinstance(v, bool),
    "array": lambda v: isinstance(v, list),
    "object": lambda v: isinstance(v, dict),
}


def _invalid(message: str) -> Tuple[bool, Dict[str, Any]]:
    return False, {"type": "invalid_args", "message": message}


def _check_value(path: str, prop: Dict[str, Any], value: Any) -> Optional[str]:
    """Return an error message for one value, or None when it is valid"""
    expected = prop.get("type")
    if expected:
        check = _TYPE_CHECKS.get(expected)
        if check is not None and not check(value):
            return f"{path} must be {expected}, got {type(value).__name__}"

    if "enum" in prop and value not in prop["enum"]:
        return f"{path} must be one of {prop['enum']}"

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if "minimum" in prop and value < prop["minimum"]:
            return f"{path} must be >= {prop['minimum']}"
        if "maximum" in prop and value > prop["maximum"]:
            return f"{path} must be <= {prop['maximum']}"

    if isinstance(value, str) and "minLength" in prop and len(value.strip()) < prop["minLength"]:
        return f"{path} must not be empty"

    if expected == "object" and isinstance(value, dict) and "properties" in prop:
        return _check_object(f"{path}.", prop, value)
    return None


def _check_object(path: str, schema: Dict[str, Any], args: Dict[str, Any]) -> Optional[str]:
    properties = schema.get("properties", {})

    for key in schema.get("required", []):
        if key not in args or args[key] is None:
            return f"Missing required argument: {path}{key}"

    if schema.get("additionalProperties") is False:
        unknown = sorted(k for k in args if k not in properties)
        if unknown:
            return f"Unknown argument(s): {', '.join(path + k for k in unknown)}"

    for key, value in args.items():
        prop = properties.get(key)
        if prop is None or value is None:
            continue
        msg = _check_value(f"{path}{key}", prop, value)
        if msg:
            return msg
    return None


def validate_args(schema: Dict[str, Any], args: Dict[str, Any]) -> Tuple[bool, Optional[Dict[str, Any]]]:
    """
    Validate tool arguments against a schema.

    Args:
        schema: Tool args schema ({"type": "object", "properties": ...})
        args: Arguments to check

    Returns:
        (True, None) when valid, else (False, {"type": "invalid_args", "message": ...})
    """
    if not isinstance(args, dict):
        return _invalid(f"Arguments must be an object, got {type(args).__name__}")

    msg = _check_object("", schema or {}, args)
    if msg:
        return _invalid(msg)
    return True, None
