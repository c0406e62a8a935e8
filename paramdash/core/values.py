from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import IntEnum
from typing import Any

from paramdash.core.errors import InvalidEditValue, ReadOnlyParameter

logger = logging.getLogger(__name__)

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


class ParamKind(IntEnum):
    """Declared parameter type. Values are the rcl_interfaces ParameterType codes."""

    UNKNOWN = 0
    BOOL = 1
    INT = 2
    DOUBLE = 3
    STRING = 4
    STRING_LIST = 9

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    ParamKind.UNKNOWN: "unknown",
    ParamKind.BOOL: "bool",
    ParamKind.INT: "int",
    ParamKind.DOUBLE: "double",
    ParamKind.STRING: "string",
    ParamKind.STRING_LIST: "string[]",
}

# ParameterValue message field carrying the payload for each supported code
_VALUE_FIELDS = {
    ParamKind.BOOL: "bool_value",
    ParamKind.INT: "integer_value",
    ParamKind.DOUBLE: "double_value",
    ParamKind.STRING: "string_value",
    ParamKind.STRING_LIST: "string_array_value",
}

# Payload fields of the ParameterValue types that decode as UNKNOWN
_PAYLOAD_FIELDS = {
    **{int(kind): field for kind, field in _VALUE_FIELDS.items()},
    5: "byte_array_value",
    6: "bool_array_value",
    7: "integer_array_value",
    8: "double_array_value",
}

_TRUE_WORDS = ("true", "1")
_FALSE_WORDS = ("false", "0")


def _is_str_sequence(raw: Any) -> bool:
    return isinstance(raw, (list, tuple)) and all(isinstance(v, str) for v in raw)


def _is_message(raw: Any) -> bool:
    return isinstance(raw, Mapping) and "type" in raw


def _payload(msg: Mapping[str, Any]) -> Any:
    """The value carried by a ParameterValue message, None when not set."""
    field = _PAYLOAD_FIELDS.get(msg.get("type"))
    payload = msg.get(field) if field else None
    return list(payload) if isinstance(payload, tuple) else payload


def _check_shape(kind: ParamKind, value: Any) -> Any:
    """Return value normalised for kind, or raise TypeError on a shape mismatch."""
    if kind is ParamKind.BOOL:
        if isinstance(value, bool):
            return value
    elif kind is ParamKind.INT:
        if isinstance(value, int) and not isinstance(value, bool):
            if INT64_MIN <= value <= INT64_MAX:
                return value
            raise TypeError(f"integer {value} does not fit in 64 bits")
    elif kind is ParamKind.DOUBLE:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    elif kind is ParamKind.STRING:
        if isinstance(value, str):
            return value
    elif kind is ParamKind.STRING_LIST:
        if _is_str_sequence(value):
            return tuple(value)
    else:
        return value
    raise TypeError(f"{type(value).__name__} value {value!r} is not a valid {kind.label}")


@dataclass(frozen=True)
class TypedValue:
    """One parameter value together with its declared kind.

    ``UNKNOWN`` carries an opaque value that is preserved verbatim but cannot
    go through the typed edit path.
    """

    kind: ParamKind
    value: Any

    def __post_init__(self) -> None:
        kind = ParamKind(self.kind)
        object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "value", _check_shape(kind, self.value))

    @property
    def editable(self) -> bool:
        return self.kind is not ParamKind.UNKNOWN

    def to_plain(self) -> Any:
        """JSON-friendly native value.

        An UNKNOWN value that came in as a ParameterValue message gives its
        payload, so arrays land in snapshots as plain lists.
        """
        if self.kind is ParamKind.STRING_LIST:
            return list(self.value)
        if self.kind is ParamKind.UNKNOWN and _is_message(self.value):
            return _payload(self.value)
        return self.value

    def display(self) -> str:
        if self.kind is ParamKind.BOOL:
            return "true" if self.value else "false"
        if self.kind is ParamKind.STRING_LIST:
            return ", ".join(self.value)
        if self.kind is ParamKind.UNKNOWN:
            return json.dumps(self.to_plain(), default=str)
        return str(self.value)


def infer_kind(raw: Any) -> ParamKind:
    """Guess the kind of an untyped JSON value from its shape.

    Whole numbers infer ``INT`` even when written as ``5.0``; a mapping is
    not a leaf and must go through :func:`infer_kinds`.
    """
    if isinstance(raw, Mapping):
        raise ValueError("a mapping is a nested group, not a leaf value; use infer_kinds()")
    if isinstance(raw, bool):
        return ParamKind.BOOL
    if isinstance(raw, int):
        if INT64_MIN <= raw <= INT64_MAX:
            return ParamKind.INT
        return ParamKind.UNKNOWN
    if isinstance(raw, float):
        if raw.is_integer() and INT64_MIN <= raw <= INT64_MAX:
            return ParamKind.INT
        return ParamKind.DOUBLE
    if isinstance(raw, str):
        return ParamKind.STRING
    if _is_str_sequence(raw):
        return ParamKind.STRING_LIST
    return ParamKind.UNKNOWN


def infer_kinds(raw: Any) -> ParamKind | dict[str, Any]:
    """Like :func:`infer_kind`, recursing into mappings member by member."""
    if isinstance(raw, Mapping):
        return {str(k): infer_kinds(v) for k, v in raw.items()}
    return infer_kind(raw)


def typed_from_raw(raw: Any) -> TypedValue:
    """Wrap an untyped leaf value, degrading unsupported shapes to ``UNKNOWN``."""
    kind = infer_kind(raw)
    if kind is ParamKind.UNKNOWN:
        logger.debug("Unsupported value %r kept as read-only unknown", raw)
        return TypedValue(ParamKind.UNKNOWN, raw)
    if kind is ParamKind.INT:
        return TypedValue(kind, int(raw))
    return TypedValue(kind, raw)


def from_parameter_value(msg: Mapping[str, Any]) -> TypedValue:
    """Decode a ROS ``ParameterValue`` message (as a dict)."""
    code = msg.get("type", 0)
    try:
        kind = ParamKind(code)
    except ValueError:
        kind = ParamKind.UNKNOWN
    if kind is ParamKind.UNKNOWN:
        return TypedValue(ParamKind.UNKNOWN, dict(msg))
    try:
        return TypedValue(kind, msg.get(_VALUE_FIELDS[kind]))
    except TypeError as e:
        logger.debug("ParameterValue %r kept as unknown: %s", msg, e)
        return TypedValue(ParamKind.UNKNOWN, dict(msg))


def to_parameter_value(tv: TypedValue) -> dict[str, Any]:
    """Encode a typed value as a ROS ``ParameterValue`` message."""
    if tv.kind is ParamKind.UNKNOWN:
        if _is_message(tv.value):
            return dict(tv.value)
        raise ReadOnlyParameter("a value of unknown type has no ParameterValue form")
    return {"type": int(tv.kind), _VALUE_FIELDS[tv.kind]: tv.to_plain()}


def coerce_edit(kind: ParamKind, text: Any) -> TypedValue:
    """Re-type an edited value using the parameter's stored kind."""
    kind = ParamKind(kind)
    if kind is ParamKind.UNKNOWN:
        raise ReadOnlyParameter("parameters of unknown type cannot be edited")

    if kind is ParamKind.BOOL:
        if isinstance(text, bool):
            return TypedValue(kind, text)
        word = str(text).strip().lower()
        if word in _TRUE_WORDS:
            return TypedValue(kind, True)
        if word in _FALSE_WORDS:
            return TypedValue(kind, False)
        raise InvalidEditValue(f"expected true or false, got {text!r}")

    if kind is ParamKind.INT:
        if isinstance(text, float) and text.is_integer():
            text = int(text)
        if isinstance(text, int) and not isinstance(text, bool):
            number = text
        else:
            try:
                number = int(str(text).strip(), 10)
            except ValueError:
                raise InvalidEditValue(f"expected an integer, got {text!r}") from None
        try:
            return TypedValue(kind, number)
        except TypeError as e:
            raise InvalidEditValue(str(e)) from None

    if kind is ParamKind.DOUBLE:
        if isinstance(text, bool):
            raise InvalidEditValue(f"expected a number, got {text!r}")
        try:
            return TypedValue(kind, float(str(text).strip() if isinstance(text, str) else text))
        except (TypeError, ValueError):
            raise InvalidEditValue(f"expected a number, got {text!r}") from None

    if kind is ParamKind.STRING:
        return TypedValue(kind, str(text))

    # STRING_LIST
    if isinstance(text, (list, tuple)):
        return TypedValue(kind, [str(v) for v in text])
    items = [part.strip() for part in str(text).split(",")]
    return TypedValue(kind, [item for item in items if item])
