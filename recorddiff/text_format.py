"""Text rendering of record values and parsing of YAML text expectations."""

from __future__ import annotations

import math
from typing import Any

import yaml

from .exceptions import TextParseError
from .record import Record, to_float32
from .schema import FieldDescriptor, FieldType, MessageDescriptor


_ESCAPES = {
    '\n': '\\n',
    '\r': '\\r',
    '\t': '\\t',
    '"': '\\"',
    "'": "\\'",
    '\\': '\\\\',
}


def simple_dtoa(value: float) -> str:
    """Shortest of %.15g / %.17g that round-trips a double."""
    if math.isnan(value):
        return "nan"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    text = '%.15g' % value
    if float(text) != value:
        text = '%.17g' % value
    return text


def simple_ftoa(value: float) -> str:
    """Shortest of %.6g / %.9g that round-trips a single-precision float."""
    if math.isnan(value):
        return "nan"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    text = '%.6g' % value
    if to_float32(float(text)) != value:
        text = '%.9g' % value
    return text


def c_escape(value: str | bytes) -> str:
    """Escape a string or bytes value for display between double quotes."""
    if isinstance(value, bytes):
        chars = [chr(b) if 0x20 <= b < 0x7f else None for b in value]
        out = []
        for b, ch in zip(value, chars):
            if ch is None:
                out.append('\\%03o' % b)
            else:
                out.append(_ESCAPES.get(ch, ch))
        return ''.join(out)

    out = []
    for ch in value:
        if ch in _ESCAPES:
            out.append(_ESCAPES[ch])
        elif ord(ch) < 0x20 or ord(ch) == 0x7f:
            out.append('\\%03o' % ord(ch))
        else:
            out.append(ch)
    return ''.join(out)


def format_scalar(field: FieldDescriptor, value: Any) -> str:
    """Render a single non-record value of ``field``."""
    ftype = field.type
    if ftype == FieldType.BOOL:
        return "true" if value else "false"
    if ftype == FieldType.DOUBLE:
        return simple_dtoa(value)
    if ftype == FieldType.FLOAT:
        return simple_ftoa(value)
    if ftype in (FieldType.STRING, FieldType.BYTES):
        return f'"{c_escape(value)}"'
    if ftype == FieldType.ENUM:
        name = field.enum_type.name_of(value)
        return name if name is not None else str(value)
    return str(value)


def format_value(field: FieldDescriptor, value: Any) -> str:
    """Render one element or singular value of ``field`` for explanations."""
    if field.is_sub_record:
        if value is None:
            return "{ }"
        text = to_text(value)
        return f"{{ {text} }}" if text else "{ }"
    return format_scalar(field, value)


def to_text(record: Record) -> str:
    """
    Render the present fields of a record on a single line.

    Example:
        num: 1 name: "x" one { num: 2 } more { num: 10 } more { num: 20 }
    """
    parts = []
    for field in record.descriptor.fields:
        if not record.has(field.name):
            continue
        value = record.get(field.name)
        values = value if field.is_repeated else [value]
        for item in values:
            if field.is_sub_record:
                inner = to_text(item)
                parts.append(f"{field.name} {{ {inner} }}" if inner else f"{field.name} {{ }}")
            else:
                parts.append(f"{field.name}: {format_scalar(field, item)}")
    return ' '.join(parts)


def parse_text_record(
    text: str,
    descriptor: MessageDescriptor,
    allow_partial: bool = True,
) -> Record:
    """
    Parse a YAML mapping into a record of the given type.

    Args:
        text: YAML text, e.g. ``"{num: 42, more: [{num: 10}]}"``
        descriptor: The record type to build
        allow_partial: Whether required fields may be missing

    Returns:
        The parsed Record

    Raises:
        TextParseError: if the text is not valid YAML or does not fit the type
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise TextParseError(descriptor.full_name, f"invalid YAML: {e}")

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise TextParseError(
            descriptor.full_name,
            f"expected a mapping of field names, got {type(data).__name__}"
        )

    record = _build_record(descriptor, data, "")

    if not allow_partial:
        missing = record.missing_required_fields()
        if missing:
            raise TextParseError(
                descriptor.full_name,
                f"missing required fields: {', '.join(missing)}"
            )

    return record


def _build_record(descriptor: MessageDescriptor, data: dict, prefix: str) -> Record:
    record = Record(descriptor)
    for key, value in data.items():
        path = f"{prefix}{key}"
        if not isinstance(key, str):
            raise TextParseError(descriptor.full_name, f"field name {key!r} is not a string")
        field = descriptor.find_field(key)
        if field is None:
            raise TextParseError(
                descriptor.full_name,
                f"{descriptor.full_name} has no field named '{path}'"
            )

        if field.is_repeated:
            items = value if isinstance(value, list) else [value]
            converted = [
                _convert(field, item, f"{path}[{i}]")
                for i, item in enumerate(items)
            ]
        else:
            converted = _convert(field, value, path)

        try:
            record.set(key, converted)
        except (TypeError, ValueError) as e:
            raise TextParseError(descriptor.full_name, f"bad value for '{path}': {e}")

    return record


def _convert(field: FieldDescriptor, value: Any, path: str) -> Any:
    if field.is_sub_record:
        if value is None:
            value = {}
        if not isinstance(value, dict):
            raise TextParseError(
                field.message_type.full_name,
                f"'{path}' expects a mapping, got {type(value).__name__}"
            )
        return _build_record(field.message_type, value, f"{path}.")

    if value is None:
        raise TextParseError(field.containing_type.full_name, f"missing value for '{path}'")

    if field.is_floating_point and isinstance(value, str):
        # Accepts nan, inf, -inf and exponent forms YAML leaves as strings.
        try:
            return float(value.strip())
        except ValueError:
            raise TextParseError(
                field.containing_type.full_name,
                f"'{path}' expects a number, got '{value}'"
            )

    if field.type == FieldType.BYTES and isinstance(value, str):
        return value.encode('utf-8')

    return value
