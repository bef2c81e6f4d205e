"""Dynamic, presence-tracking records described by a MessageDescriptor."""

from __future__ import annotations

import math
import struct
from typing import Any, Optional

from .schema import (
    FieldDescriptor,
    FieldType,
    INTEGER_RANGES,
    MessageDescriptor,
    RecordReflection,
)


def to_float32(value: float) -> float:
    """Round a Python float to the nearest single-precision value."""
    if math.isnan(value) or math.isinf(value):
        return value
    try:
        return struct.unpack('<f', struct.pack('<f', value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


def check_value(field: FieldDescriptor, value: Any) -> Any:
    """
    Validate and normalize one scalar or sub-record value for a field.

    Returns:
        The value as it is stored in a record
    """
    ftype = field.type

    if ftype == FieldType.MESSAGE:
        if isinstance(value, dict):
            return Record.from_dict(field.message_type, value)
        if not isinstance(value, Record):
            raise TypeError(
                f"{field.full_name} expects a {field.message_type.full_name} record, "
                f"got {type(value).__name__}"
            )
        if value.descriptor.full_name != field.message_type.full_name:
            raise TypeError(
                f"{field.full_name} expects a {field.message_type.full_name} record, "
                f"got {value.descriptor.full_name}"
            )
        return value

    if ftype == FieldType.BOOL:
        if not isinstance(value, bool):
            raise TypeError(f"{field.full_name} expects bool, got {type(value).__name__}")
        return value

    if ftype in INTEGER_RANGES:
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"{field.full_name} expects int, got {type(value).__name__}")
        low, high = INTEGER_RANGES[ftype]
        if not low <= value <= high:
            raise ValueError(f"Value {value} out of range for {ftype.value} field {field.full_name}")
        return value

    if ftype in (FieldType.FLOAT, FieldType.DOUBLE):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"{field.full_name} expects float, got {type(value).__name__}")
        value = float(value)
        return to_float32(value) if ftype == FieldType.FLOAT else value

    if ftype == FieldType.STRING:
        if not isinstance(value, str):
            raise TypeError(f"{field.full_name} expects str, got {type(value).__name__}")
        return value

    if ftype == FieldType.BYTES:
        if not isinstance(value, (bytes, bytearray)):
            raise TypeError(f"{field.full_name} expects bytes, got {type(value).__name__}")
        return bytes(value)

    if ftype == FieldType.ENUM:
        if isinstance(value, str):
            return field.enum_type.number_of(value)
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"{field.full_name} expects an enum name or number, got {type(value).__name__}")
        return value

    raise TypeError(f"Unsupported field type: {ftype}")


class Record:
    """
    A schema-described value with named, presence-tracked fields.

    Singular fields are either set or unset; reading an unset scalar yields
    its default. Repeated fields are plain lists of checked values.

    Usage:
        rec = Record(descriptor, num=42, name="x")
        rec.add("more", num=10)
        rec.has("num")  # True
    """

    __slots__ = ('_descriptor', '_values')

    def __init__(self, descriptor: MessageDescriptor, **values: Any):
        object.__setattr__(self, '_descriptor', descriptor)
        object.__setattr__(self, '_values', {})
        for name, value in values.items():
            self.set(name, value)

    @property
    def descriptor(self) -> MessageDescriptor:
        return self._descriptor

    def _field(self, name: str) -> FieldDescriptor:
        return self._descriptor.field(name)

    def set(self, name: str, value: Any) -> None:
        """Set a singular field, or replace all elements of a repeated one."""
        field = self._field(name)
        if field.is_repeated:
            if isinstance(value, (str, bytes, dict)) or not hasattr(value, '__iter__'):
                raise TypeError(f"{field.full_name} is repeated and expects a sequence")
            self._values[name] = [check_value(field, item) for item in value]
            return
        if value is None:
            self.clear(name)
            return
        self._values[name] = check_value(field, value)

    def get(self, name: str) -> Any:
        """
        Read a field: default for unset scalars, None for unset sub-records.

        An unset repeated field reads as a fresh list that is not stored; use
        ``add`` or ``set`` to populate it.
        """
        field = self._field(name)
        if field.is_repeated:
            return self._values.get(name, [])
        if name in self._values:
            return self._values[name]
        return field.default_value()

    def has(self, name: str) -> bool:
        """Presence test; repeated fields count as present when non-empty."""
        field = self._field(name)
        if field.is_repeated:
            return bool(self._values.get(name))
        return name in self._values

    def clear(self, name: str) -> None:
        self._field(name)
        self._values.pop(name, None)

    def add(self, name: str, value: Any = None, **fields: Any) -> Any:
        """
        Append one element to a repeated field.

        For repeated sub-records, omit ``value`` to append a new record built
        from ``fields``; the appended record is returned.
        """
        field = self._field(name)
        if not field.is_repeated:
            raise TypeError(f"{field.full_name} is not repeated")
        if value is None:
            if not field.is_sub_record:
                raise TypeError(f"{field.full_name} needs a value to add")
            value = Record(field.message_type, **fields)
        item = check_value(field, value)
        self._values.setdefault(name, []).append(item)
        return item

    def mutable(self, name: str) -> Record:
        """Return the sub-record in a singular field, creating it if unset."""
        field = self._field(name)
        if not field.is_sub_record or field.is_repeated:
            raise TypeError(f"{field.full_name} is not a singular sub-record")
        if name not in self._values:
            self._values[name] = Record(field.message_type)
        return self._values[name]

    def missing_required_fields(self, prefix: str = "") -> list[str]:
        """List dotted paths of required fields that are unset."""
        missing = []
        for field in self._descriptor.fields:
            path = f"{prefix}{field.name}"
            if field.required and field.name not in self._values:
                missing.append(path)
            if not field.is_sub_record:
                continue
            if field.is_repeated:
                for i, item in enumerate(self._values.get(field.name, [])):
                    missing.extend(item.missing_required_fields(f"{path}[{i}]."))
            elif field.name in self._values:
                missing.extend(self._values[field.name].missing_required_fields(f"{path}."))
        return missing

    def is_initialized(self) -> bool:
        return not self.missing_required_fields()

    def copy(self) -> Record:
        """Deep copy of this record."""
        clone = Record(self._descriptor)
        for name, value in self._values.items():
            if isinstance(value, list):
                clone._values[name] = [v.copy() if isinstance(v, Record) else v for v in value]
            elif isinstance(value, Record):
                clone._values[name] = value.copy()
            else:
                clone._values[name] = value
        return clone

    def to_dict(self) -> dict:
        """Plain-data form holding only present fields, in declaration order."""
        result = {}
        for field in self._descriptor.fields:
            if field.name not in self._values:
                continue
            value = self._values[field.name]
            if field.is_repeated:
                if not value:
                    continue
                result[field.name] = [v.to_dict() if isinstance(v, Record) else v for v in value]
            elif isinstance(value, Record):
                result[field.name] = value.to_dict()
            else:
                result[field.name] = value
        return result

    @classmethod
    def from_dict(cls, descriptor: MessageDescriptor, data: dict) -> Record:
        """Build a record from plain data; nested dicts become sub-records."""
        if not isinstance(data, dict):
            raise TypeError(f"{descriptor.full_name} expects a mapping, got {type(data).__name__}")
        record = cls(descriptor)
        for name, value in data.items():
            record.set(name, value)
        return record

    def __getattr__(self, name: str) -> Any:
        if name.startswith('_'):
            raise AttributeError(name)
        return self.get(name)

    def __setattr__(self, name: str, value: Any) -> None:
        if name.startswith('_'):
            object.__setattr__(self, name, value)
            return
        self.set(name, value)

    def __copy__(self) -> Record:
        return self.copy()

    def __deepcopy__(self, memo: dict) -> Record:
        return self.copy()

    def __repr__(self) -> str:
        from .text_format import to_text
        return f"<{self._descriptor.full_name} {to_text(self)}>"


class RecordAdapter(RecordReflection):
    """Reflection capability for Record instances."""

    def descriptor_of(self, record: Record) -> MessageDescriptor:
        if not isinstance(record, Record):
            raise TypeError(f"Expected a Record, got {type(record).__name__}")
        return record.descriptor

    def get(self, record: Record, field: FieldDescriptor) -> Any:
        return record.get(field.name)

    def is_set(self, record: Record, field: FieldDescriptor) -> bool:
        return record.has(field.name)

    def new_empty(self, descriptor: MessageDescriptor) -> Record:
        return Record(descriptor)


def value_or_empty(
    adapter: RecordReflection,
    record: Any,
    field: FieldDescriptor,
) -> Optional[Any]:
    """Sub-record value of a singular field, or an empty record when unset."""
    value = adapter.get(record, field)
    if value is None and field.is_sub_record:
        return adapter.new_empty(field.message_type)
    return value
