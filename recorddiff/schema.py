"""Record type descriptors and the reflection capability used by the differ."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Iterable, Optional, Sequence


class FieldType(Enum):
    BOOL = "bool"
    INT32 = "int32"
    INT64 = "int64"
    UINT32 = "uint32"
    UINT64 = "uint64"
    FLOAT = "float"
    DOUBLE = "double"
    STRING = "string"
    BYTES = "bytes"
    ENUM = "enum"
    MESSAGE = "message"


INTEGER_RANGES = {
    FieldType.INT32: (-2 ** 31, 2 ** 31 - 1),
    FieldType.INT64: (-2 ** 63, 2 ** 63 - 1),
    FieldType.UINT32: (0, 2 ** 32 - 1),
    FieldType.UINT64: (0, 2 ** 64 - 1),
}

_SCALAR_DEFAULTS = {
    FieldType.BOOL: False,
    FieldType.INT32: 0,
    FieldType.INT64: 0,
    FieldType.UINT32: 0,
    FieldType.UINT64: 0,
    FieldType.FLOAT: 0.0,
    FieldType.DOUBLE: 0.0,
    FieldType.STRING: "",
    FieldType.BYTES: b"",
}


class EnumDescriptor:
    """Describes an enum type: ordered value names and their numbers."""

    def __init__(self, full_name: str, values: dict[str, int] | Iterable[tuple[str, int]]):
        self.full_name = full_name
        self._by_name: dict[str, int] = dict(values)
        self._by_number: dict[int, str] = {}
        for name, number in self._by_name.items():
            # First name wins for aliased numbers.
            self._by_number.setdefault(number, name)

    @property
    def values(self) -> dict[str, int]:
        return dict(self._by_name)

    def number_of(self, name: str) -> int:
        if name not in self._by_name:
            raise ValueError(f"Enum {self.full_name} has no value named '{name}'")
        return self._by_name[name]

    def name_of(self, number: int) -> Optional[str]:
        return self._by_number.get(number)

    @property
    def default_number(self) -> int:
        return next(iter(self._by_name.values()), 0)

    def __repr__(self) -> str:
        return f"EnumDescriptor({self.full_name!r})"


class FieldDescriptor:
    """Describes one field of a record type."""

    def __init__(
        self,
        name: str,
        type: FieldType,
        repeated: bool = False,
        message_type: Optional[MessageDescriptor] = None,
        enum_type: Optional[EnumDescriptor] = None,
        required: bool = False,
        default: Any = None,
    ):
        if type == FieldType.MESSAGE and message_type is None:
            raise ValueError(f"Field '{name}' of type message needs a message_type")
        if type == FieldType.ENUM and enum_type is None:
            raise ValueError(f"Field '{name}' of type enum needs an enum_type")
        if repeated and required:
            raise ValueError(f"Repeated field '{name}' cannot be required")

        self.name = name
        self.type = type
        self.repeated = repeated
        self.message_type = message_type
        self.enum_type = enum_type
        self.required = required
        self.default = default
        self.containing_type: Optional[MessageDescriptor] = None

    @property
    def full_name(self) -> str:
        if self.containing_type is None:
            return self.name
        return f"{self.containing_type.full_name}.{self.name}"

    @property
    def is_repeated(self) -> bool:
        return self.repeated

    @property
    def is_sub_record(self) -> bool:
        return self.type == FieldType.MESSAGE

    @property
    def is_floating_point(self) -> bool:
        return self.type in (FieldType.FLOAT, FieldType.DOUBLE)

    def default_value(self) -> Any:
        """Default for an unset singular scalar (None for sub-records)."""
        if self.type == FieldType.MESSAGE:
            return None
        if self.default is not None:
            return self.default
        if self.type == FieldType.ENUM:
            return self.enum_type.default_number
        return _SCALAR_DEFAULTS[self.type]

    def __repr__(self) -> str:
        label = "repeated " if self.repeated else ""
        return f"FieldDescriptor({self.full_name!r}, {label}{self.type.value})"


class MessageDescriptor:
    """Describes a record type: its fully-qualified name and ordered fields."""

    def __init__(self, full_name: str, fields: Sequence[FieldDescriptor] = ()):
        self.full_name = full_name
        self._fields: list[FieldDescriptor] = []
        self._fields_by_name: dict[str, FieldDescriptor] = {}
        for field in fields:
            self.add_field(field)

    @property
    def name(self) -> str:
        return self.full_name.rsplit('.', 1)[-1]

    @property
    def fields(self) -> tuple[FieldDescriptor, ...]:
        return tuple(self._fields)

    def add_field(self, field: FieldDescriptor) -> FieldDescriptor:
        """Append a field; use this for types that reference themselves."""
        if field.name in self._fields_by_name:
            raise ValueError(f"Duplicate field '{field.name}' in {self.full_name}")
        if field.containing_type is not None:
            raise ValueError(f"Field '{field.name}' already belongs to {field.containing_type.full_name}")
        field.containing_type = self
        self._fields.append(field)
        self._fields_by_name[field.name] = field
        return field

    def find_field(self, name: str) -> Optional[FieldDescriptor]:
        return self._fields_by_name.get(name)

    def field(self, name: str) -> FieldDescriptor:
        field = self._fields_by_name.get(name)
        if field is None:
            raise AttributeError(f"{self.full_name} has no field named '{name}'")
        return field

    def __repr__(self) -> str:
        return f"MessageDescriptor({self.full_name!r})"


class RecordReflection(ABC):
    """
    Capability the differ uses to inspect records.

    The differ never looks at record internals directly; any record
    representation can be compared by implementing this interface.
    """

    @abstractmethod
    def descriptor_of(self, record: Any) -> MessageDescriptor:
        """Return the type descriptor of a record instance."""

    def fields(self, descriptor: MessageDescriptor) -> Sequence[FieldDescriptor]:
        """Enumerate fields in declaration order."""
        return descriptor.fields

    @abstractmethod
    def get(self, record: Any, field: FieldDescriptor) -> Any:
        """Return a singular value (default when unset) or a sequence of elements."""

    @abstractmethod
    def is_set(self, record: Any, field: FieldDescriptor) -> bool:
        """Presence test; for repeated fields, whether any element exists."""

    @abstractmethod
    def new_empty(self, descriptor: MessageDescriptor) -> Any:
        """Construct an empty record of the given type."""
