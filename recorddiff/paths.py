"""Field path model: parsing and matching of relative record paths."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, Optional

from .exceptions import MalformedPathError


_NAME_PATTERN = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')


@dataclass(frozen=True)
class FieldPathSegment:
    """One step of a field path: a field name plus an optional element index."""
    name: str
    index: Optional[int] = None

    def __str__(self) -> str:
        if self.index is None:
            return self.name
        return f"{self.name}[{self.index}]"

    def matches(self, concrete: FieldPathSegment) -> bool:
        """Check this (rule) segment against a concrete traversal segment."""
        if self.name != concrete.name:
            return False
        return self.index is None or self.index == concrete.index


@dataclass(frozen=True)
class FieldPath:
    """
    Root-relative address of a field inside a record.

    A segment without an index denotes either a singular field or, for a
    repeated field, all of its elements.
    """
    segments: tuple[FieldPathSegment, ...] = ()

    @classmethod
    def parse(cls, text: str) -> FieldPath:
        """
        Parse dotted/bracketed path text such as ``more[0].num``.

        Raises:
            MalformedPathError: on empty segments or bad indices
        """
        if not isinstance(text, str):
            raise MalformedPathError(repr(text), "path must be a string")
        if not text:
            raise MalformedPathError(text, "path is empty")

        segments = []
        for part in text.split('.'):
            segments.append(cls._parse_segment(text, part))

        return cls(tuple(segments))

    @staticmethod
    def _parse_segment(text: str, part: str) -> FieldPathSegment:
        if not part:
            raise MalformedPathError(text, "empty segment")

        bracket = part.find('[')
        if bracket < 0:
            name, index = part, None
        else:
            if not part.endswith(']'):
                raise MalformedPathError(text, f"unterminated index in '{part}'")
            name = part[:bracket]
            index_text = part[bracket + 1:-1].strip()
            if index_text.startswith('-') and index_text[1:].isdigit():
                raise MalformedPathError(text, f"negative index in '{part}'")
            if not index_text.isdigit():
                raise MalformedPathError(text, f"non-numeric index in '{part}'")
            index = int(index_text)

        if not name:
            raise MalformedPathError(text, f"missing field name in '{part}'")
        if not _NAME_PATTERN.match(name):
            raise MalformedPathError(text, f"invalid field name '{name}'")

        return FieldPathSegment(name, index)

    def child(self, name: str, index: Optional[int] = None) -> FieldPath:
        """Return a new path with one more segment appended."""
        return FieldPath(self.segments + (FieldPathSegment(name, index),))

    def with_index(self, index: int) -> FieldPath:
        """Return a copy of this path whose last segment carries ``index``."""
        if not self.segments:
            raise ValueError("Cannot index the root path")
        last = self.segments[-1]
        return FieldPath(self.segments[:-1] + (FieldPathSegment(last.name, index),))

    def matches(self, concrete: FieldPath) -> bool:
        """
        Check whether this (ignore rule) path applies to a concrete path.

        Both paths must have the same length; a rule segment without an index
        matches every index at that position.
        """
        if len(self.segments) != len(concrete.segments):
            return False
        return all(
            rule.matches(segment)
            for rule, segment in zip(self.segments, concrete.segments)
        )

    @property
    def last(self) -> Optional[FieldPathSegment]:
        return self.segments[-1] if self.segments else None

    def __len__(self) -> int:
        return len(self.segments)

    def __iter__(self) -> Iterator[FieldPathSegment]:
        return iter(self.segments)

    def __bool__(self) -> bool:
        return bool(self.segments)

    def __str__(self) -> str:
        return '.'.join(str(segment) for segment in self.segments)


def parse_path(text: str | FieldPath) -> FieldPath:
    """Parse text into a FieldPath, passing FieldPath values through."""
    if isinstance(text, FieldPath):
        return text
    return FieldPath.parse(text)


def matches_prefix(rule: FieldPath, concrete: FieldPath) -> bool:
    """Check whether an ignore rule applies to a concrete traversal path."""
    return rule.matches(concrete)


ROOT = FieldPath()
