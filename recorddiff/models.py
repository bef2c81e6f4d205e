"""Data models for the recorddiff engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional

from .paths import FieldPath


class Exactness(Enum):
    EQUAL = "equal"
    EQUIVALENT = "equivalent"


class FloatComparison(Enum):
    EXACT = "exact"
    APPROXIMATE = "approximate"


class RepeatedFieldComparison(Enum):
    ORDERED = "ordered"
    UNORDERED = "unordered"


class Scope(Enum):
    FULL = "full"
    PARTIAL = "partial"


class DiffKind(Enum):
    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"


@dataclass
class EngineConfig:
    """Global configuration for the comparison engine."""
    max_depth: int = 100
    collect_statistics: bool = True


@dataclass(frozen=True)
class DiffEntry:
    """
    A single difference found during comparison.

    ``old_value`` is the expected side and ``new_value`` the actual side,
    both already rendered as text.
    """
    path: FieldPath
    kind: DiffKind
    old_value: Optional[str] = None
    new_value: Optional[str] = None

    def describe(self) -> str:
        """Render this entry as one explanation line."""
        if self.kind == DiffKind.MODIFIED:
            return f"modified: {self.path}: {self.old_value} -> {self.new_value}"
        if self.kind == DiffKind.ADDED:
            return f"added: {self.path}: {self.new_value}"
        return f"removed: {self.path}: {self.old_value}"

    def to_dict(self) -> dict:
        return {
            "path": str(self.path),
            "kind": self.kind.value,
            "old_value": self.old_value,
            "new_value": self.new_value,
        }


@dataclass
class ExecutionInfo:
    """Execution metadata."""
    duration_ms: int
    timestamp: str
    engine_version: str = "1.0.0"

    def to_dict(self) -> dict:
        return {
            "duration_ms": self.duration_ms,
            "timestamp": self.timestamp,
            "engine_version": self.engine_version,
        }


@dataclass
class Summary:
    """Summary statistics of comparison."""
    fields_compared: int = 0
    mismatches_found: int = 0
    fields_ignored: int = 0

    def to_dict(self) -> dict:
        return {
            "fields_compared": self.fields_compared,
            "mismatches_found": self.mismatches_found,
            "fields_ignored": self.fields_ignored,
        }


@dataclass
class DiffReport:
    """Complete comparison report, entries in traversal order."""
    entries: list[DiffEntry] = field(default_factory=list)
    summary: Optional[Summary] = None
    execution: Optional[ExecutionInfo] = None

    @property
    def is_match(self) -> bool:
        return not self.entries

    def __iter__(self) -> Iterator[DiffEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def to_dict(self) -> dict:
        result = {
            "is_match": self.is_match,
            "entries": [e.to_dict() for e in self.entries],
        }
        if self.summary:
            result["summary"] = self.summary.to_dict()
        if self.execution:
            result["execution"] = self.execution.to_dict()
        return result
