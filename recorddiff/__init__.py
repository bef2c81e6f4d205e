"""
recorddiff - Structural comparison engine for schema-described records

Compares an actual record against an expected one under a declarative
policy (equality or equivalence, float tolerance, NaN handling, unordered
repeated fields, partial scope, ignored fields and paths) and explains the
differences path by path.
"""

from .engine import RecordDiffEngine, compare, explain
from .exceptions import (
    RecordDiffError,
    MalformedPathError,
    TerminalIndexUnsupportedError,
    TypeMismatchError,
    PolicyError,
    TextParseError,
    MaxDepthExceededError,
)
from .formatting import format_report
from .matchers import (
    RecordMatcher,
    equals_record,
    equiv_to_record,
    assert_that,
)
from .matcher import RepeatedFieldMatcher, MatchResult
from .models import (
    EngineConfig,
    DiffReport,
    DiffEntry,
    DiffKind,
    Exactness,
    FloatComparison,
    RepeatedFieldComparison,
    Scope,
)
from .paths import FieldPath, FieldPathSegment
from .policy import ComparisonPolicy
from .record import Record, RecordAdapter
from .schema import (
    EnumDescriptor,
    FieldDescriptor,
    FieldType,
    MessageDescriptor,
    RecordReflection,
)
from .text_format import parse_text_record, to_text

__version__ = "1.0.0"
__all__ = [
    # Engine
    "RecordDiffEngine",
    "EngineConfig",
    "compare",
    "explain",
    "format_report",
    # Policy
    "ComparisonPolicy",
    "Exactness",
    "FloatComparison",
    "RepeatedFieldComparison",
    "Scope",
    "FieldPath",
    "FieldPathSegment",
    # Reports
    "DiffReport",
    "DiffEntry",
    "DiffKind",
    # Matching
    "RepeatedFieldMatcher",
    "MatchResult",
    # Records
    "Record",
    "RecordAdapter",
    "RecordReflection",
    "MessageDescriptor",
    "FieldDescriptor",
    "EnumDescriptor",
    "FieldType",
    "parse_text_record",
    "to_text",
    # Assertions
    "RecordMatcher",
    "equals_record",
    "equiv_to_record",
    "assert_that",
    # Errors
    "RecordDiffError",
    "MalformedPathError",
    "TerminalIndexUnsupportedError",
    "TypeMismatchError",
    "PolicyError",
    "TextParseError",
    "MaxDepthExceededError",
]
