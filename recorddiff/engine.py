"""Main comparison engine for recorddiff."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Optional

from .differ import Differ
from .exceptions import TerminalIndexUnsupportedError, TypeMismatchError
from .formatting import format_report
from .models import DiffReport, EngineConfig, ExecutionInfo, Summary
from .paths import FieldPath
from .policy import ComparisonPolicy
from .record import RecordAdapter
from .schema import FieldDescriptor, MessageDescriptor, RecordReflection

logger = logging.getLogger(__name__)


class RecordDiffEngine:
    """
    Compares an actual record against an expected one under a policy.

    Pipeline:
    1. Precondition checks: same record type, valid ignore paths
    2. Recursive diffing of both records
    3. Report assembly (entries, summary, execution metadata)

    Content differences never raise; only misuse of the engine does.
    """

    VERSION = "1.0.0"

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        adapter: Optional[RecordReflection] = None,
    ):
        """
        Initialize the engine.

        Args:
            config: Engine configuration (uses defaults if not provided)
            adapter: Reflection capability for the record representation
        """
        self.config = config or EngineConfig()
        self.adapter = adapter or RecordAdapter()

    def compare(
        self,
        actual: Any,
        expected: Any,
        policy: Optional[ComparisonPolicy] = None,
    ) -> tuple[bool, DiffReport]:
        """
        Compare two records.

        Args:
            actual: The record under test
            expected: The record it should match
            policy: Relaxations to apply (exact equality if not provided)

        Returns:
            Tuple of (matched, report)

        Raises:
            TypeMismatchError: if the records have different types
            TerminalIndexUnsupportedError: if an ignore path indexes a scalar leaf
        """
        policy = policy or ComparisonPolicy()
        start_time = time.time()

        descriptor = self._check_types(actual, expected)
        check_ignore_paths(policy, descriptor)

        differ = Differ(policy, self.adapter, max_depth=self.config.max_depth)
        differ.diff(actual, expected, descriptor)

        duration_ms = int((time.time() - start_time) * 1000)
        report = DiffReport(
            entries=differ.entries,
            execution=ExecutionInfo(
                duration_ms=duration_ms,
                timestamp=datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
                engine_version=self.VERSION,
            ),
        )
        if self.config.collect_statistics:
            report.summary = Summary(
                fields_compared=differ.fields_compared,
                mismatches_found=len(differ.entries),
                fields_ignored=differ.fields_ignored,
            )

        logger.debug(
            "Compared %s: %d difference(s) in %dms",
            descriptor.full_name, len(differ.entries), duration_ms,
        )
        return report.is_match, report

    def explain(
        self,
        actual: Any,
        expected: Any,
        policy: Optional[ComparisonPolicy] = None,
        separator: str = "\n",
    ) -> str:
        """Compare and render the differences; empty when the records match."""
        _, report = self.compare(actual, expected, policy)
        return format_report(report, separator)

    def _check_types(self, actual: Any, expected: Any) -> MessageDescriptor:
        actual_type = self.adapter.descriptor_of(actual)
        expected_type = self.adapter.descriptor_of(expected)
        if not same_layout(actual_type, expected_type):
            raise TypeMismatchError(actual_type.full_name, expected_type.full_name)
        return expected_type


def same_layout(
    first: MessageDescriptor,
    second: MessageDescriptor,
    seen: Optional[set] = None,
) -> bool:
    """
    Check that two descriptors describe the same record type.

    Distinct descriptor objects qualify when their names and field layouts
    agree, recursively through sub-record types.
    """
    if first is second:
        return True
    if first.full_name != second.full_name:
        return False

    seen = set() if seen is None else seen
    key = (id(first), id(second))
    if key in seen:
        return True
    seen.add(key)

    if len(first.fields) != len(second.fields):
        return False
    for a, b in zip(first.fields, second.fields):
        if (a.name, a.type, a.repeated) != (b.name, b.type, b.repeated):
            return False
        if a.is_sub_record and not same_layout(a.message_type, b.message_type, seen):
            return False
    return True


def check_ignore_paths(policy: ComparisonPolicy, descriptor: MessageDescriptor) -> None:
    """
    Validate ignore paths against the record type.

    A path whose last segment carries an index must select an element of a
    repeated sub-record field; indexing a scalar leaf is unsupported.

    Raises:
        TerminalIndexUnsupportedError: for an indexed scalar leaf
    """
    for path in policy.ignore_field_paths:
        if path.last is None or path.last.index is None:
            continue
        field = _resolve_field(path, descriptor)
        if field is None:
            continue
        if not (field.is_repeated and field.is_sub_record):
            raise TerminalIndexUnsupportedError(str(path))


def _resolve_field(path: FieldPath, descriptor: MessageDescriptor) -> Optional[FieldDescriptor]:
    current = descriptor
    field = None
    for segment in path:
        if current is None:
            logger.warning("Ignore path '%s' descends into a scalar field", path)
            return None
        field = current.find_field(segment.name)
        if field is None:
            logger.warning(
                "Ignore path '%s' names unknown field '%s' of %s",
                path, segment.name, current.full_name,
            )
            return None
        current = field.message_type if field.is_sub_record else None
    return field


def compare(
    actual: Any,
    expected: Any,
    policy: Optional[ComparisonPolicy] = None,
    config: Optional[EngineConfig] = None,
) -> tuple[bool, DiffReport]:
    """
    Convenience function to compare two records.

    Returns:
        Tuple of (matched, report)
    """
    engine = RecordDiffEngine(config)
    return engine.compare(actual, expected, policy)


def explain(
    actual: Any,
    expected: Any,
    policy: Optional[ComparisonPolicy] = None,
    separator: str = "\n",
) -> str:
    """Convenience function returning the explanation of the differences."""
    return RecordDiffEngine().explain(actual, expected, policy, separator)
