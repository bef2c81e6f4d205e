"""Recursive, policy-driven comparison of two records."""

from __future__ import annotations

import logging
from typing import Any, Optional

from .comparators import compare_scalars
from .exceptions import MaxDepthExceededError
from .matcher import RepeatedFieldMatcher
from .models import DiffEntry, DiffKind, Exactness, RepeatedFieldComparison, Scope
from .paths import FieldPath, ROOT
from .policy import ComparisonPolicy
from .record import value_or_empty
from .schema import FieldDescriptor, MessageDescriptor, RecordReflection
from .text_format import format_value

logger = logging.getLogger(__name__)


class Differ:
    """
    Walks two records field by field and collects differences.

    Handles:
    - Ignore rules by qualified field name and by relative path
    - Presence semantics (equal vs. equivalent, full vs. partial scope)
    - Repeated fields through the RepeatedFieldMatcher
    - Float tolerance and NaN handling for leaves

    ``old_value`` of every entry is taken from the expected record and
    ``new_value`` from the actual one.
    """

    def __init__(
        self,
        policy: ComparisonPolicy,
        adapter: RecordReflection,
        max_depth: int = 100,
    ):
        self.policy = policy
        self.adapter = adapter
        self.max_depth = max_depth
        self.matcher = RepeatedFieldMatcher(policy.repeated_field_comparison)

        self.entries: list[DiffEntry] = []
        self.fields_compared = 0
        self.fields_ignored = 0

    def diff(
        self,
        actual: Any,
        expected: Any,
        descriptor: MessageDescriptor,
        path: FieldPath = ROOT,
        depth: int = 0,
    ) -> bool:
        """
        Compare two records of type ``descriptor`` at ``path``.

        Returns:
            True if no new differences were found
        """
        if depth > self.max_depth:
            raise MaxDepthExceededError(self.max_depth, str(path) or "<root>")

        before = len(self.entries)
        for field in self.adapter.fields(descriptor):
            self._diff_field(actual, expected, field, path.child(field.name), depth)
        return len(self.entries) == before

    def _diff_field(
        self,
        actual: Any,
        expected: Any,
        field: FieldDescriptor,
        path: FieldPath,
        depth: int,
    ):
        if self.policy.is_field_name_ignored(field.full_name):
            logger.debug("Ignoring %s by name (%s)", path, field.full_name)
            self.fields_ignored += 1
            return
        if self.policy.is_path_ignored(path):
            logger.debug("Ignoring %s by path", path)
            self.fields_ignored += 1
            return

        if field.is_repeated:
            self._diff_repeated(actual, expected, field, path, depth)
        else:
            self._diff_singular(actual, expected, field, path, depth)

    def _diff_singular(
        self,
        actual: Any,
        expected: Any,
        field: FieldDescriptor,
        path: FieldPath,
        depth: int,
    ):
        actual_set = self.adapter.is_set(actual, field)
        expected_set = self.adapter.is_set(expected, field)

        if self.policy.scope == Scope.PARTIAL and not expected_set:
            return
        if not actual_set and not expected_set:
            return

        self.fields_compared += 1

        if self.policy.exactness == Exactness.EQUAL and actual_set != expected_set:
            if actual_set:
                self._add_diff(path, DiffKind.ADDED,
                               new_value=format_value(field, self.adapter.get(actual, field)))
            else:
                self._add_diff(path, DiffKind.REMOVED,
                               old_value=format_value(field, self.adapter.get(expected, field)))
            return

        # Both set, or equivalence mode where unset reads as the default.
        actual_value = value_or_empty(self.adapter, actual, field)
        expected_value = value_or_empty(self.adapter, expected, field)

        if field.is_sub_record:
            self.diff(actual_value, expected_value, field.message_type, path, depth + 1)
            return

        if not compare_scalars(field, actual_value, expected_value, self.policy):
            self._add_diff(
                path,
                DiffKind.MODIFIED,
                old_value=format_value(field, expected_value),
                new_value=format_value(field, actual_value),
            )

    def _diff_repeated(
        self,
        actual: Any,
        expected: Any,
        field: FieldDescriptor,
        path: FieldPath,
        depth: int,
    ):
        actual_items = list(self.adapter.get(actual, field))
        expected_items = list(self.adapter.get(expected, field))

        if self.policy.scope == Scope.PARTIAL and not expected_items:
            return
        if not actual_items and not expected_items:
            return

        self.fields_compared += 1

        element_differs: dict[tuple[int, int], Differ] = {}

        def score(i: int, j: int) -> int:
            child = self._diff_elements(
                field, actual_items[i], expected_items[j], path.with_index(j), depth
            )
            element_differs[(i, j)] = child
            return len(child.entries)

        result = self.matcher.match(len(actual_items), len(expected_items), score)
        expected_to_actual = {j: i for i, j in result.pairs}

        for j, expected_item in enumerate(expected_items):
            element_path = path.with_index(j)
            i = expected_to_actual.get(j)
            if i is None:
                if self._is_element_ignored(element_path):
                    continue
                self._add_diff(element_path, DiffKind.REMOVED,
                               old_value=format_value(field, expected_item))
                continue

            child = element_differs.get((i, j))
            if child is None:
                child = self._diff_elements(field, actual_items[i], expected_item, element_path, depth)
            self._absorb(child)

        # Partial unordered comparison is a subset check: surplus actual elements pass.
        if (self.policy.scope == Scope.PARTIAL
                and self.policy.repeated_field_comparison == RepeatedFieldComparison.UNORDERED):
            return

        for i in result.unmatched_actual:
            element_path = path.with_index(i)
            if self._is_element_ignored(element_path):
                continue
            self._add_diff(element_path, DiffKind.ADDED,
                           new_value=format_value(field, actual_items[i]))

    def _diff_elements(
        self,
        field: FieldDescriptor,
        actual_item: Any,
        expected_item: Any,
        path: FieldPath,
        depth: int,
    ) -> Differ:
        """Compare one element pair in a child differ so the result can be scored."""
        child = Differ(self.policy, self.adapter, self.max_depth)
        if self._is_element_ignored(path):
            child.fields_ignored += 1
            return child

        if field.is_sub_record:
            child.diff(actual_item, expected_item, field.message_type, path, depth + 1)
        elif not compare_scalars(field, actual_item, expected_item, self.policy):
            child._add_diff(
                path,
                DiffKind.MODIFIED,
                old_value=format_value(field, expected_item),
                new_value=format_value(field, actual_item),
            )
        return child

    def _is_element_ignored(self, path: FieldPath) -> bool:
        if self.policy.is_path_ignored(path):
            logger.debug("Ignoring element %s by path", path)
            return True
        return False

    def _absorb(self, child: Differ):
        self.entries.extend(child.entries)
        self.fields_compared += child.fields_compared
        self.fields_ignored += child.fields_ignored

    def _add_diff(
        self,
        path: FieldPath,
        kind: DiffKind,
        old_value: Optional[str] = None,
        new_value: Optional[str] = None,
    ):
        """Add a diff entry."""
        self.entries.append(DiffEntry(
            path=path,
            kind=kind,
            old_value=old_value,
            new_value=new_value,
        ))
