"""Test assertion helpers built on the comparison engine."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Optional

from .engine import RecordDiffEngine
from .exceptions import TextParseError
from .formatting import format_report
from .paths import FieldPath
from .policy import ComparisonPolicy
from .text_format import parse_text_record, to_text


@dataclass(frozen=True)
class MatchOutcome:
    """Result of matching one actual record."""
    matched: bool
    explanation: str = ""


@dataclass(frozen=True)
class RecordMatcher:
    """
    Matches an actual record against an expected record or YAML text.

    Usage:
        matcher = equals_record("{num: 42, more: [{num: 10}]}").partially()
        assert_that(actual, matcher)

    Text expectations are parsed against the actual record's type each time
    the matcher runs.
    """
    expected: Any
    policy: ComparisonPolicy = field(default_factory=ComparisonPolicy)
    engine: RecordDiffEngine = field(default_factory=RecordDiffEngine, compare=False)

    def approximately(
        self,
        margin: Optional[float] = None,
        fraction: Optional[float] = None,
    ) -> RecordMatcher:
        return replace(self, policy=self.policy.with_approximate_floats(margin, fraction))

    def treating_nans_as_equal(self) -> RecordMatcher:
        return replace(self, policy=self.policy.with_nans_equal())

    def ignoring_fields(self, names: Iterable[str]) -> RecordMatcher:
        return replace(self, policy=self.policy.with_ignored_field_names(names))

    def ignoring_field_paths(self, paths: Iterable[str | FieldPath]) -> RecordMatcher:
        return replace(self, policy=self.policy.with_ignored_field_paths(paths))

    def ignoring_repeated_field_ordering(self) -> RecordMatcher:
        return replace(self, policy=self.policy.with_unordered_repeated())

    def partially(self) -> RecordMatcher:
        return replace(self, policy=self.policy.with_partial_scope())

    def match(self, actual: Any) -> MatchOutcome:
        """
        Match and explain.

        A text expectation that does not parse is a non-match, not an error.
        """
        if actual is None:
            return MatchOutcome(False, "which is None")

        if isinstance(self.expected, str):
            descriptor = self.engine.adapter.descriptor_of(actual)
            try:
                expected = parse_text_record(self.expected, descriptor)
            except TextParseError as e:
                return MatchOutcome(
                    False,
                    f"where <{self.expected}> doesn't parse as a {descriptor.full_name}:\n{e.reason}",
                )
        else:
            expected = self.expected

        matched, report = self.engine.compare(actual, expected, self.policy)
        return MatchOutcome(matched, format_report(report))

    def matches(self, actual: Any) -> bool:
        return self.match(actual).matched

    def explain(self, actual: Any) -> str:
        return self.match(actual).explanation

    def describe(self) -> str:
        return f"is {self.policy.describe()} to {self._expected_text()}"

    def describe_negation(self) -> str:
        return f"is not {self.policy.describe()} to {self._expected_text()}"

    def _expected_text(self) -> str:
        if isinstance(self.expected, str):
            return f"<{self.expected}>"
        descriptor = self.engine.adapter.descriptor_of(self.expected)
        return f"{descriptor.full_name} <{to_text(self.expected)}>"


def equals_record(expected: Any) -> RecordMatcher:
    """Matcher requiring identical field presence and values."""
    return RecordMatcher(expected, ComparisonPolicy.equal())


def equiv_to_record(expected: Any) -> RecordMatcher:
    """Matcher treating unset singular fields as equal to their defaults."""
    return RecordMatcher(expected, ComparisonPolicy.equivalent())


def assert_that(actual: Any, matcher: RecordMatcher) -> None:
    """
    Raise AssertionError describing the differences when ``actual`` does not match.
    """
    outcome = matcher.match(actual)
    if outcome.matched:
        return
    message = f"Expected: {matcher.describe()}"
    if outcome.explanation:
        message += f"\n{outcome.explanation}"
    raise AssertionError(message)
