"""Immutable comparison policy and its relaxation builders."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Iterable, Optional

from .exceptions import PolicyError
from .models import Exactness, FloatComparison, RepeatedFieldComparison, Scope
from .paths import FieldPath, matches_prefix, parse_path


@dataclass(frozen=True)
class ComparisonPolicy:
    """
    All relaxations applied when comparing an actual record to an expected one.

    Builders never mutate; each returns a new policy with one more relaxation.

    Usage:
        policy = (ComparisonPolicy()
                  .with_margin(0.01)
                  .with_unordered_repeated()
                  .with_ignored_field_paths(["more.num"]))
    """
    exactness: Exactness = Exactness.EQUAL
    float_comparison: FloatComparison = FloatComparison.EXACT
    float_margin: Optional[float] = None
    float_fraction: Optional[float] = None
    treat_nan_as_equal: bool = False
    repeated_field_comparison: RepeatedFieldComparison = RepeatedFieldComparison.ORDERED
    scope: Scope = Scope.FULL
    ignore_field_names: frozenset[str] = field(default_factory=frozenset)
    ignore_field_paths: tuple[FieldPath, ...] = ()

    def __post_init__(self):
        if self.float_margin is not None:
            _validate_margin(self.float_margin)
        if self.float_fraction is not None:
            _validate_fraction(self.float_fraction)

        object.__setattr__(self, 'ignore_field_names', frozenset(self.ignore_field_names))

        paths = []
        for path in self.ignore_field_paths:
            parsed = parse_path(path)
            if parsed not in paths:
                paths.append(parsed)
        object.__setattr__(self, 'ignore_field_paths', tuple(paths))

    @classmethod
    def equal(cls) -> ComparisonPolicy:
        return cls(exactness=Exactness.EQUAL)

    @classmethod
    def equivalent(cls) -> ComparisonPolicy:
        return cls(exactness=Exactness.EQUIVALENT)

    def with_equivalence(self) -> ComparisonPolicy:
        """Treat unset singular fields as equal to their default values."""
        return replace(self, exactness=Exactness.EQUIVALENT)

    def with_approximate_floats(
        self,
        margin: Optional[float] = None,
        fraction: Optional[float] = None,
    ) -> ComparisonPolicy:
        """Compare floating-point leaves within a tolerance."""
        policy = replace(self, float_comparison=FloatComparison.APPROXIMATE)
        if margin is not None:
            policy = policy.with_margin(margin)
        if fraction is not None:
            policy = policy.with_fraction(fraction)
        return policy

    def with_margin(self, margin: float) -> ComparisonPolicy:
        """Absolute tolerance; implies approximate float comparison."""
        _validate_margin(margin)
        return replace(
            self,
            float_comparison=FloatComparison.APPROXIMATE,
            float_margin=float(margin),
        )

    def with_fraction(self, fraction: float) -> ComparisonPolicy:
        """Tolerance relative to the expected value; implies approximate comparison."""
        _validate_fraction(fraction)
        return replace(
            self,
            float_comparison=FloatComparison.APPROXIMATE,
            float_fraction=float(fraction),
        )

    def with_nans_equal(self) -> ComparisonPolicy:
        return replace(self, treat_nan_as_equal=True)

    def with_unordered_repeated(self) -> ComparisonPolicy:
        return replace(self, repeated_field_comparison=RepeatedFieldComparison.UNORDERED)

    def with_partial_scope(self) -> ComparisonPolicy:
        return replace(self, scope=Scope.PARTIAL)

    def with_ignored_field_names(self, names: Iterable[str]) -> ComparisonPolicy:
        """Ignore fields by fully-qualified name (``pkg.Type.field``) anywhere in the tree."""
        if isinstance(names, str):
            names = [names]
        return replace(self, ignore_field_names=self.ignore_field_names | frozenset(names))

    def with_ignored_field_paths(self, paths: Iterable[str | FieldPath]) -> ComparisonPolicy:
        """
        Ignore fields by path relative to the comparison root.

        Raises:
            MalformedPathError: if any path text fails to parse
        """
        if isinstance(paths, (str, FieldPath)):
            paths = [paths]
        parsed = [parse_path(p) for p in paths]
        return replace(self, ignore_field_paths=self.ignore_field_paths + tuple(parsed))

    def is_field_name_ignored(self, full_name: str) -> bool:
        return full_name in self.ignore_field_names

    def is_path_ignored(self, path: FieldPath) -> bool:
        return any(matches_prefix(rule, path) for rule in self.ignore_field_paths)

    def describe(self) -> str:
        """Describe the relaxations in words, e.g. ``partially equal``."""
        parts = []
        if self.repeated_field_comparison == RepeatedFieldComparison.UNORDERED:
            parts.append("(ignoring repeated field ordering)")
        if self.ignore_field_names:
            parts.append(f"(ignoring fields: {', '.join(sorted(self.ignore_field_names))})")
        if self.ignore_field_paths:
            paths = ', '.join(str(p) for p in self.ignore_field_paths)
            parts.append(f"(ignoring field paths: {paths})")
        if self.float_comparison == FloatComparison.APPROXIMATE:
            parts.append("approximately")
            tolerances = []
            if self.float_margin is not None:
                tolerances.append(
                    f"absolute error of float or double fields <= {self.float_margin!r}"
                )
            if self.float_fraction is not None:
                tolerances.append(
                    f"relative error of float or double fields <= {self.float_fraction!r}"
                )
            if tolerances:
                parts.append(f"({' or '.join(tolerances)})")
        if self.scope == Scope.PARTIAL:
            parts.append("partially")
        parts.append("equal" if self.exactness == Exactness.EQUAL else "equivalent")
        if self.treat_nan_as_equal:
            parts.append("(treating NaNs as equal)")
        return ' '.join(parts)


def _validate_margin(margin: float) -> None:
    if isinstance(margin, bool) or not isinstance(margin, (int, float)):
        raise PolicyError("margin", f"expected a number, got {type(margin).__name__}")
    if math.isnan(margin) or margin < 0:
        raise PolicyError("margin", f"must be >= 0.0, got {margin}")


def _validate_fraction(fraction: float) -> None:
    if isinstance(fraction, bool) or not isinstance(fraction, (int, float)):
        raise PolicyError("fraction", f"expected a number, got {type(fraction).__name__}")
    if not 0.0 <= fraction < 1.0:
        raise PolicyError("fraction", f"must be >= 0.0 and < 1.0, got {fraction}")
