"""Leaf value comparison under a comparison policy."""

from __future__ import annotations

import math
from typing import Any

from .models import FloatComparison
from .policy import ComparisonPolicy
from .schema import FieldDescriptor


def compare_floats(actual: float, expected: float, policy: ComparisonPolicy) -> bool:
    """
    Compare two floating-point values.

    Exact mode requires value equality. Approximate mode accepts a difference
    within the absolute margin or within ``fraction * |expected|``; with
    neither configured, ``math.isclose`` defaults apply. NaN only matches NaN
    when the policy treats NaNs as equal.
    """
    if math.isnan(actual) or math.isnan(expected):
        return math.isnan(actual) and math.isnan(expected) and policy.treat_nan_as_equal

    if actual == expected:
        return True

    if policy.float_comparison == FloatComparison.EXACT:
        return False

    # Infinities only match themselves.
    if math.isinf(actual) or math.isinf(expected):
        return False

    margin = policy.float_margin
    fraction = policy.float_fraction
    if margin is None and fraction is None:
        return math.isclose(actual, expected)

    diff = abs(actual - expected)
    if margin is not None and diff <= margin:
        return True
    if fraction is not None and diff <= fraction * abs(expected):
        return True
    return False


def compare_scalars(
    field: FieldDescriptor,
    actual: Any,
    expected: Any,
    policy: ComparisonPolicy,
) -> bool:
    """Compare two leaf values of ``field``."""
    if field.is_floating_point:
        return compare_floats(actual, expected, policy)
    return actual == expected
