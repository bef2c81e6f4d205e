"""Example usage of the recorddiff comparison engine."""

import json
import logging

from recorddiff import (
    ComparisonPolicy,
    EnumDescriptor,
    FieldDescriptor,
    FieldType,
    MessageDescriptor,
    RecordDiffEngine,
    assert_that,
    equals_record,
    parse_text_record,
)
from recorddiff.formatting import render_summary

# Sample record types
status = EnumDescriptor("billing.Status", {"PENDING": 0, "PAID": 1, "VOID": 2})

line_item = MessageDescriptor("billing.LineItem", [
    FieldDescriptor("sku", FieldType.STRING),
    FieldDescriptor("quantity", FieldType.INT32),
    FieldDescriptor("unit_price", FieldType.DOUBLE),
])

invoice = MessageDescriptor("billing.Invoice", [
    FieldDescriptor("id", FieldType.STRING, required=True),
    FieldDescriptor("total", FieldType.DOUBLE),
    FieldDescriptor("status", FieldType.ENUM, enum_type=status),
    FieldDescriptor("updated_at", FieldType.INT64),
    FieldDescriptor("line_items", FieldType.MESSAGE, repeated=True, message_type=line_item),
])

# Record produced by the system under test
actual = parse_text_record("""
id: INV-001
total: 100.004
status: PAID
updated_at: 1738490400
line_items:
  - {sku: GADGET-002, quantity: 2, unit_price: 25.5}
  - {sku: WIDGET-001, quantity: 5, unit_price: 10.0}
""", invoice)

# Record the test expects
expected = parse_text_record("""
id: INV-001
total: 100.0
status: PAID
line_items:
  - {sku: WIDGET-001, quantity: 5, unit_price: 10.0}
  - {sku: GADGET-002, quantity: 2, unit_price: 25.5}
""", invoice)


def main():
    print("=" * 60)
    print("recorddiff Comparison Engine - Example")
    print("=" * 60)

    engine = RecordDiffEngine()

    policy = (ComparisonPolicy()
              .with_margin(0.01)
              .with_unordered_repeated()
              .with_ignored_field_paths(["updated_at"]))

    matched, report = engine.compare(actual, expected, policy)

    print(f"\nPolicy: {policy.describe()}")
    print(f"Match: {matched}")
    print(f"\nExecution:")
    print(f"  Duration: {report.execution.duration_ms}ms")
    print(f"  Engine Version: {report.execution.engine_version}")

    print(f"\nSummary:")
    print(f"  Fields Compared: {report.summary.fields_compared}")
    print(f"  Mismatches: {report.summary.mismatches_found}")
    print(f"  Ignored: {report.summary.fields_ignored}")

    print("\n" + "-" * 60)
    print("Full JSON Report:")
    print(json.dumps(report.to_dict(), indent=2))


def example_with_mismatch():
    """Example that demonstrates a mismatch under exact comparison."""
    print("\n" + "=" * 60)
    print("Example with Mismatch")
    print("=" * 60)

    engine = RecordDiffEngine()
    matched, report = engine.compare(actual, expected)

    print(f"\n{render_summary(report)}")
    if not matched:
        print(f"\nDifferences:")
        for entry in report:
            print(f"  - {entry.describe()}")


def example_with_matcher():
    """Example using the assertion helpers with a text expectation."""
    print("\n" + "=" * 60)
    print("Example with Matcher")
    print("=" * 60)

    matcher = equals_record("{id: INV-001, line_items: [{sku: WIDGET-001, quantity: 4}]}")
    matcher = matcher.partially().ignoring_repeated_field_ordering()

    try:
        assert_that(actual, matcher)
    except AssertionError as e:
        print(f"\n{e}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    main()
    example_with_mismatch()
    example_with_matcher()
