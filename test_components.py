"""Tests for recorddiff building blocks: paths, pairing, records, text and matchers."""

import copy

import pytest
from recorddiff import (
    EnumDescriptor,
    FieldDescriptor,
    FieldPath,
    FieldPathSegment,
    FieldType,
    MessageDescriptor,
    Record,
    RecordDiffEngine,
    RecordReflection,
    RepeatedFieldComparison,
    RepeatedFieldMatcher,
    ComparisonPolicy,
    assert_that,
    equals_record,
    equiv_to_record,
    parse_text_record,
    to_text,
    MalformedPathError,
    TextParseError,
)
from recorddiff.paths import matches_prefix
from recorddiff.text_format import c_escape, simple_dtoa, simple_ftoa


COLOR = EnumDescriptor("recorddiff.tests.Color", {"RED": 0, "GREEN": 1, "BLUE": 2})

SIMPLE = MessageDescriptor("recorddiff.tests.TestMessage", [
    FieldDescriptor("num", FieldType.INT32),
    FieldDescriptor("name", FieldType.STRING),
    FieldDescriptor("val", FieldType.DOUBLE),
    FieldDescriptor("color", FieldType.ENUM, enum_type=COLOR),
])

CONTAINER = MessageDescriptor("recorddiff.tests.TestMessage2", [
    FieldDescriptor("one", FieldType.MESSAGE, message_type=SIMPLE),
    FieldDescriptor("more", FieldType.MESSAGE, repeated=True, message_type=SIMPLE),
    FieldDescriptor("num", FieldType.INT32, repeated=True),
])

SCALARS = MessageDescriptor("recorddiff.tests.Scalars", [
    FieldDescriptor("id", FieldType.UINT32, required=True),
    FieldDescriptor("ratio", FieldType.FLOAT),
    FieldDescriptor("flag", FieldType.BOOL),
    FieldDescriptor("blob", FieldType.BYTES),
    FieldDescriptor("big", FieldType.INT64),
])


class TestFieldPath:
    """Test field path parsing and matching."""

    def test_parse(self):
        """Test dotted and indexed segments are parsed."""
        path = FieldPath.parse("more[0].num")
        assert path.segments == (FieldPathSegment("more", 0), FieldPathSegment("num"))
        assert str(path) == "more[0].num"
        assert len(path) == 2

    def test_parse_single(self):
        """Test a single field name is a one-segment path."""
        path = FieldPath.parse("num")
        assert path.last == FieldPathSegment("num")

    @pytest.mark.parametrize("text", [
        "",
        "a..b",
        "a.",
        ".a",
        "[0]",
        "a[x]",
        "a[-1]",
        "a[0",
        "a[]",
        "1abc",
        "a-b",
    ])
    def test_malformed(self, text):
        """Test malformed path text is rejected."""
        with pytest.raises(MalformedPathError):
            FieldPath.parse(text)

    def test_malformed_is_value_error(self):
        """Test path errors are also ValueErrors."""
        with pytest.raises(ValueError):
            FieldPath.parse("a[-2]")

    def test_wildcard_matching(self):
        """Test an unindexed rule segment matches any index."""
        rule = FieldPath.parse("more.num")
        assert rule.matches(FieldPath.parse("more[3].num"))
        assert rule.matches(FieldPath.parse("more.num"))
        assert not rule.matches(FieldPath.parse("more[3].name"))

    def test_indexed_matching(self):
        """Test an indexed rule segment matches only that index."""
        rule = FieldPath.parse("more[0].num")
        assert rule.matches(FieldPath.parse("more[0].num"))
        assert not rule.matches(FieldPath.parse("more[1].num"))

    def test_length_must_match(self):
        """Test rules never match ancestors or descendants."""
        rule = FieldPath.parse("one")
        assert not rule.matches(FieldPath.parse("one.num"))
        assert not FieldPath.parse("one.num").matches(rule)

    def test_matches_prefix(self):
        """Test the module-level rule check agrees with FieldPath.matches."""
        rule = FieldPath.parse("more.num")
        assert matches_prefix(rule, FieldPath.parse("more[1].num"))
        assert not matches_prefix(rule, FieldPath.parse("one.num"))

    def test_child_and_with_index(self):
        """Test building concrete paths during traversal."""
        path = FieldPath().child("more").with_index(2).child("num")
        assert str(path) == "more[2].num"


class TestRepeatedFieldMatcher:
    """Test pairing of repeated field elements."""

    def test_ordered(self):
        """Test ordered pairing by position."""
        result = RepeatedFieldMatcher().match(3, 2, lambda i, j: 0)
        assert result.pairs == [(0, 0), (1, 1)]
        assert result.unmatched_actual == [2]
        assert result.unmatched_expected == []

    def test_unordered_equal_elements(self):
        """Test equal elements pair regardless of position."""
        actual = ["b", "a", "c"]
        expected = ["a", "c", "b"]

        matcher = RepeatedFieldMatcher(RepeatedFieldComparison.UNORDERED)
        result = matcher.match(3, 3, lambda i, j: 0 if actual[i] == expected[j] else 1)
        assert result.pairs == [(1, 0), (2, 1), (0, 2)]

    def test_unordered_ties_prefer_lowest_indices(self):
        """Test identical elements pair in index order."""
        matcher = RepeatedFieldMatcher(RepeatedFieldComparison.UNORDERED)
        result = matcher.match(2, 2, lambda i, j: 0)
        assert result.pairs == [(0, 0), (1, 1)]

    def test_unordered_maximizes_equal_pairs(self):
        """Test an earlier choice is revised to pair more elements equally."""
        scores = [[0, 0], [0, 1]]

        matcher = RepeatedFieldMatcher(RepeatedFieldComparison.UNORDERED)
        result = matcher.match(2, 2, lambda i, j: scores[i][j])
        assert result.pairs == [(1, 0), (0, 1)]

    def test_unordered_leftovers_by_score(self):
        """Test unequal elements pair by lowest difference score."""
        scores = [[2, 1], [1, 3]]

        matcher = RepeatedFieldMatcher(RepeatedFieldComparison.UNORDERED)
        result = matcher.match(2, 2, lambda i, j: scores[i][j])
        assert result.pairs == [(1, 0), (0, 1)]

    def test_unordered_unmatched(self):
        """Test surplus actual elements stay unmatched."""
        scores = [[1], [0], [2]]

        matcher = RepeatedFieldMatcher(RepeatedFieldComparison.UNORDERED)
        result = matcher.match(3, 1, lambda i, j: scores[i][j])
        assert result.pairs == [(1, 0)]
        assert result.unmatched_actual == [0, 2]
        assert result.to_dict()["pairs"] == [[1, 0]]


class TestRecord:
    """Test the dynamic record model."""

    def test_set_and_get(self):
        """Test attribute and method access."""
        rec = Record(SIMPLE, num=42)
        rec.name = "x"
        assert rec.num == 42
        assert rec.get("name") == "x"
        assert rec.has("num")
        assert not rec.has("val")
        assert rec.val == 0.0

    def test_enum_by_name(self):
        """Test enum values can be set by name."""
        rec = Record(SIMPLE, color="BLUE")
        assert rec.color == 2
        with pytest.raises(ValueError):
            rec.color = "PURPLE"

    def test_type_checks(self):
        """Test values of the wrong type are rejected."""
        rec = Record(SIMPLE)
        with pytest.raises(TypeError):
            rec.num = "1"
        with pytest.raises(TypeError):
            rec.num = True
        with pytest.raises(ValueError):
            rec.num = 2 ** 31
        with pytest.raises(AttributeError):
            rec.bogus = 1

    def test_float_rounding(self):
        """Test float fields store single-precision values."""
        rec = Record(SCALARS, ratio=0.1)
        assert rec.ratio != 0.1
        assert simple_ftoa(rec.ratio) == "0.1"

    def test_clear(self):
        """Test clearing restores the unset state."""
        rec = Record(SIMPLE, num=1)
        rec.clear("num")
        assert not rec.has("num")
        rec.num = 2
        rec.num = None
        assert not rec.has("num")

    def test_sub_records(self):
        """Test sub-record presence, mutable access and repeated adds."""
        rec = Record(CONTAINER)
        assert rec.one is None
        rec.mutable("one").num = 5
        assert rec.has("one")
        added = rec.add("more", num=10)
        rec.add("num", 3)
        assert added.num == 10
        assert len(rec.more) == 1
        assert rec.num == [3]

    def test_repeated_rejects_scalar(self):
        """Test repeated fields require a sequence."""
        with pytest.raises(TypeError):
            Record(CONTAINER, num=1)

    def test_copy_is_deep(self):
        """Test copies do not share sub-records."""
        rec = Record.from_dict(CONTAINER, {"one": {"num": 1}, "more": [{"num": 2}]})
        clone = rec.copy()
        clone.one.num = 9
        clone.more[0].num = 8
        assert rec.one.num == 1
        assert rec.more[0].num == 2

    def test_copy_module(self):
        """Test copy.copy and copy.deepcopy produce independent records."""
        rec = Record.from_dict(CONTAINER, {"one": {"num": 1}, "num": [1, 2]})

        for clone in (copy.copy(rec), copy.deepcopy(rec)):
            assert clone.to_dict() == rec.to_dict()
            clone.one.num = 9
            clone.add("num", 3)
            assert rec.one.num == 1
            assert rec.num == [1, 2]

    def test_reading_repeated_does_not_store(self):
        """Test reading an unset repeated field leaves the record unchanged."""
        rec = Record(CONTAINER)
        assert rec.more == []
        assert rec.get("num") == []
        assert "more" not in rec._values
        assert "num" not in rec._values

    def test_compare_leaves_inputs_untouched(self):
        """Test comparing records does not write to either side."""
        actual = Record(CONTAINER)
        expected = Record(CONTAINER, num=[1])

        RecordDiffEngine().compare(actual, expected)
        assert actual._values == {}
        assert list(expected._values) == ["num"]

    def test_dict_round_trip(self):
        """Test plain-data conversion keeps present fields only."""
        data = {"one": {"num": 1}, "more": [{"name": "a"}], "num": [1, 2]}
        assert Record.from_dict(CONTAINER, data).to_dict() == data

    def test_required_fields(self):
        """Test required field tracking."""
        rec = Record(SCALARS)
        assert rec.missing_required_fields() == ["id"]
        rec.id = 7
        assert rec.is_initialized()

    def test_repr(self):
        """Test repr shows the type and present fields."""
        assert repr(Record(SIMPLE, num=1)) == "<recorddiff.tests.TestMessage num: 1>"


class TestTextFormat:
    """Test rendering and YAML text expectations."""

    def test_to_text(self):
        """Test single-line rendering in declaration order."""
        rec = parse_text_record(
            '{num: [3], more: [{num: 10}, {num: 20}], one: {num: 1, name: "x"}}', CONTAINER
        )
        assert to_text(rec) == 'one { num: 1 name: "x" } more { num: 10 } more { num: 20 } num: 3'

    def test_to_text_empty_sub_record(self):
        """Test an empty but present sub-record renders as braces."""
        assert to_text(parse_text_record('{one: {}}', CONTAINER)) == "one { }"

    def test_simple_dtoa(self):
        """Test shortest round-trip double rendering."""
        assert simple_dtoa(1.0) == "1"
        assert simple_dtoa(0.9) == "0.9"
        assert simple_dtoa(0.1 + 0.2) == "0.30000000000000004"
        assert simple_dtoa(float("nan")) == "nan"
        assert simple_dtoa(float("-inf")) == "-inf"

    def test_c_escape(self):
        """Test strings and bytes are escaped for display."""
        assert c_escape('a"b\n') == 'a\\"b\\n'
        assert c_escape(b'\x01A') == '\\001A'

    def test_scalar_types(self):
        """Test parsing of less common scalar types."""
        rec = parse_text_record('{id: 1, ratio: 0.5, flag: true, blob: abc, big: 9000000000}', SCALARS)
        assert rec.ratio == 0.5
        assert rec.flag is True
        assert rec.blob == b"abc"
        assert rec.big == 9000000000

    def test_scalar_for_repeated(self):
        """Test a single value for a repeated field becomes one element."""
        assert parse_text_record('{num: 5}', CONTAINER).num == [5]

    def test_empty_text(self):
        """Test empty text is an empty record."""
        assert parse_text_record('', SIMPLE).to_dict() == {}

    @pytest.mark.parametrize("text,descriptor", [
        ('{bogus: 1}', SIMPLE),
        ('{num: abc}', SIMPLE),
        ('{val: abc}', SIMPLE),
        ('{color: PURPLE}', SIMPLE),
        ('{num: }', SIMPLE),
        ('{num: ', SIMPLE),
        ('- 1', SIMPLE),
        ('{one: 5}', CONTAINER),
        ('{num: [a]}', CONTAINER),
    ])
    def test_parse_errors(self, text, descriptor):
        """Test text that does not fit the type is rejected."""
        with pytest.raises(TextParseError):
            parse_text_record(text, descriptor)

    def test_unknown_nested_field(self):
        """Test errors name the nested field path."""
        with pytest.raises(TextParseError) as exc_info:
            parse_text_record('{more: [{bogus: 1}]}', CONTAINER)
        assert "more[0].bogus" in exc_info.value.reason

    def test_required_fields(self):
        """Test required fields are enforced only when asked."""
        assert parse_text_record('{flag: true}', SCALARS).flag is True
        with pytest.raises(TextParseError):
            parse_text_record('{flag: true}', SCALARS, allow_partial=False)


class TestMatchers:
    """Test assertion helpers."""

    def setup_method(self):
        self.actual = Record(SIMPLE, num=42, name="name")

    def test_equals_text(self):
        """Test matching against text expectations."""
        assert equals_record('{num: 42, name: "name"}').matches(self.actual)
        assert not equals_record('{num: 42}').matches(self.actual)

    def test_equals_record(self):
        """Test matching against a record expectation."""
        assert equals_record(self.actual.copy()).matches(self.actual)

    def test_assert_that_message(self):
        """Test failures describe the expectation and the differences."""
        with pytest.raises(AssertionError) as exc_info:
            assert_that(self.actual, equals_record('{num: 43, name: "name"}'))
        message = str(exc_info.value)
        assert message.startswith('Expected: is equal to <{num: 43, name: "name"}>')
        assert message.endswith("modified: num: 43 -> 42")

    def test_assert_that_passes(self):
        """Test matching records do not raise."""
        assert_that(self.actual, equals_record('{num: 42, name: "name"}'))

    def test_unparsable_expectation(self):
        """Test text that does not parse is a non-match."""
        outcome = equals_record('{bogus: 1}').match(self.actual)
        assert outcome.matched is False
        assert outcome.explanation.startswith(
            "where <{bogus: 1}> doesn't parse as a recorddiff.tests.TestMessage:"
        )

    def test_none_actual(self):
        """Test a missing actual record is a non-match."""
        assert equals_record('{num: 1}').explain(None) == "which is None"

    def test_relaxations(self):
        """Test relaxations chain and apply."""
        matcher = equals_record('{name: "name"}').partially()
        assert matcher.matches(self.actual)

        matcher = equals_record('{num: 41, name: "other"}').ignoring_field_paths(["num", "name"])
        assert matcher.matches(self.actual)

        matcher = equals_record('{num: 1}').ignoring_fields(["recorddiff.tests.TestMessage.num"]).partially()
        assert matcher.matches(self.actual)

    def test_equiv(self):
        """Test equivalence treats explicit defaults as unset."""
        actual = Record(SIMPLE, num=0)
        assert equiv_to_record('{}').matches(actual)
        assert not equals_record('{}').matches(actual)

    def test_approximately_and_nans(self):
        """Test float relaxations on the matcher."""
        actual = Record(SIMPLE, val=float("nan"), num=1)
        assert not equals_record('{val: nan, num: 1}').matches(actual)
        assert equals_record('{val: nan, num: 1}').treating_nans_as_equal().matches(actual)

        actual = Record(SIMPLE, val=1.0)
        assert equals_record('{val: 0.992}').approximately(margin=0.01).matches(actual)

    def test_unordered(self):
        """Test the unordered relaxation on the matcher."""
        actual = Record(CONTAINER, num=[1, 2, 3])
        assert equals_record('{num: [3, 1, 2]}').ignoring_repeated_field_ordering().matches(actual)

    def test_describe(self):
        """Test matcher descriptions."""
        matcher = equals_record('num: 1').partially().approximately(0.01)
        assert matcher.describe() == (
            "is approximately (absolute error of float or double fields <= 0.01) "
            "partially equal to <num: 1>"
        )
        assert equals_record(Record(SIMPLE, num=1)).describe() == \
            "is equal to recorddiff.tests.TestMessage <num: 1>"
        assert equiv_to_record('{}').describe_negation() == "is not equivalent to <{}>"


class DictAdapter(RecordReflection):
    """Reflection over plain dicts of a single root type."""

    def __init__(self, descriptor):
        self.descriptor = descriptor

    def descriptor_of(self, record):
        return self.descriptor

    def get(self, record, field):
        if field.name in record:
            return record[field.name]
        return [] if field.is_repeated else field.default_value()

    def is_set(self, record, field):
        if field.is_repeated:
            return bool(record.get(field.name))
        return field.name in record

    def new_empty(self, descriptor):
        return {}


class TestCustomReflection:
    """Test comparing records through a custom reflection adapter."""

    def test_dict_records(self):
        """Test the engine only touches records through the adapter."""
        engine = RecordDiffEngine(adapter=DictAdapter(CONTAINER))
        actual = {"one": {"num": 1}, "num": [1, 2]}
        expected = {"one": {"num": 2}, "num": [2, 1]}

        policy = ComparisonPolicy().with_unordered_repeated()
        assert engine.explain(actual, expected, policy) == "modified: one.num: 2 -> 1"

    def test_unset_sub_record_equivalence(self):
        """Test unset sub-records are built through the adapter."""
        engine = RecordDiffEngine(adapter=DictAdapter(CONTAINER))

        matched, _ = engine.compare({"one": {}}, {}, ComparisonPolicy.equivalent())
        assert matched is True
