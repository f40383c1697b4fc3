"""Unit tests for SeriesBuffer and field extraction."""

import math

import pytest
from hypothesis import given
from hypothesis import strategies as st

from jsonmon.series import SeriesBuffer, SeriesPoint, extract
from jsonmon.spec import MetricSpec, parse_spec

T0 = 1_700_000_000.0


def gauge(steps: int = 5) -> SeriesBuffer:
    return SeriesBuffer(parse_spec("v:v"), steps)


def counter(steps: int = 5) -> SeriesBuffer:
    return SeriesBuffer(parse_spec("v:v:counter"), steps)


class TestExtract:
    """Tests for extract()."""

    def test_nested_key(self) -> None:
        assert extract({"a": {"b": 3}}, ("a", "b")) == 3.0

    def test_list_index(self) -> None:
        assert extract({"load": [0.5, 1.5, 2.5]}, ("load", "1")) == 1.5

    def test_negative_list_index(self) -> None:
        assert extract({"load": [0.5, 1.5]}, ("load", "-1")) == 1.5

    @pytest.mark.parametrize("seg", ["+1", " 1", "1_0", "1.0", "--1", "\u00b9"])
    def test_malformed_list_index(self, seg: str) -> None:
        """Only plain, optionally negative, ASCII integers index lists."""
        data = {"a": list(range(20))}
        assert extract(data, ("a", seg)) is None

    def test_numeric_dict_key(self) -> None:
        """Digit segments are plain keys when the node is an object."""
        assert extract({"0": 7}, ("0",)) == 7.0

    @pytest.mark.parametrize("data, path", [
        ({"a": 1}, ("b",)),
        ({"a": {"b": 1}}, ("a", "c")),
        ({"a": [1]}, ("a", "3")),
        ({"a": [1]}, ("a", "x")),
        ({"a": 1}, ("a", "b")),
    ])
    def test_missing_path(self, data, path) -> None:
        assert extract(data, path) is None

    @pytest.mark.parametrize("leaf", ["12", True, None, {"x": 1}, [1], math.nan, math.inf, 10 ** 400])
    def test_non_numeric_leaf(self, leaf) -> None:
        """Strings, booleans, containers, non-finite floats and huge ints are skipped."""
        assert extract({"a": leaf}, ("a",)) is None


class TestRing:
    """Tests for fixed-capacity ring semantics."""

    def test_rejects_zero_steps(self) -> None:
        with pytest.raises(ValueError, match="steps"):
            SeriesBuffer(parse_spec("v:v"), 0)

    def test_empty(self) -> None:
        buf = gauge()
        assert len(buf) == 0
        assert buf.points() == ()
        assert buf.last() is None

    def test_partial_fill_keeps_order(self) -> None:
        buf = gauge(5)
        for i in range(3):
            buf.ingest({"v": i}, T0 + i)
        assert [p.value for p in buf.points()] == [0.0, 1.0, 2.0]
        assert buf.last() == SeriesPoint(T0 + 2, 2.0)

    @given(steps=st.integers(min_value=1, max_value=20), data=st.data())
    def test_overflow_keeps_last_steps(self, steps: int, data) -> None:
        """After N > steps ingestions, the buffer holds exactly the last steps values."""
        values = data.draw(st.lists(
            st.floats(allow_nan=False, allow_infinity=False, width=32),
            min_size=steps + 1, max_size=steps * 3 + 1))
        buf = gauge(steps)
        for i, v in enumerate(values):
            buf.ingest({"v": v}, T0 + i)
            assert len(buf) <= steps
        assert len(buf) == steps
        assert [p.value for p in buf.points()] == [float(v) for v in values[-steps:]]

    def test_single_slot(self) -> None:
        buf = gauge(1)
        buf.ingest({"v": 1}, T0)
        buf.ingest({"v": 2}, T0 + 1)
        assert buf.points() == (SeriesPoint(T0 + 1, 2.0),)


class TestGauge:
    def test_value_is_plotted_directly(self) -> None:
        buf = gauge()
        assert buf.ingest({"v": 42}, T0) == SeriesPoint(T0, 42.0)

    def test_missing_field_skips(self) -> None:
        buf = gauge()
        assert buf.ingest({"other": 1}, T0) is None
        assert len(buf) == 0


class TestCounter:
    """Tests for counter → rate derivation."""

    def test_rate_from_steady_counter(self) -> None:
        """[10, 25, 40] one second apart → nothing, 15, 15."""
        buf = counter()
        emitted = [buf.ingest({"v": v}, T0 + i) for i, v in enumerate([10, 25, 40])]
        assert emitted[0] is None
        assert emitted[1].value == 15.0
        assert emitted[2].value == 15.0
        assert [p.value for p in buf.points()] == [15.0, 15.0]

    def test_rate_divides_by_elapsed_seconds(self) -> None:
        buf = counter()
        buf.ingest({"v": 0}, T0)
        assert buf.ingest({"v": 30}, T0 + 2.0).value == 15.0
        assert buf.ingest({"v": 31}, T0 + 2.5).value == 2.0

    def test_reset_counts_from_zero(self) -> None:
        """[100, 5] one second apart → 5.0, never -95.0."""
        buf = counter()
        buf.ingest({"v": 100}, T0)
        assert buf.ingest({"v": 5}, T0 + 1).value == 5.0

    def test_duplicate_timestamp_discarded(self) -> None:
        """A sample with Δt <= 0 is dropped and the baseline kept."""
        buf = counter()
        buf.ingest({"v": 10}, T0)
        assert buf.ingest({"v": 20}, T0) is None
        assert buf.ingest({"v": 50}, T0 - 1) is None
        assert buf.ingest({"v": 30}, T0 + 1).value == 20.0
        assert len(buf) == 1

    def test_missing_field_keeps_baseline(self) -> None:
        buf = counter()
        buf.ingest({"v": 10}, T0)
        assert buf.ingest({}, T0 + 1) is None
        assert buf.ingest({"v": 40}, T0 + 2).value == 15.0

    def test_first_non_numeric_does_not_seed(self) -> None:
        buf = counter()
        buf.ingest({"v": "n/a"}, T0)
        assert buf.ingest({"v": 10}, T0 + 1) is None
        assert buf.ingest({"v": 20}, T0 + 2).value == 10.0

    def test_spec_is_kept(self) -> None:
        spec = MetricSpec("v", ("v",), "counter")
        assert SeriesBuffer(spec, 3).spec is spec


class TestHugeValues:
    def test_overflowing_int_skips_only_that_sample(self) -> None:
        buf = gauge()
        buf.ingest({"v": 1}, T0)
        assert buf.ingest({"v": 10 ** 400}, T0 + 1) is None
        buf.ingest({"v": 3}, T0 + 2)
        assert [p.value for p in buf.points()] == [1.0, 3.0]
