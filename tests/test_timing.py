"""
Tests for the Timing module.
"""

import pytest
from subutil.errors import AnchorError
from subutil.subtitle import SubtitleEntry
from subutil.timing import (
    Anchor, ConstantShift, Interpolation, apply_ppm, build_anchors,
    compute_coefficients, discover_initial_times, factor_to_ppm,
    parse_anchor, parse_time, seconds_to_ms,
)


@pytest.fixture
def entries():
    return [
        SubtitleEntry(1, 0, 1000, "a"),
        SubtitleEntry(2, 5000, 6000, "b"),
        SubtitleEntry(3, 10000, 12000, "c"),
        SubtitleEntry(4, 15000, 16000, "d"),
        SubtitleEntry(5, 20000, 21000, "e"),
    ]


class TestParsing:
    """Command-line time and anchor syntax."""

    @pytest.mark.parametrize("text, expected", [
        ("0", 0),
        ("90", 90000),
        ("1.5", 1500),
        ("1:30.5", 90500),
        ("01:02:03.004", 3723004),
        ("1:00:00", 3600000),
        ("2.0009", 2000),
    ])
    def test_parse_time(self, text, expected):
        assert parse_time(text) == expected

    @pytest.mark.parametrize("text", ["", "abc", "-1", "1:-2", "1:2:3:4", ":30", "1:x:3"])
    def test_parse_time_rejects(self, text):
        with pytest.raises(ValueError):
            parse_time(text)

    def test_parse_anchor(self):
        assert parse_anchor("12,1:01.5") == (12, 61500)

    @pytest.mark.parametrize("token", ["12", "x,1", ",5", "3,", "-3,5"])
    def test_parse_anchor_rejects(self, token):
        with pytest.raises(ValueError):
            parse_anchor(token)

    def test_factor_to_ppm(self):
        assert factor_to_ppm(1) == 0
        assert factor_to_ppm(1.001) == 1000
        assert factor_to_ppm("0.5") == -500000

    def test_seconds_to_ms(self):
        assert seconds_to_ms(2.5) == 2500
        assert seconds_to_ms("-0.1") == -100

    def test_seconds_to_ms_rejects_nan(self):
        with pytest.raises(ValueError):
            seconds_to_ms(float("nan"))


class TestApplyPpm:

    def test_truncates_toward_zero(self):
        assert apply_ppm(3, 500000, 0) == 4
        assert apply_ppm(3, -500000, 0) == 2
        assert apply_ppm(-3, 500000, 0) == -4

    def test_large_values_do_not_overflow(self):
        t = 10 ** 15
        assert apply_ppm(t, 1_000_000, 7) == 2 * t + 7


class TestConstantShift:
    """Scale + translate."""

    def test_identity_keeps_every_entry(self, entries):
        shift = ConstantShift.from_factor(1.0, 0)
        assert shift.is_identity
        assert [shift.apply_entry(e) for e in entries] == entries

    def test_translation(self):
        shift = ConstantShift.from_factor(translation_seconds=2.5)
        retimed = shift.apply_entry(SubtitleEntry(1, 1000, 2000, "x"))
        assert (retimed.start_ms, retimed.end_ms) == (3500, 4500)

    def test_factor_applied_before_translation(self):
        shift = ConstantShift(factor_ppm=1_000_000, translation_ms=100)
        assert shift.apply(1000) == 2100

    def test_entry_before_origin_dropped(self):
        shift = ConstantShift(translation_ms=-5000)
        assert shift.apply_entry(SubtitleEntry(1, 1000, 5000, "x")) is None
        assert shift.apply_entry(SubtitleEntry(1, 1000, 4000, "x")) is None

    def test_negative_start_clamped(self):
        shift = ConstantShift(translation_ms=-2000)
        retimed = shift.apply_entry(SubtitleEntry(1, 1000, 3000, "x"))
        assert (retimed.start_ms, retimed.end_ms) == (0, 1000)

    def test_original_untouched(self):
        entry = SubtitleEntry(1, 1000, 3000, "x")
        ConstantShift(translation_ms=500).apply_entry(entry)
        assert entry.start_ms == 1000


class TestAnchors:
    """Anchor construction and discovery."""

    def test_sorted_by_index(self):
        anchors, warnings = build_anchors([(5, 9000), (2, 1000)])
        assert [a.index for a in anchors] == [2, 5]
        assert warnings == []

    def test_non_monotonic_targets_warned_not_fixed(self):
        anchors, warnings = build_anchors([(1, 9000), (2, 1000)])
        assert [a.time_final for a in anchors] == [9000, 1000]
        assert len(warnings) == 1

    def test_duplicate_index_rejected(self):
        with pytest.raises(AnchorError):
            build_anchors([(3, 1000), (3, 2000)])

    def test_empty_rejected(self):
        with pytest.raises(AnchorError):
            build_anchors([])

    def test_discover_initial_times(self, entries):
        anchors, _ = build_anchors([(2, 0), (4, 0)])
        found, warnings = discover_initial_times(anchors, entries)
        assert [a.time_initial for a in found] == [5000, 15000]
        assert warnings == []

    def test_first_match_wins(self):
        anchors, _ = build_anchors([(7, 0)])
        found, _ = discover_initial_times(anchors, [
            SubtitleEntry(7, 100, 200), SubtitleEntry(7, 900, 1000),
        ])
        assert found[0].time_initial == 100

    def test_each_anchor_searched_after_the_previous_match(self):
        anchors, _ = build_anchors([(3, 0), (5, 0)])
        found, warnings = discover_initial_times(anchors, [
            SubtitleEntry(5, 100, 200),
            SubtitleEntry(3, 1000, 1100),
            SubtitleEntry(5, 2000, 2100),
        ])
        assert [a.time_initial for a in found] == [1000, 2000]
        assert warnings == []

    def test_anchors_after_a_missing_one_are_not_found(self, entries):
        anchors, _ = build_anchors([(2, 0), (3, 0), (4, 0)])
        found, warnings = discover_initial_times(anchors, [
            e for e in entries if e.index != 3
        ])
        assert [a.index for a in found] == [2]
        assert len(warnings) == 2

    def test_missing_index_warned_and_dropped(self, entries):
        anchors, _ = build_anchors([(2, 0), (99, 0)])
        found, warnings = discover_initial_times(anchors, entries)
        assert [a.index for a in found] == [2]
        assert "99" in warnings[0]

    def test_non_monotonic_initial_times_warned(self):
        anchors, _ = build_anchors([(1, 0), (2, 5000)])
        _, warnings = discover_initial_times(anchors, [
            SubtitleEntry(1, 8000, 9000), SubtitleEntry(2, 3000, 4000),
        ])
        assert len(warnings) == 1


class TestCoefficients:

    def test_single_anchor_is_translation(self):
        anchors = [Anchor(5, 10000, time_initial=8000)]
        compute_coefficients(anchors)
        assert (anchors[0].ppm, anchors[0].offset) == (0, 2000)

    def test_double_speed(self):
        anchors = [Anchor(1, 0, time_initial=0), Anchor(2, 20000, time_initial=10000)]
        compute_coefficients(anchors)
        assert anchors[1].ppm == 1_000_000
        assert anchors[1].offset == 0
        assert (anchors[0].ppm, anchors[0].offset) == (anchors[1].ppm, anchors[1].offset)

    def test_shared_initial_time_rejected(self):
        anchors = [Anchor(1, 0, time_initial=500), Anchor(2, 900, time_initial=500)]
        with pytest.raises(AnchorError):
            compute_coefficients(anchors)

    def test_empty_rejected(self):
        with pytest.raises(AnchorError):
            compute_coefficients([])


class TestInterpolation:
    """Piecewise-linear retiming."""

    def test_single_anchor_translates_everything(self):
        # Subtitle 5 originally starts at 8000ms
        subs = [SubtitleEntry(i, (i - 1) * 2000, (i - 1) * 2000 + 500) for i in range(1, 8)]
        interp = Interpolation.from_entries([(5, 10000)], subs)
        for entry in subs:
            retimed = interp.apply_entry(entry)
            assert retimed.start_ms == entry.start_ms + 2000
            assert retimed.end_ms == entry.end_ms + 2000

    def test_double_speed_example(self):
        subs = [SubtitleEntry(1, 0, 100), SubtitleEntry(2, 10000, 10100)]
        interp = Interpolation.from_entries([(1, 0), (2, 20000)], subs)
        assert interp.select(5000).index == 2
        assert interp.select(5000).ppm == 1_000_000
        retimed = interp.apply_entry(SubtitleEntry(9, 5000, 6000))
        assert (retimed.start_ms, retimed.end_ms) == (10000, 12000)

    def test_exact_at_anchors(self, entries):
        targets = [(1, 700), (3, 11111), (5, 33333)]
        interp = Interpolation.from_entries(targets, entries)
        by_index = {e.index: e for e in entries}
        for index, target in targets:
            assert interp.apply_entry(by_index[index]).start_ms == target

    def test_each_interval_uses_its_own_rate(self, entries):
        # 0-10s stays put, 10-20s is stretched to 10-30s
        interp = Interpolation.from_entries([(1, 0), (3, 10000), (5, 30000)], entries)
        assert interp.apply(5000) == 5000
        assert interp.apply(15000) == 20000

    def test_extrapolates_past_last_anchor(self, entries):
        interp = Interpolation.from_entries([(1, 0), (3, 20000)], entries)
        assert interp.select(50000).index == 3
        assert interp.apply(20000) == 40000

    def test_warnings_kept(self, entries):
        interp = Interpolation.from_entries([(2, 5000), (42, 9000)], entries)
        assert len(interp.warnings) == 1
        assert [a.index for a in interp.anchors] == [2]

    def test_strict_rejects_warnings(self, entries):
        with pytest.raises(AnchorError):
            Interpolation.from_entries([(2, 5000), (42, 9000)], entries, strict=True)

    def test_no_anchor_found(self, entries):
        with pytest.raises(AnchorError):
            Interpolation.from_entries([(42, 9000)], entries)

    def test_entries_before_origin_dropped(self, entries):
        interp = Interpolation.from_entries([(3, 0)], entries)
        assert interp.apply_entry(entries[0]) is None
        retimed = interp.apply_entry(entries[3])
        assert (retimed.start_ms, retimed.end_ms) == (5000, 6000)
