"""
Timing — Millisecond timestamp remapping.

Two transforms share one integer formula,

    out(t) = t + trunc(ppm * t / 1_000_000) + offset

where `ppm` is the rate's deviation from unity in parts per million.
ConstantShift applies a single (ppm, offset) pair to every subtitle;
Interpolation pins chosen subtitles to target times and derives a
(ppm, offset) pair for each interval between neighbouring anchors.

All arithmetic is on Python ints, so long files cannot overflow and
repeated application does not accumulate floating-point drift.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from .errors import AnchorError
from .subtitle import SubtitleEntry

logger = logging.getLogger(__name__)

PPM = 1_000_000

Number = Union[int, float, str, Decimal]


def _trunc_div(numerator: int, denominator: int) -> int:
    """Integer division rounding toward zero."""
    quotient = abs(numerator) // abs(denominator)
    return quotient if (numerator >= 0) == (denominator > 0) else -quotient


def apply_ppm(t: int, ppm: int, offset: int) -> int:
    return t + _trunc_div(ppm * t, PPM) + offset


def _to_decimal(value: Number) -> Decimal:
    try:
        result = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"Not a number: {value!r}")
    if not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return result


def factor_to_ppm(factor: Number) -> int:
    """Convert a multiplicative factor (e.g. 1.001) to ppm (1000)."""
    return int((_to_decimal(factor) - 1) * PPM)


def seconds_to_ms(seconds: Number) -> int:
    """Convert (possibly fractional, possibly negative) seconds to ms."""
    return int(_to_decimal(seconds) * 1000)


def parse_time(text: str) -> int:
    """
    Parse "[[H:]MM:]SS[.mmm]" into milliseconds.

    Examples: "90" -> 90000, "1:30.5" -> 90500, "1:00:00" -> 3600000.

    Raises:
        ValueError: for malformed or negative times.
    """
    parts = [p.strip() for p in text.strip().split(":")]
    if not 1 <= len(parts) <= 3 or not all(parts):
        raise ValueError(f"Invalid time: {text!r}")

    *clock, seconds_text = parts
    if not all(p.isdigit() for p in clock):
        raise ValueError(f"Invalid time: {text!r}")
    seconds = _to_decimal(seconds_text)
    if seconds < 0:
        raise ValueError(f"Time must not be negative: {text!r}")

    hours, minutes = ([0] * (2 - len(clock)) + [int(p) for p in clock])
    return int(seconds * 1000) + minutes * 60_000 + hours * 3_600_000


def parse_anchor(token: str) -> Tuple[int, int]:
    """
    Parse an "id,time" anchor token.

    Returns:
        (subtitle index, target time in ms)
    """
    index_text, sep, time_text = token.partition(",")
    if not sep or not index_text.strip().isdigit():
        raise ValueError(f"Invalid anchor {token!r}; expected id,time")
    return int(index_text), parse_time(time_text)


def _clamp_to_origin(entry: SubtitleEntry, start: int, end: int) -> Optional[SubtitleEntry]:
    """Drop entries pushed entirely before zero; clamp a negative start."""
    if end <= 0:
        return None
    return entry.retimed(max(start, 0), end)


# ═══════════════════════════════════════════════════════════════
#  Constant shift
# ═══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ConstantShift:
    """Scale every timestamp by (1 + factor_ppm/1e6), then translate."""
    factor_ppm: int = 0
    translation_ms: int = 0

    @classmethod
    def from_factor(cls, factor: Number = 1, translation_seconds: Number = 0) -> "ConstantShift":
        return cls(factor_to_ppm(factor), seconds_to_ms(translation_seconds))

    @property
    def is_identity(self) -> bool:
        return self.factor_ppm == 0 and self.translation_ms == 0

    def apply(self, t: int) -> int:
        return apply_ppm(t, self.factor_ppm, self.translation_ms)

    def apply_entry(self, entry: SubtitleEntry) -> Optional[SubtitleEntry]:
        """Retimed copy of `entry`, or None if it now ends at or before zero."""
        return _clamp_to_origin(entry, self.apply(entry.start_ms), self.apply(entry.end_ms))


# ═══════════════════════════════════════════════════════════════
#  Anchored interpolation
# ═══════════════════════════════════════════════════════════════

@dataclass
class Anchor:
    """A subtitle pinned to a target time."""
    index: int
    time_final: int
    time_initial: Optional[int] = None
    ppm: int = 0
    offset: int = 0

    def apply(self, t: int) -> int:
        return apply_ppm(t, self.ppm, self.offset)


def build_anchors(pairs: Iterable[Tuple[int, int]]) -> Tuple[List[Anchor], List[str]]:
    """
    Sort (index, target ms) pairs into anchors ordered by index.

    Returns:
        (anchors, warnings). Target times that do not increase with the
        index are reported, never reordered.

    Raises:
        AnchorError: if no anchors are given or an index repeats.
    """
    anchors = sorted((Anchor(index, time_final) for index, time_final in pairs),
                     key=lambda a: a.index)
    if not anchors:
        raise AnchorError("At least one anchor is required")

    warnings: List[str] = []
    for prev, cur in zip(anchors, anchors[1:]):
        if cur.index == prev.index:
            raise AnchorError(f"Anchor for subtitle {cur.index} given more than once")
        if cur.time_final < prev.time_final:
            warnings.append(
                f"Target times should increase with ID: subtitle {cur.index} "
                f"({cur.time_final}ms) is before subtitle {prev.index} ({prev.time_final}ms)"
            )
    return anchors, warnings


def discover_initial_times(anchors: Sequence[Anchor],
                           entries: Iterable[SubtitleEntry]) -> Tuple[List[Anchor], List[str]]:
    """
    Fill in each anchor's original start time in a single ordered scan.

    Anchors are matched in turn: anchor i is looked for only in the
    subtitles after the one that matched anchor i-1, and takes the first
    match there. Once an anchor is not found, the scan has reached the
    end of the input, so it and every later anchor are reported and left
    out of the returned list.

    Returns:
        (anchors that were found, warnings)
    """
    pending = list(anchors)
    found: List[Anchor] = []
    if pending:
        for entry in entries:
            if entry.index == pending[0].index:
                anchor = pending.pop(0)
                anchor.time_initial = entry.start_ms
                found.append(anchor)
                if not pending:
                    break

    warnings: List[str] = [
        f"Subtitle {anchor.index} not found in input; anchor ignored"
        for anchor in pending
    ]

    for prev, cur in zip(found, found[1:]):
        if cur.time_initial <= prev.time_initial:
            warnings.append(
                f"Original times should increase with ID: subtitle {cur.index} "
                f"starts at {cur.time_initial}ms, subtitle {prev.index} at {prev.time_initial}ms"
            )
    return found, warnings


def compute_coefficients(anchors: Sequence[Anchor]):
    """
    Derive ppm/offset for each anchor in place.

    Anchor i (i >= 1) maps the interval ending at its own original time
    so that both anchor i-1 and anchor i land on their targets. Anchor 0
    reuses anchor 1's mapping. A lone anchor is a pure translation.

    Raises:
        AnchorError: for an empty set, a missing original time, or two
            anchors sharing an original time.
    """
    if not anchors:
        raise AnchorError("No usable anchors")
    for anchor in anchors:
        if anchor.time_initial is None:
            raise AnchorError(f"Anchor for subtitle {anchor.index} has no original time")

    if len(anchors) == 1:
        only = anchors[0]
        only.ppm = 0
        only.offset = only.time_final - only.time_initial
        return

    for prev, cur in zip(anchors, anchors[1:]):
        span = cur.time_initial - prev.time_initial
        if span == 0:
            raise AnchorError(
                f"Subtitles {prev.index} and {cur.index} share the original time "
                f"{cur.time_initial}ms; cannot derive a rate"
            )
        cur.ppm = _trunc_div((cur.time_final - prev.time_final) * PPM, span) - PPM
        cur.offset = cur.time_final - cur.time_initial - _trunc_div(cur.ppm * cur.time_initial, PPM)

    anchors[0].ppm = anchors[1].ppm
    anchors[0].offset = anchors[1].offset


class Interpolation:
    """
    Piecewise-linear retiming pinned at a set of anchors.

    Usage:
        interp = Interpolation.from_entries([(12, 61000), (480, 2405500)], entries)
        for entry in entries:
            retimed = interp.apply_entry(entry)
    """

    def __init__(self, anchors: Sequence[Anchor], warnings: Sequence[str] = ()):
        compute_coefficients(anchors)
        self.anchors: Tuple[Anchor, ...] = tuple(anchors)
        self.warnings: Tuple[str, ...] = tuple(warnings)

    @classmethod
    def from_entries(cls, pairs: Iterable[Tuple[int, int]],
                     entries: Iterable[SubtitleEntry],
                     strict: bool = False) -> "Interpolation":
        """
        Build anchors from (index, target ms) pairs and a first pass over
        the subtitles.

        Consistency problems are logged as warnings and kept on the
        returned object. With strict=True they raise AnchorError instead.
        """
        anchors, warnings = build_anchors(pairs)
        anchors, discovery_warnings = discover_initial_times(anchors, entries)
        warnings.extend(discovery_warnings)

        for message in warnings:
            logger.warning(message)
        if strict and warnings:
            raise AnchorError("; ".join(warnings))

        interp = cls(anchors, warnings)
        for anchor in interp.anchors:
            logger.debug(
                f"Anchor #{anchor.index}: {anchor.time_initial}ms → {anchor.time_final}ms "
                f"(ppm={anchor.ppm}, offset={anchor.offset}ms)"
            )
        return interp

    def select(self, start_ms: int) -> Anchor:
        """The anchor whose interval contains `start_ms` (last one past the end)."""
        for anchor in self.anchors:
            if anchor.time_initial >= start_ms:
                return anchor
        return self.anchors[-1]

    def apply(self, t: int) -> int:
        return self.select(t).apply(t)

    def apply_entry(self, entry: SubtitleEntry) -> Optional[SubtitleEntry]:
        """Retimed copy of `entry`, or None if it now ends at or before zero."""
        anchor = self.select(entry.start_ms)
        return _clamp_to_origin(entry, anchor.apply(entry.start_ms), anchor.apply(entry.end_ms))
