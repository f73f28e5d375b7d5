"""
PGS Segments — Presentation Graphic Stream (Blu-ray .sup) decoding.

A PGS stream is a sequence of segments, each a 1-byte type, a 2-byte
big-endian length and that many payload bytes. Segments are pulled
through a RingBuffer so arbitrarily long streams are read with bounded
memory.

count_forced() tallies composition objects flagged "forced", i.e.
subtitles meant to show even when subtitles are switched off.
"""

import logging
import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable, Iterator

from .errors import InsufficientData, SegmentFormatError, TruncatedSegmentError
from .ring_buffer import RingBuffer

logger = logging.getLogger(__name__)

HEADER = struct.Struct(">BH")

# Presentation composition segment layout
_OBJECT_COUNT_OFFSET = 10
_OBJECTS_OFFSET = 11
_OBJECT_SIZE = 8
_FORCED_FLAG_BYTE = 3
_FORCED_FLAG = 0x40


class SegmentType(IntEnum):
    PALETTE = 0x14
    PICTURE = 0x15
    PRESENTATION = 0x16
    WINDOW = 0x17
    DISPLAY = 0x80


_KNOWN_TYPES = frozenset(int(t) for t in SegmentType)


@dataclass
class Segment:
    type: int
    payload: bytes

    @property
    def type_name(self) -> str:
        try:
            return SegmentType(self.type).name
        except ValueError:
            return f"0x{self.type:02x}"


@dataclass
class ForcedTally:
    forced_objects: int = 0
    forced_presentations: int = 0


def _extract(ring: RingBuffer, source, n: int, exhausted: bool):
    """
    Take `n` bytes from the ring, topping up from `source` as needed.

    Returns (data, exhausted), with data None if the source ran dry
    first. ExceedsCapacity propagates unchanged.
    """
    while True:
        try:
            return ring.exact_extract(n), exhausted
        except InsufficientData:
            if exhausted:
                return None, True
            result = ring.fill(source)
            exhausted = result.short_read and result.count == 0


def read_segments(source, ring: RingBuffer) -> Iterator[Segment]:
    """
    Yield segments from a binary stream.

    Args:
        source: Binary stream with a read(n) method.
        ring: Buffer to stage bytes in. Its capacity bounds the largest
            segment that can be read.

    Raises:
        TruncatedSegmentError: if the stream ends inside a segment.
        ExceedsCapacity: if a segment is larger than the ring.
    """
    exhausted = False
    offset = 0

    while True:
        header, exhausted = _extract(ring, source, HEADER.size, exhausted)
        if header is None:
            if ring.fill_level():
                raise TruncatedSegmentError(
                    f"{ring.fill_level()} stray bytes at end of stream (offset {offset})"
                )
            return
        segment_type, length = HEADER.unpack(header)

        payload, exhausted = _extract(ring, source, length, exhausted)
        if payload is None:
            raise TruncatedSegmentError(
                f"Stream ended inside segment 0x{segment_type:02x} at offset {offset}: "
                f"expected {length} bytes, {ring.fill_level()} available"
            )

        offset += HEADER.size + length
        yield Segment(segment_type, payload)


def forced_object_count(segment: Segment) -> int:
    """Number of forced composition objects in a presentation segment."""
    payload = segment.payload
    if len(payload) < _OBJECTS_OFFSET:
        raise SegmentFormatError(
            f"Presentation segment too short: {len(payload)} bytes"
        )
    nr_objects = payload[_OBJECT_COUNT_OFFSET]
    objects = payload[_OBJECTS_OFFSET:]
    if len(objects) != _OBJECT_SIZE * nr_objects:
        raise SegmentFormatError(
            f"Inconsistency in presentation segment - expected {nr_objects} objects, "
            f"but data present for {len(objects) // _OBJECT_SIZE}"
        )
    return sum(
        1 for i in range(nr_objects)
        if objects[_OBJECT_SIZE * i + _FORCED_FLAG_BYTE] & _FORCED_FLAG
    )


def count_forced(segments: Iterable[Segment]) -> ForcedTally:
    """Tally forced objects, and the presentation segments containing them."""
    tally = ForcedTally()
    for segment in segments:
        if segment.type != SegmentType.PRESENTATION:
            if segment.type not in _KNOWN_TYPES:
                logger.info(f"Unknown segment {segment.type_name}, length {len(segment.payload)}")
            continue
        forced = forced_object_count(segment)
        if forced:
            logger.info(f"Forced: {forced} object(s) in presentation segment")
            tally.forced_objects += forced
            tally.forced_presentations += 1
    return tally
