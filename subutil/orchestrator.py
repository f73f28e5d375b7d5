"""
Retime Pipeline — Per-tool control flow on top of the codec and transforms.

Tools:
  - offset:      constant scale + translation of every subtitle
  - interpolate: piecewise-linear retiming pinned at chosen subtitles
  - renumber:    rewrite subtitle IDs as 1..N
  - forced:      count forced objects in a PGS stream

Each tool reads with SRTReader, transforms, and writes with SRTWriter,
keeping the input's line endings. Files are closed on every exit path.
"""

import time
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from .ring_buffer import RingBuffer
from .pgs import ForcedTally, count_forced, read_segments
from .srt_reader import SRTReader
from .srt_writer import SRTWriter
from .subtitle import SubtitleEntry
from .timing import ConstantShift, Interpolation

logger = logging.getLogger(__name__)

PREVIEW_ENTRIES = 3


@dataclass
class RunStats:
    """Counts reported by a pipeline run."""
    read: int = 0
    written: int = 0
    dropped: int = 0
    warnings: List[str] = field(default_factory=list)
    head: List[SubtitleEntry] = field(default_factory=list)  # first few written

    def record(self, entry: SubtitleEntry):
        self.written += 1
        if len(self.head) < PREVIEW_ENTRIES:
            self.head.append(entry)


def _match_delimiter(reader: SRTReader, writer: SRTWriter, default: str):
    writer.delimiter = reader.delimiter or default


def offset_stream(reader: SRTReader, writer: SRTWriter, shift: ConstantShift,
                  default_delimiter: str = "\r\n") -> RunStats:
    """Apply `shift` to every subtitle from `reader`, writing kept ones."""
    stats = RunStats()
    for entry in reader:
        if stats.read == 0:
            _match_delimiter(reader, writer, default_delimiter)
        stats.read += 1
        retimed = shift.apply_entry(entry)
        if retimed is None:
            logger.debug(f"Dropped {entry!r}: ends before zero after shift")
            stats.dropped += 1
            continue
        writer.write(retimed)
        stats.record(retimed)
    return stats


def interpolate_stream(reader: SRTReader, writer: SRTWriter,
                       anchor_pairs: Iterable[Tuple[int, int]],
                       strict: bool = False,
                       default_delimiter: str = "\r\n") -> RunStats:
    """
    Retime subtitles so the anchored ones land on their target times.

    Needs two passes over the input: one to find the anchors' original
    times and one to transform. A seekable input is rewound between
    passes; otherwise all subtitles are held in memory.
    """
    if reader.seekable():
        interp = Interpolation.from_entries(anchor_pairs, reader, strict=strict)
        reader.rewind()
        entries: Iterable[SubtitleEntry] = reader
    else:
        logger.debug(f"{reader.name} is not seekable; buffering subtitles in memory")
        entries = list(reader)
        interp = Interpolation.from_entries(anchor_pairs, entries, strict=strict)

    stats = RunStats(warnings=list(interp.warnings))
    for entry in entries:
        if stats.read == 0:
            _match_delimiter(reader, writer, default_delimiter)
        stats.read += 1
        retimed = interp.apply_entry(entry)
        if retimed is None:
            logger.debug(f"Dropped {entry!r}: ends before zero after interpolation")
            stats.dropped += 1
            continue
        writer.write(retimed)
        stats.record(retimed)
    return stats


def renumber_stream(reader: SRTReader, writer: SRTWriter,
                    default_delimiter: str = "\r\n", first: int = 1) -> RunStats:
    """Rewrite subtitle IDs as consecutive numbers starting at `first`."""
    stats = RunStats()

    def renumbered():
        for entry in reader:
            if stats.read == 0:
                _match_delimiter(reader, writer, default_delimiter)
            entry.index = first + stats.read
            stats.read += 1
            if len(stats.head) < PREVIEW_ENTRIES:
                stats.head.append(entry)
            yield entry

    stats.written = writer.write_all(renumbered())
    return stats


class RetimePipeline:
    """
    File-level entry points for the subutil tools.

    Usage:
        config = load_config()
        pipeline = RetimePipeline(config)
        pipeline.offset("in.srt", "out.srt", translation_seconds=-2.5)
    """

    def __init__(self, config):
        self.config = config

    @property
    def _encoding(self) -> str:
        return self.config.codec.encoding

    @property
    def _default_delimiter(self) -> str:
        return self.config.codec.delimiter

    def _open(self, input_path: Path, output_path: Path):
        reader = SRTReader.open(input_path, encoding=self._encoding)
        try:
            writer = SRTWriter.open(output_path, delimiter=self._default_delimiter,
                                    encoding=self._encoding)
        except BaseException:
            reader.close()
            raise
        return reader, writer

    def offset(self, input_path, output_path, factor=1, translation_seconds=0) -> RunStats:
        """Scale by `factor`, then shift by `translation_seconds`."""
        shift = ConstantShift.from_factor(factor, translation_seconds)
        logger.info(
            f"Offset: {input_path} → {output_path} "
            f"(factor {shift.factor_ppm:+d}ppm, translation {shift.translation_ms:+d}ms)"
        )
        started = time.monotonic()
        reader, writer = self._open(Path(input_path), Path(output_path))
        with reader, writer:
            stats = offset_stream(reader, writer, shift, self._default_delimiter)
        self._summarize("offset", stats, started)
        return stats

    def interpolate(self, input_path, output_path,
                    anchor_pairs: Iterable[Tuple[int, int]],
                    strict: Optional[bool] = None) -> RunStats:
        """Pin subtitles to target times: pairs of (subtitle ID, target ms)."""
        strict = self.config.anchors.strict if strict is None else strict
        anchor_pairs = list(anchor_pairs)
        logger.info(f"Interpolate: {input_path} → {output_path} ({len(anchor_pairs)} anchors)")
        started = time.monotonic()
        reader, writer = self._open(Path(input_path), Path(output_path))
        with reader, writer:
            stats = interpolate_stream(reader, writer, anchor_pairs, strict=strict,
                                       default_delimiter=self._default_delimiter)
        self._summarize("interpolate", stats, started)
        return stats

    def renumber(self, input_path, output_path) -> RunStats:
        """Rewrite subtitle IDs as 1..N."""
        logger.info(f"Renumber: {input_path} → {output_path}")
        started = time.monotonic()
        reader, writer = self._open(Path(input_path), Path(output_path))
        with reader, writer:
            stats = renumber_stream(reader, writer, self._default_delimiter)
        self._summarize("renumber", stats, started)
        return stats

    def forced(self, input_path) -> ForcedTally:
        """Count forced subtitle objects in a PGS (.sup) file."""
        ring = RingBuffer(self.config.ring.capacity)
        with open(input_path, "rb") as f:
            tally = count_forced(read_segments(f, ring))
        logger.info(
            f"{input_path}: {tally.forced_objects} forced objects in "
            f"{tally.forced_presentations} presentation segments"
        )
        return tally

    @staticmethod
    def _summarize(tool: str, stats: RunStats, started: float):
        elapsed = time.monotonic() - started
        logger.info(
            f"{tool} complete in {elapsed:.2f}s: {stats.read} read, "
            f"{stats.written} written, {stats.dropped} dropped"
        )
        if stats.warnings:
            logger.info(f"  {len(stats.warnings)} warnings")
        if stats.head and logger.isEnabledFor(logging.DEBUG):
            logger.debug("First subtitles written:\n" + SRTWriter.write_preview(stats.head))
