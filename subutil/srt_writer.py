"""
SRT Writer — Standard SubRip subtitle file generator.

Encodes SubtitleEntry records as SRT blocks with HH:MM:SS,mmm
timestamps. Newlines inside the subtitle text are rewritten to the
writer's delimiter ("\\r\\n" unless told otherwise) and stray carriage
returns are dropped.
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional

from .errors import SRTError, SRTErrorKind
from .srt_reader import CRLF, LF
from .subtitle import SubtitleEntry

logger = logging.getLogger(__name__)


def format_timestamp(ms: int) -> str:
    """
    Convert milliseconds to SRT timestamp format: HH:MM:SS,mmm

    Args:
        ms: Time in milliseconds (e.g., 125340)

    Returns:
        Formatted timestamp string (e.g., "00:02:05,340")

    Raises:
        ValueError: for negative times, which SRT cannot represent.
    """
    if ms < 0:
        raise ValueError(f"Cannot format negative timestamp: {ms}ms")

    seconds, millis = divmod(ms, 1000)
    minutes, secs = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)

    return f"{hours:02d}:{minutes:02d}:{secs:02d},{millis:03d}"


class SRTWriter:
    """
    Writes subtitle entries to a SubRip stream.

    SRT format:
        1
        00:00:01,200 --> 00:00:04,800
        Hello everyone, welcome to the show.

        2
        00:00:05,100 --> 00:00:06,300
        (Audience clapping)
    """

    def __init__(self, stream, delimiter: str = CRLF, name: Optional[str] = None):
        if delimiter not in (CRLF, LF):
            raise ValueError(f"Unsupported delimiter: {delimiter!r}")
        self._stream = stream
        self.delimiter = delimiter
        self.name = name or getattr(stream, "name", "<stream>")
        self.error: Optional[SRTError] = None
        self._owns_stream = False

    @classmethod
    def open(cls, path, delimiter: str = CRLF, encoding: str = "utf-8") -> "SRTWriter":
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        stream = open(path, "w", encoding=encoding, newline="")
        writer = cls(stream, delimiter=delimiter, name=str(path))
        writer._owns_stream = True
        return writer

    def close(self):
        if self._owns_stream and not self._stream.closed:
            self._stream.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def encode(self, entry: SubtitleEntry) -> str:
        """Render one entry as an SRT block, including the trailing blank line."""
        d = self.delimiter
        parts = [
            f"{entry.index}{d}",
            f"{format_timestamp(entry.start_ms)} --> {format_timestamp(entry.end_ms)}{d}",
        ]

        text = entry.text.replace("\r", "")
        if text.endswith("\n"):
            text = text[:-1]
        if text:
            parts.extend(f"{line}{d}" for line in text.split("\n"))

        # Blank line separator
        parts.append(d)
        return "".join(parts)

    def write(self, entry: SubtitleEntry):
        """
        Write one entry.

        Raises:
            SRTError: WRITE if the underlying stream fails, PREVIOUS_ERROR
                if an earlier write already failed.
            ValueError: if the entry has a negative timestamp.
        """
        if self.error is not None:
            raise SRTError(SRTErrorKind.PREVIOUS_ERROR, detail=self.error.description)

        block = self.encode(entry)
        try:
            self._stream.write(block)
        except OSError as e:
            self.error = SRTError(SRTErrorKind.WRITE, detail=str(e))
            logger.error(f"{self.name}: {self.error}")
            raise self.error from e

    def write_all(self, entries: Iterable[SubtitleEntry]) -> int:
        """Write every entry in order. Returns the number written."""
        count = 0
        for entry in entries:
            self.write(entry)
            count += 1
        logger.info(f"SRT written: {count} subtitles → {self.name}")
        return count

    @staticmethod
    def write_preview(entries: List[SubtitleEntry], max_entries: int = 10) -> str:
        """
        Generate a text preview of the subtitle entries.

        Args:
            entries: List of SubtitleEntry objects.
            max_entries: Maximum entries to include in preview.

        Returns:
            Formatted string preview.
        """
        lines = []
        shown = min(len(entries), max_entries)

        for entry in entries[:shown]:
            ts_start = format_timestamp(entry.start_ms)
            ts_end = format_timestamp(entry.end_ms)
            text_preview = entry.text.replace("\n", " / ")[:80]
            if len(entry.text) > 80:
                text_preview += "..."
            lines.append(f"  #{entry.index} [{ts_start} → {ts_end}] {text_preview}")

        if len(entries) > shown:
            lines.append(f"  ... and {len(entries) - shown} more entries")

        return "\n".join(lines)
