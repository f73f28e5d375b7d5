"""
SRT Reader — Streaming SubRip decoder.

Decodes a text stream into SubtitleEntry records one at a time with a
three-state machine (index line, times line, text lines). The line
delimiter ("\\n" or "\\r\\n") is detected from the first terminated line
and is then fixed for the stream, so a writer can reproduce it.

Any parse error is fatal for the reader: the error is remembered and
every later call fails with SRTErrorKind.PREVIOUS_ERROR.
"""

import io
import logging
import re
from enum import Enum
from pathlib import Path
from typing import Iterator, Optional

from .errors import SRTError, SRTErrorKind
from .subtitle import SubtitleEntry

logger = logging.getLogger(__name__)

CRLF = "\r\n"
LF = "\n"

_INDEX_RE = re.compile(r"^\s*(\d+)\s*$")
_TIMES_RE = re.compile(
    r"^\s*(\d{2}):(\d{2}):(\d{2}),(\d{3})"
    r" --> "
    r"(\d{2}):(\d{2}):(\d{2}),(\d{3})\s*$"
)
_TIMESTAMP_RE = re.compile(r"^(\d{2}):(\d{2}):(\d{2}),(\d{3})$")


def pack_timestamp(hours: int, minutes: int, seconds: int, millis: int) -> int:
    """Pack clock fields into milliseconds."""
    return ((hours * 60 + minutes) * 60 + seconds) * 1000 + millis


def parse_timestamp(text: str) -> int:
    """
    Parse a single SRT timestamp ("HH:MM:SS,mmm") into milliseconds.

    Raises:
        ValueError: if the text is not a fixed-width SRT timestamp.
    """
    match = _TIMESTAMP_RE.match(text.strip())
    if not match:
        raise ValueError(f"Invalid SRT timestamp: {text!r}")
    return pack_timestamp(*(int(g) for g in match.groups()))


def _strip_terminator(line: str) -> str:
    if line.endswith(CRLF):
        return line[:-2]
    if line.endswith(LF):
        return line[:-1]
    return line


class _State(Enum):
    AWAIT_INDEX = 1
    AWAIT_TIMES = 2
    AWAIT_TEXT = 3


class SRTReader:
    """
    Reads SubtitleEntry records from a text stream.

    Usage:
        with SRTReader.open("movie.srt") as reader:
            for entry in reader:
                ...
    """

    def __init__(self, stream, name: Optional[str] = None):
        """
        Args:
            stream: Text stream opened so that line terminators are not
                translated (newline="\\n" for files).
            name: Label used in log messages.
        """
        self._stream = stream
        self.name = name or getattr(stream, "name", "<stream>")
        self.delimiter: Optional[str] = None
        self.line_no = 0
        self.error: Optional[SRTError] = None
        self._owns_stream = False

    @classmethod
    def open(cls, path, encoding: str = "utf-8") -> "SRTReader":
        path = Path(path)
        stream = open(path, "r", encoding=encoding, newline=LF)
        reader = cls(stream, name=str(path))
        reader._owns_stream = True
        return reader

    def close(self):
        if self._owns_stream and not self._stream.closed:
            self._stream.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __iter__(self) -> Iterator[SubtitleEntry]:
        while True:
            entry = self.read()
            if entry is None:
                return
            yield entry

    def _fail(self, kind: SRTErrorKind, detail: Optional[str] = None) -> SRTError:
        self.error = SRTError(kind, self.line_no, detail)
        logger.debug(f"{self.name}: {self.error}")
        return self.error

    def _detect_delimiter(self, line: str):
        if self.delimiter is not None:
            return
        if line.endswith(CRLF):
            self.delimiter = CRLF
        elif line.endswith(LF):
            self.delimiter = LF
        else:
            return
        logger.debug(f"{self.name}: detected {self.delimiter!r} line endings")

    def read(self) -> Optional[SubtitleEntry]:
        """
        Decode the next record.

        Returns:
            The next SubtitleEntry, or None at end of stream.

        Raises:
            SRTError: on a malformed index or times line, or if a previous
                call already failed.
        """
        if self.error is not None:
            raise SRTError(SRTErrorKind.PREVIOUS_ERROR, self.line_no,
                           self.error.description)

        state = _State.AWAIT_INDEX
        index = start = end = 0
        text_lines = []

        while True:
            try:
                line = self._stream.readline()
            except UnicodeDecodeError as e:
                # Text streams decode ahead in chunks, so this is the earliest line it can be on
                self.line_no += 1
                raise self._fail(SRTErrorKind.ENCODING, str(e)) from e
            if not line:
                if state is _State.AWAIT_TEXT:
                    break
                return None

            self.line_no += 1
            self._detect_delimiter(line)
            content = _strip_terminator(line)
            if self.line_no == 1:
                content = content.lstrip("\ufeff")
            blank = not content.strip()

            if state is _State.AWAIT_INDEX:
                if blank:
                    continue
                match = _INDEX_RE.match(content)
                if not match:
                    raise self._fail(SRTErrorKind.INDEX, f"got {content!r}")
                index = int(match.group(1))
                state = _State.AWAIT_TIMES

            elif state is _State.AWAIT_TIMES:
                if blank:
                    continue
                match = _TIMES_RE.match(content)
                if not match:
                    raise self._fail(SRTErrorKind.TIMES, f"got {content!r}")
                fields = [int(g) for g in match.groups()]
                start = pack_timestamp(*fields[:4])
                end = pack_timestamp(*fields[4:])
                state = _State.AWAIT_TEXT

            else:
                if blank:
                    break
                text_lines.append(content)

        return SubtitleEntry(index, start, end, "\n".join(text_lines))

    def seekable(self) -> bool:
        try:
            return self._stream.seekable()
        except (AttributeError, ValueError):
            return False

    def rewind(self):
        """
        Go back to the start of the stream for another pass.

        The detected delimiter is kept; state and line counter are reset.

        Raises:
            SRTError: SEEK if the stream cannot seek, PREVIOUS_ERROR if
                the reader already failed.
        """
        if self.error is not None:
            raise SRTError(SRTErrorKind.PREVIOUS_ERROR, self.line_no,
                           self.error.description)
        if not self.seekable():
            raise self._fail(SRTErrorKind.SEEK)
        try:
            self._stream.seek(0)
        except (OSError, io.UnsupportedOperation) as e:
            raise self._fail(SRTErrorKind.SEEK, str(e))
        self.line_no = 0
