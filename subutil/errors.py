"""
Error types shared by the subutil modules.

SRT codec failures carry an SRTErrorKind so callers can branch on the
kind without string matching. Ring buffer failures are split into two
classes because callers react to them differently: InsufficientData
means "fill and retry", ExceedsCapacity means "give up on this request".
"""

from enum import Enum
from typing import Optional


class SubutilError(Exception):
    """Base error for the subutil package."""


class SRTErrorKind(Enum):
    INDEX = "index"
    TIMES = "times"
    ENCODING = "encoding"
    WRITE = "write"
    SEEK = "seek"
    PREVIOUS_ERROR = "previous_error"


_DESCRIPTIONS = {
    SRTErrorKind.INDEX: "Parse error: expected an integer subtitle ID number",
    SRTErrorKind.TIMES: "Parse error: expected a line giving start and end times for the subtitle",
    SRTErrorKind.ENCODING: "Could not decode the text with the configured encoding",
    SRTErrorKind.WRITE: "Could not write to the output file",
    SRTErrorKind.SEEK: "Cannot seek in this file",
    SRTErrorKind.PREVIOUS_ERROR: "There was a previous error on this file; cannot resume",
}


class SRTError(SubutilError):
    """A fatal error on an SRT stream. The stream is unusable afterwards."""

    def __init__(self, kind: SRTErrorKind, line_no: Optional[int] = None,
                 detail: Optional[str] = None):
        self.kind = kind
        self.line_no = line_no
        self.detail = detail
        super().__init__(self._build_message())

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self.kind]

    def _build_message(self) -> str:
        message = self.description
        if self.line_no is not None:
            message = f"line {self.line_no}: {message}"
        if self.detail:
            message = f"{message} ({self.detail})"
        return message


class RingBufferError(SubutilError):
    """Base class for exact-extract failures."""


class InsufficientData(RingBufferError):
    """Not enough bytes buffered yet; more may arrive after a fill."""


class ExceedsCapacity(RingBufferError):
    """The request is larger than the buffer can ever hold."""


class AnchorError(SubutilError):
    """An anchor set that cannot produce an interpolation."""


class SegmentFormatError(SubutilError):
    """A PGS segment whose contents are inconsistent."""


class TruncatedSegmentError(SegmentFormatError):
    """The stream ended in the middle of a PGS segment."""
