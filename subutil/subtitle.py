"""
Subtitle record shared by the codec and the timing transforms.
"""

from dataclasses import dataclass, replace


@dataclass
class SubtitleEntry:
    """A single timed subtitle, as stored in an SRT file."""
    index: int
    start_ms: int
    end_ms: int
    text: str = ""

    @property
    def duration_ms(self) -> int:
        return self.end_ms - self.start_ms

    def retimed(self, start_ms: int, end_ms: int) -> "SubtitleEntry":
        """Return a copy with new timestamps."""
        return replace(self, start_ms=start_ms, end_ms=end_ms)

    def __repr__(self):
        return (f"Sub#{self.index}({self.start_ms}–{self.end_ms}ms, "
                f"'{self.text[:50]}')")
