"""
Ring Buffer — Fixed-capacity byte window over a streaming binary source.

Bytes are topped up from the source with fill() and taken out in
exact-length chunks with exact_extract(). One byte of the backing store
is always kept free so that start == end unambiguously means "empty".
"""

import logging
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from .errors import ExceedsCapacity, InsufficientData

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FillResult:
    """Outcome of a single fill() call."""
    count: int
    short_read: bool


class RingBuffer:
    """
    Circular byte buffer holding at most `capacity` bytes.

    Typical consumer loop for length-prefixed records:

        ring.fill(source)
        header = ring.exact_extract(3)      # may raise InsufficientData
        payload = ring.exact_extract(length)
    """

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ValueError(f"capacity must be > 0, got {capacity}")
        self._size = capacity + 1
        self._buf = np.zeros(self._size, dtype=np.uint8)
        self._start = 0
        self._end = 0

    @property
    def capacity(self) -> int:
        return self._size - 1

    @property
    def free_space(self) -> int:
        return self.capacity - self.fill_level()

    def fill_level(self) -> int:
        """Number of bytes currently buffered."""
        return (self._end - self._start) % self._size

    def __len__(self) -> int:
        return self.fill_level()

    def clear(self):
        self._start = 0
        self._end = 0

    def _free_spans(self):
        """Contiguous free regions as (begin, end) pairs, in write order."""
        if self._end >= self._start:
            if self._start == 0:
                # Slack byte has to sit at the very end of the store
                return [(self._end, self._size - 1)]
            return [(self._end, self._size), (0, self._start - 1)]
        return [(self._end, self._start - 1)]

    def fill(self, source) -> FillResult:
        """
        Append as many bytes as `source` provides, up to the free space.

        Makes at most one read() per contiguous free span and never
        retries. `short_read` is set when the source returned fewer bytes
        than were asked for, which at a blocking source means EOF.

        Args:
            source: Binary stream with a read(n) method.

        Returns:
            FillResult with the number of bytes appended.
        """
        total = 0
        for begin, end in self._free_spans():
            want = end - begin
            if want <= 0:
                continue
            data = source.read(want)
            got = len(data) if data else 0
            if got:
                self._buf[begin:begin + got] = np.frombuffer(data, dtype=np.uint8)
                self._end = (begin + got) % self._size
                total += got
            if got < want:
                logger.debug(f"Short read: wanted {want} bytes, got {got}")
                return FillResult(total, True)
        return FillResult(total, False)

    def _check_available(self, n: int):
        if n < 0:
            raise ValueError(f"byte count must be >= 0, got {n}")
        if self.fill_level() < n:
            if n > self.capacity:
                raise ExceedsCapacity(
                    f"{n} bytes requested but capacity is {self.capacity}"
                )
            raise InsufficientData(
                f"{n} bytes requested but only {self.fill_level()} buffered"
            )

    def _spans(self, n: int) -> Tuple[slice, slice]:
        first = min(n, self._size - self._start)
        return slice(self._start, self._start + first), slice(0, n - first)

    def exact_extract(self, n: int) -> bytes:
        """
        Remove and return exactly `n` bytes.

        Raises:
            InsufficientData: fewer than `n` bytes buffered, `n` <= capacity.
            ExceedsCapacity: `n` is larger than the buffer capacity.

        On either error the buffer is left untouched.
        """
        self._check_available(n)
        head, tail = self._spans(n)
        if tail.stop:
            data = np.concatenate([self._buf[head], self._buf[tail]]).tobytes()
        else:
            data = self._buf[head].tobytes()
        self._start = (self._start + n) % self._size
        return data

    def exact_extract_into(self, destination, n: int) -> int:
        """Like exact_extract(), but copies into a writable buffer."""
        self._check_available(n)
        if len(destination) < n:
            raise ValueError(f"destination holds {len(destination)} bytes, need {n}")
        view = np.frombuffer(destination, dtype=np.uint8)
        head, tail = self._spans(n)
        first = head.stop - head.start
        view[:first] = self._buf[head]
        view[first:n] = self._buf[tail]
        self._start = (self._start + n) % self._size
        return n

    def skip(self, n: int):
        """Discard the next `n` bytes. Same failure rules as exact_extract()."""
        self._check_available(n)
        self._start = (self._start + n) % self._size
