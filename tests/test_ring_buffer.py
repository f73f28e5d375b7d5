"""
Tests for the Ring Buffer module.
"""

import io

import pytest
from subutil.errors import ExceedsCapacity, InsufficientData
from subutil.ring_buffer import RingBuffer


class _Trickle:
    """Binary source that returns at most `chunk` bytes per read."""

    def __init__(self, data: bytes, chunk: int):
        self._data = data
        self._chunk = chunk
        self.reads = 0

    def read(self, n):
        self.reads += 1
        out = self._data[:min(n, self._chunk)]
        self._data = self._data[len(out):]
        return out


class _NonBlocking:
    def read(self, n):
        return None


@pytest.fixture
def ring():
    return RingBuffer(8)


class TestFill:
    """Topping up from a source."""

    def test_fill_to_capacity(self, ring):
        result = ring.fill(io.BytesIO(b"0123456789"))
        assert result.count == 8
        assert not result.short_read
        assert ring.fill_level() == 8
        assert ring.free_space == 0

    def test_short_read_at_eof(self, ring):
        result = ring.fill(io.BytesIO(b"abc"))
        assert result.count == 3
        assert result.short_read

    def test_full_buffer_reads_nothing(self, ring):
        source = _Trickle(b"x" * 20, chunk=20)
        ring.fill(source)
        reads = source.reads
        result = ring.fill(source)
        assert (result.count, result.short_read) == (0, False)
        assert source.reads == reads

    def test_one_read_per_span(self, ring):
        source = _Trickle(b"abcdefgh", chunk=3)
        result = ring.fill(source)
        assert result.count == 3
        assert result.short_read
        assert source.reads == 1

    def test_wrapped_fill_uses_two_spans(self, ring):
        ring.fill(io.BytesIO(b"abcdef"))
        ring.exact_extract(4)
        source = _Trickle(b"ghijklmn", chunk=100)
        result = ring.fill(source)
        assert result.count == 6
        assert source.reads == 2
        assert ring.exact_extract(8) == b"efghijkl"

    def test_non_blocking_source(self, ring):
        result = ring.fill(_NonBlocking())
        assert (result.count, result.short_read) == (0, True)


class TestExactExtract:
    """Exact-length reads."""

    def test_extract_in_order(self, ring):
        ring.fill(io.BytesIO(b"abcdef"))
        assert ring.exact_extract(2) == b"ab"
        assert ring.exact_extract(4) == b"cdef"
        assert ring.fill_level() == 0

    def test_extract_zero(self, ring):
        assert ring.exact_extract(0) == b""

    def test_insufficient_data_leaves_buffer(self, ring):
        ring.fill(io.BytesIO(b"abc"))
        with pytest.raises(InsufficientData):
            ring.exact_extract(5)
        assert ring.fill_level() == 3
        assert ring.exact_extract(3) == b"abc"

    def test_exceeds_capacity(self, ring):
        ring.fill(io.BytesIO(b"abc"))
        with pytest.raises(ExceedsCapacity):
            ring.exact_extract(9)
        assert ring.fill_level() == 3

    def test_exceeds_capacity_on_empty_buffer(self, ring):
        with pytest.raises(ExceedsCapacity):
            ring.exact_extract(100)

    def test_full_capacity_request_is_only_insufficient(self, ring):
        with pytest.raises(InsufficientData):
            ring.exact_extract(8)

    def test_extract_across_wrap(self, ring):
        for _ in range(5):
            ring.fill(io.BytesIO(b"0123456"))
            assert ring.exact_extract(7) == b"0123456"
        assert ring.fill_level() == 0

    def test_extract_into(self, ring):
        ring.fill(io.BytesIO(b"abcdef"))
        ring.exact_extract(5)
        ring.fill(io.BytesIO(b"ghijk"))
        destination = bytearray(6)
        assert ring.exact_extract_into(destination, 6) == 6
        assert bytes(destination) == b"fghijk"

    def test_extract_into_short_destination(self, ring):
        ring.fill(io.BytesIO(b"abcdef"))
        with pytest.raises(ValueError):
            ring.exact_extract_into(bytearray(2), 4)
        assert ring.fill_level() == 6

    def test_negative_length(self, ring):
        with pytest.raises(ValueError):
            ring.exact_extract(-1)


class TestSkipAndLevel:

    def test_skip(self, ring):
        ring.fill(io.BytesIO(b"abcdef"))
        ring.skip(4)
        assert ring.exact_extract(2) == b"ef"

    def test_skip_failures_leave_buffer(self, ring):
        ring.fill(io.BytesIO(b"ab"))
        with pytest.raises(InsufficientData):
            ring.skip(3)
        with pytest.raises(ExceedsCapacity):
            ring.skip(9)
        assert len(ring) == 2

    def test_level_after_wrap(self, ring):
        ring.fill(io.BytesIO(b"abcdefgh"))
        ring.exact_extract(6)
        ring.fill(io.BytesIO(b"ijklmn"))
        assert ring.fill_level() == 8

    def test_clear(self, ring):
        ring.fill(io.BytesIO(b"abc"))
        ring.clear()
        assert ring.fill_level() == 0

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            RingBuffer(0)
