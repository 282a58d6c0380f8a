import sys
from dataclasses import dataclass
from .errors import (
    IndexOutOfRangeError,
    StartIndexError,
    EndIndexError,
    StartIndexOverflowError,
    EndIndexOverflowError)


# Largest index a Python sequence can have
MAX_INDEX = sys.maxsize


class Bound:
    INCLUDED = 0
    EXCLUDED = 1
    UNBOUNDED = 2


@dataclass(frozen=True)
class Span:
    """A range of indices whose endpoints may each be included, excluded or unbounded"""
    start: int = 0
    end: int = 0
    start_bound: int = Bound.INCLUDED
    end_bound: int = Bound.EXCLUDED

    @staticmethod
    def exclusive(start: int, end: int) -> "Span":
        return Span(start, end)

    @staticmethod
    def inclusive(start: int, end: int) -> "Span":
        return Span(start, end, end_bound=Bound.INCLUDED)

    @staticmethod
    def starting_at(start: int) -> "Span":
        return Span(start, 0, end_bound=Bound.UNBOUNDED)

    @staticmethod
    def up_to(end: int) -> "Span":
        return Span(0, end, start_bound=Bound.UNBOUNDED)

    @staticmethod
    def full() -> "Span":
        return Span(0, 0, Bound.UNBOUNDED, Bound.UNBOUNDED)

    @staticmethod
    def of(index) -> "Span":
        """Converts a slice or range (step 1) into a Span"""
        if isinstance(index, Span):
            return index
        if isinstance(index, range):
            if index.step != 1:
                raise ValueError("Checked access only supports contiguous ranges (step was {})".format(index.step))
            return Span(index.start, index.stop)
        if isinstance(index, slice):
            if index.step not in (None, 1):
                raise ValueError("Checked access only supports contiguous slices (step was {})".format(index.step))
            start_bound = Bound.UNBOUNDED if index.start is None else Bound.INCLUDED
            end_bound = Bound.UNBOUNDED if index.stop is None else Bound.EXCLUDED
            return Span(index.start or 0, index.stop or 0, start_bound, end_bound)
        raise TypeError("Cannot use '{}' as a span".format(type(index).__name__))


def resolve_span(span: Span, length: int) -> tuple[int, int]:
    """Returns effective (start, end) of span for a buffer of the given length.
    Raises a BoundsError unless 0 <= start <= end <= length."""
    if span.start_bound == Bound.INCLUDED:
        start = span.start
    elif span.start_bound == Bound.EXCLUDED:
        if span.start >= MAX_INDEX:
            raise StartIndexOverflowError()
        start = span.start + 1
    else:
        start = 0

    if span.end_bound == Bound.INCLUDED:
        if span.end >= MAX_INDEX:
            raise EndIndexOverflowError()
        end = span.end + 1
    elif span.end_bound == Bound.EXCLUDED:
        end = span.end
    else:
        end = length

    # Negative indices never wrap around
    if start < 0:
        raise StartIndexError(start, length)
    if start > end:
        raise StartIndexError(start, end)
    if start > length:
        raise StartIndexError(start, length)
    if end > length:
        raise EndIndexError(end, length)
    return (start, end)


def get_checked(buf, index):
    """Integer index returns the byte value, anything else returns a copy of the spanned bytes"""
    length = len(buf)
    if isinstance(index, int):
        if index < 0 or index >= length:
            raise IndexOutOfRangeError(index, length)
        return buf[index]
    (start, end) = resolve_span(Span.of(index), length)
    return bytes(buf[start:end])


def get_checked_mut(buf, index) -> memoryview:
    """Returns a writable view over the spanned bytes of a mutable buffer"""
    (start, end) = resolve_span(Span.of(index), len(buf))
    return memoryview(buf)[start:end]


class CheckedBuffer:
    """Owns a mutable byte buffer. All reads and writes are bounds-checked."""

    def __init__(self, size=0, buf=None):
        if buf is None:
            self.buffer = bytearray(size)
        else:
            self.buffer = bytearray(buf)

    def __len__(self) -> int:
        return len(self.buffer)

    def __bytes__(self) -> bytes:
        return bytes(self.buffer)

    def get(self, index):
        return get_checked(self.buffer, index)

    def get_mut(self, index) -> memoryview:
        return get_checked_mut(self.buffer, index)

    def write(self, offset: int, data: bytes) -> int:
        """Overwrites bytes at offset without changing the buffer length. Returns offset after the data."""
        with self.get_mut(Span.exclusive(offset, offset + len(data))) as dst:
            dst[:] = data
        return offset + len(data)

    def splice(self, index, data: bytes) -> int:
        """Replaces the spanned bytes with data, shifting everything after it.
        Returns the change in buffer length."""
        (start, end) = resolve_span(Span.of(index), len(self.buffer))
        self.buffer[start:end] = data
        return len(data) - (end - start)


def set_checked(buf, index: int, value: int):
    length = len(buf)
    if index < 0 or index >= length:
        raise IndexOutOfRangeError(index, length)
    buf[index] = value
