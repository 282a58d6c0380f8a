from .checked import CheckedBuffer, Span
from .errors import BoundsError, PointerError


MAX_POINTER_WIDTH = 4


def _check_width(width: int):
    if width < 1 or width > MAX_POINTER_WIDTH:
        raise PointerError("Table", "pointer width must be between 1 and {} (was {})".format(MAX_POINTER_WIDTH, width))


def max_pointer(width: int) -> int:
    return (1 << (8 * width)) - 1


def read_pointer(buf: CheckedBuffer, index: int, width: int) -> int:
    """Reads a little-endian pointer of width bytes at index"""
    _check_width(width)
    try:
        raw = buf.get(Span.exclusive(index, index + width))
    except BoundsError as err:
        raise PointerError("Extract", str(err)) from err
    value = 0
    for (i, byte) in enumerate(raw):
        value += byte << (8 * i)
    return value


def write_pointer(buf: CheckedBuffer, index: int, width: int, value: int):
    """Writes value as a little-endian pointer of width bytes at index. Bits above width are dropped."""
    _check_width(width)
    raw = bytes((value >> (8 * i)) & 0xff for i in range(width))
    try:
        buf.write(index, raw)
    except BoundsError as err:
        raise PointerError("Splice", str(err)) from err
