import hashlib
from typing import Optional
from .errors import UnmappedAddressError, HexError


BANK_SELECT_MASK = 0x408000
BANK_OFFSET_MASK = 0x3FFFFF


def translate(addr: int) -> int:
    """Folds a SNES bank address into a ROM file offset. Unmapped addresses fold to 0."""
    if addr & BANK_SELECT_MASK != 0:
        return addr & BANK_OFFSET_MASK
    return 0


def is_mapped(addr: int) -> bool:
    return addr & BANK_SELECT_MASK != 0


def resolve(addr: int) -> int:
    """Like translate, but refuses addresses outside the mapped banks instead of folding them to 0"""
    if not is_mapped(addr):
        raise UnmappedAddressError(addr)
    return translate(addr)


def content_hash(data: bytes) -> bytes:
    return hashlib.md5(data).digest()


HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


def _hex_digits(s: str) -> Optional[str]:
    """Returns s without its 0x prefix, or None if s is not a 0x-prefixed hex number"""
    if not s.startswith("0x") or len(s) < 3:
        return None
    digits = s[2:]
    if not HEX_DIGITS.issuperset(digits):
        return None
    return digits


def parse_hex(s: str) -> int:
    if len(s) == 0:
        raise HexError("Error Parsing: empty hex string")
    digits = _hex_digits(s)
    if digits is None:
        raise HexError("Error Parsing: invalid hex string `{}`".format(s))
    return int(digits, 16)


def parse_hex_range(s: str) -> range:
    """Parses '0xBEGIN-0xEND' into range(BEGIN, END)"""
    if len(s) == 0:
        raise HexError("Error Parsing: empty hex string")
    parts = s.split("-")
    if len(parts) != 2:
        raise HexError("Error Parsing: invalid hex string range `{}`".format(s))
    (beg, end) = map(_hex_digits, parts)
    if beg is None or end is None:
        raise HexError("Error Parsing: invalid hex string range `{}`".format(s))
    return range(int(beg, 16), int(end, 16))


def format_hex_range(r: range) -> str:
    return "0x{:06X}-0x{:06X}".format(r.start, r.stop)
