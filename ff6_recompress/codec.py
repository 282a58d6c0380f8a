import aplib
from .errors import CodecError


# Recompressed assets are tagged so the patched game code can tell them apart from LZSS blocks
HEADER = b"\xff\xff"

MAX_OFFSET = 0x10000
# How many earlier positions with the same two leading bytes are tried per match search
MAX_CHAIN = 256


def _length_delta(offset: int) -> int:
    """Bytes the decoder adds to a gamma coded match length at this offset"""
    delta = 0
    if offset >= 32000:
        delta += 1
    if offset >= 1280:
        delta += 1
    if offset < 128:
        delta += 2
    return delta


class Encoder:
    """Greedy aPLib packer. Output decodes with any aPLib depacker and carries no AP32 header."""

    def __init__(self, uncompressed_buf: bytes):
        self._max_offset = MAX_OFFSET
        self._read_cursor = 0
        self._tag_cursor = 0
        self._bits_left = 0
        self._last_offset = 0
        self._after_match = False
        self._positions = {}
        self._uncompressed_buf = bytes(uncompressed_buf)
        self._uncompressed_len = len(uncompressed_buf)
        self.compressed_buf = bytearray()

    def _write_byte(self, value: int):
        self.compressed_buf.append(value & 0xFF)

    def _write_bit(self, bit):
        # Tag bytes are reserved in the output the moment their first bit is written, MSB first
        if self._bits_left == 0:
            self._tag_cursor = len(self.compressed_buf)
            self.compressed_buf.append(0)
            self._bits_left = 8
        self._bits_left -= 1
        if bit:
            self.compressed_buf[self._tag_cursor] |= 1 << self._bits_left

    def _write_bits(self, value: int, count: int):
        for i in range(count - 1, -1, -1):
            self._write_bit((value >> i) & 1)

    def _write_gamma(self, value: int):
        for i in range(value.bit_length() - 2, -1, -1):
            self._write_bit((value >> i) & 1)
            self._write_bit(i > 0)

    def _index(self, start: int, end: int):
        for pos in range(start, min(end, self._uncompressed_len - 1)):
            key = self._uncompressed_buf[pos:pos + 2]
            self._positions.setdefault(key, []).append(pos)

    def _match_length(self, pos: int) -> int:
        # Matches may run past the read cursor, the decoder copies byte by byte
        buf = self._uncompressed_buf
        cursor = self._read_cursor
        limit = self._uncompressed_len - cursor
        length = 0
        while length < limit and buf[pos + length] == buf[cursor + length]:
            length += 1
        return length

    def _lz77_longest_match(self) -> tuple[int, int]:
        cursor = self._read_cursor
        limit = self._uncompressed_len - cursor
        best_offset = 0
        best_len = 0
        if limit < 2:
            return (best_offset, best_len)
        candidates = self._positions.get(self._uncompressed_buf[cursor:cursor + 2], [])
        for pos in reversed(candidates[-MAX_CHAIN:]):
            offset = cursor - pos
            if offset > self._max_offset:
                break
            length = self._match_length(pos)
            if length > best_len:
                (best_offset, best_len) = (offset, length)
                if length == limit:
                    break
        return (best_offset, best_len)

    def _near_offset(self, value: int) -> int:
        for offset in range(1, min(15, self._read_cursor) + 1):
            if self._uncompressed_buf[self._read_cursor - offset] == value:
                return offset
        return 0

    def _encode_single(self) -> int:
        value = self._uncompressed_buf[self._read_cursor]
        offset = self._near_offset(value)
        if value == 0 or offset:
            self._write_bits(0b111, 3)
            self._write_bits(offset, 4)
        else:
            self._write_bit(0)
            self._write_byte(value)
        self._after_match = False
        return 1

    def _encode_short_match(self, offset: int, length: int) -> int:
        self._write_bits(0b110, 3)
        self._write_byte(offset << 1 | (length - 2))
        self._last_offset = offset
        self._after_match = True
        return length

    def _encode_rep_match(self, length: int) -> int:
        self._write_bits(0b10, 2)
        self._write_gamma(2)
        self._write_gamma(length)
        self._after_match = True
        return length

    def _encode_match(self, offset: int, length: int) -> int:
        self._write_bits(0b10, 2)
        self._write_gamma((offset >> 8) + (2 if self._after_match else 3))
        self._write_byte(offset)
        self._write_gamma(length - _length_delta(offset))
        self._last_offset = offset
        self._after_match = True
        return length

    def _encode_next(self) -> int:
        (offset, length) = self._lz77_longest_match()
        rep_len = 0
        if not self._after_match and self._last_offset:
            rep_len = self._match_length(self._read_cursor - self._last_offset)
        if rep_len >= 2 and rep_len >= length:
            return self._encode_rep_match(rep_len)
        if 2 <= length <= 3 and offset < 128:
            return self._encode_short_match(offset, length)
        if length >= 2 and length - _length_delta(offset) >= 2:
            return self._encode_match(offset, length)
        return self._encode_single()

    def compress(self) -> bytearray:
        # First byte is always stored verbatim
        self._write_byte(self._uncompressed_buf[0])
        self._index(0, 1)
        self._read_cursor = 1
        while self._read_cursor < self._uncompressed_len:
            start = self._read_cursor
            self._read_cursor += self._encode_next()
            self._index(start, self._read_cursor)
        # End of stream is a short match with offset 0
        self._write_bits(0b110, 3)
        self._write_byte(0)
        return self.compressed_buf


def compress(data: bytes) -> bytes:
    if len(data) == 0:
        raise CodecError("Aplib Compression Error: Input size of zero")
    enc = Encoder(data)
    return HEADER + bytes(enc.compress())


def decompress(data: bytes) -> bytes:
    if len(data) < len(HEADER):
        raise CodecError("Aplib Decompression Error: Header too short (<2)")
    if bytes(data[0:2]) != HEADER:
        raise CodecError("Aplib Decompression Error: Invalid header")
    payload = bytes(data[2:])
    if len(payload) == 0:
        raise CodecError("Aplib Decompression Error: Input size of zero")
    try:
        return aplib.decompress(payload, strict=True)
    except RuntimeError as err:
        raise CodecError("Aplib Decompression Error: {}".format(err)) from err
