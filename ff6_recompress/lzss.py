from .checked import get_checked, set_checked
from .errors import LzssError


RING_SIZE = 0x800
RING_MASK = RING_SIZE - 1
# Where the game starts writing into its decompression window
RING_START = 0x07DE


class Decoder:
    """Decodes one length-prefixed LZSS block starting at offset in src"""

    def __init__(self, src, offset: int = 0):
        self.src = src
        self.offset = offset
        self.length = 0
        self._end = offset
        self._ring = bytearray(RING_SIZE)
        self._ring_cursor = RING_START
        self.decompressed_buf = bytearray()

    def _read_length(self) -> int:
        available = len(self.src) - self.offset
        if available < 2:
            raise LzssError("Input data too short (<2)")
        length = get_checked(self.src, self.offset) | get_checked(self.src, self.offset + 1) << 8
        if length == 0:
            raise LzssError("Invalid compression length of 0")
        if length > available:
            raise LzssError("Buffer length is less than decoded data size ({}<{})".format(available, length))
        return length

    def _next_byte(self, cursor: int) -> tuple[int, int]:
        """Returns the byte at cursor and the advanced cursor"""
        if cursor >= self._end:
            raise LzssError("Iterated past end of input buffer (>{})".format(self.length - 2))
        return (get_checked(self.src, cursor), cursor + 1)

    def _emit(self, value: int):
        self.decompressed_buf.append(value)
        set_checked(self._ring, self._ring_cursor, value)
        self._ring_cursor = (self._ring_cursor + 1) & RING_MASK

    def decompress(self) -> tuple[bytearray, int]:
        self.length = self._read_length()
        self._end = self.offset + self.length
        cursor = self.offset + 2
        while cursor < self._end:
            (header, cursor) = self._next_byte(cursor)
            # Each header bit selects a literal (1) or a window reference (0), LSB first
            for _ in range(8):
                if header & 1:
                    (literal, cursor) = self._next_byte(cursor)
                    self._emit(literal)
                else:
                    (low, cursor) = self._next_byte(cursor)
                    (high, cursor) = self._next_byte(cursor)
                    word = low | high << 8
                    size = (word >> 11) + 3
                    window_offset = word & RING_MASK
                    for i in range(size):
                        self._emit(get_checked(self._ring, (window_offset + i) & RING_MASK))
                # Leftover header bits are ignored once the block is consumed
                if cursor == self._end:
                    break
                header >>= 1
        return (self.decompressed_buf, self.length)


def decompress(src, offset: int = 0) -> tuple[bytearray, int]:
    """Returns (decompressed data, compressed size including the length prefix)"""
    dec = Decoder(src, offset)
    return dec.decompress()


def compressed_size(src, offset: int = 0) -> int:
    """Reads only the length prefix of the block at offset"""
    return Decoder(src, offset)._read_length()
