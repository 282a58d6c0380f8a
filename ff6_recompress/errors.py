class RecompressError(Exception):
    """Base class of every error raised by this package"""
    pass


class BoundsError(RecompressError, IndexError):
    pass


class IndexOutOfRangeError(BoundsError):
    def __init__(self, index: int, length: int):
        super().__init__("index {} out of range for slice of length {}".format(index, length))
        self.index = index
        self.length = length


class StartIndexError(BoundsError):
    def __init__(self, start: int, length: int):
        super().__init__("range start index {} out of range for slice of length {}".format(start, length))
        self.start = start
        self.length = length


class EndIndexError(BoundsError):
    def __init__(self, end: int, length: int):
        super().__init__("range end index {} out of range for slice of length {}".format(end, length))
        self.end = end
        self.length = length


class StartIndexOverflowError(BoundsError):
    def __init__(self):
        super().__init__("attempted to index slice from after maximum usize")


class EndIndexOverflowError(BoundsError):
    def __init__(self):
        super().__init__("attempted to index slice from after maximum usize")


class LzssError(RecompressError):
    def __init__(self, msg: str):
        super().__init__("LZSS Decompression Error: " + msg)


class CodecError(RecompressError):
    pass


class PointerError(RecompressError):
    def __init__(self, label: str, msg: str):
        super().__init__("{} Pointer Error: `{}`".format(label, msg))


class UnmappedAddressError(RecompressError):
    def __init__(self, addr: int):
        super().__init__("Address Error: 0x{:06X} is not mapped to a ROM bank".format(addr))
        self.addr = addr


class HexError(RecompressError):
    pass


class DescriptorError(RecompressError):
    pass
