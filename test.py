import json
import os
import tempfile
import unittest
import warnings
from unittest import mock
from ff6_recompress import lzss, codec
from ff6_recompress.__main__ import main
from ff6_recompress.checked import CheckedBuffer, Span, Bound, MAX_INDEX, get_checked, get_checked_mut, resolve_span
from ff6_recompress.descriptors import DescriptorStore, SingleAsset, TableAsset
from ff6_recompress.errors import (
    BoundsError,
    EndIndexOverflowError,
    StartIndexOverflowError,
    LzssError,
    CodecError,
    PointerError,
    DescriptorError,
    UnmappedAddressError,
    HexError)
from ff6_recompress.pointers import read_pointer, write_pointer
from ff6_recompress.rom import Rom
from ff6_recompress.util import translate, resolve, is_mapped, parse_hex, parse_hex_range, content_hash


BYTES = bytes([
    0xA0, 0x11, 0xB2, 0xD3, 0xF4, 0x35, 0x66, 0x17, 0x53, 0x65, 0xDA, 0xCB, 0x4C, 0xD5,
    0x3E, 0x1F,
])

APLIB_ZEROS = bytes([0xFF, 0xFF, 0, 173, 1, 86, 192, 0])


def lzss_literals(data: bytes) -> bytes:
    """Encodes data as an LZSS block made of literals only"""
    body = bytearray()
    for i in range(0, len(data), 8):
        body.append(0xff)
        body += data[i:i + 8]
    length = len(body) + 2
    return bytes([length & 0xff, length >> 8]) + bytes(body)


ZEROS = bytes(64)
TWOS = b"\x22" * 64
# No repeats and no zeros, so aPLib can't beat the literal LZSS encoding
DISTINCT = bytes(range(1, 65))


class TestCheckedAccess(unittest.TestCase):
    def test_index(self):
        self.assertEqual(get_checked(BYTES, 4), BYTES[4])

    def test_index_edge(self):
        self.assertEqual(get_checked(BYTES, 15), BYTES[15])

    def test_index_error(self):
        with self.assertRaises(BoundsError) as ctx:
            get_checked(BYTES, 16)
        self.assertEqual(str(ctx.exception), "index 16 out of range for slice of length 16")

    def test_negative_index_does_not_wrap(self):
        with self.assertRaises(BoundsError):
            get_checked(BYTES, -1)

    def test_range_full(self):
        self.assertEqual(get_checked(BYTES, Span.full()), BYTES)
        self.assertEqual(get_checked(BYTES, slice(None)), BYTES)

    def test_range_exclusive(self):
        ret = get_checked(BYTES, range(2, 5))
        self.assertEqual(len(ret), 3)
        self.assertEqual(ret, BYTES[2:5])

    def test_range_inclusive(self):
        ret = get_checked(BYTES, Span.inclusive(2, 5))
        self.assertEqual(len(ret), 4)
        self.assertEqual(ret, BYTES[2:6])

    def test_range_zero(self):
        self.assertEqual(get_checked(BYTES, Span.exclusive(0, 0)), b"")
        self.assertEqual(get_checked(BYTES, Span.inclusive(0, 0)), BYTES[0:1])

    def test_range_from(self):
        self.assertEqual(get_checked(BYTES, Span.starting_at(5)), BYTES[5:])
        self.assertEqual(get_checked(BYTES, Span.starting_at(16)), b"")

    def test_range_from_oob_error(self):
        with self.assertRaises(BoundsError) as ctx:
            get_checked(BYTES, Span.starting_at(17))
        self.assertEqual(str(ctx.exception), "range start index 17 out of range for slice of length 16")

    def test_range_inverse_error(self):
        with self.assertRaises(BoundsError) as ctx:
            get_checked(BYTES, range(17, 5))
        self.assertEqual(str(ctx.exception), "range start index 17 out of range for slice of length 5")

    def test_range_end_error(self):
        with self.assertRaises(BoundsError) as ctx:
            get_checked(BYTES, slice(4, 20))
        self.assertEqual(str(ctx.exception), "range end index 20 out of range for slice of length 16")

    def test_range_to(self):
        self.assertEqual(get_checked(BYTES, Span.up_to(5)), BYTES[:5])
        self.assertEqual(get_checked(BYTES, Span(0, 5, Bound.UNBOUNDED, Bound.INCLUDED)), BYTES[:6])

    def test_excluded_start(self):
        self.assertEqual(get_checked(BYTES, Span(1, 4, Bound.EXCLUDED, Bound.EXCLUDED)), BYTES[2:4])

    def test_end_overflow_error(self):
        with self.assertRaises(EndIndexOverflowError):
            get_checked(BYTES, Span.inclusive(0, MAX_INDEX))

    def test_start_overflow_error(self):
        with self.assertRaises(StartIndexOverflowError):
            get_checked(BYTES, Span(MAX_INDEX, 0, Bound.EXCLUDED, Bound.UNBOUNDED))

    def test_stepped_slice_rejected(self):
        with self.assertRaises(ValueError):
            get_checked(BYTES, slice(0, 8, 2))

    def test_matches_native_slicing(self):
        for start in range(-2, 19):
            for end in range(-2, 19):
                if 0 <= start <= end <= len(BYTES):
                    self.assertEqual(get_checked(BYTES, slice(start, end)), BYTES[start:end])
                    self.assertEqual(resolve_span(Span.exclusive(start, end), len(BYTES)), (start, end))
                else:
                    with self.assertRaises(BoundsError):
                        get_checked(BYTES, slice(start, end))

    def test_get_checked_mut_writes_through(self):
        buf = bytearray(BYTES)
        with get_checked_mut(buf, range(0, 2)) as view:
            view[:] = b"\x00\x01"
        self.assertEqual(buf[0:3], bytearray([0x00, 0x01, 0xB2]))

    def test_get_checked_mut_error(self):
        with self.assertRaises(BoundsError):
            get_checked_mut(bytearray(4), range(2, 5))

    def test_buffer_splice(self):
        buf = CheckedBuffer(buf=b"abcdef")
        delta = buf.splice(range(1, 4), b"X")
        self.assertEqual(delta, -2)
        self.assertEqual(bytes(buf), b"aXef")
        buf.splice(range(4, 4), b"gh")
        self.assertEqual(bytes(buf), b"aXefgh")

    def test_buffer_splice_error_leaves_buffer_intact(self):
        buf = CheckedBuffer(buf=b"abc")
        with self.assertRaises(BoundsError):
            buf.splice(range(2, 4), b"")
        self.assertEqual(bytes(buf), b"abc")

    def test_buffer_init(self):
        self.assertEqual(bytes(CheckedBuffer(3)), b"\x00\x00\x00")
        self.assertEqual(bytes(CheckedBuffer(buf=b"ab")), b"ab")
        with self.assertRaises(TypeError):
            CheckedBuffer(3, b"ab", b"cd")

    def test_buffer_write(self):
        buf = CheckedBuffer(size=4)
        self.assertEqual(buf.write(1, b"\x01\x02"), 3)
        self.assertEqual(bytes(buf), b"\x00\x01\x02\x00")
        with self.assertRaises(BoundsError):
            buf.write(3, b"\x01\x02")
        self.assertEqual(len(buf), 4)


class TestAddress(unittest.TestCase):
    def test_translate(self):
        self.assertEqual(translate(0xC4C008), 0x04C008)
        self.assertEqual(translate(0x000000), 0)
        self.assertEqual(translate(0x408000), 0x008000)
        self.assertEqual(translate(0x008000), 0x008000)

    def test_translate_unmapped_folds_to_zero(self):
        self.assertEqual(translate(0x001234), 0)
        self.assertFalse(is_mapped(0x001234))

    def test_resolve(self):
        self.assertEqual(resolve(0xC00000), 0)
        with self.assertRaises(UnmappedAddressError):
            resolve(0x001234)


class TestHex(unittest.TestCase):
    def test_parse_hex(self):
        self.assertEqual(parse_hex("0x1F331"), 0x1F331)
        self.assertEqual(parse_hex("0x1f331"), 0x1F331)

    def test_parse_hex_errors(self):
        for (text, msg) in [
                ("", "Error Parsing: empty hex string"),
                ("0x", "Error Parsing: invalid hex string `0x`"),
                ("FFFF", "Error Parsing: invalid hex string `FFFF`"),
                ("0x+1", "Error Parsing: invalid hex string `0x+1`")]:
            with self.assertRaises(HexError) as ctx:
                parse_hex(text)
            self.assertEqual(str(ctx.exception), msg)

    def test_parse_hex_range(self):
        self.assertEqual(parse_hex_range("0x1F331-0xEEBB1"), range(0x1F331, 0xEEBB1))

    def test_parse_hex_range_errors(self):
        for text in ["-", "0x-", "-0x", "0xFF", "0xFFFF-FFFF", "0xssss-0xFFFF", "0x1-0x2-0x3"]:
            with self.assertRaises(HexError) as ctx:
                parse_hex_range(text)
            self.assertEqual(str(ctx.exception), "Error Parsing: invalid hex string range `{}`".format(text))


class TestLzss(unittest.TestCase):
    def test_decompress(self):
        (data, size) = lzss.decompress(bytes([0x06, 0x00, 0x01, 0x11, 0xDE, 0x37]))
        self.assertEqual(size, 6)
        self.assertEqual(data, b"\x11" * 10)

    def test_decompress_literals(self):
        block = lzss_literals(DISTINCT[:13])
        (data, size) = lzss.decompress(block)
        self.assertEqual(size, len(block))
        self.assertEqual(data, DISTINCT[:13])

    def test_decompress_at_offset_ignores_trailing_data(self):
        block = lzss_literals(TWOS)
        (data, size) = lzss.decompress(b"junk" + block + b"tail", 4)
        self.assertEqual(size, len(block))
        self.assertEqual(data, TWOS)

    def test_error_data_too_short(self):
        with self.assertRaises(LzssError) as ctx:
            lzss.decompress(bytes([0]))
        self.assertEqual(str(ctx.exception), "LZSS Decompression Error: Input data too short (<2)")

    def test_error_length_zero(self):
        with self.assertRaises(LzssError) as ctx:
            lzss.decompress(bytes([0, 0]))
        self.assertEqual(str(ctx.exception), "LZSS Decompression Error: Invalid compression length of 0")

    def test_error_size_mismatch(self):
        with self.assertRaises(LzssError) as ctx:
            lzss.decompress(bytes([5, 0, 1]))
        self.assertEqual(str(ctx.exception), "LZSS Decompression Error: Buffer length is less than decoded data size (3<5)")

    def test_error_data_oob(self):
        with self.assertRaises(LzssError) as ctx:
            lzss.decompress(bytes([3, 0, 1, 1]))
        self.assertEqual(str(ctx.exception), "LZSS Decompression Error: Iterated past end of input buffer (>1)")


class TestCodec(unittest.TestCase):
    def test_decompress(self):
        self.assertEqual(codec.decompress(APLIB_ZEROS), bytes(100))

    def test_compress(self):
        self.assertEqual(codec.compress(bytes(100)), APLIB_ZEROS)

    def test_compress_single_byte(self):
        self.assertEqual(codec.compress(b"\x42"), b"\xff\xff\x42\xc0\x00")
        self.assertEqual(codec.decompress(codec.compress(b"\x42")), b"\x42")

    def test_compress_round_trip(self):
        text = b"The quick brown fox jumps over the lazy dog. " * 4 + b"the lazy fox, the quick dog"
        self.assertEqual(codec.decompress(codec.compress(text)), text)
        self.assertLess(len(codec.compress(text)), len(text))
        mixed = bytes(range(256)) + b"\x00\x01\x00\x01\x00\x02" + TWOS + DISTINCT + bytes(range(256))
        self.assertEqual(codec.decompress(codec.compress(mixed)), mixed)

    def test_compress_far_matches(self):
        block = bytes((i * i * 7 + i * 13) % 256 for i in range(300))
        for gap in [200, 2000, 40000]:
            filler = bytes((i * 73 + 41) % 251 for i in range(gap))
            data = block + filler + block
            self.assertEqual(codec.decompress(codec.compress(data)), data)

    def test_decompress_corrupt_stream_error(self):
        with self.assertRaises(CodecError) as ctx:
            codec.decompress(b"\xff\xff\x00\x80")
        self.assertTrue(str(ctx.exception).startswith("Aplib Decompression Error: "))

    def test_decompress_unexpected_errors_propagate(self):
        with mock.patch("aplib.decompress", side_effect=ValueError("boom")):
            with self.assertRaises(ValueError):
                codec.decompress(APLIB_ZEROS)

    def test_compress_size_zero_error(self):
        with self.assertRaises(CodecError) as ctx:
            codec.compress(b"")
        self.assertEqual(str(ctx.exception), "Aplib Compression Error: Input size of zero")

    def test_decompress_short_header_error(self):
        for data in [b"", b"\xff"]:
            with self.assertRaises(CodecError) as ctx:
                codec.decompress(data)
            self.assertEqual(str(ctx.exception), "Aplib Decompression Error: Header too short (<2)")

    def test_decompress_invalid_header_error(self):
        for data in [APLIB_ZEROS[2:], b"\xff\x00\x00", b"\x00\xff\x00"]:
            with self.assertRaises(CodecError) as ctx:
                codec.decompress(data)
            self.assertEqual(str(ctx.exception), "Aplib Decompression Error: Invalid header")

    def test_decompress_size_zero_error(self):
        with self.assertRaises(CodecError) as ctx:
            codec.decompress(b"\xff\xff")
        self.assertEqual(str(ctx.exception), "Aplib Decompression Error: Input size of zero")


class TestPointers(unittest.TestCase):
    def test_read_pointer(self):
        buf = CheckedBuffer(buf=b"\x00\x34\x12\xC4\x00")
        self.assertEqual(read_pointer(buf, 1, 1), 0x34)
        self.assertEqual(read_pointer(buf, 1, 2), 0x1234)
        self.assertEqual(read_pointer(buf, 1, 3), 0xC41234)
        self.assertEqual(read_pointer(buf, 1, 4), 0x00C41234)

    def test_write_pointer(self):
        buf = CheckedBuffer(size=5)
        write_pointer(buf, 1, 3, 0xC41234)
        self.assertEqual(bytes(buf), b"\x00\x34\x12\xC4\x00")

    def test_write_pointer_truncates(self):
        buf = CheckedBuffer(size=2)
        write_pointer(buf, 0, 1, 0x1FF)
        self.assertEqual(bytes(buf), b"\xff\x00")

    def test_read_pointer_error(self):
        buf = CheckedBuffer(size=4)
        with self.assertRaises(PointerError) as ctx:
            read_pointer(buf, 3, 2)
        self.assertEqual(str(ctx.exception), "Extract Pointer Error: `range end index 5 out of range for slice of length 4`")
        self.assertIsInstance(ctx.exception.__cause__, BoundsError)

    def test_write_pointer_error(self):
        buf = CheckedBuffer(size=4)
        with self.assertRaises(PointerError) as ctx:
            write_pointer(buf, 4, 1, 0)
        self.assertEqual(str(ctx.exception), "Splice Pointer Error: `range end index 5 out of range for slice of length 4`")
        self.assertEqual(bytes(buf), bytes(4))

    def test_invalid_width(self):
        with self.assertRaises(PointerError):
            read_pointer(CheckedBuffer(size=8), 0, 5)


class TestDescriptors(unittest.TestCase):
    def make_store(self) -> DescriptorStore:
        return DescriptorStore.from_dict({
            "single": {"range": "0xC00010-0xC00020", "comment": "kept"},
            "table": {
                "range": "0xC00040-0xC00100",
                "table": {"range": "0xC00010-0xC00016", "pointer_width": 2, "entry_count": 3, "data_base": "0xC00000"}
            },
        })

    def test_extract_single(self):
        asset = self.make_store().extract("single")
        self.assertIsInstance(asset, SingleAsset)
        self.assertEqual(asset.range, range(0xC00010, 0xC00020))

    def test_extract_table(self):
        asset = self.make_store().extract("table")
        self.assertIsInstance(asset, TableAsset)
        self.assertEqual(asset.table.range, range(0xC00010, 0xC00016))
        self.assertEqual(asset.table.pointer_width, 2)
        self.assertEqual(asset.table.entry_count, 3)
        self.assertEqual(asset.table.data_base, 0xC00000)

    def test_extract_missing(self):
        with self.assertRaises(DescriptorError) as ctx:
            self.make_store().extract("nope")
        self.assertEqual(str(ctx.exception), "Error Parsing: failed to find JSON entry `nope`")

    def test_extract_malformed(self):
        store = DescriptorStore.from_dict({
            "a": {},
            "b": {"range": "0xC00010"},
            "c": {"range": "0xC00010-0xC00020", "table": {"range": "0xC00010-0xC00016", "pointer_width": 5, "entry_count": 1, "data_base": 0}},
        })
        for name in ["a", "b", "c"]:
            with self.assertRaises(DescriptorError):
                store.extract(name)

    def test_update_and_save(self):
        store = self.make_store()
        store.update("single", range(0xC00010, 0xC00018))
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "descriptors.json")
            store.save(path)
            loaded = DescriptorStore.load(path)
        self.assertEqual(loaded.extract("single").range, range(0xC00010, 0xC00018))
        self.assertEqual(loaded.to_dict()["single"]["comment"], "kept")
        self.assertEqual(loaded.names(), ["single", "table"])

    def test_load_malformed_json(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "descriptors.json")
            with open(path, "w") as f:
                f.write("{not json")
            with self.assertRaises(DescriptorError):
                DescriptorStore.load(path)


class TestRomSingle(unittest.TestCase):
    def test_recompress_single(self):
        block = lzss_literals(ZEROS)
        image = b"HEAD" + block + b"TAIL"
        store = DescriptorStore.from_dict({"zeros": {"range": "0xC00004-0xC00010"}})
        rom = Rom(image, store)
        new_range = rom.recompress("zeros")

        expected = codec.compress(ZEROS)
        self.assertEqual(bytes(rom.image), b"HEAD" + expected + b"TAIL")
        self.assertEqual(new_range, range(0xC00004, 0xC00004 + len(expected)))
        self.assertEqual(store.extract("zeros").range, new_range)
        self.assertEqual(rom.saved_bytes, len(block) - len(expected))

    def test_growth_warns_and_still_replaces(self):
        block = lzss_literals(DISTINCT)
        image = b"HEAD" + block + b"TAIL"
        rom = Rom(image, DescriptorStore.from_dict({"distinct": {"range": "0xC00004-0xC00010"}}))
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            rom.recompress("distinct")
        self.assertEqual(len(caught), 1)
        self.assertIn("grew", str(caught[0].message))
        self.assertEqual(rom.saved_bytes, 0)
        self.assertEqual(bytes(rom.image), b"HEAD" + codec.compress(DISTINCT) + b"TAIL")

    def test_savings_accumulate(self):
        zeros = lzss_literals(ZEROS)
        twos = lzss_literals(TWOS)
        image = zeros + twos
        store = DescriptorStore.from_dict({
            "twos": {"range": "0xC0{:04X}-0xC0FFFF".format(len(zeros))},
            "zeros": {"range": "0xC00000-0xC00010"},
        })
        rom = Rom(image, store)
        rom.recompress("twos")
        after_first = rom.saved_bytes
        self.assertEqual(after_first, len(twos) - len(codec.compress(TWOS)))
        rom.recompress("zeros")
        self.assertGreaterEqual(rom.saved_bytes, after_first)
        self.assertEqual(rom.saved_bytes, after_first + len(zeros) - len(codec.compress(ZEROS)))
        self.assertEqual(bytes(rom.image), codec.compress(ZEROS) + codec.compress(TWOS))

    def test_decode_error_propagates(self):
        rom = Rom(bytes(16), DescriptorStore.from_dict({"broken": {"range": "0xC00004-0xC00010"}}))
        with self.assertRaises(LzssError):
            rom.recompress("broken")
        self.assertEqual(bytes(rom.image), bytes(16))

    def test_unmapped_address(self):
        rom = Rom(lzss_literals(ZEROS), DescriptorStore.from_dict({"low": {"range": "0x000000-0x000010"}}))
        with self.assertRaises(UnmappedAddressError):
            rom.recompress("low")

    def test_process_stops_at_first_error(self):
        zeros = lzss_literals(ZEROS)
        store = DescriptorStore.from_dict({"zeros": {"range": "0xC00000-0xC00010"}})
        rom = Rom(zeros + b"TAIL", store)
        with self.assertRaises(DescriptorError):
            rom.process(["zeros", "missing", "zeros"])
        # First asset stays patched
        self.assertEqual(bytes(rom.image), codec.compress(ZEROS) + b"TAIL")


class TestRomTable(unittest.TestCase):
    DATA_START = 0x40

    def make_rom(self, pointers: list[int], blocks: list[bytes], width=2, table_offset=0x10) -> Rom:
        head = bytearray(self.DATA_START)
        for (i, pointer) in enumerate(pointers):
            head[table_offset + i * width:table_offset + (i + 1) * width] = pointer.to_bytes(width, "little")
        image = bytes(head) + b"".join(blocks) + b"TAIL"
        store = DescriptorStore.from_dict({
            "table": {
                "range": "0xC00040-0xC00100",
                "table": {
                    "range": "0x{:06X}-0x{:06X}".format(0xC00000 + table_offset, 0xC00000 + table_offset + len(pointers) * width),
                    "pointer_width": width,
                    "entry_count": len(pointers),
                    "data_base": "0xC00000",
                },
            },
        })
        return Rom(image, store)

    def table_pointers(self, rom: Rom, count: int, width=2, table_offset=0x10) -> list[int]:
        return [read_pointer(rom.image, table_offset + i * width, width) for i in range(count)]

    def test_recompress_table_dedups_identical_data(self):
        a = lzss_literals(ZEROS)
        b = lzss_literals(TWOS)
        pointers = [0x40, 0x40 + len(a), 0x40 + len(a) + len(b)]
        rom = self.make_rom(pointers, [a, b, a])
        new_range = rom.recompress("table")

        ca = codec.compress(ZEROS)
        cb = codec.compress(TWOS)
        self.assertEqual(self.table_pointers(rom, 3), [0x40, 0x40 + len(ca), 0x40])
        self.assertEqual(rom.image.get(Span.starting_at(self.DATA_START)), ca + cb + b"TAIL")
        self.assertEqual(new_range, range(0xC00040, 0xC00040 + len(ca) + len(cb)))
        self.assertEqual(rom.descriptors.extract("table").range, new_range)
        self.assertEqual(rom.saved_bytes, 2 * (len(a) - len(ca)) + len(b) - len(cb))

    def test_recompress_table_shared_pointer(self):
        a = lzss_literals(ZEROS)
        rom = self.make_rom([0x40, 0x40], [a])
        rom.recompress("table")
        ca = codec.compress(ZEROS)
        self.assertEqual(self.table_pointers(rom, 2), [0x40, 0x40])
        self.assertEqual(rom.image.get(Span.starting_at(self.DATA_START)), ca + b"TAIL")

    def test_pointer_below_first_entry_is_skipped(self):
        a = lzss_literals(ZEROS)
        rom = self.make_rom([0x40, 0x08], [a])
        new_range = rom.recompress("table")
        ca = codec.compress(ZEROS)
        # The skipped entry gets an empty slot right after the data
        self.assertEqual(self.table_pointers(rom, 2), [0x40, 0x40 + len(ca)])
        self.assertEqual(rom.image.get(Span.starting_at(self.DATA_START)), ca + b"TAIL")
        self.assertEqual(new_range, range(0xC00040, 0xC00040 + len(ca)))

    def test_one_byte_pointers(self):
        a = lzss_literals(ZEROS)
        b = lzss_literals(TWOS)
        rom = self.make_rom([0x40, 0x40 + len(a)], [a, b], width=1)
        rom.recompress("table")
        ca = codec.compress(ZEROS)
        cb = codec.compress(TWOS)
        self.assertEqual(self.table_pointers(rom, 2, width=1), [0x40, 0x40 + len(ca)])
        self.assertEqual(rom.image.get(Span.starting_at(self.DATA_START)), ca + cb + b"TAIL")

    def test_table_after_data(self):
        a = lzss_literals(ZEROS)
        gap = b"GAP!"
        image = bytes(0x10) + a + gap + (0x10).to_bytes(2, "little") + b"TAIL"
        table_offset = 0x10 + len(a) + len(gap)
        store = DescriptorStore.from_dict({
            "table": {
                "range": "0xC00010-0xC00100",
                "table": {
                    "range": "0x{:06X}-0x{:06X}".format(0xC00000 + table_offset, 0xC00000 + table_offset + 2),
                    "pointer_width": 2,
                    "entry_count": 1,
                    "data_base": "0xC00000",
                },
            },
        })
        rom = Rom(image, store)
        rom.recompress("table")
        ca = codec.compress(ZEROS)
        self.assertEqual(bytes(rom.image), bytes(0x10) + ca + gap + b"\x10\x00" + b"TAIL")

    def test_table_inside_data_rejected_before_patching(self):
        a = lzss_literals(ZEROS)
        c = lzss_literals(TWOS)
        table_offset = 0x10 + len(a)
        pointers = (0x10).to_bytes(2, "little") + (table_offset + 4).to_bytes(2, "little")
        image = bytes(0x10) + a + pointers + c + b"TAIL"
        store = DescriptorStore.from_dict({
            "table": {
                "range": "0xC00010-0xC00100",
                "table": {
                    "range": "0x{:06X}-0x{:06X}".format(0xC00000 + table_offset, 0xC00000 + table_offset + 4),
                    "pointer_width": 2,
                    "entry_count": 2,
                    "data_base": "0xC00000",
                },
            },
        })
        rom = Rom(image, store)
        with self.assertRaises(DescriptorError) as ctx:
            rom.recompress("table")
        self.assertIn("overlaps its data", str(ctx.exception))
        self.assertEqual(bytes(rom.image), image)
        self.assertEqual(rom.saved_bytes, 0)

    def test_decode_error_aborts_table(self):
        a = lzss_literals(ZEROS)
        rom = self.make_rom([0x40, 0x40 + len(a)], [a, b"\x00\x00"])
        with self.assertRaises(LzssError):
            rom.recompress("table")


class TestContentHash(unittest.TestCase):
    def test_content_hash(self):
        self.assertEqual(content_hash(b"abc"), content_hash(bytearray(b"abc")))
        self.assertNotEqual(content_hash(b"abc"), content_hash(b"abd"))
        self.assertEqual(len(content_hash(b"")), 16)


class TestCli(unittest.TestCase):
    def test_main(self):
        with tempfile.TemporaryDirectory() as tmp:
            rom_path = os.path.join(tmp, "game.sfc")
            descriptors_path = os.path.join(tmp, "descriptors.json")
            out_path = os.path.join(tmp, "patched.sfc")
            with open(rom_path, "wb") as f:
                f.write(b"HEAD" + lzss_literals(ZEROS) + b"TAIL")
            with open(descriptors_path, "w") as f:
                json.dump({"zeros": {"range": "0xC00004-0xC00010"}}, f)

            status = main([rom_path, descriptors_path, "-o", out_path, "-a", "zeros"])

            self.assertEqual(status, 0)
            with open(out_path, "rb") as f:
                self.assertEqual(f.read(), b"HEAD" + codec.compress(ZEROS) + b"TAIL")
            with open(descriptors_path) as f:
                saved = json.load(f)
            self.assertEqual(saved["zeros"]["range"], "0xC00004-0x{:06X}".format(0xC00004 + len(codec.compress(ZEROS))))

    def test_main_reports_errors(self):
        with tempfile.TemporaryDirectory() as tmp:
            status = main([os.path.join(tmp, "missing.sfc"), os.path.join(tmp, "missing.json")])
        self.assertEqual(status, 1)


if __name__ == '__main__':
    unittest.main()
