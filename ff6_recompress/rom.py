from warnings import warn
from . import lzss, codec
from .checked import CheckedBuffer, Span
from .descriptors import DescriptorStore, SingleAsset, TableAsset
from .errors import PointerError, DescriptorError
from .pointers import read_pointer, write_pointer, max_pointer
from .util import resolve, content_hash


# Assets recompressed by a full run, in processing order
DEFAULT_ASSETS = [
    "battleBackgroundGraphics",
    "battleBackgroundLayout",
    "cinematicProgram",
    "creditsGraphics",
    "endingGraphics",
    "floatingIslandCinematic",
    "mapAnimationGraphicsLayer3",
    "mapGraphicsLayer3",
    "mapLayouts",
    "mapOverlayProperties",
    "mapTileProperties",
    "mapTilesets",
    "worldGraphics3",
    "worldLayout3",
    "worldPalette3",
    "titleIntroGraphics",
    "vectorApproachGraphics",
    "vectorApproachLayout",
    "worldCloudsGraphics",
    "worldCloudsLayout",
    "worldGraphics1",
    "worldLayout1",
    "worldOfRuinCinematic",
    "worldGraphics2",
    "worldLayout2",
]


class Rom:
    def __init__(self, image: bytes, descriptors: DescriptorStore = None):
        self.image = CheckedBuffer(buf=image)
        self.descriptors = descriptors if descriptors is not None else DescriptorStore()
        # Total bytes saved by recompression, never decreases
        self.saved_bytes = 0

    @classmethod
    def load(cls, path: str, descriptors: DescriptorStore = None) -> "Rom":
        with open(path, "rb") as f:
            return cls(f.read(), descriptors)

    def save(self, path: str):
        with open(path, "wb") as f:
            f.write(self.image.buffer)

    def recompress_at(self, offset: int) -> tuple[bytes, int]:
        """Recompresses the LZSS block at offset. Returns (recompressed data, original compressed size)."""
        (decompressed, orig_size) = lzss.decompress(self.image.buffer, offset)
        recompressed = codec.compress(decompressed)
        if len(recompressed) > orig_size:
            warn("Recompress warning: Block at 0x{:06X} grew from {} to {} bytes".format(offset, orig_size, len(recompressed)))
        else:
            self.saved_bytes += orig_size - len(recompressed)
        return (recompressed, orig_size)

    def recompress(self, name: str) -> range:
        """Recompresses the named asset in place and stores its new range"""
        asset = self.descriptors.extract(name)
        if isinstance(asset, TableAsset):
            new_range = self._recompress_table(asset)
        elif isinstance(asset, SingleAsset):
            new_range = self._recompress_single(asset)
        else:
            raise DescriptorError("Descriptor Error in entry `{}`: unknown asset kind '{}'".format(name, type(asset).__name__))
        self.descriptors.update(name, new_range)
        return new_range

    def process(self, names: list[str] = None):
        """Recompresses every asset in order. Stops at the first error, leaving earlier patches in place."""
        if names is None:
            names = DEFAULT_ASSETS
        for name in names:
            self.recompress(name)

    def _recompress_single(self, asset: SingleAsset) -> range:
        offset = resolve(asset.range.start)
        (data, orig_size) = self.recompress_at(offset)
        self.image.splice(Span.exclusive(offset, offset + orig_size), data)
        return range(asset.range.start, asset.range.start + len(data))

    def _recompress_table(self, asset: TableAsset) -> range:
        table = asset.table
        width = table.pointer_width
        table_offset = resolve(table.range.start)
        # The first entry's pointer marks the start of the data, anything below it is not ours
        init_dp = read_pointer(self.image, table_offset, width)
        region_offset = resolve(table.data_base + init_dp)
        table_follows_data = table_offset >= region_offset

        if table_follows_data:
            old_size = self._original_end(table, init_dp) - init_dp
            if table_offset < region_offset + old_size:
                raise DescriptorError("Descriptor Error in entry `{}`: pointer table overlaps its data".format(asset.name))

        def entry_offset(i: int, inserted: int) -> int:
            if table_follows_data:
                return table_offset + i * width + inserted
            return table_offset + i * width

        old_dp = init_dp
        new_dp = init_dp
        old_end = init_dp
        lookup = {}
        for i in range(table.entry_count):
            # Recompressed data is inserted in front of the untouched original data,
            # so originals are found shifted by the number of bytes inserted so far
            inserted = new_dp - init_dp
            old_offset = resolve(table.data_base + old_dp) + inserted
            new_offset = resolve(table.data_base + new_dp)

            if old_dp < init_dp:
                data = b""
            else:
                (data, orig_size) = self.recompress_at(old_offset)
                old_end = max(old_end, old_dp + orig_size)

            digest = content_hash(data)
            pointer = lookup.get(digest)
            if pointer is None:
                lookup[digest] = new_dp
                pointer = new_dp
            else:
                # Duplicate, point at the first copy
                data = b""

            if pointer > max_pointer(width):
                raise PointerError("Splice", "pointer 0x{:X} of '{}' entry {} does not fit in {} bytes".format(pointer, asset.name, i, width))

            self.image.splice(Span.exclusive(new_offset, new_offset), data)
            new_dp += len(data)
            inserted = new_dp - init_dp
            write_pointer(self.image, entry_offset(i, inserted), width, pointer)

            if i + 1 < table.entry_count:
                old_dp = read_pointer(self.image, entry_offset(i + 1, inserted), width)

        # Drop the original data, its replacement now sits right before it
        drop_offset = resolve(table.data_base + new_dp)
        self.image.splice(Span.exclusive(drop_offset, drop_offset + old_end - init_dp), b"")
        return range(table.data_base + init_dp, table.data_base + new_dp)

    def _original_end(self, table, init_dp: int) -> int:
        """Data pointer just past the last original block, read before anything is patched"""
        table_offset = resolve(table.range.start)
        old_end = init_dp
        for i in range(table.entry_count):
            old_dp = read_pointer(self.image, table_offset + i * table.pointer_width, table.pointer_width)
            if old_dp < init_dp:
                continue
            size = lzss.compressed_size(self.image.buffer, resolve(table.data_base + old_dp))
            old_end = max(old_end, old_dp + size)
        return old_end
