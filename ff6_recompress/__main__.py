import argparse
import sys
from .descriptors import DescriptorStore
from .errors import RecompressError
from .rom import Rom, DEFAULT_ASSETS


def parse_args(argv: list[str] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="ff6_recompress",
        description="Recompress LZSS assets of a Final Fantasy III (USA) ROM with aPLib")
    parser.add_argument("rom", help="ROM image to patch")
    parser.add_argument("descriptors", help="JSON file describing where assets are located")
    parser.add_argument("-o", "--output", help="where to write the patched ROM (default: overwrite ROM)")
    parser.add_argument("-d", "--descriptors-output", help="where to write updated descriptors (default: overwrite DESCRIPTORS)")
    parser.add_argument("-a", "--asset", action="append", dest="assets", metavar="NAME",
        help="recompress only this asset, can be given multiple times")
    return parser.parse_args(argv)


def run(args: argparse.Namespace) -> int:
    descriptors = DescriptorStore.load(args.descriptors)
    rom = Rom.load(args.rom, descriptors)
    size_before = len(rom.image)
    names = args.assets or DEFAULT_ASSETS
    for name in names:
        new_range = rom.recompress(name)
        print("Recompress Notice: '{}' is now 0x{:06X}-0x{:06X}".format(name, new_range.start, new_range.stop))
    rom.save(args.output or args.rom)
    descriptors.save(args.descriptors_output or args.descriptors)
    print("Recompress Notice: Saved {} bytes ({} -> {})".format(rom.saved_bytes, size_before, len(rom.image)))
    return 0


def main(argv: list[str] = None) -> int:
    args = parse_args(argv)
    try:
        return run(args)
    except (RecompressError, OSError) as err:
        print(err)
        return 1


if __name__ == "__main__":
    sys.exit(main())
