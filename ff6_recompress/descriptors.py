import copy
import json
from dataclasses import dataclass
from .errors import DescriptorError, HexError
from .util import parse_hex, parse_hex_range, format_hex_range


@dataclass(frozen=True)
class TableDescriptor:
    range: range
    pointer_width: int
    entry_count: int
    # Pointers in the table are relative to this bank address
    data_base: int


@dataclass(frozen=True)
class Asset:
    name: str
    range: range


@dataclass(frozen=True)
class SingleAsset(Asset):
    pass


@dataclass(frozen=True)
class TableAsset(Asset):
    table: TableDescriptor = None


def _number(name: str, key: str, value) -> int:
    if isinstance(value, bool):
        raise DescriptorError("Descriptor Error in entry `{}`: `{}` must be a number".format(name, key))
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return parse_hex(value)
        except HexError as err:
            raise DescriptorError("Descriptor Error in entry `{}`: {}".format(name, err)) from err
    raise DescriptorError("Descriptor Error in entry `{}`: `{}` must be a number".format(name, key))


def _range(name: str, key: str, value) -> range:
    if not isinstance(value, str):
        raise DescriptorError("Descriptor Error in entry `{}`: `{}` must be a hex range string".format(name, key))
    try:
        return parse_hex_range(value)
    except HexError as err:
        raise DescriptorError("Descriptor Error in entry `{}`: {}".format(name, err)) from err


def _field(name: str, entry: dict, key: str):
    if key not in entry:
        raise DescriptorError("Descriptor Error in entry `{}`: missing `{}`".format(name, key))
    return entry[key]


def parse_asset(name: str, entry: dict) -> Asset:
    if not isinstance(entry, dict):
        raise DescriptorError("Descriptor Error in entry `{}`: expected an object".format(name))
    asset_range = _range(name, "range", _field(name, entry, "range"))
    table = entry.get("table")
    if table is None:
        return SingleAsset(name=name, range=asset_range)
    if not isinstance(table, dict):
        raise DescriptorError("Descriptor Error in entry `{}`: `table` must be an object".format(name))
    descriptor = TableDescriptor(
        range=_range(name, "table.range", _field(name, table, "range")),
        pointer_width=_number(name, "table.pointer_width", _field(name, table, "pointer_width")),
        entry_count=_number(name, "table.entry_count", _field(name, table, "entry_count")),
        data_base=_number(name, "table.data_base", _field(name, table, "data_base")))
    if descriptor.pointer_width < 1 or descriptor.pointer_width > 4:
        raise DescriptorError("Descriptor Error in entry `{}`: pointer width must be between 1 and 4 (was {})".format(name, descriptor.pointer_width))
    if descriptor.entry_count < 1:
        raise DescriptorError("Descriptor Error in entry `{}`: table has no entries".format(name))
    return TableAsset(name=name, range=asset_range, table=descriptor)


class DescriptorStore:
    """Maps asset names to their location in the ROM. Backed by a JSON object."""

    def __init__(self, entries: dict = None):
        # Raw JSON entries are kept so keys we don't understand survive a save
        self.entries = entries if entries is not None else {}

    @classmethod
    def from_dict(cls, data: dict) -> "DescriptorStore":
        if not isinstance(data, dict):
            raise DescriptorError("Descriptor Error: expected a JSON object at the top level")
        return cls(copy.deepcopy(data))

    @classmethod
    def load(cls, path: str) -> "DescriptorStore":
        with open(path, "r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as err:
                raise DescriptorError("Error Parsing JSON: `{}`".format(err)) from err
        return cls.from_dict(data)

    def names(self) -> list[str]:
        return list(self.entries)

    def extract(self, name: str) -> Asset:
        entry = self.entries.get(name)
        if entry is None:
            raise DescriptorError("Error Parsing: failed to find JSON entry `{}`".format(name))
        return parse_asset(name, entry)

    def update(self, name: str, new_range: range):
        if name not in self.entries:
            raise DescriptorError("Error Parsing: failed to find JSON entry `{}`".format(name))
        self.entries[name]["range"] = format_hex_range(new_range)

    def to_dict(self) -> dict:
        return self.entries

    def save(self, path: str):
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.entries, f, indent=4)
            f.write("\n")
