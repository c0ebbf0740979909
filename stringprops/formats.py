"""Document formats that can be merged into a property tree.

Every format has a loader that takes the raw document bytes and returns a
flat ``{dotted.key: value}`` dict, and a list of file suffixes.
"""

import os
from typing import AnyStr
from typing import Callable
from typing import Dict
from typing import List

import aenum

from stringprops import converters


class Format(aenum.Enum):
    pass


Loader = Callable[[bytes], Dict[str, str]]

_loaders = {}
_suffixes = {}


def register(name: str, loader: Loader, suffixes: List[AnyStr]) -> Format:
    """Adds the format name, or replaces the loader and suffixes of a known one."""
    if name not in Format.__members__:
        aenum.extend_enum(Format, name, name.lower())
    fmt = Format[name]
    _loaders[fmt] = loader
    for suffix in suffixes:
        _suffixes[suffix] = fmt
    return fmt


def format_for_filename(filename) -> Format:
    _, suffix = os.path.splitext(filename)
    try:
        return _suffixes[suffix]
    except KeyError:
        raise KeyError("suffix %r not known" % suffix) from None


def loader_for_format(fmt: Format) -> Loader:
    return _loaders[fmt]


def loader_for_filename(filename) -> Loader:
    return loader_for_format(format_for_filename(filename))


def _flattened(parse):
    def load(data, parse=parse):
        return converters.flatten(parse(converters.string_from_bytes(data, encoding='utf8')))
    return load


register("Properties", converters.map_from_properties, [".prop", ".props", ".properties"])
register("Json", _flattened(converters.obj_from_json), [".json"])
register("Toml", _flattened(converters.obj_from_toml), [".toml"])
register("Yaml", _flattened(converters.obj_from_yaml), [".yaml", ".yml"])
