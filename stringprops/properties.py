"""Ordered string properties with prefix-scoped views.

All views of one tree share a single BackingMap. A view only carries a
key prefix, so a write through ``p.sub_view("db")`` to ``"host"`` is the
same write as ``p.set("db.host", ...)`` on the root view.

    >>> root = RootView()
    >>> db = root.sub_view("db")
    >>> _ = db.set("host", "localhost")
    >>> root.get("db.host")
    'localhost'
    >>> root.first_level_names()
    ['db']
"""

import io
import threading
from collections.abc import MutableMapping
from typing import Any
from typing import AnyStr
from typing import Iterable
from typing import Iterator
from typing import List
from typing import Mapping
from typing import Optional

import jproperties

from stringprops import codec
from stringprops import expressions
from stringprops import formats

SEPARATOR = "."
LIST_MAX_LENGTH = 70


class BackingMap:
    """The one mapping behind a tree of views, with its lock."""
    def __init__(self, data=None):
        self.data = dict(data or {})
        self.lock = threading.RLock()
        self.dirty = False


def _append_prefix(prefix, name):
    if prefix is None:
        return name + SEPARATOR
    return prefix + name + SEPARATOR


def _first_level(key):
    end = key.find(SEPARATOR)
    if end < 0:
        return key
    return key[:end]


def _check_key(key):
    if not isinstance(key, str):
        raise TypeError("property keys must be str, not %s" % type(key).__name__)


def _check_value(value):
    if not isinstance(value, str):
        raise TypeError("property values must be str, not %s" % type(value).__name__)


class StringProperties:
    """A view over a BackingMap, scoped by a key prefix.

    The root view has no prefix. Sub views are created with sub_view().
    Views are cheap and need no cleanup.
    """
    def __init__(self, backing: Optional[BackingMap] = None, prefix: Optional[AnyStr] = None):
        self.backing = backing if backing is not None else BackingMap()
        self.prefix = prefix or None

    def _key(self, key):
        if self.prefix is None:
            return key
        return self.prefix + key

    # Views

    def root_view(self) -> "RootView":
        return RootView(self.backing)

    def sub_view(self, name: AnyStr) -> "StringProperties":
        return StringProperties(self.backing, _append_prefix(self.prefix, name))

    def as_map(self) -> "RootViewMap":
        return RootViewMap(self)

    # Set

    def set(self, key: AnyStr, value: AnyStr) -> Optional[str]:
        """Sets key to value, returning the previous value if any."""
        _check_key(key)
        _check_value(value)
        with self.backing.lock:
            full_key = self._key(key)
            previous = self.backing.data.get(full_key)
            self.backing.data[full_key] = value
            self.backing.dirty = True
            return previous

    def set_sequence(self, values: Iterable[AnyStr], start: int = 0) -> "StringProperties":
        """Stores values under consecutive integer keys from start."""
        with self.backing.lock:
            for i, value in enumerate(values, start):
                self.set(str(i), value)
        return self

    # Remove

    def remove(self, key: AnyStr) -> Optional[str]:
        """Removes key, returning the removed value or None."""
        with self.backing.lock:
            value = self.backing.data.pop(self._key(key), None)
            if value is not None:
                self.backing.dirty = True
            return value

    def remove_sequence(self, start: int = 0) -> "StringProperties":
        """Removes consecutive integer keys from start up to the first gap."""
        with self.backing.lock:
            i = start
            while self.remove(str(i)) is not None:
                i += 1
        return self

    # Get

    def get(self, key: AnyStr, default: Optional[AnyStr] = None) -> Optional[str]:
        with self.backing.lock:
            return self.backing.data.get(self._key(key), default)

    def get_sequence(self, start: int = 0) -> List[str]:
        """Reads consecutive integer keys from start up to the first gap."""
        result = []
        with self.backing.lock:
            i = start
            value = self.get(str(i))
            while value is not None:
                result.append(value)
                i += 1
                value = self.get(str(i))
        return result

    def get_as_properties(self, key: AnyStr, separator: AnyStr) -> "RootView":
        """Parses the value of key as a properties document.

        Each occurrence of separator in the value is treated as a line
        break. The result is a new tree, unrelated to this one.
        """
        return _parse_embedded(self.get(key, ""), separator)

    # Get with evaluation

    def get_eval(self, key: AnyStr, default: Optional[AnyStr] = None, evaluator=None) -> Optional[str]:
        """Like get(), with the value resolved by evaluator.

        Raises InvalidExpression when the value cannot be resolved.
        """
        return _eval(self.get(key, default), evaluator)

    def get_sequence_eval(self, start: int = 0, evaluator=None) -> List[str]:
        return [_eval(value, evaluator) for value in self.get_sequence(start)]

    def get_as_properties_eval(self, key: AnyStr, separator: AnyStr, evaluator=None) -> "RootView":
        return _parse_embedded(self.get_eval(key, "", evaluator), separator)

    # Names

    def first_level_names(self) -> List[str]:
        return self._names(first_level=True)

    def all_names(self) -> List[str]:
        return self._names(first_level=False)

    def _names(self, first_level):
        with self.backing.lock:
            if self.prefix is None and not first_level:
                return list(self.backing.data)
            prefix_length = len(self.prefix or "")
            names = {}
            for key in self.backing.data:
                if self.prefix is not None:
                    if not key.startswith(self.prefix):
                        continue
                    key = key[prefix_length:]
                names[_first_level(key) if first_level else key] = None
            return list(names)

    def leaf_names(self) -> List[str]:
        """First level names that hold a value directly."""
        with self.backing.lock:
            return [name for name in self.first_level_names() if self.get(name) is not None]

    def child_names(self) -> List[str]:
        """First level names that exist only as a prefix of deeper keys."""
        with self.backing.lock:
            return [name for name in self.first_level_names() if self.get(name) is None]

    def list(self, out, full_line: bool = False) -> None:
        """Prints a listing of this view to the text stream out."""
        max_length = None if full_line else LIST_MAX_LENGTH
        out.write("### BEGIN: listing properties ###\n")
        with self.backing.lock:
            for key in self.all_names():
                line = "%s=%s" % (key[:max_length], self.get(key)[:max_length])
                if max_length is not None and len(line) > max_length:
                    line = line[:max_length] + "..."
                out.write(line + "\n")
        out.write("### END ###\n")

    def __repr__(self):
        return "%s(prefix=%r)" % (self.__class__.__name__, self.prefix)


class RootView(StringProperties):
    """The view over the whole key space, with whole-tree operations."""
    def __init__(self, backing: Optional[BackingMap] = None):
        super().__init__(backing, None)

    # Load

    def load(self, stream) -> "RootView":
        """Reads entries from a byte or character stream.

        Entries read before a FormatError stay in the tree.
        """
        with self.backing.lock:
            codec.load(stream, self.backing.data)
        return self

    def loads(self, text: AnyStr) -> "RootView":
        return self.load(io.StringIO(text))

    def import_document(self, data: bytes, fmt) -> "RootView":
        """Merges a JSON, YAML, TOML or properties document, given as bytes."""
        return self.put_all(formats.loader_for_format(fmt)(data))

    # Store

    def store(self, stream, comments: Optional[AnyStr] = None) -> None:
        """Writes the whole tree to stream and clears the dirty flag.

        Byte streams get Unicode escapes, character streams do not.
        """
        with self.backing.lock:
            codec.store(self.backing.data, stream, comments=comments)
            self.backing.dirty = False

    def dumps(self, comments: Optional[AnyStr] = None) -> str:
        with self.backing.lock:
            return codec.dumps(self.backing.data, comments=comments)

    def is_dirty(self) -> bool:
        """Whether anything changed since the last store()."""
        with self.backing.lock:
            return self.backing.dirty

    # Whole-map operations

    def put_all(self, mapping: Mapping[str, str]) -> "RootView":
        with self.backing.lock:
            for key, value in mapping.items():
                self.set(key, value)
        return self

    def clear(self) -> None:
        with self.backing.lock:
            if self.backing.data:
                self.backing.dirty = True
            self.backing.data.clear()

    def __len__(self):
        with self.backing.lock:
            return len(self.backing.data)

    def is_empty(self) -> bool:
        return len(self) == 0

    # Legacy jproperties interop

    def update_from_properties(self, props: jproperties.Properties) -> "RootView":
        with self.backing.lock:
            for key in props:
                self.set(key, props[key].data)
        return self

    def to_properties(self) -> jproperties.Properties:
        props = jproperties.Properties()
        with self.backing.lock:
            for key, value in self.backing.data.items():
                props[key] = value
        return props


class RootViewMap(MutableMapping):
    """A view as a MutableMapping, for code that expects a dict.

    Key lookups, assignment, deletion, keys() and iteration use the view's
    keys. values(), items(), len(), clear() and contains_value() cover the
    whole backing map, whatever the view's prefix.
    """
    def __init__(self, view: StringProperties):
        self.view = view
        self.backing = view.backing

    def __getitem__(self, key: AnyStr) -> str:
        _check_key(key)
        value = self.view.get(key)
        if value is None:
            raise KeyError(key)
        return value

    def get(self, key: AnyStr, default: Any = None) -> Any:
        _check_key(key)
        return self.view.get(key, default)

    def __contains__(self, key: object) -> bool:
        _check_key(key)
        return self.view.get(key) is not None

    def __setitem__(self, key: AnyStr, value: AnyStr) -> None:
        _check_key(key)
        self.view.set(key, value)

    def __delitem__(self, key: AnyStr) -> None:
        _check_key(key)
        if self.view.remove(key) is None:
            raise KeyError(key)

    def __iter__(self) -> Iterator[str]:
        return iter(self.view.all_names())

    def __len__(self) -> int:
        with self.backing.lock:
            return len(self.backing.data)

    def keys(self) -> List[str]:
        return self.view.all_names()

    def values(self) -> List[str]:
        with self.backing.lock:
            return list(self.backing.data.values())

    def items(self) -> List[tuple]:
        with self.backing.lock:
            return list(self.backing.data.items())

    def contains_value(self, value: AnyStr) -> bool:
        if not isinstance(value, str):
            raise TypeError("value must be str, not %s" % type(value).__name__)
        with self.backing.lock:
            return value in self.backing.data.values()

    def clear(self) -> None:
        RootView(self.backing).clear()

    def update(self, *args, **kwargs) -> None:
        with self.backing.lock:
            super().update(*args, **kwargs)

    def __str__(self):
        with self.backing.lock:
            return str(self.backing.data)

    def __repr__(self):
        return "RootViewMap(%r)" % self.view


def _eval(value, evaluator):
    if value is None:
        return None
    if evaluator is None:
        evaluator = expressions.default_evaluator()
    return evaluator.eval(value)


def _parse_embedded(value, separator):
    return RootView().loads(value.replace(separator, "\n"))
