"""Preference nodes over a single property file.

The whole tree lives in one file. Each node is a sub view of the root, so
the node ``/db/primary`` reads and writes keys starting with
``db.primary.`` in that file.

    root = PreferenceNode.open(FileSource("/etc/app.properties"))
    primary = root.node("db/primary")
    primary.put("host", "db1.example.com")
    root.flush()

Reads resolve ``${...}`` placeholders through the node's evaluator unless
evaluation is turned off for everything (STRINGPROPS_EVAL_DISABLED) or for
one node (the ``preferences.evalget.disabled`` key of that node). A value
that fails to evaluate is returned as stored.
"""

import logging
import os
import threading
from typing import AnyStr
from typing import Any
from typing import List
from typing import Optional

from stringprops import exceptions
from stringprops import expressions
from stringprops import sources
from stringprops.properties import SEPARATOR
from stringprops.properties import RootView
from stringprops.properties import StringProperties
from stringprops.settings import Settings
from stringprops.settings import parse_bool

log = logging.getLogger(__name__)

LOCAL_EVAL_DISABLED_KEY = "preferences.evalget.disabled"
PATH_SEPARATOR = "/"
FILE_EXTENSION = ".properties"

_load_errors = (
    exceptions.DataSourceMissing,
    exceptions.FetchFailure,
    exceptions.FormatError,
    OSError,
)


class PreferenceNode:
    def __init__(
            self,
            parent: Optional["PreferenceNode"],
            name: AnyStr,
            data: StringProperties,
            source: sources.Source,
            evaluator=None,
            settings: Optional[Settings] = None,
    ):
        self.parent = parent
        self.name = name
        self.data = data
        self.source = source
        self.evaluator = evaluator or expressions.default_evaluator()
        self.settings = settings or Settings.from_env()
        self._children = {}
        self._children_lock = threading.Lock()
        # Read once here; put() keeps it in step afterwards.
        self.eval_disabled = parse_bool(self.data.get(LOCAL_EVAL_DISABLED_KEY, "false"))

    @classmethod
    def open(cls, source: Optional[sources.Source] = None, evaluator=None, settings: Optional[Settings] = None):
        """Creates the root node, loading source if it exists.

        Without a source, the location comes from the settings.
        """
        settings = settings or Settings.from_env()
        if source is None:
            source = sources.source_for(settings.source)
        data = RootView()
        _load_into(source, data)
        return cls(None, "", data, source, evaluator=evaluator, settings=settings)

    # Tree

    def absolute_path(self) -> str:
        if self.parent is None:
            return PATH_SEPARATOR
        parent_path = self.parent.absolute_path()
        if parent_path == PATH_SEPARATOR:
            return PATH_SEPARATOR + self.name
        return parent_path + PATH_SEPARATOR + self.name

    def child(self, name: AnyStr) -> "PreferenceNode":
        if not name or PATH_SEPARATOR in name:
            raise ValueError("invalid node name %r" % name)
        with self._children_lock:
            node = self._children.get(name)
            if node is None:
                node = PreferenceNode(
                    self,
                    name,
                    self.data.sub_view(name),
                    self.source,
                    evaluator=self.evaluator,
                    settings=self.settings,
                )
                self._children[name] = node
            return node

    def node(self, path: AnyStr) -> "PreferenceNode":
        """Returns the descendant at a relative path such as ``"a/b"``."""
        node = self
        for name in path.strip(PATH_SEPARATOR).split(PATH_SEPARATOR):
            if name:
                node = node.child(name)
        return node

    def keys(self) -> List[str]:
        return self.data.leaf_names()

    def children_names(self) -> List[str]:
        """Child names from the tree, then any found as files beside the source.

        A file ``db.cache.properties`` next to the source names the child
        ``db`` of the root and the child ``cache`` of ``/db``.
        """
        names = dict.fromkeys(self.data.child_names())
        leaves = set(self.data.leaf_names())
        for name in self._listed_children():
            if name not in leaves:
                names.setdefault(name)
        return list(names)

    def _listed_children(self) -> List[str]:
        base = self._file_base()
        own = os.path.basename(str(self.source))

        def accept(entry, base=base, own=own):
            return entry != own and entry.startswith(base) and entry.endswith(FILE_EXTENSION)

        try:
            entries = self.source.list_entries(accept)
        except exceptions.DataSourceMissing as e:
            log.debug("No entries beside %s: %s", self.source, e)
            return []
        names = []
        for entry in entries:
            if len(entry) <= len(base) + len(FILE_EXTENSION):
                continue
            name = entry[len(base):-len(FILE_EXTENSION)].split(SEPARATOR, 1)[0]
            if name:
                names.append(name)
        return names

    def _file_base(self) -> str:
        if self.parent is None:
            return ""
        return self.absolute_path().strip(PATH_SEPARATOR).replace(PATH_SEPARATOR, SEPARATOR) + SEPARATOR

    def remove_node(self) -> None:
        raise exceptions.UnsupportedOperation("removing nodes is not supported")

    # Values

    def get(self, key: AnyStr, default: Optional[AnyStr] = None) -> Optional[str]:
        raw = self.data.get(key)
        if raw is None:
            return default
        if self.settings.eval_disabled or self.eval_disabled:
            return raw
        try:
            return self.evaluator.eval(raw)
        except exceptions.InvalidExpression as e:
            log.warning("Error in eval of %s/%s: %s", self.absolute_path().rstrip(PATH_SEPARATOR), key, e)
            return raw

    def get_int(self, key: AnyStr, default: Optional[int] = None) -> Optional[int]:
        return _convert(self.get(key), int, default)

    def get_float(self, key: AnyStr, default: Optional[float] = None) -> Optional[float]:
        return _convert(self.get(key), float, default)

    def get_boolean(self, key: AnyStr, default: Optional[bool] = None) -> Optional[bool]:
        value = self.get(key)
        if value is None:
            return default
        value = value.lower()
        if value == "true":
            return True
        if value == "false":
            return False
        return default

    def put(self, key: AnyStr, value: AnyStr) -> None:
        self.data.set(key, value)
        if key == LOCAL_EVAL_DISABLED_KEY:
            self.eval_disabled = parse_bool(value)

    def remove(self, key: AnyStr) -> None:
        self.data.remove(key)

    # Persistence

    def is_dirty(self) -> bool:
        return self.data.root_view().is_dirty()

    def flush(self) -> None:
        """Writes the whole tree to the source if anything changed."""
        root = self.data.root_view()
        if not root.is_dirty():
            return
        log.info("Saving preferences to %s", self.source)
        with sources.writing(self.source) as stream:
            root.store(stream, comments=_header(self))

    def sync(self) -> None:
        self.flush()

    def reload(self) -> None:
        """Replaces the whole tree with the current contents of the source.

        The source is parsed into a separate map first. On failure the
        tree is left as it was and LoadFailure is raised.
        """
        scratch = RootView()
        log.info("Reloading preferences from %s", self.source)
        try:
            with sources.reading(self.source) as stream:
                scratch.load(stream)
        except _load_errors as e:
            log.warning("Error reloading preferences from %s: %s", self.source, e)
            raise exceptions.LoadFailure(str(self.source)) from e
        backing = self.data.backing
        with backing.lock:
            backing.data.clear()
            backing.data.update(scratch.backing.data)
            backing.dirty = False

    def __repr__(self):
        return "PreferenceNode(%r)" % self.absolute_path()


def _load_into(source, data: RootView):
    if not source.exists():
        log.warning("Source for preferences does not exist: %s", source)
        return
    log.info("Loading preferences from %s", source)
    try:
        with sources.reading(source) as stream:
            data.load(stream)
    except _load_errors as e:
        log.warning("Error loading preferences from %s: %s", source, e)


def _convert(value, f, default) -> Any:
    if value is None:
        return default
    try:
        return f(value)
    except ValueError:
        return default


def _header(node):
    return "%s.%s" % (node.__class__.__module__, node.__class__.__qualname__)
