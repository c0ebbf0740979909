"""Sources hand out the raw byte streams a property tree lives in."""

import contextlib
import io
import os
from typing import AnyStr
from typing import Callable
from typing import List
from typing import Optional

from stringprops import exceptions


class Source:
    """Where the bytes of a property file live.

    Streams returned by open_for_read() and open_for_write() belong to the
    caller, who must close them.
    """
    def exists(self) -> bool:
        raise NotImplementedError

    def open_for_read(self):
        raise NotImplementedError

    def open_for_write(self):
        raise NotImplementedError

    def list_entries(self, name_filter: Callable[[str], bool]) -> List[str]:
        raise NotImplementedError


class FileSource(Source):
    def __init__(self, path: AnyStr):
        self.path = os.fspath(path)

    @property
    def directory(self):
        return os.path.dirname(os.path.abspath(self.path))

    def exists(self):
        return os.path.isfile(self.path)

    def open_for_read(self):
        try:
            return open(self.path, 'rb')
        except FileNotFoundError:
            raise exceptions.DataSourceMissing(self.path)
        except OSError as e:
            raise exceptions.FetchFailure(self.path) from e

    def open_for_write(self):
        try:
            return open(self.path, 'wb')
        except OSError as e:
            raise exceptions.FetchFailure(self.path) from e

    def list_entries(self, name_filter):
        """Names of the regular files beside this one that pass name_filter."""
        directory = self.directory
        try:
            names = sorted(os.listdir(directory))
        except FileNotFoundError:
            raise exceptions.DataSourceMissing(directory)
        return [
            name for name in names
            if os.path.isfile(os.path.join(directory, name)) and name_filter(name)
        ]

    def __str__(self):
        return self.path


class _MemoryWriter(io.BytesIO):
    def __init__(self, on_close):
        super().__init__()
        self._on_close = on_close

    def close(self):
        if not self.closed:
            self._on_close(self.getvalue())
        super().close()


class MemorySource(Source):
    """Keeps the file contents in memory. Writes land when the stream closes."""
    def __init__(self, data: Optional[bytes] = None, entries: Optional[List[str]] = None):
        self.data = data
        self.entries = list(entries or [])

    def exists(self):
        return self.data is not None

    def open_for_read(self):
        if self.data is None:
            raise exceptions.DataSourceMissing("memory")
        return io.BytesIO(self.data)

    def open_for_write(self):
        def _set(value):
            self.data = value
        return _MemoryWriter(_set)

    def list_entries(self, name_filter):
        return [name for name in self.entries if name_filter(name)]

    def __str__(self):
        return "memory"


def source_for(location: AnyStr) -> Source:
    """Picks a Source for a local path or a file: URL."""
    location = os.fspath(location)
    scheme, sep, rest = location.partition(":")
    if sep and len(scheme) > 1:
        if scheme.lower() == "file":
            if rest.startswith("//"):
                rest = rest[2:]
            return FileSource(rest)
        raise ValueError("unsupported source %r" % location)
    return FileSource(location)


@contextlib.contextmanager
def reading(source: Source):
    stream = source.open_for_read()
    try:
        yield stream
    finally:
        stream.close()


@contextlib.contextmanager
def writing(source: Source):
    stream = source.open_for_write()
    try:
        yield stream
    finally:
        stream.close()
