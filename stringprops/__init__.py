"""Hierarchical string properties backed by a properties text file."""

from stringprops.codec import dumps, load, loads, store
from stringprops.exceptions import DataSourceMissing
from stringprops.exceptions import FetchFailure
from stringprops.exceptions import FormatError
from stringprops.exceptions import InvalidExpression
from stringprops.exceptions import LoadFailure
from stringprops.exceptions import UnsupportedOperation
from stringprops.expressions import MapExpression
from stringprops.formats import Format
from stringprops.preferences import PreferenceNode
from stringprops.properties import BackingMap
from stringprops.properties import RootView
from stringprops.properties import RootViewMap
from stringprops.properties import StringProperties
from stringprops.settings import Settings
from stringprops.sources import FileSource
from stringprops.sources import MemorySource
from stringprops.sources import Source
