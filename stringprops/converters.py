"""Tools for turning document bytes into flat property maps.

Structured documents are flattened into dotted keys, with lists stored
as sequences. For example this YAML:

    db:
      hosts: [a, b]
      port: 5432

becomes:

    {"db.hosts.0": "a", "db.hosts.1": "b", "db.port": "5432"}

"""

import io
import json
from typing import Any
from typing import AnyStr
from typing import Dict

import toml

from stringprops import codec
from stringprops.exceptions import FormatError
from stringprops.exceptions import LoadFailure


try:
    from yaml import CSafeLoader as Loader
except ImportError:
    from yaml import SafeLoader as Loader

import yaml


def obj_from_json(x: AnyStr) -> Any:
    try:
        return json.loads(x)
    except Exception as e:
        raise LoadFailure(e)


def obj_from_toml(x: AnyStr) -> Any:
    try:
        return toml.loads(x)
    except Exception as e:
        raise LoadFailure(e)


def obj_from_yaml(x: AnyStr) -> Any:
    try:
        return yaml.load(x, Loader=Loader)
    except Exception as e:
        raise LoadFailure(e)


def map_from_properties(x: bytes) -> Dict[str, str]:
    try:
        return codec.load(io.BytesIO(x), {})
    except FormatError as e:
        raise LoadFailure(e)


def string_from_bytes(x: bytes, encoding='utf8') -> AnyStr:
    try:
        return x.decode(encoding)
    except Exception as e:
        raise LoadFailure(e)


def string_from_scalar(x: Any) -> str:
    if isinstance(x, bool):
        return "true" if x else "false"
    return str(x)


def flatten(obj: Any, prefix: AnyStr = "") -> Dict[str, str]:
    """Flattens nested dicts and lists into a dotted-key mapping."""
    result = {}
    _flatten(obj, prefix, result)
    return result


def _flatten(obj, prefix, result):
    if isinstance(obj, dict):
        items = obj.items()
    elif isinstance(obj, list):
        items = enumerate(obj)
    elif obj is None:
        return
    else:
        if not prefix:
            raise LoadFailure("document root must be a table or list, not %s" % type(obj).__name__)
        result[prefix] = string_from_scalar(obj)
        return
    for k, v in items:
        key = str(k) if not prefix else "%s.%s" % (prefix, k)
        _flatten(v, key, result)
