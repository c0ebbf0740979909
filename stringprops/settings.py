"""Settings read from the environment.

STRINGPROPS_SOURCE
    Location of the properties file. May hold ``${NAME}`` or
    ``${NAME:default}`` placeholders, resolved against the environment.
    Defaults to ``~/sysprefs.properties``.

STRINGPROPS_EVAL_DISABLED
    ``true`` turns off placeholder evaluation on every read.
"""

import logging
import os
from typing import Mapping
from typing import NamedTuple
from typing import Optional

from stringprops import expressions
from stringprops.exceptions import InvalidExpression

log = logging.getLogger(__name__)

SOURCE_ENVAR = "STRINGPROPS_SOURCE"
EVAL_DISABLED_ENVAR = "STRINGPROPS_EVAL_DISABLED"
DEFAULT_SOURCE_NAME = "sysprefs.properties"


def parse_bool(x: Optional[str]) -> bool:
    return x is not None and x.strip().lower() == "true"


def default_source() -> str:
    return os.path.join(os.path.expanduser("~"), DEFAULT_SOURCE_NAME)


class Settings(NamedTuple):
    source: str
    eval_disabled: bool

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None):
        if environ is None:
            environ = os.environ
        return cls(
            source=source_from_env(environ),
            eval_disabled=parse_bool(environ.get(EVAL_DISABLED_ENVAR)),
        )


def source_from_env(environ: Mapping[str, str]) -> str:
    exp = environ.get(SOURCE_ENVAR)
    if not exp:
        return default_source()
    try:
        return expressions.MapExpression(expressions.environ_mapper(environ)).eval(exp)
    except InvalidExpression as e:
        log.warning("Error in eval of %s: %s", exp, e)
        return default_source()
