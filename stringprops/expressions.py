"""Placeholder evaluation for stored values.

An evaluator is anything with ``eval(expression) -> str`` that raises
InvalidExpression when it cannot resolve the expression. MapExpression is
the one shipped here: it replaces ``${name}`` and ``${name:default}`` with
whatever a mapper function returns for ``name``.
"""

import os
from typing import AnyStr
from typing import Callable
from typing import Mapping
from typing import Optional
from typing import Protocol

from stringprops.exceptions import InvalidExpression


class Evaluator(Protocol):
    def eval(self, expression: AnyStr) -> str: ...


def environ_mapper(environ: Optional[Mapping[str, str]] = None) -> Callable[[str], Optional[str]]:
    if environ is None:
        environ = os.environ

    # noinspection PyShadowingNames
    def f(name, environ=environ):
        return environ.get(name)
    return f


def dict_mapper(d: Mapping[str, str]) -> Callable[[str], Optional[str]]:
    return lambda name, d=d: d.get(name)


class MapExpression:
    def __init__(self, mapper=None):
        self.mapper = mapper or environ_mapper()

    def eval(self, expression: AnyStr) -> str:
        if "${" not in expression:
            return expression
        out = []
        pos = 0
        while True:
            start = expression.find("${", pos)
            if start < 0:
                out.append(expression[pos:])
                break
            end = expression.find("}", start + 2)
            if end < 0:
                raise InvalidExpression(expression, "unterminated placeholder at offset %d" % start)
            out.append(expression[pos:start])
            out.append(self.resolve(expression, expression[start + 2:end]))
            pos = end + 1
        return "".join(out)

    def resolve(self, expression, placeholder):
        name, has_default, default = placeholder.partition(":")
        if not name:
            raise InvalidExpression(expression, "empty placeholder")
        value = self.mapper(name)
        if value is not None:
            return value
        if has_default:
            return default
        raise InvalidExpression(expression, "no value for %r" % name)


def default_evaluator() -> MapExpression:
    return MapExpression(environ_mapper())
