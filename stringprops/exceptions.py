class FormatError(ValueError):
    """Raised when properties text holds a malformed escape.

    Aborts the load in progress. Entries read before the bad line stay in
    the target mapping.
    """
    def __init__(self, message, line=None, *args):
        super().__init__(message, *args)
        self.line = line


class InvalidExpression(Exception):
    """Raised by an evaluator that cannot resolve an expression."""
    def __init__(self, expression, reason, *args):
        super().__init__(
            "invalid expression %r: %s" % (expression, reason), *args)
        self.expression = expression
        self.reason = reason


class UnsupportedOperation(Exception):
    pass


class FetchFailure(Exception):
    pass


class DataSourceMissing(Exception):
    pass


class LoadFailure(Exception):
    pass
