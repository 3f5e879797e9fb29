"""
Exceptions raised by logjson.
"""

from typing import Optional


class ConfigError(Exception):
    """Configuration validation error"""
    pass


class BackendWriteError(Exception):
    """A JSON backend could not write a value or the call sequence was invalid"""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class FormattingFailure(Exception):
    """
    Raised when a log event could not be turned into a document.

    The original exception is available as ``cause`` and is also chained as
    ``__cause__``.
    """

    def __init__(self, message: str, cause: BaseException):
        super().__init__(f"{message}: {cause!r}")
        self.cause = cause
