"""Exceptions raised by wtop."""


class WtopError(Exception):
    """Base class for wtop errors."""


class StartupFailure(WtopError):
    """The dashboard cannot start: no terminal, or the first snapshot failed."""


class RefreshFailure(WtopError):
    """A periodic snapshot could not be collected.

    Instances are handed to the UI loop through the update queue in place of
    a snapshot, so the loop can report the failure without dying.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class SourceUnavailable(WtopError):
    """A single metric source cannot be read on this host."""
