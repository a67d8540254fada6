"""Exception hierarchy for AVA Watcher."""

from __future__ import annotations


class AvaWatcherError(Exception):
    """Base class for all errors raised by the watcher."""


class FetchError(AvaWatcherError):
    """The listing page could not be fetched or its payload could not be parsed."""


class RenderError(AvaWatcherError):
    """A textual diff could not be rendered."""


class NotifyError(AvaWatcherError):
    """A notification could not be delivered."""


class PersistError(AvaWatcherError):
    """Persisted state could not be loaded or saved."""
