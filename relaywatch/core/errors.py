from __future__ import annotations


class RelayWatchError(Exception):
    """Base class for failures that stop the watcher."""


class ConfigError(RelayWatchError):
    """Configuration file is missing, unreadable or invalid."""


class StoreUnavailable(RelayWatchError):
    """The correlation store could not be reached or queried."""


class WatchSourceError(RelayWatchError):
    """The filesystem notification source failed."""
