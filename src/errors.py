# src/errors.py

"""Exception hierarchy for the stock_monitor service."""


class MonitorError(Exception):
    """Base class for all stock_monitor errors."""


class ConfigError(MonitorError):
    """Mandatory configuration is missing or invalid. Fatal at startup."""


class FeedError(MonitorError):
    """The sitemap could not be fetched or parsed."""


class ObserveError(MonitorError):
    """A product page could not be fetched or read."""


class StoreError(MonitorError):
    """A record store read or write failed."""


class NotifyError(MonitorError):
    """A notification could not be delivered."""
