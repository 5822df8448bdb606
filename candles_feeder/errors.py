"""Exceptions raised across candles_feeder."""


class FeederError(Exception):
    """Base error for the feeder."""


class ConfigError(FeederError):
    """Invalid or inconsistent configuration."""


class FetchError(FeederError):
    """Transport or HTTP failure while fetching candles."""


class CatalogUnavailable(FeederError):
    """Exchange metadata could not be retrieved."""


class StoreError(FeederError):
    """Series store read or write failure."""
