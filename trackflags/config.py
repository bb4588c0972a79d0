"""Configuration classes for the flag providers."""

from dataclasses import dataclass

DEFAULT_API_HOST = "api.mixpanel.com"


@dataclass
class FlagsConfig:
    """Settings shared by both providers."""

    api_host: str = DEFAULT_API_HOST
    """Host of the flags API. Requests are always made over https."""

    request_timeout_in_seconds: float = 10
    """Connect and read timeout for every flags request."""


@dataclass
class LocalFlagsConfig(FlagsConfig):
    """Configuration for local evaluation."""

    enable_polling: bool = True
    """Refresh definitions in the background after the first fetch."""

    polling_interval_in_seconds: float = 60
    """Delay between background fetches."""


@dataclass
class RemoteFlagsConfig(FlagsConfig):
    """Configuration for remote evaluation."""
