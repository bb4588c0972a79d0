"""
Entry point bundling the flag providers for one project.
"""

import logging
from typing import Optional

from trackflags.config import LocalFlagsConfig, RemoteFlagsConfig
from trackflags.errors import ErrorHandler
from trackflags.local_provider import LocalFlagsProvider
from trackflags.provider import TrackerCallback
from trackflags.remote_provider import RemoteFlagsProvider

logger = logging.getLogger("trackflags")


class FlagsClient:
    """
    Feature flag client for a project token.

    Providers are created on first access and share the tracker callback and
    error handler.

    Example:
        ```python
        async with FlagsClient("project-token", tracker_callback=tracker.track) as client:
            await client.local_flags.start_polling_for_definitions()
            variant = client.local_flags.get_variant_value(
                "new-checkout", "control", {"distinct_id": "user-1"}
            )
        ```
    """

    def __init__(
        self,
        token: str,
        tracker_callback: Optional[TrackerCallback] = None,
        error_handler: Optional[ErrorHandler] = None,
        local_flags_config: Optional[LocalFlagsConfig] = None,
        remote_flags_config: Optional[RemoteFlagsConfig] = None,
    ):
        """
        Initialize the client.

        Args:
            token: Project token
            tracker_callback: Receives exposure events
            error_handler: Receives every contained error
            local_flags_config: Configuration for local evaluation
            remote_flags_config: Configuration for remote evaluation
        """
        self._token = token
        self._tracker_callback = tracker_callback
        self._error_handler = error_handler or ErrorHandler()
        self._local_flags_config = local_flags_config or LocalFlagsConfig()
        self._remote_flags_config = remote_flags_config or RemoteFlagsConfig()
        self._local_flags: Optional[LocalFlagsProvider] = None
        self._remote_flags: Optional[RemoteFlagsProvider] = None

    @property
    def local_flags(self) -> LocalFlagsProvider:
        """Provider evaluating against cached definitions."""
        if self._local_flags is None:
            self._local_flags = LocalFlagsProvider(
                self._token,
                self._local_flags_config,
                tracker_callback=self._tracker_callback,
                error_handler=self._error_handler,
            )
        return self._local_flags

    @property
    def remote_flags(self) -> RemoteFlagsProvider:
        """Provider asking the API for every decision."""
        if self._remote_flags is None:
            self._remote_flags = RemoteFlagsProvider(
                self._token,
                self._remote_flags_config,
                tracker_callback=self._tracker_callback,
                error_handler=self._error_handler,
            )
        return self._remote_flags

    async def close(self) -> None:
        """Stop polling and close both providers."""
        if self._local_flags is not None:
            await self._local_flags.close()
        if self._remote_flags is not None:
            await self._remote_flags.close()
        logger.debug("Flags client closed")

    async def __aenter__(self) -> "FlagsClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()
