"""
Local flag evaluation against cached flag definitions.
"""

import asyncio
import logging
from typing import Any, Dict, Mapping, Optional

import httpx

from trackflags.cache import CacheStats, FlagDefinitionCache
from trackflags.config import LocalFlagsConfig
from trackflags.errors import ErrorHandler, ServerError
from trackflags.evaluate import evaluate_flag
from trackflags.provider import FlagsProvider, TrackerCallback
from trackflags.types import FlagDefinition, SelectedVariant, VariantValue

logger = logging.getLogger("trackflags.local")


class LocalFlagsProvider(FlagsProvider):
    """
    Evaluates flags in process using definitions fetched from the API.

    Example:
        ```python
        provider = LocalFlagsProvider("project-token", tracker_callback=tracker.track)
        await provider.start_polling_for_definitions()

        value = provider.get_variant_value("new-checkout", "control", {"distinct_id": "user-1"})

        await provider.stop_polling_for_definitions()
        ```
    """

    def __init__(
        self,
        token: str,
        config: Optional[LocalFlagsConfig] = None,
        tracker_callback: Optional[TrackerCallback] = None,
        error_handler: Optional[ErrorHandler] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(
            token,
            config or LocalFlagsConfig(),
            "/flags/definitions",
            "local",
            tracker_callback=tracker_callback,
            error_handler=error_handler,
            http_client=http_client,
        )
        self._cache = FlagDefinitionCache()
        self._poll_task: Optional[asyncio.Task] = None
        self._stop_polling = False

    @property
    def config(self) -> LocalFlagsConfig:
        return self._config  # type: ignore[return-value]

    async def start_polling_for_definitions(self) -> None:
        """
        Fetch definitions now, then keep refreshing them if polling is enabled.

        Fetch failures are reported to the error handler; the previous
        definitions stay in effect.
        """
        await self.refresh()

        if self.config.enable_polling and not self.is_polling:
            self._stop_polling = False
            self._poll_task = asyncio.create_task(self._poll_for_definitions())
            logger.debug("Started polling for flag definitions")

    async def stop_polling_for_definitions(self) -> None:
        """Stop the poller and wait for it to exit. Safe to call repeatedly."""
        self._stop_polling = True
        task = self._poll_task
        self._poll_task = None
        if task is None:
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug("Stopped polling for flag definitions")

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    async def _poll_for_definitions(self) -> None:
        """Background refresh loop."""
        interval = self.config.polling_interval_in_seconds
        while not self._stop_polling:
            await asyncio.sleep(interval)
            if self._stop_polling:
                break
            await self.refresh()

    async def refresh(self) -> bool:
        """
        Fetch definitions once and publish them.

        Returns:
            True if a new generation was published
        """
        try:
            await self.fetch_flag_definitions()
            return True
        except Exception as e:
            logger.warning(f"Error fetching flag definitions: {e}")
            self._handle_error(e)
            return False

    async def fetch_flag_definitions(self) -> Dict[str, FlagDefinition]:
        """
        Fetch and publish flag definitions.

        Raises:
            NetworkError: On connection failures
            ServerError: On bad responses or malformed definitions
        """
        response = await self.call_flags_endpoint()

        flags = response.get("flags") or []
        if not isinstance(flags, list):
            raise ServerError("Expected a list of flag definitions")

        definitions: Dict[str, FlagDefinition] = {}
        for flag_data in flags:
            flag = FlagDefinition.from_dict(flag_data)
            definitions[flag.key] = flag

        snapshot = self._cache.replace(definitions)
        logger.debug(f"Loaded {len(definitions)} flag definitions (version {snapshot.version})")
        return definitions

    def get_variant(
        self,
        flag_key: str,
        fallback_variant: Optional[SelectedVariant],
        context: Mapping[str, Any],
        report_exposure: bool = True,
    ) -> Optional[SelectedVariant]:
        """
        Evaluate a flag and return the full variant.

        Args:
            flag_key: Feature flag key
            fallback_variant: Returned unchanged when no decision is made
            context: Evaluation context; must contain the flag's context key
            report_exposure: Whether to track an exposure event

        Returns:
            The selected variant, or the fallback
        """
        flag = self._cache.get(flag_key)
        if flag is None:
            return fallback_variant

        selected = self._evaluate(flag, context)
        if selected is None:
            return fallback_variant

        if report_exposure:
            self.track_exposure_event(flag_key, selected, context)
        return selected

    def get_variant_value(
        self,
        flag_key: str,
        fallback_value: VariantValue,
        context: Mapping[str, Any],
        report_exposure: bool = True,
    ) -> VariantValue:
        """Evaluate a flag and return only the variant value."""
        result = self.get_variant(
            flag_key,
            SelectedVariant(variant_value=fallback_value),
            context,
            report_exposure=report_exposure,
        )
        return result.variant_value

    def is_enabled(self, flag_key: str, context: Mapping[str, Any]) -> bool:
        """
        Check a boolean flag.

        Only the literal value True enables the flag; truthy strings and
        numbers do not.
        """
        return self.get_variant_value(flag_key, False, context) is True

    def get_all_variants(self, context: Mapping[str, Any]) -> Dict[str, SelectedVariant]:
        """
        Evaluate every cached flag. Exposure events are never tracked.

        Flags that yield no decision are omitted.
        """
        snapshot = self._cache.snapshot()
        variants: Dict[str, SelectedVariant] = {}
        for flag_key, flag in snapshot.flags.items():
            selected = self._evaluate(flag, context)
            if selected is not None:
                variants[flag_key] = selected
        return variants

    def _evaluate(
        self, flag: FlagDefinition, context: Mapping[str, Any]
    ) -> Optional[SelectedVariant]:
        try:
            return evaluate_flag(flag, context, on_error=self._handle_error)
        except Exception as e:
            logger.warning(f"Error evaluating flag {flag.key}: {e}")
            self._handle_error(e)
            return None

    def has_flag(self, flag_key: str) -> bool:
        """Check if a flag is in the current definitions."""
        return self._cache.has(flag_key)

    @property
    def definitions_version(self) -> int:
        """Generation counter of the current definitions, 0 before any fetch."""
        return self._cache.version

    def get_cache_stats(self) -> CacheStats:
        """Get cache statistics."""
        return self._cache.get_stats()

    async def close(self) -> None:
        """Stop polling and release the HTTP client."""
        await self.stop_polling_for_definitions()
        await super().close()

    async def __aenter__(self) -> "LocalFlagsProvider":
        await self.start_polling_for_definitions()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
