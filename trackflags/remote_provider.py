"""
Remote flag evaluation. Every call asks the flags API for a decision.
"""

import json
import logging
from typing import Any, Dict, Mapping, Optional

import httpx

from trackflags.config import RemoteFlagsConfig
from trackflags.errors import ErrorHandler, ServerError
from trackflags.provider import FlagsProvider, TrackerCallback
from trackflags.tracing import RequestTrace
from trackflags.types import SelectedVariant, VariantValue

logger = logging.getLogger("trackflags.remote")


class RemoteFlagsProvider(FlagsProvider):
    """
    Evaluates flags on the server.

    Failures never reach the caller: the fallback is returned and the error
    goes to the error handler.

    Example:
        ```python
        async with RemoteFlagsProvider("project-token") as provider:
            if await provider.is_enabled("new-checkout", {"distinct_id": "user-1"}):
                ...
        ```
    """

    def __init__(
        self,
        token: str,
        config: Optional[RemoteFlagsConfig] = None,
        tracker_callback: Optional[TrackerCallback] = None,
        error_handler: Optional[ErrorHandler] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(
            token,
            config or RemoteFlagsConfig(),
            "/flags",
            "remote",
            tracker_callback=tracker_callback,
            error_handler=error_handler,
            http_client=http_client,
        )

    async def get_variant(
        self,
        flag_key: str,
        fallback_variant: Optional[SelectedVariant],
        context: Mapping[str, Any],
        report_exposure: bool = True,
    ) -> Optional[SelectedVariant]:
        """
        Ask the API for a flag's variant.

        Args:
            flag_key: Feature flag key
            fallback_variant: Returned on any failure or when the flag is absent
            context: Evaluation context, sent to the API as JSON
            report_exposure: Whether to track an exposure event

        Returns:
            The selected variant, or the fallback
        """
        trace = RequestTrace(endpoint=self._endpoint)
        trace.start()
        try:
            response = await self._fetch_flags(context, flag_key, trace)
            trace.finish()

            variant_data = _get_flags(response).get(flag_key)
            if variant_data is None:
                return fallback_variant
            if not isinstance(variant_data, Mapping):
                raise ServerError(f"Unexpected variant payload for {flag_key}")

            selected = SelectedVariant.from_dict(variant_data)
        except Exception as e:
            logger.warning(f"Error fetching variant for {flag_key}: {e}")
            self._handle_error(e)
            return fallback_variant

        if report_exposure:
            self.track_exposure_event(flag_key, selected, context, trace.latency_ms)
        return selected

    async def get_variant_value(
        self,
        flag_key: str,
        fallback_value: VariantValue,
        context: Mapping[str, Any],
        report_exposure: bool = True,
    ) -> VariantValue:
        """Ask the API for a flag's variant and return only its value."""
        result = await self.get_variant(
            flag_key,
            SelectedVariant(variant_value=fallback_value),
            context,
            report_exposure=report_exposure,
        )
        return result.variant_value

    async def is_enabled(self, flag_key: str, context: Mapping[str, Any]) -> bool:
        """
        Check a boolean flag.

        Only the literal value True enables the flag; truthy strings and
        numbers do not.
        """
        return await self.get_variant_value(flag_key, False, context) is True

    async def get_all_variants(
        self, context: Mapping[str, Any]
    ) -> Optional[Dict[str, SelectedVariant]]:
        """
        Ask the API for every flag's variant. Exposure events are never tracked.

        Returns:
            Map of flag key to variant, or None if the request failed
        """
        try:
            response = await self._fetch_flags(context)
            return {
                flag_key: SelectedVariant.from_dict(variant_data)
                for flag_key, variant_data in _get_flags(response).items()
            }
        except Exception as e:
            logger.warning(f"Error fetching variants: {e}")
            self._handle_error(e)
            return None

    async def _fetch_flags(
        self,
        context: Mapping[str, Any],
        flag_key: Optional[str] = None,
        trace: Optional[RequestTrace] = None,
    ) -> Dict[str, Any]:
        params = {"context": json.dumps(dict(context))}
        if flag_key is not None:
            params["flag_key"] = flag_key
        trace_context = trace.context if trace is not None else None
        return await self.call_flags_endpoint(params, trace_context=trace_context)

    async def __aenter__(self) -> "RemoteFlagsProvider":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


def _get_flags(response: Dict[str, Any]) -> Dict[str, Any]:
    flags = response.get("flags") or {}
    if not isinstance(flags, dict):
        raise ServerError("Expected a mapping of flag variants")
    return flags
