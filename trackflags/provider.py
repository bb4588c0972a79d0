"""
Base class for flag providers.
Owns the HTTP call to the flags API and exposure event tracking.
"""

import logging
from typing import Any, Callable, Dict, Mapping, Optional

import httpx

from trackflags.config import FlagsConfig
from trackflags.errors import (
    ErrorHandler,
    ServerError,
    TrackingError,
    classify_error,
)
from trackflags.tracing import TraceContext
from trackflags.types import SelectedVariant
from trackflags.utils import EXPOSURE_EVENT, prepare_common_query_params
from trackflags.version import __version__

logger = logging.getLogger("trackflags")

TrackerCallback = Callable[[str, str, Dict[str, Any]], None]
"""The host's event tracking function: (distinct_id, event_name, properties)."""


class FlagsProvider:
    """
    Shared plumbing for local and remote flag providers.

    Subclasses pick the endpoint and the evaluation mode reported on
    exposure events.
    """

    def __init__(
        self,
        token: str,
        config: FlagsConfig,
        endpoint: str,
        evaluation_mode: str,
        tracker_callback: Optional[TrackerCallback] = None,
        error_handler: Optional[ErrorHandler] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            token: Project token, also used as the basic-auth username
            config: Provider configuration
            endpoint: API path, e.g. "/flags" or "/flags/definitions"
            evaluation_mode: "local" or "remote"
            tracker_callback: Receives exposure events
            error_handler: Receives every contained error
            http_client: Optional client to use instead of an owned one
        """
        self._token = token
        self._config = config
        self._endpoint = endpoint
        self._evaluation_mode = evaluation_mode
        self._tracker_callback = tracker_callback
        self._error_handler = error_handler or ErrorHandler()
        self._http_client = http_client
        self._owns_http_client = http_client is None

    @property
    def config(self) -> FlagsConfig:
        return self._config

    @property
    def url(self) -> str:
        """Full URL of the provider's endpoint."""
        host = self._config.api_host.rstrip("/")
        if "://" not in host:
            host = f"https://{host}"
        return f"{host}{self._endpoint}"

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=self._config.request_timeout_in_seconds
            )
        return self._http_client

    async def call_flags_endpoint(
        self,
        additional_params: Optional[Dict[str, str]] = None,
        trace_context: Optional[TraceContext] = None,
    ) -> Dict[str, Any]:
        """
        Make a GET request to the provider's endpoint.

        Args:
            additional_params: Extra query parameters
            trace_context: Trace sent as the traceparent header; a fresh one if omitted

        Returns:
            Parsed JSON response body

        Raises:
            NetworkError: On timeouts and connection failures
            ServerError: On a non-200 status or an unparseable body
        """
        params = prepare_common_query_params(self._token, __version__)
        if additional_params:
            params.update(additional_params)

        headers = {"Content-Type": "application/json"}
        headers.update((trace_context or TraceContext()).get_headers())

        try:
            response = await self._get_http_client().get(
                self.url,
                params=params,
                headers=headers,
                auth=(self._token, ""),
            )
        except httpx.HTTPError as e:
            raise classify_error(e) from e

        if response.status_code != 200:
            raise ServerError(
                f"HTTP {response.status_code}: {response.text}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ServerError(f"Invalid JSON response: {e}") from e

        if not isinstance(data, dict):
            raise ServerError(f"Unexpected response body: {type(data).__name__}")

        return data

    def track_exposure_event(
        self,
        flag_key: str,
        selected_variant: SelectedVariant,
        context: Mapping[str, Any],
        latency_ms: Optional[int] = None,
    ) -> None:
        """
        Report an exposure through the tracker callback.

        Nothing is sent when the context has no distinct_id. Failures raised
        by the callback go to the error handler.
        """
        if self._tracker_callback is None:
            return

        distinct_id = context.get("distinct_id")
        if not distinct_id:
            return

        properties: Dict[str, Any] = {
            "distinct_id": distinct_id,
            "Experiment name": flag_key,
            "Variant name": selected_variant.variant_key,
            "$experiment_type": "feature_flag",
            "Flag evaluation mode": self._evaluation_mode,
        }

        if latency_ms is not None:
            properties["Variant fetch latency (ms)"] = latency_ms
        if selected_variant.experiment_id is not None:
            properties["$experiment_id"] = selected_variant.experiment_id
        if selected_variant.is_experiment_active is not None:
            properties["$is_experiment_active"] = selected_variant.is_experiment_active
        if selected_variant.is_qa_tester is not None:
            properties["$is_qa_tester"] = selected_variant.is_qa_tester

        try:
            self._tracker_callback(distinct_id, EXPOSURE_EVENT, properties)
        except Exception as e:
            logger.warning(f"Exposure tracking failed for {flag_key}: {e}")
            self._handle_error(TrackingError(f"Exposure tracking failed: {e}"))

    def _handle_error(self, error: Exception) -> None:
        """Pass an error to the error handler, never raising."""
        classified = classify_error(error)
        try:
            self._error_handler.handle(classified)
        except Exception as e:
            logger.warning(f"Error in error handler: {e}")

    async def close(self) -> None:
        """Close the HTTP client if the provider created it."""
        if self._http_client is not None and self._owns_http_client:
            await self._http_client.aclose()
            self._http_client = None
