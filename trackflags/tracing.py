"""
W3C Trace Context support for flags requests.
Every outgoing request carries a fresh traceparent header.
"""

import secrets
import time
from dataclasses import dataclass, field
from typing import Dict


HEADER_TRACEPARENT = "traceparent"


def generate_trace_id() -> str:
    """Generate a 32-character hex trace ID."""
    return secrets.token_hex(16)


def generate_span_id() -> str:
    """Generate a 16-character hex span ID."""
    return secrets.token_hex(8)


@dataclass
class TraceContext:
    """
    Represents W3C Trace Context for a single request.

    The traceparent header format is:
    {version}-{trace-id}-{parent-id}-{flags}

    Example:
        00-4bf92f3577b34da6a3ce929d0e0e4736-00f067aa0ba902b7-01
    """

    trace_id: str = field(default_factory=generate_trace_id)
    """32-character hex trace ID."""

    span_id: str = field(default_factory=generate_span_id)
    """16-character hex span ID."""

    sampled: bool = True
    """Whether this trace should be sampled."""

    @property
    def traceparent(self) -> str:
        flags = "01" if self.sampled else "00"
        return f"00-{self.trace_id}-{self.span_id}-{flags}"

    def get_headers(self) -> Dict[str, str]:
        """
        Get headers to propagate trace context.

        Returns:
            Dictionary of headers to add to outgoing requests
        """
        return {HEADER_TRACEPARENT: self.traceparent}


def generate_traceparent() -> str:
    """Generate a sampled traceparent header value for a new request."""
    return TraceContext().traceparent


@dataclass
class RequestTrace:
    """
    Tracks timing for a single traced request.

    Example:
        ```python
        trace = RequestTrace(endpoint="/flags")
        trace.start()
        await provider.call_flags_endpoint(params, trace_context=trace.context)
        trace.finish()
        print(f"Latency: {trace.latency_ms}ms")
        ```
    """

    endpoint: str
    """API endpoint being called."""

    context: TraceContext = field(default_factory=TraceContext)
    """Trace context sent with the request."""

    start_time: float = 0
    end_time: float = 0

    def start(self) -> None:
        """Mark request start time."""
        self.start_time = time.monotonic()

    def finish(self) -> None:
        """Mark request end time."""
        self.end_time = time.monotonic()

    @property
    def latency_ms(self) -> int:
        """Get request latency in whole milliseconds."""
        if self.end_time == 0 or self.start_time == 0:
            return 0
        return int((self.end_time - self.start_time) * 1000)
