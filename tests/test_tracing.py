"""Tests for W3C Trace Context support."""

import re
import time

from trackflags.tracing import (
    HEADER_TRACEPARENT,
    RequestTrace,
    TraceContext,
    generate_span_id,
    generate_trace_id,
    generate_traceparent,
)

TRACEPARENT_PATTERN = re.compile(r"^00-[0-9a-f]{32}-[0-9a-f]{16}-01$")


class TestTraceContext:
    """Tests for TraceContext class."""

    def test_generate_trace_id(self):
        """Test trace ID generation."""
        trace_id = generate_trace_id()
        assert len(trace_id) == 32
        assert all(c in "0123456789abcdef" for c in trace_id)

    def test_generate_span_id(self):
        """Test span ID generation."""
        span_id = generate_span_id()
        assert len(span_id) == 16
        assert all(c in "0123456789abcdef" for c in span_id)

    def test_generate_traceparent(self):
        """Generated header is a sampled W3C traceparent."""
        assert TRACEPARENT_PATTERN.match(generate_traceparent())

    def test_traceparent_is_fresh(self):
        """Every call produces new IDs."""
        assert generate_traceparent() != generate_traceparent()

    def test_get_headers(self):
        """Test header generation."""
        ctx = TraceContext(trace_id="a" * 32, span_id="b" * 16, sampled=True)

        headers = ctx.get_headers()

        assert headers == {HEADER_TRACEPARENT: f"00-{'a' * 32}-{'b' * 16}-01"}

    def test_get_headers_not_sampled(self):
        """Test header generation for non-sampled traces."""
        ctx = TraceContext(trace_id="a" * 32, span_id="b" * 16, sampled=False)
        assert ctx.get_headers()[HEADER_TRACEPARENT].endswith("-00")


class TestRequestTrace:
    """Tests for RequestTrace class."""

    def test_timing(self):
        """Test request timing."""
        trace = RequestTrace(endpoint="/flags")

        trace.start()
        time.sleep(0.01)
        trace.finish()

        assert trace.latency_ms >= 10
        assert trace.latency_ms < 1000
        assert isinstance(trace.latency_ms, int)

    def test_unfinished_latency(self):
        """Latency is 0 until the trace finishes."""
        trace = RequestTrace(endpoint="/flags")
        trace.start()
        assert trace.latency_ms == 0

    def test_each_trace_has_its_own_context(self):
        first = RequestTrace(endpoint="/flags")
        second = RequestTrace(endpoint="/flags")
        assert first.context.traceparent != second.context.traceparent
