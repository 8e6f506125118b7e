"""
Unit tests for tracer protocol and implementations.

Tests for:
- Tracer Protocol (runtime_checkable)
- NullTracer class
- OpenTelemetryTracer class
- MockTracer class
- create_tracer() factory function
"""

from __future__ import annotations

import pytest

from rebalanser.observability import (
    ATTR_CLIENT_ID,
    MockTracer,
    NullTracer,
    OpenTelemetryTracer,
    Tracer,
    create_tracer,
)


class TestTracerProtocol:
    """Tests for Tracer protocol."""

    @pytest.mark.parametrize(
        "tracer", [NullTracer(), MockTracer(), OpenTelemetryTracer(__name__)]
    )
    def test_implementations_match_protocol(self, tracer):
        assert isinstance(tracer, Tracer)


class TestNullTracer:
    """Tests for NullTracer."""

    def test_span_yields_none(self):
        with NullTracer().span("operation", {"key": "value"}) as span:
            assert span is None

    def test_disabled(self):
        assert NullTracer().enabled is False


class TestMockTracer:
    """Tests for MockTracer."""

    def test_records_spans(self):
        tracer = MockTracer()
        with tracer.span("first", {ATTR_CLIENT_ID: "client-a"}):
            pass
        with tracer.span("second"):
            pass

        assert tracer.spans == [("first", {ATTR_CLIENT_ID: "client-a"}), ("second", None)]
        assert tracer.span_names == ["first", "second"]

    def test_clear(self):
        tracer = MockTracer()
        with tracer.span("operation"):
            pass
        tracer.clear()
        assert tracer.spans == []


class TestOpenTelemetryTracer:
    """Tests for OpenTelemetryTracer."""

    def test_span_yields_span(self):
        with OpenTelemetryTracer(__name__).span("operation", {ATTR_CLIENT_ID: "a"}) as span:
            assert span is not None
            span.set_attribute("extra", 1)

    def test_enabled(self):
        assert OpenTelemetryTracer(__name__).enabled is True


class TestCreateTracer:
    """Tests for create_tracer()."""

    def test_enabled_returns_otel_tracer(self):
        assert isinstance(create_tracer(__name__, enable_tracing=True), OpenTelemetryTracer)

    def test_disabled_returns_null_tracer(self):
        assert isinstance(create_tracer(__name__, enable_tracing=False), NullTracer)
