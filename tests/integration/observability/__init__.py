"""Integration tests for follower tracing with the OpenTelemetry SDK."""
