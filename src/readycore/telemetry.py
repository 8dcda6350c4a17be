"""
OpenTelemetry helpers shared by the engine components.

Provides ``add_span_event()`` — the single implementation used by the
poller, retry engine, validation engine and guard — and a tracer for the
pipeline's per-phase spans.  The core never configures an SDK; without
one, the API's no-op tracer makes every call free.

Usage::

    from readycore.telemetry import add_span_event

    add_span_event("readiness.poll.tick", {"poll.label": "cluster ready"})
"""

from __future__ import annotations

from opentelemetry import trace as otel_trace

TRACER_NAME = "readycore"


def get_tracer() -> otel_trace.Tracer:
    return otel_trace.get_tracer(TRACER_NAME)


def add_span_event(
    name: str, attributes: dict[str, str | int | float | bool]
) -> None:
    """Add an event to the current OTel span if it is recording.

    Args:
        name: Event name (e.g. ``"readiness.retry.attempt"``).
        attributes: Flat dict of span event attributes.
    """
    span = otel_trace.get_current_span()
    if span and span.is_recording():
        span.add_event(name=name, attributes=attributes)
