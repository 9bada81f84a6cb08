"""Probe-path analysis helpers for probetable."""

from .probe import format_trace_lines, trace_probe_delete, trace_probe_get, trace_probe_put

__all__ = ["trace_probe_get", "trace_probe_put", "trace_probe_delete", "format_trace_lines"]
