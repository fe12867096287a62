"""Operational components fed directly by the host's event stream."""

from .event_recorder import EventRecorder, is_named_command

__all__ = ["EventRecorder", "is_named_command"]
