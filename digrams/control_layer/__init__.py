"""Aggregate entrypoint for host integration.

Import the manager from `digrams.control_layer` for discoverability.
"""

from .autosave import AutosaveTimer
from .manager import DigramManager, ResetOutcome

__all__ = ["AutosaveTimer", "DigramManager", "ResetOutcome"]
