"""Monitoring helpers.

Usage: from digrams.monitoring import log_event
"""
from .exporters import log_event

__all__ = ["log_event"]
