"""Reporting helpers: text rendering and JSON snapshot envelopes."""
