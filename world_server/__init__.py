"""Admission boundary of the realtime world server."""

__version__ = "0.1.0"
