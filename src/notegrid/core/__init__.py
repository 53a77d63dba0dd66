"""Core configuration and utilities for NoteGrid."""

from notegrid.core.config import settings
from notegrid.core.logging import setup_logging

__all__ = ["settings", "setup_logging"]
