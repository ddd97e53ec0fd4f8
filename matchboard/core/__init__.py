"""Core module for the matchboard application."""

from .types import SessionDocument, SettingsDocument, TableDocument

__all__ = ["SessionDocument", "SettingsDocument", "TableDocument"]
