"""User interface layer for the inspector."""

from .app import AppConfig, InspectorApp

__all__ = ["AppConfig", "InspectorApp"]
