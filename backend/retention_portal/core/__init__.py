"""
Core module for the Retention Portal backend.

Contains configuration and the VICIdial database engine.
"""

from .config import settings, get_settings, Settings
from .database import get_vicidial_engine, dispose_engines

__all__ = ["settings", "get_settings", "Settings", "get_vicidial_engine", "dispose_engines"]
