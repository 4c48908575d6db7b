"""
Retention Portal backend.

FastAPI service relaying agent call-control commands to VICIdial.
"""

__version__ = "1.0.0"
