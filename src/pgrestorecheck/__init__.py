"""
pgrestorecheck - verify that the latest PostgreSQL dump actually restores
"""

__version__ = "1.0.0"

from .core import RestoreCheck
from .errors import RestoreCheckError

__all__ = ["RestoreCheck", "RestoreCheckError"]
