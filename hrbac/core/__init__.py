"""
Configuration, logging, errors and interfaces shared by the package.
"""

from .config import Settings, RBACSettings, LoggingSettings, get_settings
from .exceptions import (
    RBACError,
    ValidationError,
    NotFoundError,
    AlreadyExistsError,
    AlreadyAssignedError,
    NotAssignedError,
    CycleDetectedError,
    PersistenceError,
    ConsistencyError,
)
from .interfaces import AccessControl
from .logging import configure_logging

__all__ = [
    "Settings",
    "RBACSettings",
    "LoggingSettings",
    "get_settings",
    "RBACError",
    "ValidationError",
    "NotFoundError",
    "AlreadyExistsError",
    "AlreadyAssignedError",
    "NotAssignedError",
    "CycleDetectedError",
    "PersistenceError",
    "ConsistencyError",
    "AccessControl",
    "configure_logging",
]
