"""
Test database isolation for the bookstore data layer.

Every test class (or test method) gets its own database, named after it and
derived from the connection string in appsettings.json.
"""

from .app_settings import (
    CONNECTION_STRING_NAME,
    AppSettings,
    get_connection_template,
    get_settings,
)
from .context import (
    ContextConfiguration,
    PersistenceHandle,
    Tracking,
    create_context,
    unique_class_options,
    unique_method_options,
)
from .descriptor import ConnectionDescriptor, build_descriptor
from .exceptions import (
    ConfigurationMissing,
    DatabaseConnectionError,
    InvalidIdentity,
    LifecycleConflict,
    TestSupportError,
)
from .identity import derive_identity
from .lifecycle import DatabaseLifecycle
from .timing import time_things

__all__ = [
    "AppSettings",
    "CONNECTION_STRING_NAME",
    "ConfigurationMissing",
    "ConnectionDescriptor",
    "ContextConfiguration",
    "DatabaseConnectionError",
    "DatabaseLifecycle",
    "InvalidIdentity",
    "LifecycleConflict",
    "PersistenceHandle",
    "TestSupportError",
    "Tracking",
    "build_descriptor",
    "create_context",
    "derive_identity",
    "get_connection_template",
    "get_settings",
    "time_things",
    "unique_class_options",
    "unique_method_options",
]
