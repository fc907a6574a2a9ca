"""Errors raised while provisioning test databases."""


class TestSupportError(Exception):
    """Base class for every error raised by the test-database harness."""

    __test__ = False


class ConfigurationMissing(TestSupportError):
    """The settings file, or the connection string inside it, is absent."""


class InvalidIdentity(TestSupportError):
    """The derived database name is not legal for the target engine."""


class DatabaseConnectionError(TestSupportError):
    """The database server could not be reached or refused the credentials."""


class LifecycleConflict(TestSupportError):
    """The engine refused a create/drop transition for a test database."""
