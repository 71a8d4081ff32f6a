# omp_deploy/error.py
"""
Defines the custom exception hierarchy for omp-deploy.

Every error raised on purpose by this package derives from `DeployError`, so
callers can catch the whole family in one place. The API layer converts these
into `{"status": "error", ...}` result dictionaries, using the class name as
the reported error type.
"""

from typing import Iterable, Optional


class DeployError(Exception):
    """Base class for all custom exceptions raised by omp-deploy."""

    pass


class MissingArgumentError(DeployError, ValueError):
    """Raised when a required argument (path, URL, ...) is empty."""

    pass


class ConfigError(DeployError):
    """Raised when the settings file cannot be read or lacks required fields.

    Attributes:
        missing_fields: The required top-level keys that were absent, in
            canonical order. Empty when the error is not about missing keys.
    """

    def __init__(self, message: str, missing_fields: Optional[Iterable[str]] = None):
        super().__init__(message)
        self.message = message
        self.missing_fields = list(missing_fields or [])


class ProvisionError(DeployError):
    """Raised when the server archive cannot be downloaded or extracted."""

    pass


class CopyError(DeployError):
    """Raised when a structure rule cannot be applied.

    Attributes:
        folder: The rule folder being processed when the failure occurred.
    """

    def __init__(self, message: str, folder: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.folder = folder


class SettingsCreated(DeployError):
    """Signals that a default settings file was written on first run.

    This is not a failure. The run stops so the operator can edit the new
    file before deploying.
    """

    def __init__(self, settings_path: str, message: str = "Default settings created"):
        self.settings_path = settings_path
        self.message = message
        super().__init__(f"{message}: {settings_path}")
