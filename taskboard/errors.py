"""
Error taxonomy for the taskboard core.

Auth failures are carried inside AuthResult rather than raised; the classes
below name the failure kind. MalformedDataError is raised by decoders and
recovered locally by substituting a default value.
"""


class TaskboardError(Exception):
    """Base class for all taskboard errors."""

    message = "Operation failed"

    def __init__(self, message: str = ""):
        super().__init__(message or self.message)


class ValidationError(TaskboardError):
    """Raised when boundary input (email, password, name) is missing or empty."""
    message = "Invalid input"


class NotFoundError(TaskboardError):
    """No stored user matches the requested email."""
    message = "User not found"


class InvalidCredentialError(TaskboardError):
    """Password did not verify against the stored credential."""
    message = "Invalid password"


class ConflictError(TaskboardError):
    """Signup attempted with an email that is already registered."""
    message = "Email already registered"


class MalformedDataError(TaskboardError):
    """A persisted blob could not be decoded."""
    message = "Invalid stored data"


class ConfigError(TaskboardError):
    """Raised when configuration is invalid or incomplete."""
    message = "Invalid configuration"
