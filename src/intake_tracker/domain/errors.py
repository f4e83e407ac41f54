"""Domain errors for intake tracking."""


class IntakeError(Exception):
    """Base class for intake tracking errors."""


class ValidationError(IntakeError):
    """Raised when caller input is invalid."""


class ConflictError(IntakeError):
    """Raised when an archive write differs from the stored record."""


class StorageError(IntakeError):
    """Raised when the persistence layer fails."""
