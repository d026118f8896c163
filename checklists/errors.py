"""Exception hierarchy for the checklists data layer."""


class ChecklistsError(Exception):
    """Base exception for the checklists package."""


class StorageError(ChecklistsError, OSError):
    """Raised when a data file cannot be read or written."""


class CorruptDataError(ChecklistsError, ValueError):
    """Raised when a data file exists but does not decode into the expected shape."""


class AllocatorExhausted(ChecklistsError):
    """Raised when the item ID counter has no values left to hand out."""


class ValidationError(ChecklistsError, ValueError):
    """Raised when a mutation is given invalid input (empty name, unknown icon)."""


class NotFoundError(ChecklistsError, LookupError):
    """Raised when a checklist index or item ID does not resolve."""
