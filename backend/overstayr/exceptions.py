"""Error taxonomy for visa tracking and reminder scheduling."""


class OverstayrError(Exception):
    """Base class for all application errors."""


class InvalidDate(OverstayrError, ValueError):
    """A calendar date string is malformed or does not exist."""


class InvalidRange(OverstayrError, ValueError):
    """A value (duration, hour, minute, country code, ...) is out of bounds."""


class PermissionDenied(OverstayrError):
    """Notification permission was refused. Soft: never leaves the scheduler."""


class SchedulingFailure(OverstayrError):
    """A single reminder could not be scheduled. Soft: reported as data."""


class PersistenceFailure(OverstayrError):
    """Reading or writing the persistent store failed."""
