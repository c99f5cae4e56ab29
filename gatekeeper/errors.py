"""Exception types raised by the gatekeeper services."""


class GatekeeperError(Exception):
    """Base class for gatekeeper errors."""


class ValidationError(GatekeeperError):
    """Rejected input, raised before any state is mutated."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field


class PersistenceError(GatekeeperError):
    """A state store could not be read or written."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.message = message
        self.path = path


class PersistenceReadError(PersistenceError):
    """Stored state is unreadable or corrupt."""


class PersistenceWriteError(PersistenceError):
    """Stored state could not be written."""
