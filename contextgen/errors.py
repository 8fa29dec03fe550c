class ContextGenError(Exception):
    """Base exception for all application-specific errors."""
    pass

class PreconditionError(ContextGenError):
    """Raised when a run cannot start, e.g. no workspace or no open file."""
    pass

class ScanCancelledError(ContextGenError):
    """Raised when a traversal is cancelled between directories."""
    pass
