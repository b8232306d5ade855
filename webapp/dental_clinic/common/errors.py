class DuplicatePaymentError(ValueError):
    """A payment that looks like one already recorded.

    This is a heuristic warning: the caller may resubmit with explicit
    confirmation to record it anyway.
    """


class StorageError(RuntimeError):
    """File storage failed (upload or delete)."""


class NotFoundError(LookupError):
    """The referenced record does not exist."""
