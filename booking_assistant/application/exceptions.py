class ResolverUpstreamError(RuntimeError):
    """Raised when the intent resolver provider fails (timeouts, network errors, service unavailable)."""
    pass


class ResolverContractError(RuntimeError):
    """Raised when the intent resolver returns a payload that violates the intent contract."""
    pass


class CalendarError(RuntimeError):
    """Raised when the calendar provider is unreachable, misconfigured or rejects a request."""
    pass


class RepositoryError(RuntimeError):
    """Raised when the appointment/customer store cannot complete a read or write."""
    pass


class DuplicateSlotError(RepositoryError):
    """Raised when an appointment write collides with an existing row for the same calendar slot."""
    pass


class MessageDeliveryError(RuntimeError):
    """Raised when the messaging platform rejects an outbound message."""
    pass
