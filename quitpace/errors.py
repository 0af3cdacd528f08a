"""Domain-specific errors for the quit-plan timer engine.

Nothing in the engine is user-fatal. Storage failures propagate to the
caller, scheduling failures are logged and swallowed, and a missing plan
is reported as an idle snapshot rather than raised.
"""


class QuitPaceError(Exception):
    """Base exception for all quitpace errors."""

    pass


class ConfigMissingError(QuitPaceError):
    """Raised when an operation needs a plan configuration and none is stored."""

    pass


class StorageFailure(QuitPaceError):
    """Raised when the persistence gateway rejects an append or a read.

    Attributes:
        operation: Gateway operation that failed (append, list, load_plan_config)
        original_error: Underlying exception, if any
    """

    def __init__(self, operation: str, original_error: Exception | None = None) -> None:
        self.operation = operation
        self.original_error = original_error
        detail = f": {original_error}" if original_error is not None else ""
        super().__init__(f"Storage operation '{operation}' failed{detail}")


class SchedulingFailure(QuitPaceError):
    """Raised when the notification platform rejects a schedule or cancel call.

    Attributes:
        original_error: Backend exception, if the failure wraps one
    """

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        self.original_error = original_error
        super().__init__(message)

    @classmethod
    def wrap(cls, action: str, error: Exception) -> "SchedulingFailure":
        if isinstance(error, cls):
            return error
        return cls(f"Reminder {action} failed: {type(error).__name__}: {error}", error)


class ReminderSlotBusyError(QuitPaceError):
    """Raised when a reminder is armed while another one is still outstanding."""

    pass
