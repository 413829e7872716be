from __future__ import annotations


class ConditionalError(Exception):
    """Base exception class for all conditional-specific errors.

    Every error raised by the expression engine, the namespace resolver or
    the host-facing adapter inherits from this class. Hosts can catch
    ``ConditionalError`` at their plugin boundary and let system exceptions
    propagate naturally.

    Attributes:
        message: Human-readable error message describing what went wrong.

    Example:
        ```python
        try:
            branch = condition.apply(context)
        except ConditionalError as e:
            logger.error("condition_failed", error=e.message)
            raise
        ```
    """

    def __init__(self, message: str) -> None:
        """Initialize the ConditionalError.

        Args:
            message: Human-readable error message.
        """
        self.message = message
        super().__init__(message)
