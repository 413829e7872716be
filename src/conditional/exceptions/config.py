from __future__ import annotations

from typing import Any

from conditional.exceptions.base import ConditionalError


class ConfigError(ConditionalError):
    """Exception for run-file loading, parsing, and validation errors.

    Raised when a run configuration cannot be loaded, parsed, or validated.
    This includes YAML parsing failures and Pydantic validation errors.

    Attributes:
        message: Human-readable error message describing the configuration issue.
        field: Optional field name that caused the error (e.g., "expression").
        value: Optional value that failed validation (for debugging).

    Examples:
        ```python
        # YAML parsing failure
        raise ConfigError("Failed to parse run.yaml: invalid YAML syntax")

        # Pydantic validation failure
        raise ConfigError(
            "Invalid configuration value",
            field="statistics.Loader.error",
            value=-1,
        )
        ```
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any = None,
    ) -> None:
        """Initialize the ConfigError.

        Args:
            message: Human-readable error message.
            field: Optional field name that caused the error.
            value: Optional value that failed validation.
        """
        self.field = field
        self.value = value
        super().__init__(message)
