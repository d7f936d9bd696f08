"""Custom exceptions for extrarows actions."""

from __future__ import annotations

from collections.abc import Iterable


class IntegrationError(Exception):
    """Base exception for every failure surfaced to the plugin host."""

    pass


class ValidationError(IntegrationError):
    """Raised when an action or datasource configuration is invalid."""

    pass


class MissingHeaderError(IntegrationError):
    """Raised when the requested header row has no cells."""

    def __init__(self, row_number: int) -> None:
        self.row_number = row_number
        super().__init__(
            f"The specified row number({row_number}) doesn't have a header."
        )


class UnexpectedKeyError(IntegrationError):
    """Raised when a record field matches none of the known columns."""

    def __init__(self, key: str, column_names: Iterable[str]) -> None:
        self.key = key
        self.column_names = [name for name in column_names if name]
        expected = ", ".join(f'"{name}"' for name in self.column_names)
        super().__init__(f'Unexpected key: "{key}". Expected keys are: {expected}')


class RemoteCallError(IntegrationError):
    """Raised when the Google API answers with a non-success status.

    The message names the operation, e.g.
    ``Failed to clear Google Sheet, unexpected status: 500``.
    """

    def __init__(self, operation: str, status_code: int) -> None:
        self.operation = operation
        self.status_code = status_code
        super().__init__(f"Failed to {operation}, unexpected status: {status_code}")
