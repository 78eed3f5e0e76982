"""Domain-specific exceptions for the delivery payments core.

This module defines custom exceptions that are part of the public API.
All exceptions inherit from DeliveryCoreError for easy catching.

Per-row data problems (malformed numbers, unparsable dates, rows without an
order id) are never raised: they are defaulted or counted as skipped rows.
"""


class DeliveryCoreError(Exception):
    """Base exception for all delivery core errors.

    Users can catch this exception to handle any error raised by the package.
    """

    pass


class ConfigError(DeliveryCoreError):
    """Raised when there is a configuration error.

    This exception is raised when:
    - Invalid option values are provided (unknown platform, grouping, mode)
    - Required configuration is missing
    """

    pass


class MissingParameterError(ConfigError):
    """Raised when an operation requires a scoping parameter that is absent.

    Destructive operations (date-range purges, weekly financial regeneration)
    refuse to run without a client id rather than acting on every client.
    """

    def __init__(self, parameter: str, operation: str) -> None:
        self.parameter = parameter
        self.operation = operation
        super().__init__(f"'{parameter}' is required for {operation}")


class DataQualityError(DeliveryCoreError):
    """Raised when an uploaded file cannot be used at all.

    This exception is raised when:
    - The buffer is empty or cannot be decoded
    - No header row can be found
    """

    pass


class IngestionError(DeliveryCoreError):
    """Raised when an ingestion stage fails after metadata was recorded."""

    pass


class RepositoryError(DeliveryCoreError):
    """Raised when a persistence operation cannot be completed.

    This exception is raised when:
    - A merge or delete would leave transactions pointing at a missing location
    - The durable store is unreadable
    """

    pass


class NotFoundError(RepositoryError):
    """Raised when a referenced client or location does not exist."""

    pass
