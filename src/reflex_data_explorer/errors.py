"""Error taxonomy shared by the data sources, the HTTP binding and the grid."""


class DataSourceError(Exception):
    """Base class for every failure a data source can report.

    Attributes:
        message: Human-readable description, safe to show in the grid.
        status_code: HTTP status the error maps to in the HTTP binding.
    """

    status_code: int = 500

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def __str__(self) -> str:
        return self.message


class ValidationError(DataSourceError):
    """Malformed request shape or a value outside the field's domain."""

    status_code = 400


class NotFoundError(DataSourceError):
    """The referenced record id does not exist."""

    status_code = 404


class RemoteError(DataSourceError):
    """Transport failure, or a non-success response without a structured body."""

    status_code = 502
