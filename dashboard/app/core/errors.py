class DashboardError(Exception):
    """Base class for every failure the dashboard core reports."""

    title = "Error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(DashboardError):
    """Rejected locally, before any mutation or network call."""

    title = "Validation error"


class InsufficientSelection(ValidationError):
    title = "Cannot link tables"

    def __init__(self, selected: int) -> None:
        super().__init__("Please select at least two tables to link.")
        self.selected = selected


class InvalidAmount(ValidationError):
    title = "Invalid amount"

    def __init__(self, raw: str) -> None:
        super().__init__("Please enter a valid bill amount.")
        self.raw = raw


class MissingReservationFields(ValidationError):
    title = "Missing reservation details"

    def __init__(self, fields: list[str]) -> None:
        super().__init__(f"Please provide: {', '.join(fields)}.")
        self.fields = fields


class UnknownTable(ValidationError):
    title = "Unknown table"

    def __init__(self, table_ids: list[str]) -> None:
        super().__init__(f"Unknown table(s): {', '.join(table_ids)}.")
        self.table_ids = table_ids


class BackendError(DashboardError):
    """Non-2xx response from the backend API."""

    title = "Request failed"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NetworkError(BackendError):
    """Transport failure, no response was received."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=None)


class NotFoundLocal(DashboardError):
    """Operation on an id absent from local state; callers treat it as a no-op."""

    def __init__(self, kind: str, key: str) -> None:
        super().__init__(f"{kind} {key} not found")
        self.kind = kind
        self.key = key
