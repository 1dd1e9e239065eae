"""Domain and infrastructure exceptions surfaced to the HTTP layer."""

__all__ = [
    "DatabaseUnavailableError",
    "ClientNotFoundError",
    "ClientAlreadyExistsError",
]

DATABASE_UNAVAILABLE_MESSAGE = "Database is unavailable. The application is running in degraded mode."


class DatabaseUnavailableError(Exception):
    """Raised without touching the pool while the database is known to be unreachable."""

    def __init__(self, message: str = DATABASE_UNAVAILABLE_MESSAGE):
        super().__init__(message)


class ClientNotFoundError(LookupError):
    def __init__(self, message: str):
        super().__init__(message)

    @classmethod
    def by_id(cls, client_id: int) -> "ClientNotFoundError":
        return cls(f"Client with ID {client_id} not found")


class ClientAlreadyExistsError(Exception):
    pass
