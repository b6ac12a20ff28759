from dataclasses import dataclass
from fastapi import status


@dataclass(frozen=True)
class ErrorDefinition:
    code: str
    message: str
    status_code: int


class ErrorCatalog:
    INVALID_TOKEN = ErrorDefinition("INVALID_TOKEN", "Invalid token", status.HTTP_401_UNAUTHORIZED)
    WORKSPACE_SCOPE_REQUIRED = ErrorDefinition(
        "WORKSPACE_SCOPE_REQUIRED",
        "Workspace scope is required",
        status.HTTP_403_FORBIDDEN,
    )
    UNKNOWN_LIST = ErrorDefinition(
        "UNKNOWN_LIST",
        "Unknown list",
        status.HTTP_404_NOT_FOUND,
    )
    VALIDATION_ERROR = ErrorDefinition(
        "VALIDATION_ERROR",
        "Validation error",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
    )
    QUERY_FAILED = ErrorDefinition(
        "QUERY_FAILED",
        "Error loading data",
        status.HTTP_502_BAD_GATEWAY,
    )
    JOIN_STEP_FAILED = ErrorDefinition(
        "JOIN_STEP_FAILED",
        "Error resolving staff assignments",
        status.HTTP_502_BAD_GATEWAY,
    )
    DB_UNAVAILABLE = ErrorDefinition(
        "DB_UNAVAILABLE",
        "Database unavailable",
        status.HTTP_503_SERVICE_UNAVAILABLE,
    )
    INTERNAL_ERROR = ErrorDefinition(
        "INTERNAL_ERROR",
        "Internal server error",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


class AppError(Exception):
    def __init__(self, error: ErrorDefinition, details: object | None = None):
        self.error = error
        self.details = details
        super().__init__(error.message)
