from typing import TYPE_CHECKING

from fastapi import status

if TYPE_CHECKING:
    from app.core.saga import SagaResult
    from app.remote.base import RemoteError


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


_REMOTE_STATUS = {
    "network": status.HTTP_503_SERVICE_UNAVAILABLE,
    "permission": status.HTTP_403_FORBIDDEN,
    "not_found": status.HTTP_404_NOT_FOUND,
    "conflict": status.HTTP_409_CONFLICT,
    "invalid": status.HTTP_400_BAD_REQUEST,
}


class RemoteCallError(ServiceError):
    """A remote BaaS call came back with an error value."""

    def __init__(self, error: "RemoteError", context: str = "") -> None:
        message = f"{context}: {error.message}" if context else error.message
        super().__init__(message, _REMOTE_STATUS.get(error.kind, status.HTTP_502_BAD_GATEWAY))
        self.error = error


class LocalStoreError(ServiceError):
    """The local persistence layer rejected a write. The data it carried is lost."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR)


class SagaFailedError(ServiceError):
    def __init__(self, message: str, result: "SagaResult", status_code: int = status.HTTP_400_BAD_REQUEST) -> None:
        super().__init__(message, status_code)
        self.result = result
