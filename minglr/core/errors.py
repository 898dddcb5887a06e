"""
Error taxonomy shared by services and the HTTP layer.

Each error carries the status code and the user-facing detail it should be
reported with; ``minglr.main`` turns them into JSON responses.
"""
from fastapi import status


class MinglrError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail = "Something went wrong"

    def __init__(self, detail: str | None = None):
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class NotAuthenticated(MinglrError):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "User not authenticated"


class AuthenticationFailed(MinglrError):
    """Identity provider rejected the request; the message is shown verbatim."""
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Authentication failed"

    def __init__(self, detail: str | None = None, status_code: int | None = None):
        if status_code is not None:
            self.status_code = status_code
        super().__init__(detail)


class PermissionDenied(MinglrError):
    status_code = status.HTTP_403_FORBIDDEN
    detail = "Permission denied"


class InvalidInput(MinglrError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Invalid input"


class NotFound(MinglrError):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "Not found"


class StoreError(MinglrError):
    detail = "Something went wrong. Please try again."


class ConfigurationError(MinglrError):
    detail = "Backend is not configured"
