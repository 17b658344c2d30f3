"""Error taxonomy shared by the repositories, the auth gate and the routers.

Every error carries the HTTP status it maps to and a caller-safe ``detail``.
The handlers registered in :mod:`todo_api.main` turn them into JSON
responses of the form ``{"detail": ...}``.
"""


class TodoAPIError(Exception):
    status_code = 500
    default_detail = "Internal server error"

    def __init__(self, detail=None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ValidationError(TodoAPIError):
    status_code = 400
    default_detail = "Invalid request"


class AuthenticationError(TodoAPIError):
    status_code = 401
    default_detail = "Authentication required"


class AuthorizationError(TodoAPIError):
    status_code = 403
    default_detail = "You do not have permission to access this resource"


class NotFoundError(TodoAPIError):
    status_code = 404
    default_detail = "Resource not found"


class ConflictError(TodoAPIError):
    status_code = 409
    default_detail = "Resource already exists"


class StorageError(TodoAPIError):
    """Persistence failure. The detail never includes driver output."""

    status_code = 500
    default_detail = "Internal server error"
