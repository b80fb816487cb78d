from typing import Dict, Optional


class ApiError(Exception):
    """Base class for errors that map onto a JSON error response."""

    status_code = 500

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, object]] = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, object]:
        return {"message": self.message, **self.details}


class ValidationError(ApiError):
    status_code = 400


class NotFoundError(ApiError):
    status_code = 404


class ConflictError(ApiError):
    status_code = 409


class UpstreamError(ApiError):
    """The remote image store rejected or failed a request."""

    status_code = 500
