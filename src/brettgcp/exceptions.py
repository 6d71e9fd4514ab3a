"""
Exceptions raised by brettgcp are catchable as GoogleCloudError.

Errors coming back from the remote APIs are wrapped as ApiError with the
original googleapiclient.errors.HttpError chained as __cause__.  Bad
arguments that are caught locally are still plain ValueError.
"""
import json

from googleapiclient.errors import HttpError


class GoogleCloudError(Exception):
    """Base exception for brettgcp errors."""


class NotConnectedError(GoogleCloudError):
    """No valid credentials could be obtained for a service request."""


class ApiError(GoogleCloudError):
    """
    The remote API rejected the request.
    status_code and reason are pulled out of the HttpError, and the
    message from the JSON error body if there is one.
    """
    def __init__(self, message: str, status_code: int = 0, reason: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason

    @classmethod
    def from_http_error(cls, error: HttpError) -> "ApiError":
        status = int(error.resp.status) if error.resp is not None else 0
        reason = error.resp.reason if error.resp is not None else ""
        message = reason
        try:
            body = json.loads(error.content.decode("utf-8"))
            message = body.get("error", {}).get("message", message)
        except (ValueError, AttributeError):
            pass
        return cls(f"{status} {message}", status_code=status, reason=reason)

    def __str__(self) -> str:
        return self.args[0] if self.args else ""


class DatastoreError(GoogleCloudError):
    """A Datastore operation could not be performed."""


class TransactionError(DatastoreError):
    """
    A Datastore transaction failed to commit.
    commit_error is whatever made the commit fail, rollback_error is only
    set if the rollback attempt failed as well.
    """
    def __init__(self, message: str,
                 commit_error: BaseException|None = None,
                 rollback_error: BaseException|None = None) -> None:
        super().__init__(message)
        self.commit_error = commit_error
        self.rollback_error = rollback_error
