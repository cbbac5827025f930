"""
Domain errors and their HTTP translation.

Services raise WorkflowError subclasses; routers turn them into HTTPException
through BusinessError. Internal details are logged, never returned to clients.
"""
import logging

from fastapi import HTTPException, status

logger = logging.getLogger(__name__)


class WorkflowError(Exception):
    """Base class for business-rule violations raised by services."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(WorkflowError):
    pass


class InvalidStateError(WorkflowError):
    """Transition not allowed from the record's current status."""


class PermissionDeniedError(WorkflowError):
    pass


class ValidationFailedError(WorkflowError):
    pass


class BusinessError:
    """Factory for HTTPExceptions with safe, client-facing messages."""

    @staticmethod
    def bad_request(detail: str) -> HTTPException:
        """
        400 for input validation, missing records and invalid state.

        OK to include specific details here since the client caused the issue.
        Examples: "User already exists", "Medicine is not available"
        """
        logger.info(f"Bad request: {detail}")
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

    @staticmethod
    def unauthorized(detail: str = "Authentication failed", reason: str = "") -> HTTPException:
        if reason:
            logger.warning(f"Unauthorized access attempt: {reason}")
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )

    @staticmethod
    def forbidden(reason: str = "") -> HTTPException:
        logger.warning(f"Forbidden access: {reason}")
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")

    @staticmethod
    def server_error(original_error: Exception = None) -> HTTPException:
        """
        Generic 500 - logs the actual error internally, hides it from the client.
        """
        if original_error:
            logger.error(
                f"Internal server error: {type(original_error).__name__}: {original_error}",
                exc_info=original_error,
            )
        else:
            logger.error("Internal server error occurred")
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server Error",
        )

    @staticmethod
    def rate_limit_exceeded(detail: str = "Too many requests") -> HTTPException:
        logger.warning(f"Rate limit exceeded: {detail}")
        return HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=detail)

    @staticmethod
    def from_workflow(error: WorkflowError) -> HTTPException:
        """Map a service error onto its HTTP status."""
        if isinstance(error, PermissionDeniedError):
            return BusinessError.forbidden(error.message)
        return BusinessError.bad_request(error.message)
