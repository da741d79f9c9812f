"""
Domain errors and their HTTP translation.

Services raise the `BillingError` family and never touch HTTP. The API layer
converts them with `BusinessError.from_domain`, which keeps the external
message safe and logs the internal detail.
"""
from fastapi import HTTPException, status
import logging

logger = logging.getLogger(__name__)


class BillingError(Exception):
    """Base class for every error raised by the billing core."""

    def __init__(self, message: str = "", **context):
        super().__init__(message)
        self.message = message
        self.context = context


class ValidationError(BillingError):
    """Malformed input: empty items, non-numeric amounts, missing fields."""


class NotFoundError(BillingError):
    """Referenced business, shop, customer, product or invoice does not exist."""

    def __init__(self, resource: str = "Resource", resource_id=None, **context):
        super().__init__(f"{resource} not found", resource_id=resource_id, **context)
        self.resource = resource
        self.resource_id = resource_id


class ConflictError(BillingError):
    """Unique or foreign-key constraint violated while writing."""


class TransientStorageError(BillingError):
    """Connection, pool or lock failure. Nothing was committed; safe to retry."""


class BusinessError:
    """HTTP exceptions with safe (non-leaky) messages."""

    @staticmethod
    def not_found(resource: str = "Resource", reason: str = "") -> HTTPException:
        """
        404 for a missing record.

        Example:
            if not invoice:
                raise BusinessError.not_found("Invoice")
        """
        if reason:
            logger.warning(f"Not found: {resource} - {reason}")

        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} not found",
        )

    @staticmethod
    def bad_request(detail: str) -> HTTPException:
        """
        400 for input validation / business rule errors.

        OK to include specific details here since the caller caused the issue.
        Examples: "items must be a non-empty array", "quantity must be greater than 0"
        """
        logger.info(f"Bad request: {detail}")
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )

    @staticmethod
    def conflict(detail: str) -> HTTPException:
        """409 for resource conflicts."""
        logger.info(f"Conflict: {detail}")
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
        )

    @staticmethod
    def server_error(original_error: Exception = None) -> HTTPException:
        """
        Generic 500 - logs actual error internally, hides it from the caller.

        Never expose SQL errors or internal paths.
        """
        if original_error:
            logger.error(
                f"Internal server error: {type(original_error).__name__}: {str(original_error)}",
                exc_info=original_error,
            )
        else:
            logger.error("Internal server error occurred")

        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An internal error occurred. Please try again later.",
        )

    @staticmethod
    def unavailable(original_error: Exception = None) -> HTTPException:
        """503 for storage outages. The caller may retry the whole request."""
        logger.warning(f"Storage unavailable: {original_error}")
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Storage temporarily unavailable. Please retry.",
        )

    @staticmethod
    def from_domain(exc: BillingError) -> HTTPException:
        """Map a domain error to the HTTP exception the API returns."""
        if isinstance(exc, ValidationError):
            return BusinessError.bad_request(exc.message)
        if isinstance(exc, NotFoundError):
            return BusinessError.not_found(exc.resource, reason=f"id={exc.resource_id}")
        if isinstance(exc, ConflictError):
            # Create already retried once; a conflict reaching the API is a server fault.
            return BusinessError.server_error(exc)
        if isinstance(exc, TransientStorageError):
            return BusinessError.unavailable(exc)
        return BusinessError.server_error(exc)
