from django.db import DatabaseError
from rest_framework.views import exception_handler
from rest_framework.response import Response
from rest_framework import status
import logging

logger = logging.getLogger(__name__)


class BusinessLogicException(Exception):
    """
    Raised when a domain rule is violated (e.g. 'Stock not available').
    """
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message, code="business_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class ValidationException(BusinessLogicException):
    """
    Malformed or missing input, caught before anything is mutated.
    """
    def __init__(self, message, code="validation_error"):
        super().__init__(message, code=code)


class NotFoundException(BusinessLogicException):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, message, code="not_found"):
        super().__init__(message, code=code)


class ConflictException(BusinessLogicException):
    """
    Version mismatch on write. Safe for the caller to retry.
    """
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message, code="conflict"):
        super().__init__(message, code=code)


def custom_exception_handler(exc, context):
    # Call REST framework's default exception handler first
    response = exception_handler(exc, context)

    if isinstance(exc, BusinessLogicException):
        return Response(
            {"error": exc.message, "code": exc.code},
            status=exc.status_code
        )

    if isinstance(exc, DatabaseError):
        logger.error(f"Persistence failure: {exc}", exc_info=True)
        return Response(
            {"error": "Storage temporarily unavailable", "code": "io_error"},
            status=status.HTTP_503_SERVICE_UNAVAILABLE
        )

    # If response is None, it's an unhandled server error (500)
    if response is None:
        logger.error(f"Unhandled Exception: {exc}", exc_info=True)
        return Response(
            {"error": "Internal Server Error", "code": "server_error"},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    return response
