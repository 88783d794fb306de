"""
Custom exception handlers for DRF.
"""
import logging
from rest_framework.views import exception_handler
from rest_framework.response import Response
from rest_framework import status

logger = logging.getLogger(__name__)


def custom_exception_handler(exc, context):
    """
    Custom exception handler that logs errors and returns consistent format.
    """
    request = context.get('request')
    request_id = getattr(request, 'request_id', None) if request else None

    # Examhub exceptions carry their own status code
    if isinstance(exc, ExamhubException):
        status_code = getattr(exc, 'status_code', status.HTTP_500_INTERNAL_SERVER_ERROR)
        log = logger.error if status_code >= 500 else logger.warning
        log(
            f"API Exception: {exc.__class__.__name__}",
            extra={
                'exception': exc.message,
                'request_id': request_id,
                'path': request.path if request else None,
                'method': request.method if request else None,
            },
            exc_info=status_code >= 500
        )

        data = {
            'error': exc.message,
            'code': exc.code,
        }
        if exc.details:
            data['details'] = exc.details
        if request_id:
            data['request_id'] = request_id
        return Response(data, status=status_code)

    # Call DRF's default exception handler first
    response = exception_handler(exc, context)

    logger.error(
        f"API Exception: {exc.__class__.__name__}",
        extra={
            'exception': str(exc),
            'request_id': request_id,
            'path': request.path if request else None,
            'method': request.method if request else None,
        },
        exc_info=response is None
    )

    # If DRF didn't handle it, return a generic 500 error
    if response is None:
        return Response(
            {
                'error': 'Internal server error',
                'detail': str(exc) if logger.isEnabledFor(logging.DEBUG) else 'An unexpected error occurred',
                'request_id': request_id,
            },
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    # Add request_id to all error responses
    if request_id and isinstance(response.data, dict):
        response.data['request_id'] = request_id

    return response


class ExamhubException(Exception):
    """Base exception for Examhub-specific errors."""
    status_code = 500
    code = 'ERROR'

    def __init__(self, message, details=None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class InvalidArgument(ExamhubException):
    """Raised when a caller passes malformed or unknown input."""
    status_code = 400
    code = 'INVALID_ARGUMENT'


class StoreUnavailable(ExamhubException):
    """Raised when a backing store cannot be read or written."""
    status_code = 503
    code = 'STORE_UNAVAILABLE'


class PermissionDeniedError(ExamhubException):
    """Raised when the principal lacks a required capability."""
    status_code = 403
    code = 'PERMISSION_DENIED'
