"""
Core middleware for request processing.
"""
import uuid
import logging
import threading
from django.utils.deprecation import MiddlewareMixin

logger = logging.getLogger(__name__)


class RequestIDMiddleware(MiddlewareMixin):
    """
    Inject a unique request_id into each request for tracing.
    The request_id is added to the request object and to log records.
    """

    def process_request(self, request):
        """Generate and attach request_id to the request."""
        request_id = request.META.get('HTTP_X_REQUEST_ID') or str(uuid.uuid4())
        request.request_id = request_id

        # Thread-local copy for LoggingFilter
        threading.current_thread().request_id = request_id

    def process_response(self, request, response):
        """Add request_id to response headers."""
        if hasattr(request, 'request_id'):
            response['X-Request-ID'] = request.request_id

        thread = threading.current_thread()
        if hasattr(thread, 'request_id'):
            del thread.request_id
        return response


class LoggingFilter(logging.Filter):
    """
    Add request_id to log records from thread-local storage.
    """

    def filter(self, record):
        thread = threading.current_thread()

        if hasattr(thread, 'request_id') and not hasattr(record, 'request_id'):
            record.request_id = thread.request_id

        return True
