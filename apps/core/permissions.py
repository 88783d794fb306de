"""
DRF permission classes and decorators for capability enforcement.

This module provides:
- HasCapability: DRF permission class that asks the authorization engine
- @requires_capability: Decorator to declare the required capability on views
"""
import logging
from functools import wraps
from rest_framework.permissions import BasePermission

from apps.core.exceptions import PermissionDeniedError
from apps.core.logging import SecurityLogger

logger = logging.getLogger(__name__)


class HasCapability(BasePermission):
    """
    DRF permission class that enforces a capability on API endpoints.

    The capability is looked up on the handler for the request method first,
    then on the view. Bypass roles are handled by the engine, never here.

    Usage in views:
        class MyView(APIView):
            permission_classes = [IsAuthenticated, HasCapability]
            required_capability = 'manage_permissions'

    Or use with decorator:
        @requires_capability('manage_permissions')
        class MyView(APIView):
            ...
    """

    def has_permission(self, request, view):
        required = self._required_capability(request, view)

        if not required:
            return True

        from apps.rbac.services import RBACService

        principal = request.user
        if principal is None:
            # Left to DRF, which answers 401
            return False

        decision = RBACService.check(principal, required)

        if not decision.allowed:
            logger.warning(
                f"Permission denied: missing capability {required}",
                extra={
                    'user_id': getattr(principal, 'user_id', None),
                    'role': getattr(principal, 'role', None),
                    'required_capability': required,
                    'reason': decision.reason,
                    'view': view.__class__.__name__,
                    'method': request.method,
                    'path': request.path,
                    'request_id': getattr(request, 'request_id', None),
                }
            )
            SecurityLogger.log_permission_denied(principal, required, decision.reason, path=request.path)
            raise PermissionDeniedError(
                f"Missing capability: {required}",
                details={'required_capability': required, 'reason': decision.reason}
            )

        return True

    @staticmethod
    def _required_capability(request, view):
        handler = getattr(view, request.method.lower(), None)
        return (
            getattr(handler, 'required_capability', None)
            or getattr(view, 'required_capability', None)
        )


def requires_capability(code):
    """
    Decorator to declare the required capability on view classes or methods.

    Usage:
        @requires_capability('manage_permissions')
        class RolePermissionsView(APIView):
            permission_classes = [IsAuthenticated, HasCapability]

    Or on individual methods:
        class UserOverridesView(APIView):
            permission_classes = [IsAuthenticated, HasCapability]

            @requires_capability('manage_permissions')
            def put(self, request, user_id):
                pass

    Args:
        code: Capability code required for access

    Returns:
        Decorator function that sets the required_capability attribute
    """
    def decorator(view_or_method):
        if isinstance(view_or_method, type):
            view_or_method.required_capability = code
            return view_or_method

        @wraps(view_or_method)
        def wrapped(self, request, *args, **kwargs):
            return view_or_method(self, request, *args, **kwargs)

        # HasCapability reads this before the handler runs
        wrapped.required_capability = code
        return wrapped

    return decorator
