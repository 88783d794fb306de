"""
Custom DRF authentication classes.
"""
from rest_framework.authentication import BaseAuthentication


class PrincipalAuthentication(BaseAuthentication):
    """
    DRF authentication class that uses the principal forwarded by the gateway.

    The resolver configured in RBAC_PRINCIPAL_RESOLVER reads the request;
    this class only hands the resulting Principal to DRF.
    """

    www_authenticate_realm = 'examhub'

    def authenticate(self, request):
        """
        Return the resolved principal if present.

        Returns:
            tuple: (principal, None) if a principal was resolved, None otherwise
        """
        from apps.rbac.principal import get_principal_resolver

        principal = get_principal_resolver()(request._request)
        if principal is None:
            return None
        return (principal, None)

    def authenticate_header(self, request):
        # Non-empty so DRF answers unauthenticated requests with 401, not 403
        return f'Gateway realm="{self.www_authenticate_realm}"'
