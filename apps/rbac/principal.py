"""
Principal resolution.

The service sits behind an authenticating gateway; credentials are never
parsed here. A resolver turns an inbound request into a Principal or None.
"""
from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.utils.module_loading import import_string

USER_ID_HEADER = 'HTTP_X_USER_ID'
USERNAME_HEADER = 'HTTP_X_USERNAME'
ROLE_HEADER = 'HTTP_X_USER_ROLE'


@dataclass(frozen=True)
class Principal:
    """The authenticated caller as DRF's ``request.user``."""
    user_id: str
    username: str = ''
    role: Optional[str] = None

    # DRF and Django treat request.user as a user object
    is_authenticated = True
    is_anonymous = False

    @property
    def pk(self):
        return self.user_id

    def __str__(self):
        return self.username or self.user_id


def resolve_from_gateway_headers(request):
    """Read X-User-Id / X-Username / X-User-Role set by the gateway."""
    meta = request.META
    user_id = (meta.get(USER_ID_HEADER) or '').strip()
    if not user_id:
        return None
    return Principal(
        user_id=user_id,
        username=(meta.get(USERNAME_HEADER) or '').strip(),
        role=(meta.get(ROLE_HEADER) or '').strip() or None,
    )


def get_principal_resolver():
    """Return the resolver configured in RBAC_PRINCIPAL_RESOLVER."""
    return import_string(settings.RBAC_PRINCIPAL_RESOLVER)
