"""
RBAC services.

Implements:
- build_engine/get_engine: construction and ownership of the process engine
- RBACService: principal-level helpers used by views and permission classes
"""
import logging
from typing import Dict, Optional

from django.apps import apps as django_apps
from django.conf import settings
from django.core.cache import caches

from apps.rbac.cache import DecisionCache
from apps.rbac.catalog import PermissionCatalog
from apps.rbac.engine import AuthorizationEngine
from apps.rbac.stores import RolePermissionStore, UserOverrideStore
from apps.rbac.values import KIND_DENY, KIND_GRANT, Decision

logger = logging.getLogger(__name__)


def build_engine(ttl=None, bypass_roles=None, backend=None) -> AuthorizationEngine:
    """
    Construct catalog, stores, cache and engine from settings.

    Explicit arguments override RBAC_DECISION_CACHE_TTL, RBAC_BYPASS_ROLES and
    the RBAC_DECISION_CACHE_ALIAS cache backend.
    """
    if ttl is None:
        ttl = getattr(settings, 'RBAC_DECISION_CACHE_TTL', None)
    if bypass_roles is None:
        bypass_roles = getattr(settings, 'RBAC_BYPASS_ROLES', ('admin', 'leader'))
    if backend is None:
        backend = caches[getattr(settings, 'RBAC_DECISION_CACHE_ALIAS', 'rbac')]

    cache = DecisionCache(backend, ttl=ttl)
    catalog = PermissionCatalog()
    engine = AuthorizationEngine(
        catalog=catalog,
        role_store=RolePermissionStore(catalog, cache),
        override_store=UserOverrideStore(catalog, cache),
        cache=cache,
        bypass_roles=bypass_roles,
    )
    logger.info(
        "Authorization engine built",
        extra={'bypass_roles': sorted(engine.bypass_roles), 'cache_ttl': cache.ttl}
    )
    return engine


def get_engine() -> AuthorizationEngine:
    """Return the engine owned by the rbac app."""
    return django_apps.get_app_config('rbac').engine


class RBACService:
    """
    Principal-level authorization helpers.
    """

    @classmethod
    def check(cls, principal, code: str) -> Decision:
        """Decide ``code`` for ``principal``; unauthenticated callers are denied."""
        if principal is None:
            return Decision(False, 'unauthenticated')
        return get_engine().decide(principal.user_id, principal.role, code)

    @classmethod
    def has_capability(cls, principal, code: str) -> bool:
        return cls.check(principal, code).allowed

    @classmethod
    def permission_map(cls, principal) -> Dict[str, bool]:
        """Every catalog capability mapped to whether ``principal`` holds it."""
        if principal is None:
            return {}
        return get_engine().decide_all(principal.user_id, principal.role)

    @classmethod
    def overrides_summary(cls, user_id: str, role: Optional[str] = None) -> dict:
        """
        A user's overrides split into grants and denies, plus role defaults.
        """
        engine = get_engine()
        overrides = engine.override_store.list_for_user(user_id)
        return {
            'user_id': user_id,
            'role': role,
            'overrides': overrides,
            'grants': sorted(o.code for o in overrides if o.kind == KIND_GRANT),
            'denies': sorted(o.code for o in overrides if o.kind == KIND_DENY),
            'role_permissions': sorted(engine.role_store.get(role)) if role else [],
        }
