"""
Authorization decisions for (user, role, capability).

Precedence, first match wins:
1. role in the bypass set -> allowed ("role bypass")
2. deny override          -> denied  ("explicit deny")
3. grant override         -> allowed ("explicit grant")
4. role default grant     -> allowed ("role default")
5. otherwise              -> denied  ("no matching grant")

Read paths never raise: store failures resolve to a denied decision that is
logged and not cached.
"""
import logging

from asgiref.sync import sync_to_async

from apps.core.exceptions import StoreUnavailable
from apps.core.logging import SecurityLogger
from apps.rbac.values import (
    KIND_DENY,
    KIND_GRANT,
    REASON_BYPASS,
    REASON_DENY,
    REASON_EVALUATION_ERROR,
    REASON_GRANT,
    REASON_NO_GRANT,
    REASON_ROLE_DEFAULT,
    REASON_STORE_UNAVAILABLE,
    Decision,
)

logger = logging.getLogger(__name__)

BYPASS = Decision(True, REASON_BYPASS)
EXPLICIT_DENY = Decision(False, REASON_DENY)
EXPLICIT_GRANT = Decision(True, REASON_GRANT)
ROLE_DEFAULT = Decision(True, REASON_ROLE_DEFAULT)
NO_GRANT = Decision(False, REASON_NO_GRANT)
STORE_UNAVAILABLE = Decision(False, REASON_STORE_UNAVAILABLE)
EVALUATION_ERROR = Decision(False, REASON_EVALUATION_ERROR)


def resolve(override_kind, role_codes, code):
    """Apply precedence steps 2-5 to one capability."""
    if override_kind == KIND_DENY:
        return EXPLICIT_DENY
    if override_kind == KIND_GRANT:
        return EXPLICIT_GRANT
    if code in role_codes:
        return ROLE_DEFAULT
    return NO_GRANT


class AuthorizationEngine:
    """
    Owns the decision cache and the stores it reads.

    Construct one per process (see apps.rbac.services) or one per test.
    """

    def __init__(self, catalog, role_store, override_store, cache, bypass_roles=('admin', 'leader')):
        self.catalog = catalog
        self.role_store = role_store
        self.override_store = override_store
        self.cache = cache
        self.bypass_roles = frozenset(bypass_roles)

    def is_bypass(self, role):
        return bool(role) and role in self.bypass_roles

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def decide(self, user_id, role, code):
        """Decide whether ``user_id`` acting as ``role`` may perform ``code``."""
        if self.is_bypass(role):
            return BYPASS

        key = (user_id, role or None, code)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        generation = self.cache.generation
        decision, failure = self._guarded(self._evaluate, user_id, role, code)
        if failure is not None:
            return failure
        self.cache.put(key, decision, generation)
        return decision

    def decide_all(self, user_id, role):
        """Decide every catalog capability for one principal."""
        codes = self.catalog.codes()
        if self.is_bypass(role):
            return {code: True for code in codes}

        generation = self.cache.generation
        snapshot, failure = self._guarded(self._load, user_id, role)
        if failure is not None:
            return {code: False for code in codes}
        return self._apply_all(user_id, role, codes, snapshot, generation)

    async def adecide(self, user_id, role, code):
        """
        Async ``decide``.

        Store reads run in a worker thread; the cache is only written after
        the await completes, so a cancelled lookup stores nothing.
        """
        if self.is_bypass(role):
            return BYPASS

        key = (user_id, role or None, code)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        generation = self.cache.generation
        decision, failure = await sync_to_async(self._guarded)(self._evaluate, user_id, role, code)
        if failure is not None:
            return failure
        self.cache.put(key, decision, generation)
        return decision

    async def adecide_all(self, user_id, role):
        """Async ``decide_all``."""
        codes = await sync_to_async(self.catalog.codes)()
        if self.is_bypass(role):
            return {code: True for code in codes}

        generation = self.cache.generation
        snapshot, failure = await sync_to_async(self._guarded)(self._load, user_id, role)
        if failure is not None:
            return {code: False for code in codes}
        return self._apply_all(user_id, role, codes, snapshot, generation)

    def _evaluate(self, user_id, role, code):
        override = self.override_store.get(user_id, code) if user_id else None
        if override is not None:
            return resolve(override.kind, (), code)
        role_codes = self.role_store.get(role) if role else frozenset()
        return resolve(None, role_codes, code)

    def _load(self, user_id, role):
        overrides = self.override_store.list_for_user(user_id) if user_id else []
        role_codes = self.role_store.get(role) if role else frozenset()
        return {override.code: override.kind for override in overrides}, role_codes

    def _apply_all(self, user_id, role, codes, snapshot, generation):
        kinds, role_codes = snapshot
        result = {}
        for code in codes:
            decision = resolve(kinds.get(code), role_codes, code)
            self.cache.put((user_id, role or None, code), decision, generation)
            result[code] = decision.allowed
        return result

    def _guarded(self, func, user_id, role, *args):
        """
        Run a store read, returning ``(result, None)`` or ``(None, failure)``.

        ``failure`` is the denied decision the caller returns uncached.
        """
        try:
            return func(user_id, role, *args), None
        except StoreUnavailable as e:
            code = args[0] if args else None
            logger.warning(
                "Authorization store unavailable, denying",
                extra={'user_id': user_id, 'role': role, 'code': code, 'error': e.message}
            )
            SecurityLogger.log_authorization_degraded(user_id, role, code=code, error=e.message)
            return None, STORE_UNAVAILABLE
        except Exception:
            logger.exception(
                "Authorization evaluation failed, denying",
                extra={'user_id': user_id, 'role': role}
            )
            return None, EVALUATION_ERROR

    # ------------------------------------------------------------------
    # Administrative mutations
    # ------------------------------------------------------------------

    def set_role_permissions(self, role, codes):
        return self.role_store.replace_all(role, codes)

    def set_user_override(self, user_id, code, kind, granted_by, reason=None):
        return self.override_store.set(user_id, code, kind, granted_by, reason=reason)

    def clear_user_override(self, user_id, code):
        return self.override_store.clear(user_id, code)

    def replace_user_overrides(self, user_id, grants, denies, granted_by, reason=None):
        return self.override_store.replace_for_user(user_id, grants, denies, granted_by, reason=reason)

    def clear_user_overrides(self, user_id):
        return self.override_store.clear_all(user_id)

    def shutdown(self):
        self.cache.shutdown()
