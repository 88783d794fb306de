"""
Persistence for role default grants and per-user overrides.

Every mutation invalidates the whole decision cache before returning, and
again when the outermost transaction commits if the caller holds one open.
"""
import logging
import re
from contextlib import contextmanager

from django.db import DatabaseError, transaction

from apps.core.exceptions import InvalidArgument, StoreUnavailable
from apps.core.logging import SecurityLogger
from apps.rbac.models import Permission, RolePermission, UserPermission
from apps.rbac.values import KINDS, Override

logger = logging.getLogger(__name__)

CODE_PATTERN = re.compile(r'^[a-z][a-z0-9_]*(:[a-z0-9_]+)*$')


def validate_code(code):
    """Reject capability codes that are not lowercase snake_case segments."""
    if not isinstance(code, str) or not CODE_PATTERN.match(code):
        raise InvalidArgument(
            f"Malformed capability code: {code!r}",
            details={'code': code}
        )
    return code


def validate_codes(codes):
    if codes is None or isinstance(codes, str):
        raise InvalidArgument("Capability codes must be a list of strings")
    return {validate_code(code) for code in codes}


def _require(value, field):
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgument(f"{field} must not be empty", details={'field': field})
    return value


@contextmanager
def _store_errors(action):
    """Translate database failures into StoreUnavailable."""
    try:
        yield
    except DatabaseError as e:
        logger.error(
            f"Permission store failure during {action}",
            extra={'action': action, 'error': str(e)},
            exc_info=True
        )
        raise StoreUnavailable(
            "Permission store is unavailable",
            details={'action': action}
        ) from e


class _InvalidatingStore:

    def __init__(self, catalog, cache):
        self.catalog = catalog
        self.cache = cache

    @contextmanager
    def _mutation(self, action):
        with _store_errors(action):
            with transaction.atomic():
                yield
                transaction.on_commit(self.cache.invalidate)
        self.cache.invalidate()

    def _check_known(self, codes):
        unknown = set(codes) - self.catalog.exists(codes)
        if unknown:
            raise InvalidArgument(
                "Unknown capability codes",
                details={'unknown_codes': sorted(unknown)}
            )


class RolePermissionStore(_InvalidatingStore):
    """Default capability sets keyed by role tag."""

    def get(self, role):
        """Codes granted to ``role``; unknown or empty role yields an empty set."""
        if not role:
            return frozenset()
        with _store_errors('role_permissions.get'):
            return frozenset(RolePermission.objects.codes_for_role(role))

    def roles(self):
        """Roles that hold at least one default grant."""
        with _store_errors('role_permissions.roles'):
            return list(RolePermission.objects.roles())

    def replace_all(self, role, codes):
        """Atomically overwrite the grant set of ``role``."""
        _require(role, 'role')
        codes = validate_codes(codes)
        self._check_known(codes)

        with self._mutation('role_permissions.replace_all'):
            RolePermission.objects.replace_for_role(
                role, Permission.objects.by_codes(codes)
            )

        SecurityLogger.log_role_permissions_replaced(role, codes)
        return frozenset(codes)


class UserOverrideStore(_InvalidatingStore):
    """Per-user grant and deny overrides, at most one per (user, capability)."""

    def get(self, user_id, code):
        if not user_id or not code:
            return None
        with _store_errors('user_permissions.get'):
            row = (
                UserPermission.objects.filter(user_id=user_id, permission__code=code)
                .select_related('permission')
                .first()
            )
        return Override.from_model(row) if row else None

    def list_for_user(self, user_id):
        """Overrides held by ``user_id``, newest first."""
        if not user_id:
            return []
        with _store_errors('user_permissions.list'):
            return [Override.from_model(row) for row in UserPermission.objects.for_user(user_id)]

    def set(self, user_id, code, kind, granted_by, reason=None):
        """Upsert an override, replacing any existing one for the pair."""
        _require(user_id, 'user_id')
        _require(granted_by, 'granted_by')
        validate_code(code)
        if kind not in KINDS:
            raise InvalidArgument(
                f"Override kind must be one of {', '.join(KINDS)}",
                details={'kind': kind}
            )
        self._check_known({code})

        with self._mutation('user_permissions.set'):
            permission = Permission.objects.by_code(code)
            if permission is None:
                # Removed from the catalog after the existence check
                raise InvalidArgument(
                    "Unknown capability codes",
                    details={'unknown_codes': [code]}
                )
            row = UserPermission.objects.set_override(
                user_id, permission, kind, granted_by, reason=reason
            )

        SecurityLogger.log_override_changed(user_id, code=code, kind=kind, granted_by=granted_by)
        return Override.from_model(row)

    def clear(self, user_id, code):
        """Remove an override; returns False when none existed."""
        _require(user_id, 'user_id')
        validate_code(code)

        with self._mutation('user_permissions.clear'):
            deleted = UserPermission.objects.clear_override(user_id, code)

        if deleted:
            SecurityLogger.log_override_changed(user_id, code=code, action='clear')
        return bool(deleted)

    def replace_for_user(self, user_id, grants, denies, granted_by, reason=None):
        """Replace the whole override set of ``user_id`` with ``grants`` and ``denies``."""
        _require(user_id, 'user_id')
        _require(granted_by, 'granted_by')
        grants = validate_codes(grants)
        denies = validate_codes(denies)

        conflicting = grants & denies
        if conflicting:
            raise InvalidArgument(
                "Capability codes cannot be both granted and denied",
                details={'conflicting_codes': sorted(conflicting)}
            )
        self._check_known(grants | denies)

        with self._mutation('user_permissions.replace'):
            UserPermission.objects.clear_for_user(user_id)
            permissions = {
                permission.code: permission
                for permission in Permission.objects.by_codes(grants | denies)
            }
            UserPermission.objects.bulk_create([
                UserPermission(
                    user_id=user_id,
                    permission=permissions[code],
                    kind=kind,
                    granted_by=granted_by,
                    reason=reason,
                )
                for kind, codes in ((UserPermission.KIND_GRANT, grants), (UserPermission.KIND_DENY, denies))
                for code in sorted(codes)
            ])

        SecurityLogger.log_override_changed(user_id, granted_by=granted_by, action='replace')
        return self.list_for_user(user_id)

    def clear_all(self, user_id):
        """Remove every override of ``user_id``; returns the number removed."""
        _require(user_id, 'user_id')

        with self._mutation('user_permissions.clear_all'):
            deleted = UserPermission.objects.clear_for_user(user_id)

        if deleted:
            SecurityLogger.log_override_changed(user_id, action='clear_all')
        return deleted
