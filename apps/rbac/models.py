"""
RBAC models for capability-based access control.

Implements:
- Permission (global capability catalog, seeded)
- RolePermission (role default capability sets)
- UserPermission (per-user overrides with grant/deny)

Roles and users are opaque string tags owned by the identity provider;
nothing here references a user table.
"""
import logging
from django.db import models
from apps.core.models import BaseModel

logger = logging.getLogger(__name__)


class PermissionManager(models.Manager):
    """Manager for Permission queries."""

    def by_code(self, code):
        """Find permission by code."""
        return self.filter(code=code).first()

    def by_codes(self, codes):
        """Get permissions for a collection of codes."""
        return self.filter(code__in=list(codes))

    def get_or_create_permission(self, code, label, description='', category=''):
        """Get or create permission (idempotent)."""
        permission, created = self.get_or_create(
            code=code,
            defaults={
                'label': label,
                'description': description,
                'category': category,
            }
        )
        return permission, created


class Permission(BaseModel):
    """
    Global capability definitions.

    Canonical capabilities are seeded during deployment and define
    every action the platform can authorize.
    """

    code = models.CharField(
        max_length=100,
        unique=True,
        help_text="Unique capability code (e.g., 'view_exams')"
    )
    label = models.CharField(
        max_length=255,
        help_text="Human-readable label (e.g., 'View exams')"
    )
    description = models.TextField(
        blank=True,
        help_text="Detailed description of what this capability allows"
    )
    category = models.CharField(
        max_length=50,
        db_index=True,
        help_text="Capability category (e.g., 'exams', 'tasks', 'system')"
    )

    objects = PermissionManager()

    class Meta:
        db_table = 'permissions'
        ordering = ['category', 'code']

    def __str__(self):
        return f"{self.code} - {self.label}"


class RolePermissionManager(models.Manager):
    """Manager for RolePermission queries."""

    def for_role(self, role):
        """Get all capability grants for a role."""
        return self.filter(role=role)

    def codes_for_role(self, role):
        """Get the capability codes granted to a role."""
        return self.filter(role=role).values_list('permission__code', flat=True)

    def roles(self):
        """Distinct roles holding at least one grant."""
        return self.order_by('role').values_list('role', flat=True).distinct()

    def replace_for_role(self, role, permissions):
        """
        Replace a role's grants with the given permissions.

        Callers wrap this in a transaction so readers never observe the
        empty intermediate state.
        """
        self.filter(role=role).delete()
        return self.bulk_create([
            self.model(role=role, permission=permission)
            for permission in permissions
        ])


class RolePermission(BaseModel):
    """
    Maps capabilities to roles.

    Defines the default capability set of each role.
    """

    role = models.CharField(
        max_length=50,
        help_text="Role tag (e.g., 'user', 'leader')"
    )
    permission = models.ForeignKey(
        Permission,
        on_delete=models.CASCADE,
        related_name='role_permissions',
        help_text="Capability being granted"
    )

    objects = RolePermissionManager()

    class Meta:
        db_table = 'role_permissions'
        unique_together = [('role', 'permission')]
        ordering = ['role', 'permission__code']
        indexes = [
            models.Index(fields=['role']),
        ]

    def __str__(self):
        return f"{self.role} -> {self.permission.code}"


class UserPermissionManager(models.Manager):
    """Manager for UserPermission queries."""

    def for_user(self, user_id):
        """Get all overrides for a user, newest first."""
        return self.filter(user_id=user_id).select_related('permission').order_by('-created_at')

    def set_override(self, user_id, permission, kind, granted_by, reason=None):
        """
        Record an override, replacing any existing one for the same pair.

        The replacement is a new row so created_at reflects the latest write.
        """
        self.filter(user_id=user_id, permission=permission).delete()
        return self.create(
            user_id=user_id,
            permission=permission,
            kind=kind,
            granted_by=granted_by,
            reason=reason,
        )

    def clear_override(self, user_id, code):
        """Remove a user's override for one capability."""
        deleted, _ = self.filter(user_id=user_id, permission__code=code).delete()
        return deleted

    def clear_for_user(self, user_id):
        """Remove every override a user holds."""
        deleted, _ = self.filter(user_id=user_id).delete()
        return deleted


class UserPermission(BaseModel):
    """
    Per-user capability overrides (grant or deny).

    Allows granting or denying specific capabilities to individual users,
    overriding their role defaults. Deny overrides always win.
    """

    KIND_GRANT = 'grant'
    KIND_DENY = 'deny'
    KIND_CHOICES = [
        (KIND_GRANT, 'Grant'),
        (KIND_DENY, 'Deny'),
    ]

    user_id = models.CharField(
        max_length=64,
        help_text="Opaque user identifier from the identity provider"
    )
    permission = models.ForeignKey(
        Permission,
        on_delete=models.CASCADE,
        related_name='user_permissions',
        help_text="Capability being granted or denied"
    )
    kind = models.CharField(
        max_length=10,
        choices=KIND_CHOICES,
        help_text="grant = allow regardless of role, deny = refuse regardless of role"
    )

    # Audit fields
    reason = models.TextField(
        null=True,
        blank=True,
        help_text="Reason for this override"
    )
    granted_by = models.CharField(
        max_length=64,
        help_text="User id of the administrator who created this override"
    )

    objects = UserPermissionManager()

    class Meta:
        db_table = 'user_permissions'
        unique_together = [('user_id', 'permission')]
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user_id', 'kind']),
        ]

    def __str__(self):
        return f"{self.kind.upper()} {self.permission.code} to {self.user_id}"
