"""
RBAC serializers for REST API endpoints.

Provides serialization for:
- Capability catalog entries
- Authorization decisions and permission maps
- Role default capability sets
- Per-user overrides
"""
from rest_framework import serializers

from apps.rbac.values import KINDS


# ===== DECISION SERIALIZERS =====

class DecisionSerializer(serializers.Serializer):
    """Serializer for a single authorization decision."""

    allowed = serializers.BooleanField()
    reason = serializers.CharField()


class PermissionMapSerializer(serializers.Serializer):
    """Serializer for the current principal's capability map."""

    permissions = serializers.DictField(child=serializers.BooleanField())
    role = serializers.CharField(allow_null=True)
    username = serializers.CharField(allow_blank=True)


# ===== CATALOG SERIALIZERS =====

class CapabilitySerializer(serializers.Serializer):
    """Serializer for catalog capabilities."""

    code = serializers.CharField()
    label = serializers.CharField()
    category = serializers.CharField()
    description = serializers.CharField(allow_blank=True)


# ===== ROLE SERIALIZERS =====

class RolePermissionSerializer(serializers.Serializer):
    """Serializer for replacing a role's default capability set."""

    permission_codes = serializers.ListField(
        child=serializers.CharField(),
        allow_empty=True,
        help_text="Capability codes the role grants by default"
    )


# ===== OVERRIDE SERIALIZERS =====

class OverrideSerializer(serializers.Serializer):
    """Serializer for per-user overrides."""

    user_id = serializers.CharField()
    code = serializers.CharField()
    kind = serializers.CharField()
    granted_by = serializers.CharField()
    reason = serializers.CharField(allow_null=True)
    created_at = serializers.DateTimeField(allow_null=True)


class UserOverrideSetSerializer(serializers.Serializer):
    """Serializer for granting or denying one capability to a user."""

    kind = serializers.ChoiceField(choices=KINDS)
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)


class UserOverridesReplaceSerializer(serializers.Serializer):
    """Serializer for replacing every override a user holds."""

    grants = serializers.ListField(child=serializers.CharField(), required=False, default=list)
    denies = serializers.ListField(child=serializers.CharField(), required=False, default=list)
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)

    def validate(self, data):
        conflicting = set(data['grants']) & set(data['denies'])
        if conflicting:
            raise serializers.ValidationError(
                f"Codes cannot be both granted and denied: {', '.join(sorted(conflicting))}"
            )
        return data


class UserOverridesSerializer(serializers.Serializer):
    """Serializer for a user's override summary."""

    user_id = serializers.CharField()
    role = serializers.CharField(allow_null=True)
    overrides = OverrideSerializer(many=True)
    grants = serializers.ListField(child=serializers.CharField())
    denies = serializers.ListField(child=serializers.CharField())
    role_permissions = serializers.ListField(child=serializers.CharField())
