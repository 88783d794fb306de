"""
RBAC REST API views.

Implements endpoints for:
- Decisions for the current principal (permission map, single check)
- Capability catalog listing
- Role default capability sets
- Per-user grant/deny overrides
"""
import logging

from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.views import APIView
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, extend_schema_view, OpenApiParameter, OpenApiExample
from drf_spectacular.types import OpenApiTypes

from apps.core.exceptions import InvalidArgument, StoreUnavailable
from apps.core.permissions import requires_capability, HasCapability
from apps.rbac.services import RBACService, get_engine
from apps.rbac.serializers import (
    CapabilitySerializer, DecisionSerializer, PermissionMapSerializer,
    RolePermissionSerializer, OverrideSerializer, UserOverrideSetSerializer,
    UserOverridesReplaceSerializer, UserOverridesSerializer,
)

MANAGE_PERMISSIONS = 'manage_permissions'

logger = logging.getLogger(__name__)


# ===== HEALTH =====

class AuthorizationHealthView(APIView):
    """
    GET /v1/health

    Readiness of the authorization engine: the permission store must answer
    and the decision cache must be open. An empty catalog is reported but
    does not fail the check, every decision is then a deny.
    """
    authentication_classes = []
    permission_classes = []

    @extend_schema(
        tags=['Authorization'],
        summary='Health check',
        description='Check the permission store and the decision cache',
        responses={200: OpenApiTypes.OBJECT, 503: OpenApiTypes.OBJECT},
    )
    def get(self, request):
        engine = get_engine()
        cache_stats = engine.cache.stats()
        health = {
            'status': 'healthy',
            'permission_store': 'healthy',
            'catalog_size': None,
            'decision_cache': {
                'closed': cache_stats['closed'],
                'size': cache_stats['size'],
                'generation': cache_stats['generation'],
                'ttl': cache_stats['ttl'],
            },
        }
        errors = []

        try:
            health['catalog_size'] = engine.catalog.size()
        except StoreUnavailable as e:
            health['permission_store'] = 'unhealthy'
            errors.append(f"Permission store: {e.details.get('error', e.message)}")
            logger.error("Permission store health check failed", exc_info=True)

        if cache_stats['closed']:
            errors.append("Decision cache is shut down")

        if errors:
            health['status'] = 'unhealthy'
            health['errors'] = errors
            return Response(health, status=status.HTTP_503_SERVICE_UNAVAILABLE)

        if not health['catalog_size']:
            health['status'] = 'degraded'
        return Response(health, status=status.HTTP_200_OK)


# ===== DECISION API =====

@extend_schema_view(
    get=extend_schema(
        tags=['Authorization'],
        summary='Get my permissions',
        description='''
Return every capability in the catalog mapped to whether the current principal holds it.

Bypass roles receive every capability. When the permission store is unavailable
the map is returned with every capability denied (or empty if the catalog itself
cannot be read).

Typically used to populate client-side permission checks.
        ''',
        responses={200: PermissionMapSerializer},
        examples=[
            OpenApiExample(
                'Permission Map',
                value={
                    'permissions': {'view_exams': True, 'create_exams': False},
                    'role': 'user',
                    'username': 'jdoe',
                },
                response_only=True
            )
        ]
    )
)
class MyPermissionsView(APIView):
    """
    GET /v1/auth/permissions

    Capability map for the current principal.
    """

    def get(self, request):
        principal = request.user
        data = {
            'permissions': RBACService.permission_map(principal),
            'role': principal.role,
            'username': principal.username,
        }
        return Response(PermissionMapSerializer(data).data)


@extend_schema_view(
    get=extend_schema(
        tags=['Authorization'],
        summary='Check one permission',
        description='''
Decide a single capability for the current principal.

The `reason` field is diagnostic: it distinguishes an explicit deny from a degraded
store but both yield `allowed: false`.
        ''',
        parameters=[
            OpenApiParameter('permission', OpenApiTypes.STR, required=True, description='Capability code to check'),
        ],
        responses={200: DecisionSerializer},
    )
)
class CheckPermissionView(APIView):
    """
    GET /v1/auth/check-permission?permission=<code>
    """

    def get(self, request):
        code = (request.query_params.get('permission') or '').strip()
        if not code:
            raise InvalidArgument("Query parameter 'permission' is required")

        decision = RBACService.check(request.user, code)
        return Response(DecisionSerializer(decision).data)


# ===== CATALOG =====

@extend_schema_view(
    get=extend_schema(
        tags=['RBAC - Permissions'],
        summary='List all permissions',
        description='''
List the capability catalog ordered by category then code, with the same entries
grouped by category.

**Required capability:** `manage_permissions`
        ''',
        responses={200: CapabilitySerializer(many=True)},
    )
)
@requires_capability(MANAGE_PERMISSIONS)
class PermissionListView(APIView):
    """
    GET /v1/permissions
    """
    permission_classes = [IsAuthenticated, HasCapability]

    def get(self, request):
        catalog = get_engine().catalog
        grouped = catalog.grouped()
        capabilities = [capability for items in grouped.values() for capability in items]

        return Response({
            'count': len(capabilities),
            'permissions': CapabilitySerializer(capabilities, many=True).data,
            'grouped': {
                category: CapabilitySerializer(items, many=True).data
                for category, items in grouped.items()
            },
        })


# ===== ROLE DEFAULTS =====

@extend_schema_view(
    get=extend_schema(
        tags=['RBAC - Roles'],
        summary='List roles',
        description='''
List every role holding at least one default grant, with its capability codes.

**Required capability:** `manage_permissions`
        ''',
    )
)
@requires_capability(MANAGE_PERMISSIONS)
class RoleListView(APIView):
    """
    GET /v1/permissions/roles
    """
    permission_classes = [IsAuthenticated, HasCapability]

    def get(self, request):
        role_store = get_engine().role_store
        roles = [
            {'role': role, 'permission_codes': sorted(role_store.get(role))}
            for role in role_store.roles()
        ]
        return Response({'count': len(roles), 'roles': roles})


@extend_schema_view(
    get=extend_schema(
        tags=['RBAC - Roles'],
        summary='Get role permissions',
        description='List the capability codes a role grants by default. Unknown roles have none.',
    ),
    put=extend_schema(
        tags=['RBAC - Roles'],
        summary='Replace role permissions',
        description='''
Atomically replace the default capability set of a role.

Every code must exist in the catalog. The decision cache is invalidated before the
response is returned.

**Required capability:** `manage_permissions`
        ''',
        request=RolePermissionSerializer,
    ),
)
@requires_capability(MANAGE_PERMISSIONS)
class RolePermissionsView(APIView):
    """
    GET /v1/permissions/roles/{role}
    PUT /v1/permissions/roles/{role}
    """
    permission_classes = [IsAuthenticated, HasCapability]

    def get(self, request, role):
        codes = get_engine().role_store.get(role)
        return Response({'role': role, 'permission_codes': sorted(codes)})

    def put(self, request, role):
        serializer = RolePermissionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        codes = get_engine().set_role_permissions(role, serializer.validated_data['permission_codes'])
        return Response({'role': role, 'permission_codes': sorted(codes)})


# ===== USER OVERRIDES =====

@extend_schema_view(
    get=extend_schema(
        tags=['RBAC - Overrides'],
        summary="Get a user's overrides",
        description='''
List a user's grant and deny overrides, newest first. Pass `role` to include that
role's default capability set for comparison.

**Required capability:** `manage_permissions`
        ''',
        parameters=[
            OpenApiParameter('role', OpenApiTypes.STR, description="The user's role"),
        ],
        responses={200: UserOverridesSerializer},
    ),
    put=extend_schema(
        tags=['RBAC - Overrides'],
        summary="Replace a user's overrides",
        description='''
Replace every override the user holds with the given grants and denies.
A code may not appear in both lists.

**Required capability:** `manage_permissions`
        ''',
        request=UserOverridesReplaceSerializer,
        responses={200: UserOverridesSerializer},
    ),
    delete=extend_schema(
        tags=['RBAC - Overrides'],
        summary="Clear a user's overrides",
        description='Remove every override; the user reverts to role defaults.',
    ),
)
@requires_capability(MANAGE_PERMISSIONS)
class UserOverridesView(APIView):
    """
    GET    /v1/permissions/users/{user_id}
    PUT    /v1/permissions/users/{user_id}
    DELETE /v1/permissions/users/{user_id}
    """
    permission_classes = [IsAuthenticated, HasCapability]

    def get(self, request, user_id):
        role = request.query_params.get('role') or None
        summary = RBACService.overrides_summary(user_id, role)
        return Response(UserOverridesSerializer(summary).data)

    def put(self, request, user_id):
        serializer = UserOverridesReplaceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        get_engine().replace_user_overrides(
            user_id,
            grants=serializer.validated_data['grants'],
            denies=serializer.validated_data['denies'],
            granted_by=request.user.user_id,
            reason=serializer.validated_data.get('reason'),
        )
        summary = RBACService.overrides_summary(user_id, request.query_params.get('role') or None)
        return Response(UserOverridesSerializer(summary).data)

    def delete(self, request, user_id):
        cleared = get_engine().clear_user_overrides(user_id)
        return Response({'user_id': user_id, 'cleared': cleared})


@extend_schema_view(
    put=extend_schema(
        tags=['RBAC - Overrides'],
        summary='Grant or deny one permission',
        description='''
Record a grant or deny override for one capability, replacing any existing
override for the same user and capability. Deny overrides win over role defaults.

**Required capability:** `manage_permissions`
        ''',
        request=UserOverrideSetSerializer,
        responses={200: OverrideSerializer},
    ),
    delete=extend_schema(
        tags=['RBAC - Overrides'],
        summary='Clear one override',
        description='Remove the override; clearing an absent override is not an error.',
    ),
)
@requires_capability(MANAGE_PERMISSIONS)
class UserOverrideDetailView(APIView):
    """
    PUT    /v1/permissions/users/{user_id}/{code}
    DELETE /v1/permissions/users/{user_id}/{code}
    """
    permission_classes = [IsAuthenticated, HasCapability]

    def put(self, request, user_id, code):
        serializer = UserOverrideSetSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        override = get_engine().set_user_override(
            user_id,
            code,
            serializer.validated_data['kind'],
            granted_by=request.user.user_id,
            reason=serializer.validated_data.get('reason'),
        )
        return Response(OverrideSerializer(override).data, status=status.HTTP_200_OK)

    def delete(self, request, user_id, code):
        cleared = get_engine().clear_user_override(user_id, code)
        return Response({'user_id': user_id, 'code': code, 'cleared': cleared})
