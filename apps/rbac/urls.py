"""
RBAC API URLs.

Provides endpoints for:
- Decisions for the current principal
- Capability catalog
- Role default capability sets
- Per-user overrides
"""
from django.urls import path
from apps.rbac.views import (
    AuthorizationHealthView,
    MyPermissionsView,
    CheckPermissionView,
    PermissionListView,
    RoleListView,
    RolePermissionsView,
    UserOverridesView,
    UserOverrideDetailView,
)

app_name = 'rbac'

urlpatterns = [
    # Health check
    path('health', AuthorizationHealthView.as_view(), name='health'),

    # Decision endpoints
    path('auth/permissions', MyPermissionsView.as_view(), name='my-permissions'),
    path('auth/check-permission', CheckPermissionView.as_view(), name='check-permission'),

    # Catalog endpoint
    path('permissions', PermissionListView.as_view(), name='permission-list'),

    # Role default endpoints
    path('permissions/roles', RoleListView.as_view(), name='role-list'),
    path('permissions/roles/<str:role>', RolePermissionsView.as_view(), name='role-permissions'),

    # User override endpoints
    path('permissions/users/<str:user_id>', UserOverridesView.as_view(), name='user-overrides'),
    path('permissions/users/<str:user_id>/<str:code>', UserOverrideDetailView.as_view(), name='user-override-detail'),
]
