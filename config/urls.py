"""
URL configuration for Examhub.
"""
from django.urls import path, include
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView

urlpatterns = [
    # API Documentation
    path('schema/', SpectacularAPIView.as_view(), name='schema'),
    path('schema/swagger/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),

    # Authorization endpoints
    path('v1/', include('apps.rbac.urls')),  # Decisions, catalog, role defaults, user overrides
]
