from django.apps import AppConfig
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
import logging

logger = logging.getLogger(__name__)


class CoreConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.core'
    verbose_name = 'Core'

    def ready(self):
        """
        Perform startup validation checks when Django initializes.

        Authorization settings are validated before the application
        starts accepting requests.
        """
        self._validate_rbac_settings()
        self._validate_security_settings()

    def _validate_rbac_settings(self):
        """Validate authorization settings."""
        bypass_roles = getattr(settings, 'RBAC_BYPASS_ROLES', [])
        if isinstance(bypass_roles, str) or not all(
            isinstance(role, str) and role for role in bypass_roles
        ):
            raise ImproperlyConfigured(
                "RBAC_BYPASS_ROLES must be a list of non-empty role names."
            )

        ttl = getattr(settings, 'RBAC_DECISION_CACHE_TTL', None)
        if ttl is not None and (not isinstance(ttl, (int, float)) or ttl < 0):
            raise ImproperlyConfigured(
                f"RBAC_DECISION_CACHE_TTL must be a non-negative number of seconds, got {ttl!r}."
            )

        alias = getattr(settings, 'RBAC_DECISION_CACHE_ALIAS', 'rbac')
        if alias not in getattr(settings, 'CACHES', {}):
            raise ImproperlyConfigured(
                f"RBAC_DECISION_CACHE_ALIAS {alias!r} is not configured in CACHES."
            )

        if not getattr(settings, 'RBAC_PRINCIPAL_RESOLVER', None):
            raise ImproperlyConfigured(
                "RBAC_PRINCIPAL_RESOLVER must name a callable resolving the request principal."
            )

    def _validate_security_settings(self):
        """Validate general security settings."""
        debug = getattr(settings, 'DEBUG', False)
        secret_key = getattr(settings, 'SECRET_KEY', None)

        if not secret_key:
            raise ImproperlyConfigured(
                "SECRET_KEY must be set in environment variables. "
                "Generate with: "
                "python -c \"import secrets; print(secrets.token_urlsafe(50))\""
            )

        if not debug and 'insecure' in secret_key.lower():
            logger.warning(
                "SECRET_KEY appears to be the development default. "
                "Set SECRET_KEY in the environment for production."
            )
