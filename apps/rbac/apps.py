"""
RBAC app configuration.
"""
from django.apps import AppConfig


class RbacConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.rbac'
    verbose_name = 'RBAC (Role-Based Access Control)'

    engine = None

    def ready(self):
        """Build the process-wide authorization engine."""
        from apps.rbac.services import build_engine

        self.engine = build_engine()

    def reset_engine(self):
        """Shut down the current engine and build a fresh one."""
        from apps.rbac.services import build_engine

        if self.engine is not None:
            self.engine.shutdown()
        self.engine = build_engine()
        return self.engine
