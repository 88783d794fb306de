"""
Unit tests for RBAC services.

Tests engine construction from settings, process engine ownership, and the
principal-level helpers views rely on.
"""
import pytest
from django.apps import apps
from django.core.cache import caches

from apps.rbac.cache import local_backend
from apps.rbac.principal import Principal
from apps.rbac.services import RBACService, build_engine, get_engine
from apps.rbac.values import Decision


class TestBuildEngine:

    def test_uses_settings(self, settings):
        settings.RBAC_BYPASS_ROLES = ['owner']
        settings.RBAC_DECISION_CACHE_TTL = 60

        engine = build_engine()

        assert engine.bypass_roles == frozenset({'owner'})
        assert engine.cache.ttl == 60
        engine.shutdown()

    def test_explicit_arguments_win(self, settings):
        settings.RBAC_DECISION_CACHE_TTL = 60

        engine = build_engine(ttl=5, bypass_roles=['admin'])

        assert engine.cache.ttl == 5
        assert engine.bypass_roles == frozenset({'admin'})
        engine.shutdown()

    def test_decisions_live_in_configured_cache_alias(self):
        engine = build_engine()

        assert engine.cache.backend is caches['rbac']
        engine.shutdown()

    def test_explicit_backend_wins(self):
        backend = local_backend(max_entries=10)

        engine = build_engine(backend=backend)

        assert engine.cache.backend is backend
        engine.shutdown()

    def test_engines_are_isolated(self):
        first, second = build_engine(), build_engine()

        assert first.cache is not second.cache
        assert first.role_store.cache is first.cache
        assert first.override_store.cache is first.cache
        first.shutdown()
        second.shutdown()

    def test_app_owns_process_engine(self):
        config = apps.get_app_config('rbac')

        assert get_engine() is config.engine

    def test_reset_engine_shuts_down_previous(self):
        config = apps.get_app_config('rbac')
        previous = config.engine

        current = config.reset_engine()

        assert previous.cache.closed is True
        assert get_engine() is current
        assert current.cache.closed is False


@pytest.mark.django_db
class TestRBACService:

    def test_check_unauthenticated(self):
        assert RBACService.check(None, 'view_exams') == Decision(False, 'unauthenticated')
        assert RBACService.permission_map(None) == {}

    def test_check_delegates_to_engine(self, seeded_catalog):
        get_engine().set_role_permissions('user', ['view_exams'])
        principal = Principal('u1', 'jdoe', 'user')

        assert RBACService.check(principal, 'view_exams') == Decision(True, 'role default')
        assert RBACService.has_capability(principal, 'create_exams') is False

    def test_permission_map(self, seeded_catalog, catalog_codes):
        principal = Principal('u1', 'jdoe', 'leader')

        assert RBACService.permission_map(principal) == {code: True for code in catalog_codes}

    def test_overrides_summary(self, seeded_catalog):
        engine = get_engine()
        engine.set_role_permissions('user', ['view_documents'])
        engine.set_user_override('u1', 'view_exams', 'grant', 'adminX')
        engine.set_user_override('u1', 'create_exams', 'deny', 'adminX')

        summary = RBACService.overrides_summary('u1', role='user')

        assert summary['grants'] == ['view_exams']
        assert summary['denies'] == ['create_exams']
        assert summary['role_permissions'] == ['view_documents']

    def test_overrides_summary_without_role(self, seeded_catalog):
        assert RBACService.overrides_summary('u1')['role_permissions'] == []
