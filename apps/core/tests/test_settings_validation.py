"""
Tests for startup validation of authorization settings.
"""
import pytest
from django.apps import apps
from django.core.exceptions import ImproperlyConfigured


@pytest.fixture
def core_config():
    return apps.get_app_config('core')


class TestRbacSettingsValidation:

    def test_defaults_are_valid(self, core_config):
        core_config._validate_rbac_settings()

    @pytest.mark.parametrize('value', ['admin', ['admin', ''], [None]])
    def test_bypass_roles_must_be_names(self, core_config, settings, value):
        settings.RBAC_BYPASS_ROLES = value

        with pytest.raises(ImproperlyConfigured):
            core_config._validate_rbac_settings()

    def test_empty_bypass_set_is_allowed(self, core_config, settings):
        settings.RBAC_BYPASS_ROLES = []

        core_config._validate_rbac_settings()

    @pytest.mark.parametrize('ttl', [-1, 'soon'])
    def test_ttl_must_be_non_negative(self, core_config, settings, ttl):
        settings.RBAC_DECISION_CACHE_TTL = ttl

        with pytest.raises(ImproperlyConfigured):
            core_config._validate_rbac_settings()

    def test_ttl_may_be_disabled(self, core_config, settings):
        settings.RBAC_DECISION_CACHE_TTL = None

        core_config._validate_rbac_settings()

    def test_decision_cache_alias_must_be_configured(self, core_config, settings):
        settings.RBAC_DECISION_CACHE_ALIAS = 'decisions'

        with pytest.raises(ImproperlyConfigured):
            core_config._validate_rbac_settings()

    def test_resolver_required(self, core_config, settings):
        settings.RBAC_PRINCIPAL_RESOLVER = ''

        with pytest.raises(ImproperlyConfigured):
            core_config._validate_rbac_settings()


class TestSecuritySettingsValidation:

    def test_secret_key_required(self, core_config, settings):
        settings.SECRET_KEY = ''

        with pytest.raises(ImproperlyConfigured):
            core_config._validate_security_settings()
