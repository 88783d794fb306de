"""
Pytest configuration and fixtures.
"""
import pytest
from django.conf import settings
import django
from django.core.management import call_command


def pytest_configure(config):
    """Configure Django settings for tests."""
    settings.DATABASES['default'] = {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
        'ATOMIC_REQUESTS': False,
    }
    django.setup()


@pytest.fixture(scope='session')
def django_db_setup(django_db_setup, django_db_blocker):
    """Set up test database tables for apps without migrations."""
    with django_db_blocker.unblock():
        call_command('migrate', '--run-syncdb', verbosity=0)


@pytest.fixture(autouse=True)
def fresh_decision_cache():
    """Start every test with an empty process-wide decision cache."""
    from apps.rbac.services import get_engine
    get_engine().cache.invalidate()
    yield
    get_engine().cache.invalidate()


@pytest.fixture
def api_client():
    """Return DRF API client."""
    from rest_framework.test import APIClient
    return APIClient()


@pytest.fixture
def catalog_codes():
    """Capability codes used across tests, in (category, code) order."""
    return ['create_documents', 'view_documents', 'create_exams', 'view_exams', 'manage_permissions']


@pytest.fixture
def seeded_catalog(db):
    """Create a small capability catalog."""
    from apps.rbac.models import Permission

    rows = [
        ('view_exams', 'View exams', 'exams'),
        ('create_exams', 'Create exams', 'exams'),
        ('view_documents', 'View documents', 'documents'),
        ('create_documents', 'Create documents', 'documents'),
        ('manage_permissions', 'Manage permissions', 'system'),
    ]
    for code, label, category in rows:
        Permission.objects.get_or_create_permission(code=code, label=label, category=category)
    return Permission.objects.all()


@pytest.fixture
def engine(seeded_catalog):
    """An isolated database-backed engine with its own cache."""
    from apps.rbac.cache import local_backend
    from apps.rbac.services import build_engine

    engine = build_engine(ttl=None, backend=local_backend())
    yield engine
    engine.shutdown()


def gateway_headers(user_id, role=None, username=''):
    """Request headers the authenticating gateway forwards."""
    headers = {'HTTP_X_USER_ID': user_id, 'HTTP_X_USERNAME': username or user_id}
    if role:
        headers['HTTP_X_USER_ROLE'] = role
    return headers


@pytest.fixture
def as_principal():
    """Return a function building an API client that acts as a principal."""
    from rest_framework.test import APIClient

    def authenticate(user_id, role=None, username=''):
        client = APIClient()
        client.credentials(**gateway_headers(user_id, role=role, username=username))
        return client
    return authenticate
