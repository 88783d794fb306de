"""
Django settings for the Examhub authorization service.
"""
import os
from pathlib import Path
import environ
import sentry_sdk
from sentry_sdk.integrations.django import DjangoIntegration

# Build paths inside the project
BASE_DIR = Path(__file__).resolve().parent.parent

# Initialize environment variables
env = environ.Env(
    DEBUG=(bool, False),
    ALLOWED_HOSTS=(list, ['localhost', '127.0.0.1']),
    DB_CONN_MAX_AGE=(int, 600),
    JSON_LOGS=(bool, False),
    LOG_LEVEL=(str, 'INFO'),
    RBAC_BYPASS_ROLES=(list, ['admin', 'leader']),
    RBAC_DECISION_CACHE_TTL=(int, 300),
    RBAC_DECISION_CACHE_MAX_ENTRIES=(int, 10000),
)

# Read .env file if it exists
environ.Env.read_env(os.path.join(BASE_DIR, '.env'))

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = env('SECRET_KEY', default='django-insecure-examhub-development-key')

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = env('DEBUG')

ALLOWED_HOSTS = env('ALLOWED_HOSTS')

# Application definition
INSTALLED_APPS = [
    'django.contrib.auth',
    'django.contrib.contenttypes',

    # Third-party apps
    'rest_framework',
    'drf_spectacular',

    # Examhub apps
    'apps.core',
    'apps.rbac',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.middleware.common.CommonMiddleware',
    'apps.core.middleware.RequestIDMiddleware',
]

ROOT_URLCONF = 'config.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
            ],
        },
    },
]

WSGI_APPLICATION = 'config.wsgi.application'

# Database
DATABASES = {
    'default': env.db('DATABASE_URL', default=f"sqlite:///{BASE_DIR / 'db.sqlite3'}"),
}
DATABASES['default']['CONN_MAX_AGE'] = env('DB_CONN_MAX_AGE')

# Configure based on database engine
if 'postgresql' in DATABASES['default']['ENGINE']:
    DATABASES['default']['OPTIONS'] = {
        'connect_timeout': 10,
    }

# Internationalization
LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'Asia/Ho_Chi_Minh'
USE_I18N = True
USE_TZ = True

STATIC_URL = 'static/'

# Default primary key field type
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# REST Framework
REST_FRAMEWORK = {
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',
    'DEFAULT_RENDERER_CLASSES': [
        'rest_framework.renderers.JSONRenderer',
    ],
    'DEFAULT_PARSER_CLASSES': [
        'rest_framework.parsers.JSONParser',
    ],
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'apps.core.authentication.PrincipalAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.IsAuthenticated',
    ],
    'UNAUTHENTICATED_USER': None,
    'EXCEPTION_HANDLER': 'apps.core.exceptions.custom_exception_handler',
}

# DRF Spectacular (OpenAPI)
SPECTACULAR_SETTINGS = {
    'TITLE': 'Examhub Authorization API',
    'DESCRIPTION': '''
Capability-based authorization for the Examhub exam and training platform.

## Principal

Requests are authenticated upstream. The authenticating gateway forwards the
resolved principal in `X-User-Id`, `X-Username` and `X-User-Role`.

## Decision precedence

1. Bypass roles (`admin`, `leader`) are allowed everything
2. An explicit per-user **deny** override
3. An explicit per-user **grant** override
4. The role's default capability set
5. Otherwise denied

Deny overrides always win over role defaults.
    ''',
    'VERSION': '1.0.0',
    'SERVE_INCLUDE_SCHEMA': False,
    'COMPONENT_SPLIT_REQUEST': True,
    'SCHEMA_PATH_PREFIX': r'/v1/',
    'TAGS': [
        {'name': 'Authorization', 'description': 'Decisions for the current principal'},
        {'name': 'RBAC - Permissions', 'description': 'Capability catalog'},
        {'name': 'RBAC - Roles', 'description': 'Role default capability sets'},
        {'name': 'RBAC - Overrides', 'description': 'Per-user grant and deny overrides'},
    ],
}

# ============================================================================
# AUTHORIZATION SETTINGS
# ============================================================================

# Roles granted every capability without consulting overrides or role defaults
RBAC_BYPASS_ROLES = env('RBAC_BYPASS_ROLES')

# Decision cache entry lifetime in seconds (0 keeps entries until invalidated)
RBAC_DECISION_CACHE_TTL = env('RBAC_DECISION_CACHE_TTL') or None

# Upper bound on cached decisions; the backend culls beyond it
RBAC_DECISION_CACHE_MAX_ENTRIES = env('RBAC_DECISION_CACHE_MAX_ENTRIES')

# Cache alias holding decisions; invalidation clears the whole alias
RBAC_DECISION_CACHE_ALIAS = 'rbac'

# Cache Configuration
CACHES = {
    'default': {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'examhub-default',
        'TIMEOUT': 300,
    },
    RBAC_DECISION_CACHE_ALIAS: {
        'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
        'LOCATION': 'examhub-rbac-decisions',
        'TIMEOUT': RBAC_DECISION_CACHE_TTL,
        'OPTIONS': {
            'MAX_ENTRIES': RBAC_DECISION_CACHE_MAX_ENTRIES,
        },
    },
}

# Callable resolving the current principal from an inbound request
RBAC_PRINCIPAL_RESOLVER = env(
    'RBAC_PRINCIPAL_RESOLVER',
    default='apps.rbac.principal.resolve_from_gateway_headers',
)

# Logging Configuration
LOG_LEVEL = env('LOG_LEVEL')
JSON_LOGS = env('JSON_LOGS')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'json': {
            '()': 'apps.core.logging.JSONFormatter',
        },
        'verbose': {
            '()': 'apps.core.logging.SanitizingFormatter',
            'format': '{levelname} {asctime} {module} {process:d} {thread:d} {message}',
            'style': '{',
        },
    },
    'filters': {
        'request_id': {
            '()': 'apps.core.middleware.LoggingFilter',
        },
    },
    'handlers': {
        'console': {
            'level': LOG_LEVEL,
            'class': 'logging.StreamHandler',
            'formatter': 'json' if JSON_LOGS else 'verbose',
            'filters': ['request_id'],
        },
    },
    'root': {
        'handlers': ['console'],
        'level': LOG_LEVEL,
    },
    'loggers': {
        'django': {
            'handlers': ['console'],
            'level': 'INFO',
            'propagate': False,
        },
        'apps': {
            'handlers': ['console'],
            'level': LOG_LEVEL,
            'propagate': False,
        },
        'security': {
            'handlers': ['console'],
            'level': 'INFO',
            'propagate': False,
        },
    },
}

# Sentry Configuration
SENTRY_DSN = env('SENTRY_DSN', default=None)
SENTRY_ENVIRONMENT = env('SENTRY_ENVIRONMENT', default='development')
SENTRY_RELEASE = env('SENTRY_RELEASE', default=None)

if SENTRY_DSN:
    sentry_sdk.init(
        dsn=SENTRY_DSN,
        integrations=[
            DjangoIntegration(),
        ],
        environment=SENTRY_ENVIRONMENT,
        release=SENTRY_RELEASE,
        traces_sample_rate=0.1 if not DEBUG else 1.0,
        send_default_pii=False,
        attach_stacktrace=True,
        max_breadcrumbs=50,
    )
