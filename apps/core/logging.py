"""
Custom logging formatters for structured JSON logging.
"""
import json
import logging
import re
import traceback
from django.utils import timezone
import sentry_sdk


class PIIMasker:
    """
    Utility class to mask sensitive PII data in logs.
    """

    # Patterns for sensitive data
    PHONE_PATTERN = re.compile(r'\+\d{10,15}')
    EMAIL_PATTERN = re.compile(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b')
    API_KEY_PATTERN = re.compile(r'(api[_-]?key|token|secret|password)["\']?\s*[:=]\s*["\']?([^"\'\s,}]+)', re.IGNORECASE)

    # Sensitive field names that should be masked
    SENSITIVE_FIELDS = {
        'phone', 'phone_number', 'mobile',
        'email', 'email_address',
        'password', 'password_hash', 'passwd',
        'api_key', 'api_token', 'access_token', 'refresh_token', 'bearer_token',
        'secret', 'secret_key', 'authorization',
    }

    @classmethod
    def mask_phone(cls, text):
        """Mask phone numbers in text."""
        if not isinstance(text, str):
            return text
        return cls.PHONE_PATTERN.sub(lambda m: m.group(0)[:3] + '*' * (len(m.group(0)) - 3), text)

    @classmethod
    def mask_email(cls, text):
        """Mask email addresses in text."""
        if not isinstance(text, str):
            return text

        def mask_email_match(match):
            email = match.group(0)
            username, _, domain = email.partition('@')
            masked_username = username[0] + '*' * (len(username) - 1) if len(username) > 1 else username
            return f"{masked_username}@{domain}"
        return cls.EMAIL_PATTERN.sub(mask_email_match, text)

    @classmethod
    def mask_api_keys(cls, text):
        """Mask API keys, tokens, and secrets in text."""
        if not isinstance(text, str):
            return text
        return cls.API_KEY_PATTERN.sub(r'\1: ********', text)

    @classmethod
    def mask_text(cls, text):
        """Apply all masking patterns to text."""
        if not isinstance(text, str):
            return text
        text = cls.mask_phone(text)
        text = cls.mask_email(text)
        text = cls.mask_api_keys(text)
        return text

    @classmethod
    def mask_dict(cls, data):
        """Recursively mask sensitive data in dictionaries."""
        if not isinstance(data, dict):
            return data

        masked = {}
        for key, value in data.items():
            if any(sensitive in key.lower() for sensitive in cls.SENSITIVE_FIELDS):
                if value and not isinstance(value, (dict, list)):
                    masked[key] = '********'
                else:
                    masked[key] = value
            elif isinstance(value, dict):
                masked[key] = cls.mask_dict(value)
            elif isinstance(value, list):
                masked[key] = [
                    cls.mask_dict(item) if isinstance(item, dict)
                    else cls.mask_text(item) if isinstance(item, str)
                    else item
                    for item in value
                ]
            elif isinstance(value, str):
                masked[key] = cls.mask_text(value)
            else:
                masked[key] = value

        return masked


# Attributes every LogRecord carries; anything else came in through ``extra``
_RECORD_ATTRS = frozenset([
    'name', 'msg', 'args', 'created', 'filename', 'funcName',
    'levelname', 'levelno', 'lineno', 'module', 'msecs', 'message',
    'pathname', 'process', 'processName', 'relativeCreated',
    'thread', 'threadName', 'exc_info', 'exc_text', 'stack_info',
    'taskName', 'request_id',
])


class JSONFormatter(logging.Formatter):
    """
    Format log records as JSON for structured logging.
    Includes request_id from extra fields if available.
    Automatically masks sensitive PII data.
    """

    def format(self, record):
        log_data = {
            'timestamp': timezone.now().isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': PIIMasker.mask_text(record.getMessage()),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        if hasattr(record, 'request_id'):
            log_data['request_id'] = record.request_id

        if record.exc_info:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': PIIMasker.mask_text(str(record.exc_info[1])),
                'traceback': [PIIMasker.mask_text(line) for line in traceback.format_exception(*record.exc_info)],
            }

        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRS or key.startswith('_'):
                continue
            try:
                if isinstance(value, dict):
                    masked_value = PIIMasker.mask_dict(value)
                elif isinstance(value, str):
                    masked_value = PIIMasker.mask_text(value)
                else:
                    masked_value = value

                json.dumps(masked_value)  # Test if serializable
                log_data[key] = masked_value
            except (TypeError, ValueError):
                log_data[key] = PIIMasker.mask_text(str(value))

        return json.dumps(log_data)


class SanitizingFormatter(logging.Formatter):
    """
    Plain-text log formatter that redacts credentials from the rendered line.

    Redacts:
    - Bearer tokens and JWTs
    - Passwords and secrets
    - Database URLs with passwords
    """

    PATTERNS = [
        (re.compile(r'Bearer\s+([a-zA-Z0-9_\-\.]{20,})', re.IGNORECASE), r'Bearer [REDACTED]'),
        (re.compile(r'eyJ[a-zA-Z0-9_\-]+\.eyJ[a-zA-Z0-9_\-]+\.[a-zA-Z0-9_\-]+'), r'[REDACTED_JWT]'),
        (re.compile(r'password["\s:=]+([^\s,\]}"\']+)', re.IGNORECASE), r'password=[REDACTED]'),
        (re.compile(r'secret["\s:=]+([a-zA-Z0-9_\-]{20,})', re.IGNORECASE), r'secret=[REDACTED]'),
        (re.compile(r'://([^:/\s]+):([^@\s]+)@'), r'://\1:[REDACTED]@'),
        (re.compile(r'Authorization["\s:]+([^\s,\]}"\']+)', re.IGNORECASE), r'Authorization: [REDACTED]'),
    ]

    def format(self, record):
        message = super().format(record)
        for pattern, replacement in self.PATTERNS:
            message = pattern.sub(replacement, message)
        return message


class SecurityLogger:
    """
    Centralized security event logging for authorization events.

    Logs security-related events with structured data and sends critical
    events to Sentry for alerting and monitoring.

    All security events are logged with:
    - Event type
    - Timestamp
    - Principal information (if available)
    - Additional context
    """

    # Event types that alert via Sentry
    CRITICAL_EVENTS = {
        'authorization_degraded',
    }

    @staticmethod
    def log_event(event_type: str, level: str = 'warning', **context):
        """
        Log a security event with structured data.

        Args:
            event_type: Type of security event (e.g., 'permission_denied')
            level: Log level ('info', 'warning', 'error', 'critical')
            **context: Additional context data (user_id, role, code, etc.)

        Example:
            >>> SecurityLogger.log_event(
            ...     'permission_denied',
            ...     user_id='42',
            ...     role='user',
            ...     code='manage_permissions'
            ... )
        """
        logger = logging.getLogger('security')

        log_data = {
            'event_type': event_type,
            'timestamp': timezone.now().isoformat(),
        }
        log_data.update(context)
        log_data = PIIMasker.mask_dict(log_data)

        log_method = getattr(logger, level, logger.warning)
        log_method(
            f"Security event: {event_type}",
            extra=log_data
        )

        if event_type in SecurityLogger.CRITICAL_EVENTS:
            sentry_sdk.capture_message(
                f"Critical security event: {event_type}",
                level='error',
                extras=log_data
            )

    @staticmethod
    def log_permission_denied(principal, code: str, reason: str, path: str = None):
        """
        Log a capability check that denied the principal.

        Args:
            principal: Principal making the request
            code: Capability code that was required
            reason: Decision reason
            path: Request path (optional)
        """
        SecurityLogger.log_event(
            'permission_denied',
            level='warning',
            user_id=getattr(principal, 'user_id', None),
            role=getattr(principal, 'role', None),
            code=code,
            reason=reason,
            path=path
        )

    @staticmethod
    def log_override_changed(user_id: str, code: str = None, kind: str = None,
                             granted_by: str = None, action: str = 'set'):
        """
        Log a change to a user's grant/deny overrides.

        Args:
            user_id: User whose overrides changed
            code: Capability code (None for bulk changes)
            kind: 'grant' or 'deny' (None when cleared)
            granted_by: Administrator who made the change
            action: 'set', 'clear', 'replace' or 'clear_all'
        """
        SecurityLogger.log_event(
            'permission_override_changed',
            level='info',
            user_id=user_id,
            code=code,
            kind=kind,
            granted_by=granted_by,
            action=action
        )

    @staticmethod
    def log_role_permissions_replaced(role: str, codes):
        """
        Log a replacement of a role's default capability set.

        Args:
            role: Role tag
            codes: New capability codes
        """
        SecurityLogger.log_event(
            'role_permissions_replaced',
            level='info',
            role=role,
            codes=sorted(codes),
            count=len(codes)
        )

    @staticmethod
    def log_authorization_degraded(user_id: str, role: str, code: str = None, error: str = None):
        """
        Log a decision made without access to the grant stores.

        This is a critical event: every capability outside the bypass roles
        is denied until the stores recover.

        Args:
            user_id: Principal user id
            role: Principal role
            code: Capability code (None for batch decisions)
            error: Store error message
        """
        SecurityLogger.log_event(
            'authorization_degraded',
            level='error',
            user_id=user_id,
            role=role,
            code=code,
            error=error
        )
