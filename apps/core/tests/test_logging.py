"""
Tests for structured logging and PII masking.
"""
import json
import logging
from unittest.mock import patch
from django.test import SimpleTestCase
from apps.core.logging import PIIMasker, JSONFormatter, SanitizingFormatter, SecurityLogger


class PIIMaskerTestCase(SimpleTestCase):
    """Test PII masking functionality."""

    def test_mask_phone_numbers(self):
        """Test phone number masking."""
        masked = PIIMasker.mask_phone("Call me at +1234567890")

        self.assertIn("+12*", masked)
        self.assertNotIn("+1234567890", masked)

    def test_mask_email_addresses(self):
        """Test email address masking."""
        masked = PIIMasker.mask_email("Contact user@example.com")

        self.assertIn("u***@example.com", masked)
        self.assertNotIn("user@example.com", masked)

    def test_mask_api_keys(self):
        """Test token masking."""
        masked = PIIMasker.mask_api_keys('token="bearer_xyz789"')

        self.assertIn("token: ********", masked)
        self.assertNotIn("bearer_xyz789", masked)

    def test_capability_codes_are_not_masked(self):
        """Authorization fields pass through untouched."""
        data = {'user_id': 'u1', 'role': 'user', 'code': 'manage_permissions', 'kind': 'deny'}

        self.assertEqual(PIIMasker.mask_dict(data), data)

    def test_mask_dict_sensitive_fields(self):
        """Test masking of sensitive field names, including nested dicts."""
        masked = PIIMasker.mask_dict({
            'email': 'user@example.com',
            'nested': {'password': 'hunter2'},
            'codes': ['view_exams'],
        })

        self.assertEqual(masked['email'], '********')
        self.assertEqual(masked['nested']['password'], '********')
        self.assertEqual(masked['codes'], ['view_exams'])


class JSONFormatterTestCase(SimpleTestCase):
    """Test JSON log formatting."""

    def make_record(self, msg, **extra):
        record = logging.LogRecord(
            name='apps.rbac.engine', level=logging.WARNING, pathname=__file__,
            lineno=1, msg=msg, args=(), exc_info=None
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_formats_as_json_with_extras(self):
        record = self.make_record("Authorization store unavailable", request_id='req-1', role='user')

        data = json.loads(JSONFormatter().format(record))

        self.assertEqual(data['level'], 'WARNING')
        self.assertEqual(data['logger'], 'apps.rbac.engine')
        self.assertEqual(data['request_id'], 'req-1')
        self.assertEqual(data['role'], 'user')

    def test_unserializable_extra_is_stringified(self):
        record = self.make_record("decision", codes={'view_exams'})

        data = json.loads(JSONFormatter().format(record))

        self.assertEqual(data['codes'], "{'view_exams'}")


class SanitizingFormatterTestCase(SimpleTestCase):

    def test_redacts_database_password(self):
        formatter = SanitizingFormatter('{message}', style='{')
        record = logging.LogRecord(
            'apps', logging.INFO, __file__, 1, 'connecting to postgres://app:s3cret@db/examhub', (), None
        )

        line = formatter.format(record)

        self.assertNotIn('s3cret', line)
        self.assertIn('[REDACTED]', line)


class SecurityLoggerTestCase(SimpleTestCase):

    def test_degraded_authorization_alerts_sentry(self):
        with patch('apps.core.logging.sentry_sdk.capture_message') as capture:
            SecurityLogger.log_authorization_degraded('u1', 'user', code='view_exams', error='down')

        capture.assert_called_once()
        self.assertIn('authorization_degraded', capture.call_args[0][0])

    def test_override_change_does_not_alert(self):
        with patch('apps.core.logging.sentry_sdk.capture_message') as capture:
            SecurityLogger.log_override_changed('u1', code='view_exams', kind='deny', granted_by='adminX')

        capture.assert_not_called()

    def test_events_go_to_security_logger(self):
        with self.assertLogs('security', level='INFO') as logs:
            SecurityLogger.log_role_permissions_replaced('user', {'view_exams'})

        self.assertIn('role_permissions_replaced', logs.output[0])
