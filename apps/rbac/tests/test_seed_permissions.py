"""
Tests for the seed_permissions management command.
"""
from io import StringIO

import pytest
from django.core.management import call_command

from apps.rbac.management.commands.seed_permissions import Command
from apps.rbac.models import Permission, RolePermission
from apps.rbac.services import get_engine


def seed(*args):
    out = StringIO()
    call_command('seed_permissions', *args, stdout=out)
    return out.getvalue()


@pytest.mark.django_db
class TestSeedPermissions:

    def test_creates_canonical_catalog(self):
        output = seed()

        assert Permission.objects.count() == 38
        assert set(Permission.objects.values_list('category', flat=True)) == {
            'exams', 'tasks', 'questions', 'users', 'videos', 'documents', 'system'
        }
        assert 'Seeding complete: 38 created' in output

    def test_is_idempotent(self):
        seed()
        output = seed()

        assert Permission.objects.count() == 38
        assert '0 created, 0 updated, 38 unchanged' in output

    def test_updates_changed_labels(self):
        seed()
        Permission.objects.filter(code='view_exams').update(label='Old label')

        output = seed()

        assert Permission.objects.get(code='view_exams').label == 'View exams'
        assert '1 updated' in output

    def test_canonical_codes_are_well_formed(self):
        from apps.rbac.stores import validate_code

        codes = [perm['code'] for perm in Command.CANONICAL_PERMISSIONS]

        assert len(codes) == len(set(codes))
        for code in codes:
            validate_code(code)
        assert set(Command.LEADER_PERMISSIONS) <= set(codes)
        assert set(Command.USER_PERMISSIONS) <= set(codes)

    def test_role_defaults_not_touched_by_default(self):
        seed()

        assert not RolePermission.objects.exists()

    def test_with_role_defaults(self):
        seed('--with-role-defaults')

        engine = get_engine()
        assert len(engine.role_store.get('admin')) == 38
        assert engine.role_store.get('user') == frozenset({'view_videos', 'view_documents'})
        assert 'export_exam_results' in engine.role_store.get('leader')
        assert 'create_exams' not in engine.role_store.get('leader')

    def test_role_reset_invalidates_decisions(self):
        seed()
        engine = get_engine()
        engine.set_role_permissions('user', ['create_exams'])
        assert engine.decide('u1', 'user', 'create_exams').allowed is True

        seed('--with-role-defaults')

        assert engine.decide('u1', 'user', 'create_exams').allowed is False
        assert engine.decide('u1', 'user', 'view_videos').allowed is True
