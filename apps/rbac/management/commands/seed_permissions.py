"""
Management command to seed canonical permissions.

Creates all global Permission records that define available capabilities
across the platform, and optionally resets the default capability sets of
the built-in roles. This command is idempotent and safe to re-run.
"""
from django.core.management.base import BaseCommand
from apps.rbac.models import Permission
from apps.rbac.services import get_engine


def _capability(code, label, category, description=''):
    return {
        'code': code,
        'label': label,
        'description': description or label,
        'category': category,
    }


class Command(BaseCommand):
    help = 'Seed canonical permissions (idempotent)'

    # Canonical capabilities with categories, labels, and descriptions
    CANONICAL_PERMISSIONS = [
        # Exams
        _capability('view_exams', 'View exams', 'exams', 'View the exam list and exam details'),
        _capability('create_exams', 'Create exams', 'exams'),
        _capability('edit_exams', 'Edit exams', 'exams'),
        _capability('delete_exams', 'Delete exams', 'exams'),
        _capability('export_exam_results', 'Export exam results', 'exams', 'Download exam results as a spreadsheet'),
        _capability('assign_exams', 'Assign exams', 'exams', 'Assign exams to users and groups'),
        _capability('toggle_exam_status', 'Open or close exams', 'exams'),
        _capability('view_exam_results', 'View exam results', 'exams'),

        # Tasks
        _capability('view_tasks', 'View tasks', 'tasks'),
        _capability('create_tasks', 'Create tasks', 'tasks'),
        _capability('edit_tasks', 'Edit tasks', 'tasks'),
        _capability('delete_tasks', 'Delete tasks', 'tasks'),
        _capability('view_task_results', 'View task results', 'tasks'),
        _capability('export_task_results', 'Export task results', 'tasks'),
        _capability('assign_tasks', 'Assign tasks', 'tasks'),
        _capability('upload_task_data', 'Upload task data', 'tasks', 'Import customer data for tasks'),
        _capability('view_task_customers', 'View task customers', 'tasks'),

        # Questions
        _capability('view_questions', 'View questions', 'questions'),
        _capability('create_questions', 'Create questions', 'questions'),
        _capability('edit_questions', 'Edit questions', 'questions'),
        _capability('delete_questions', 'Delete questions', 'questions'),
        _capability('import_questions', 'Import questions', 'questions', 'Bulk import questions from a file'),

        # Users
        _capability('view_users', 'View users', 'users'),
        _capability('create_users', 'Create users', 'users'),
        _capability('edit_users', 'Edit users', 'users'),
        _capability('delete_users', 'Delete users', 'users'),

        # Videos
        _capability('view_videos', 'View videos', 'videos'),
        _capability('create_videos', 'Create videos', 'videos'),
        _capability('edit_videos', 'Edit videos', 'videos'),
        _capability('delete_videos', 'Delete videos', 'videos'),

        # Documents
        _capability('view_documents', 'View documents', 'documents'),
        _capability('create_documents', 'Create documents', 'documents'),
        _capability('edit_documents', 'Edit documents', 'documents'),
        _capability('delete_documents', 'Delete documents', 'documents'),

        # System
        _capability('manage_categories', 'Manage categories', 'system'),
        _capability('manage_groups', 'Manage groups', 'system'),
        _capability('manage_settings', 'Manage settings', 'system'),
        _capability('manage_permissions', 'Manage permissions', 'system', 'Edit role defaults and user overrides'),
    ]

    LEADER_PERMISSIONS = [
        'view_exams', 'view_exam_results', 'export_exam_results',
        'view_tasks', 'view_task_customers', 'view_task_results', 'export_task_results',
        'view_questions',
        'view_users',
        'view_videos',
        'view_documents',
    ]

    USER_PERMISSIONS = [
        'view_videos',
        'view_documents',
    ]

    def add_arguments(self, parser):
        parser.add_argument(
            '--with-role-defaults',
            action='store_true',
            help='Also reset the default capability sets of the admin, leader and user roles',
        )

    def handle(self, *args, **options):
        """Create or update all canonical permissions."""

        created_count = 0
        updated_count = 0

        self.stdout.write('Seeding canonical permissions...\n')

        for perm_data in self.CANONICAL_PERMISSIONS:
            permission, created = Permission.objects.get_or_create_permission(
                code=perm_data['code'],
                label=perm_data['label'],
                description=perm_data['description'],
                category=perm_data['category']
            )

            if created:
                created_count += 1
                self.stdout.write(
                    self.style.SUCCESS(f'✓ Created: {permission.code}')
                )
                continue

            changed = [
                field for field in ('label', 'description', 'category')
                if getattr(permission, field) != perm_data[field]
            ]
            if changed:
                for field in changed:
                    setattr(permission, field, perm_data[field])
                permission.save(update_fields=changed + ['updated_at'])
                updated_count += 1
                self.stdout.write(
                    self.style.WARNING(f'↻ Updated: {permission.code}')
                )
            else:
                self.stdout.write(
                    self.style.HTTP_INFO(f'  Exists: {permission.code}')
                )

        self.stdout.write(
            self.style.SUCCESS(
                f'\n✓ Seeding complete: {created_count} created, {updated_count} updated, '
                f'{len(self.CANONICAL_PERMISSIONS) - created_count - updated_count} unchanged'
            )
        )

        if options['with_role_defaults']:
            self._seed_role_defaults()

        # Display summary by category
        self.stdout.write('\n' + '=' * 70)
        self.stdout.write('Permissions Summary by Category:')
        self.stdout.write('=' * 70)

        for category, capabilities in get_engine().catalog.grouped().items():
            self.stdout.write(f'\n{category.upper()}:')
            for capability in capabilities:
                self.stdout.write(f'  • {capability.code:<30} {capability.label}')

        self.stdout.write(f'\nTotal permissions: {Permission.objects.count()}')

    def _seed_role_defaults(self):
        """Reset built-in role defaults through the engine so the cache is invalidated."""
        engine = get_engine()
        role_defaults = {
            'admin': [perm['code'] for perm in self.CANONICAL_PERMISSIONS],
            'leader': self.LEADER_PERMISSIONS,
            'user': self.USER_PERMISSIONS,
        }

        self.stdout.write('\nSeeding role defaults...')
        for role, codes in role_defaults.items():
            engine.set_role_permissions(role, codes)
            self.stdout.write(
                self.style.SUCCESS(f'✓ {role}: {len(codes)} permissions')
            )
