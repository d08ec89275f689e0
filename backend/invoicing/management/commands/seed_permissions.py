from django.core.management.base import BaseCommand
from django.db import transaction

from invoicing.models import Permission, Role
from invoicing.models.identity import ACTION_CHOICES, MODULE_CHOICES

BASIC_DISTRIBUTOR_ROLE = 'basic_distributor'
BASIC_DISTRIBUTOR_PERMISSIONS = (
    ('invoices', 'view_own'),
    ('invoices', 'create'),
    ('clients', 'view_own'),
    ('clients', 'create'),
    ('reports', 'view_own'),
)


class Command(BaseCommand):
    help = 'Creates every module permission and the basic distributor role. Safe to run repeatedly.'

    @transaction.atomic
    def handle(self, *args, **options):
        created = 0
        for module, module_label in MODULE_CHOICES:
            for action, action_label in ACTION_CHOICES:
                _, was_created = Permission.objects.get_or_create(
                    module=module,
                    action=action,
                    defaults={'description': f'{action_label} {module_label.lower()}'},
                )
                created += was_created

        role, role_created = Role.objects.get_or_create(
            name=BASIC_DISTRIBUTOR_ROLE,
            defaults={
                'display_name': 'Basic distributor',
                'description': 'Own invoices and clients, own reports.',
                'is_system_role': True,
            },
        )
        role.permissions.add(*[
            Permission.objects.get(module=module, action=action)
            for module, action in BASIC_DISTRIBUTOR_PERMISSIONS
        ])

        self.stdout.write(self.style.SUCCESS(f'{created} permissions created.'))
        if role_created:
            self.stdout.write(self.style.SUCCESS(f'Role "{role.name}" created.'))
        else:
            self.stdout.write(f'Role "{role.name}" already existed; permissions refreshed.')
