from django.db import models
from django.contrib.auth.models import AbstractUser


MODULE_CHOICES = (
    ('invoices', 'Invoices'),
    ('clients', 'Clients'),
    ('companies', 'Companies'),
    ('files', 'Files'),
    ('distributors', 'Distributors'),
    ('reports', 'Reports'),
    ('commission_tiers', 'Commission Tiers'),
)

ACTION_CHOICES = (
    ('view_own', 'View own'),
    ('view_all', 'View all'),
    ('create', 'Create'),
    ('update', 'Update'),
    ('delete', 'Delete'),
)


class Permission(models.Model):
    """A single (module, action) capability that can be granted through a Role."""
    module = models.CharField(max_length=30, choices=MODULE_CHOICES)
    action = models.CharField(max_length=20, choices=ACTION_CHOICES)
    description = models.CharField(max_length=255, blank=True, default='')

    class Meta:
        unique_together = ('module', 'action')
        ordering = ['module', 'action']

    def __str__(self):
        return f'{self.module}:{self.action}'


class Role(models.Model):
    name = models.CharField(max_length=150, unique=True)
    display_name = models.CharField(max_length=255, blank=True, default='')
    description = models.TextField(blank=True, default='')
    is_system_role = models.BooleanField(default=False)
    permissions = models.ManyToManyField(Permission, blank=True, related_name='roles')
    created_by = models.ForeignKey(
        'User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
    )
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.display_name or self.name


class User(AbstractUser):
    ROLE_ADMIN = 'admin'
    ROLE_DISTRIBUTOR = 'distributor'
    ROLE_CHOICES = (
        (ROLE_ADMIN, 'Admin'),
        (ROLE_DISTRIBUTOR, 'Distributor'),
    )

    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_DISTRIBUTOR)
    commission_rate = models.FloatField(
        default=0,
        help_text='Default commission percentage when no tier matches',
    )
    whatsapp_number = models.CharField(max_length=20, blank=True, null=True)
    roles = models.ManyToManyField(Role, blank=True, related_name='users')
    created_by = models.ForeignKey(
        'self',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='created_users',
    )

    groups = models.ManyToManyField(
        'auth.Group',
        verbose_name='groups',
        blank=True,
        help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.',
        related_name="invoicing_user_set",
        related_query_name="user",
    )
    user_permissions = models.ManyToManyField(
        'auth.Permission',
        verbose_name='user permissions',
        blank=True,
        help_text='Specific permissions for this user.',
        related_name="invoicing_user_set",
        related_query_name="user",
    )

    def __str__(self):
        return self.username

    @property
    def is_admin(self):
        return self.role == self.ROLE_ADMIN

    @property
    def is_distributor(self):
        return self.role == self.ROLE_DISTRIBUTOR

    def has_permission(self, module, action):
        if self.is_admin or self.is_superuser:
            return True
        return Permission.objects.filter(
            roles__users=self,
            module=module,
            action=action,
        ).exists()

    def module_permissions(self, module):
        """Set of granted actions for one module, in a single query."""
        if self.is_admin or self.is_superuser:
            return {action for action, _ in ACTION_CHOICES}
        return set(
            Permission.objects.filter(roles__users=self, module=module)
            .values_list('action', flat=True)
        )
