"""
Per-request authorization capabilities.

An ``AccessScope`` is computed once from the authenticated user and handed to
the workflow functions, so business logic never re-queries roles mid-operation.
"""

from dataclasses import dataclass, field

from ..models import User


@dataclass(frozen=True)
class AccessScope:
    actor: User
    module: str
    actions: frozenset = field(default_factory=frozenset)
    # Creators whose invoices stay hidden from own-scope users (the admins)
    excluded_creator_ids: tuple = ()

    @classmethod
    def for_user(cls, user, module='invoices'):
        actions = frozenset(user.module_permissions(module))
        excluded = ()
        if 'view_all' not in actions and 'view_own' in actions:
            excluded = tuple(
                User.objects.filter(role=User.ROLE_ADMIN).values_list('id', flat=True)
            )
        return cls(actor=user, module=module, actions=actions, excluded_creator_ids=excluded)

    @property
    def role(self):
        return self.actor.role

    @property
    def is_admin(self):
        return self.actor.is_admin

    @property
    def is_distributor(self):
        return self.actor.is_distributor

    @property
    def can_view_all(self):
        return 'view_all' in self.actions

    @property
    def can_view_own(self):
        return 'view_own' in self.actions

    @property
    def has_module_access(self):
        return self.can_view_all or self.can_view_own

    def can(self, action):
        return action in self.actions

    def scope_invoices(self, queryset, hide_admin_authored=True):
        """
        Row filter for invoices.

        Own-scope users only see invoices assigned to them; by default the
        ones authored by an admin are hidden as well. Payment actions pass
        ``hide_admin_authored=False`` because distributors settle the client
        leg of admin-authored invoices.
        """
        if self.can_view_all:
            return queryset
        if not self.can_view_own:
            return queryset.none()
        queryset = queryset.filter(assigned_distributor=self.actor)
        if hide_admin_authored and self.excluded_creator_ids:
            queryset = queryset.exclude(created_by_id__in=self.excluded_creator_ids)
        return queryset

    def scope_owned(self, queryset):
        """Row filter for records owned through ``created_by`` (clients, companies, files)."""
        if self.can_view_all:
            return queryset
        if self.can_view_own:
            return queryset.filter(created_by=self.actor)
        return queryset.none()
