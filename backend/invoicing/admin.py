from django.contrib import admin
from django.contrib.auth.admin import UserAdmin
from .models import (
    Permission,
    Role,
    User,
    Client,
    Company,
    File,
    CommissionTier,
    Invoice,
)


# =========================
# ROLES & PERMISSIONS
# =========================
@admin.register(Permission)
class PermissionAdmin(admin.ModelAdmin):
    list_display = ('module', 'action', 'description')
    list_filter = ('module', 'action')


@admin.register(Role)
class RoleAdmin(admin.ModelAdmin):
    list_display = ('name', 'display_name', 'is_system_role', 'created_at')
    search_fields = ('name', 'display_name')
    filter_horizontal = ('permissions',)


# =========================
# USER
# =========================
@admin.register(User)
class PortalUserAdmin(UserAdmin):
    fieldsets = UserAdmin.fieldsets + (
        ('Distribution', {'fields': ('role', 'commission_rate', 'whatsapp_number', 'roles', 'created_by')}),
    )
    add_fieldsets = UserAdmin.add_fieldsets + (
        ('Distribution', {'fields': ('role', 'commission_rate')}),
    )

    list_display = ('username', 'email', 'role', 'commission_rate', 'is_active')
    list_filter = ('role', 'is_active')
    search_fields = ('username', 'email', 'first_name')


# =========================
# CLIENT / COMPANY / FILE
# =========================
@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = ('full_name', 'mobile_number', 'commission_rate', 'is_active', 'created_by')
    search_fields = ('full_name', 'mobile_number')
    list_filter = ('is_active',)


@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    list_display = ('name', 'commission_rate', 'is_active', 'created_by')
    search_fields = ('name',)
    list_filter = ('is_active',)


@admin.register(File)
class FileAdmin(admin.ModelAdmin):
    list_display = ('file_name', 'company', 'created_by', 'created_at')
    search_fields = ('file_name',)
    list_filter = ('company',)


# =========================
# COMMISSION TIERS
# =========================
@admin.register(CommissionTier)
class CommissionTierAdmin(admin.ModelAdmin):
    list_display = ('entity_type', 'entity_id', 'min_amount', 'max_amount', 'rate')
    list_filter = ('entity_type',)


# =========================
# INVOICE
# =========================
@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = (
        'invoice_code',
        'client',
        'assigned_distributor',
        'total',
        'is_approved',
        'client_to_distributor_paid',
        'distributor_to_admin_paid',
        'admin_to_company_paid',
        'created_at',
    )
    list_filter = (
        'is_approved',
        'client_to_distributor_paid',
        'distributor_to_admin_paid',
        'admin_to_company_paid',
    )
    search_fields = ('invoice_code', 'client__full_name')
    raw_id_fields = ('client', 'file', 'assigned_distributor', 'created_by', 'approved_by')
