from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import (
    DistributorViewSet, RoleViewSet, PermissionViewSet,
    ClientViewSet, CompanyViewSet, FileViewSet, CommissionTierViewSet,
    InvoiceViewSet, dashboard_view,
)

router = DefaultRouter()
router.register(r'invoices', InvoiceViewSet, basename='invoice')
router.register(r'clients', ClientViewSet, basename='client')
router.register(r'companies', CompanyViewSet, basename='company')
router.register(r'files', FileViewSet, basename='file')
router.register(r'commission-tiers', CommissionTierViewSet, basename='commissiontier')
router.register(r'distributors', DistributorViewSet, basename='distributor')
router.register(r'roles', RoleViewSet, basename='role')
router.register(r'permissions', PermissionViewSet, basename='permission')

urlpatterns = [
    path('', include(router.urls)),
    path('reports/dashboard/', dashboard_view, name='dashboard'),
]
