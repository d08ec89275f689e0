from .mixins import OwnedScopedViewSetMixin
from .identity import DistributorViewSet, RoleViewSet, PermissionViewSet
from .parties import ClientViewSet, CompanyViewSet, FileViewSet, CommissionTierViewSet
from .invoices import InvoiceViewSet
from .reports.dashboard import dashboard_view
