from .identity import PermissionSerializer, RoleSerializer, DistributorSerializer
from .parties import ClientSerializer, CompanySerializer, FileSerializer
from .commission import CommissionTierSerializer
from .invoice import (
    InvoiceWriteSerializer,
    InvoiceSerializer,
    CommissionPreviewSerializer,
    MassPaymentSerializer,
    InvoiceIdsSerializer,
)

__all__ = [
    'PermissionSerializer',
    'RoleSerializer',
    'DistributorSerializer',
    'ClientSerializer',
    'CompanySerializer',
    'FileSerializer',
    'CommissionTierSerializer',
    'InvoiceWriteSerializer',
    'InvoiceSerializer',
    'CommissionPreviewSerializer',
    'MassPaymentSerializer',
    'InvoiceIdsSerializer',
]
