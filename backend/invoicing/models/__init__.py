from .identity import Permission, Role, User
from .parties import Client, Company, File
from .commission import CommissionTier
from .invoice import Invoice, PaymentStage, STAGE_FIELDS, BLOCKING_PRIORITY, StageState, stage_paid_field

__all__ = [
    'Permission',
    'Role',
    'User',
    'Client',
    'Company',
    'File',
    'CommissionTier',
    'Invoice',
    'PaymentStage',
    'STAGE_FIELDS',
    'BLOCKING_PRIORITY',
    'StageState',
    'stage_paid_field',
]
