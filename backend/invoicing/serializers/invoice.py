from rest_framework import serializers

from ..models import Invoice, PaymentStage
from .fields import LenientFloatField, ReferenceField


class InvoiceWriteSerializer(serializers.Serializer):
    """
    Create/update payload. Keys follow the public camelCase names and map to
    model field names in ``validated_data``.
    """
    invoiceCode = serializers.CharField(source='invoice_code', max_length=100)
    client = ReferenceField()
    file = ReferenceField()
    assignedDistributor = ReferenceField(source='assigned_distributor')
    invoiceDate = serializers.DateField(source='invoice_date', required=False, allow_null=True)
    status = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=50)

    total = LenientFloatField()
    taxPercentage = LenientFloatField(source='tax_percentage')
    taxAmount = LenientFloatField(source='tax_amount')
    managementTaxPercentage = LenientFloatField(source='management_tax_percentage')
    managementTaxAmount = LenientFloatField(source='management_tax_amount')
    corporateTaxPercentage = LenientFloatField(source='corporate_tax_percentage')
    corporateTaxAmount = LenientFloatField(source='corporate_tax_amount')
    profitPercentage = LenientFloatField(source='profit_percentage')
    profitAmount = LenientFloatField(source='profit_amount')
    finalAmount = LenientFloatField(source='final_amount')
    discountAmount = LenientFloatField(source='discount_amount')

    customClientCommissionRate = LenientFloatField(source='custom_client_commission_rate')
    customDistributorCommissionRate = LenientFloatField(source='custom_distributor_commission_rate')


class InvoiceSerializer(serializers.ModelSerializer):
    invoiceCode = serializers.CharField(source='invoice_code', read_only=True)
    client = serializers.PrimaryKeyRelatedField(read_only=True)
    clientName = serializers.CharField(source='client.full_name', read_only=True, default=None)
    file = serializers.PrimaryKeyRelatedField(read_only=True)
    fileName = serializers.CharField(source='file.file_name', read_only=True, default=None)
    companyId = serializers.IntegerField(source='file.company_id', read_only=True, default=None)
    assignedDistributor = serializers.PrimaryKeyRelatedField(source='assigned_distributor', read_only=True)
    distributorName = serializers.CharField(source='assigned_distributor.username', read_only=True, default=None)
    createdBy = serializers.PrimaryKeyRelatedField(source='created_by', read_only=True)
    invoiceDate = serializers.DateField(source='invoice_date', read_only=True)

    taxPercentage = serializers.FloatField(source='tax_percentage', read_only=True)
    taxAmount = serializers.FloatField(source='tax_amount', read_only=True)
    managementTaxPercentage = serializers.FloatField(source='management_tax_percentage', read_only=True)
    managementTaxAmount = serializers.FloatField(source='management_tax_amount', read_only=True)
    corporateTaxPercentage = serializers.FloatField(source='corporate_tax_percentage', read_only=True)
    corporateTaxAmount = serializers.FloatField(source='corporate_tax_amount', read_only=True)
    profitPercentage = serializers.FloatField(source='profit_percentage', read_only=True)
    profitAmount = serializers.FloatField(source='profit_amount', read_only=True)
    finalAmount = serializers.FloatField(source='final_amount', read_only=True)
    discountAmount = serializers.FloatField(source='discount_amount', read_only=True)

    clientCommissionRate = serializers.FloatField(source='client_commission_rate', read_only=True)
    distributorCommissionRate = serializers.FloatField(source='distributor_commission_rate', read_only=True)
    companyCommissionRate = serializers.FloatField(source='company_commission_rate', read_only=True)
    customClientCommissionRate = serializers.FloatField(source='custom_client_commission_rate', read_only=True)
    customDistributorCommissionRate = serializers.FloatField(
        source='custom_distributor_commission_rate', read_only=True
    )
    clientCommission = serializers.FloatField(source='client_commission', read_only=True)
    distributorCommission = serializers.FloatField(source='distributor_commission', read_only=True)
    companyCommission = serializers.FloatField(source='company_commission', read_only=True)
    netProfit = serializers.FloatField(source='net_profit', read_only=True)

    isApproved = serializers.BooleanField(source='is_approved', read_only=True)
    approvedAt = serializers.DateTimeField(source='approved_at', read_only=True)
    approvedBy = serializers.PrimaryKeyRelatedField(source='approved_by', read_only=True)

    paymentStatus = serializers.SerializerMethodField()
    paymentStatusDisplay = serializers.CharField(source='payment_status_display', read_only=True)
    blockingStage = serializers.CharField(source='blocking_stage', read_only=True, default=None)
    progressPercent = serializers.IntegerField(source='progress_percent', read_only=True)
    paymentNotes = serializers.CharField(source='payment_notes', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = Invoice
        fields = (
            'id', 'invoiceCode', 'client', 'clientName', 'file', 'fileName', 'companyId',
            'assignedDistributor', 'distributorName', 'createdBy', 'invoiceDate', 'status',
            'total', 'taxPercentage', 'taxAmount', 'managementTaxPercentage', 'managementTaxAmount',
            'corporateTaxPercentage', 'corporateTaxAmount', 'profitPercentage', 'profitAmount',
            'finalAmount', 'discountAmount',
            'clientCommissionRate', 'distributorCommissionRate', 'companyCommissionRate',
            'customClientCommissionRate', 'customDistributorCommissionRate',
            'clientCommission', 'distributorCommission', 'companyCommission', 'netProfit',
            'isApproved', 'approvedAt', 'approvedBy',
            'paymentStatus', 'paymentStatusDisplay', 'blockingStage', 'progressPercent', 'paymentNotes',
            'createdAt',
        )
        read_only_fields = fields

    def get_paymentStatus(self, obj):
        status = {}
        for stage in PaymentStage:
            state = obj.stage_state(stage)
            status[stage.value] = {
                'isPaid': state.is_paid,
                'markedBy': state.marked_by_id,
                'paidAt': state.paid_at.isoformat() if state.paid_at else None,
            }
        return status


class CommissionPreviewSerializer(serializers.Serializer):
    clientId = ReferenceField()
    distributorId = ReferenceField()
    fileId = ReferenceField()
    amount = LenientFloatField(required=True, allow_null=False)
    customClientRate = LenientFloatField()
    customDistributorRate = LenientFloatField()

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError('Amount must be greater than zero.')
        return value


class MassPaymentSerializer(serializers.Serializer):
    entityType = serializers.ChoiceField(choices=('client', 'distributor', 'company'))
    entityIds = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)
    paymentMethod = serializers.CharField(required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)


class InvoiceIdsSerializer(serializers.Serializer):
    invoiceIds = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)


