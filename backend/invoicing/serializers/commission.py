from rest_framework import serializers

from ..models import CommissionTier
from ..services.commission import ENTITY_MODELS


class CommissionTierSerializer(serializers.ModelSerializer):
    entityType = serializers.ChoiceField(source='entity_type', choices=CommissionTier.ENTITY_TYPE_CHOICES)
    entityId = serializers.IntegerField(source='entity_id', min_value=1)
    minAmount = serializers.FloatField(source='min_amount', required=False, min_value=0)
    maxAmount = serializers.FloatField(source='max_amount', required=False, allow_null=True)
    rate = serializers.FloatField(min_value=0)

    class Meta:
        model = CommissionTier
        fields = ('id', 'entityType', 'entityId', 'minAmount', 'maxAmount', 'rate')

    def validate(self, data):
        entity_type = data.get('entity_type', getattr(self.instance, 'entity_type', None))
        entity_id = data.get('entity_id', getattr(self.instance, 'entity_id', None))
        if not ENTITY_MODELS[entity_type].objects.filter(pk=entity_id).exists():
            raise serializers.ValidationError({'entityId': f'No {entity_type} with id {entity_id}.'})

        min_amount = data.get('min_amount', getattr(self.instance, 'min_amount', 0))
        max_amount = data.get('max_amount', getattr(self.instance, 'max_amount', None))
        if max_amount is not None and max_amount < (min_amount or 0):
            raise serializers.ValidationError({'maxAmount': 'Maximum amount must not be below the minimum.'})
        return data
