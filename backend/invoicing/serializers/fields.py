from rest_framework import serializers

from ..services.commission import parse_amount


class LenientFloatField(serializers.Field):
    """Float input that never fails validation: blanks and garbage become 0."""

    def __init__(self, **kwargs):
        kwargs.setdefault('required', False)
        kwargs.setdefault('allow_null', True)
        super().__init__(**kwargs)

    def to_internal_value(self, data):
        return parse_amount(data)

    def to_representation(self, value):
        return value


class ReferenceField(serializers.Field):
    """Primary key input; anything that is not an integer is treated as empty."""

    def __init__(self, **kwargs):
        kwargs.setdefault('required', False)
        kwargs.setdefault('allow_null', True)
        super().__init__(**kwargs)

    def to_internal_value(self, data):
        if data in (None, ''):
            return None
        try:
            return int(data)
        except (TypeError, ValueError):
            return None

    def to_representation(self, value):
        return getattr(value, 'pk', value)
