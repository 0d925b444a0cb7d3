from rest_framework import serializers

from .models import ExchangeRate


class ExchangeRateSerializer(serializers.ModelSerializer):
    class Meta:
        model = ExchangeRate
        fields = [
            "id", "from_currency", "to_currency", "rate", "inverse_rate",
            "effective_date", "expiry_date", "status", "source", "created_at",
        ]
        read_only_fields = fields


class RateBatchSerializer(serializers.Serializer):
    # Values stay raw so batch validation can report every bad entry at once.
    rates = serializers.DictField(child=serializers.JSONField())
    base_currency = serializers.CharField(max_length=3, required=False)
    effective_date = serializers.DateField(required=False)
    source = serializers.CharField(max_length=32, required=False, default="manual")


class MarginResolveQuerySerializer(serializers.Serializer):
    charge = serializers.IntegerField()
    customer = serializers.IntegerField(required=False, allow_null=True)
    cost = serializers.DecimalField(max_digits=14, decimal_places=2, required=False)
