from rest_framework import serializers
from .models import Country


class CountrySerializer(serializers.ModelSerializer):
    class Meta:
        model = Country
        fields = [
            'id', 'name', 'capital', 'region', 'population',
            'currency_code', 'exchange_rate', 'estimated_gdp',
            'flag_url', 'last_refreshed_at'
        ]
        read_only_fields = fields


class UpstreamCountrySerializer(serializers.Serializer):
    """
    Validates one raw record from the countries feed before reconciliation.

    Only ``name`` and ``population`` are required; a record failing them is
    skipped by the refresh, never persisted.
    """
    name = serializers.CharField(max_length=255)
    population = serializers.IntegerField(min_value=0)
    capital = serializers.CharField(max_length=255, required=False, allow_null=True, allow_blank=True)
    region = serializers.CharField(max_length=100, required=False, allow_null=True, allow_blank=True)
    flag = serializers.CharField(max_length=500, required=False, allow_null=True, allow_blank=True)
    currencies = serializers.JSONField(required=False, allow_null=True)


class StatusSerializer(serializers.Serializer):
    total_countries = serializers.IntegerField()
    last_refreshed_at = serializers.CharField(allow_null=True)
