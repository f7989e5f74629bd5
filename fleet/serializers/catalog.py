import json

import bleach
from rest_framework import serializers

from fleet.models import Device


class SkuSerializer(serializers.Serializer):
    modelName = serializers.CharField(required=False, allow_blank=True, max_length=255)
    modelCode = serializers.CharField(required=False, allow_blank=True, max_length=120)
    manufacturer = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=255)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    specs = serializers.JSONField(required=False, allow_null=True)

    @staticmethod
    def to_service(vd) -> dict:
        return {
            'model_name': bleach.clean(vd.get('modelName') or '', strip=True),
            'model_code': bleach.clean(vd.get('modelCode') or '', strip=True),
            'manufacturer': vd.get('manufacturer'),
            'description': vd.get('description'),
            'specs': vd.get('specs'),
        }


class CategoryCreateSerializer(serializers.Serializer):
    """Category with its first SKUs; ``skus`` may arrive JSON-encoded in multipart forms."""
    name = serializers.CharField(required=False, allow_blank=True, max_length=120)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    image = serializers.FileField(required=False, allow_null=True)
    skus = serializers.JSONField(required=False)

    def validate_name(self, v):
        return bleach.clean((v or '').strip(), strip=True)

    def validate_skus(self, v):
        if isinstance(v, str):
            try:
                v = json.loads(v)
            except ValueError:
                raise serializers.ValidationError('SKUs must be a JSON list.')
        if not isinstance(v, list):
            raise serializers.ValidationError('SKUs must be a list.')
        s = SkuSerializer(data=v, many=True)
        s.is_valid(raise_exception=True)
        return [SkuSerializer.to_service(item) for item in s.validated_data]


class DeviceSerializer(serializers.Serializer):
    serialNumber = serializers.CharField(required=False, allow_blank=True, max_length=120)
    barcode = serializers.CharField(required=False, allow_blank=True, max_length=120)
    warehouseId = serializers.IntegerField(required=False, allow_null=True)
    ownershipType = serializers.ChoiceField(choices=Device.OWNERSHIP_CHOICES, required=False)
    usageType = serializers.ChoiceField(choices=Device.USAGE_CHOICES, required=False)
    status = serializers.ChoiceField(choices=Device.STATUS_CHOICES, required=False)
    demoStatus = serializers.ChoiceField(choices=Device.DEMO_STATUS_CHOICES, required=False,
                                         allow_null=True, allow_blank=True)

    def to_service(self) -> dict:
        vd = self.validated_data
        return {
            'serial_number': vd.get('serialNumber'),
            'barcode': vd.get('barcode'),
            'warehouse_id': vd.get('warehouseId'),
            'ownership_type': vd.get('ownershipType'),
            'usage_type': vd.get('usageType'),
            'status': vd.get('status'),
            'demo_status': vd.get('demoStatus') or None,
        }
