import bleach
from rest_framework import serializers


class SubregionSerializer(serializers.Serializer):
    parentRegionId = serializers.IntegerField(required=False, allow_null=True)
    name = serializers.CharField(max_length=120, allow_blank=True)
    code = serializers.CharField(max_length=40, allow_blank=True)

    def validate_name(self, v):
        return bleach.clean((v or '').strip(), strip=True)

    def validate_code(self, v):
        return bleach.clean((v or '').strip(), strip=True).upper()

    def validate(self, attrs):
        if not attrs.get('name') or not attrs.get('code'):
            raise serializers.ValidationError({'name': 'Subregion name and code are required.'})
        return attrs


class SubregionCreateSerializer(SubregionSerializer):
    def validate(self, attrs):
        if not attrs.get('parentRegionId'):
            raise serializers.ValidationError({'parentRegionId': 'Parent region id is required.'})
        return super().validate(attrs)
