import bleach
from rest_framework import serializers

from fleet.services.hospitals import validate_poc


class PocEntrySerializer(serializers.Serializer):
    name = serializers.CharField(required=False, allow_blank=True, max_length=255)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=32)


class HospitalSerializer(serializers.Serializer):
    """Hospital create/update payload.

    POC entries are stripped, empty rows dropped, and the rest must carry
    both a name and a phone.  Nothing is written when this fails.
    """
    name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    address = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    pincode = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=12)
    city = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=120)
    state = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=120)
    primaryRegionId = serializers.IntegerField(required=False, allow_null=True)
    subregionId = serializers.IntegerField(required=False, allow_null=True)
    poc = PocEntrySerializer(many=True, required=False)

    def validate_name(self, v):
        return bleach.clean((v or '').strip(), strip=True)

    def validate_address(self, v):
        return bleach.clean((v or '').strip(), strip=True)

    def validate(self, attrs):
        if self.context.get('require_name', True) and not attrs.get('name'):
            raise serializers.ValidationError({'name': 'Hospital name is required.'})
        attrs['poc'] = validate_poc(attrs.get('poc') or [])
        if not attrs.get('primaryRegionId'):
            raise serializers.ValidationError({'primaryRegionId': 'Zone is required.'})
        return attrs

    def service_kwargs(self) -> dict:
        vd = self.validated_data
        return {
            'name': vd.get('name') or None,
            'address': vd.get('address'),
            'pincode': vd.get('pincode'),
            'city': vd.get('city'),
            'state': vd.get('state'),
            'primary_region_id': vd.get('primaryRegionId'),
            'subregion_id': vd.get('subregionId'),
            'poc': vd['poc'],
        }


class HospitalQuerySerializer(serializers.Serializer):
    q = serializers.CharField(required=False, allow_blank=True)
    zone = serializers.CharField(required=False, allow_blank=True)


class AssignEngineerSerializer(serializers.Serializer):
    engineerId = serializers.IntegerField()


class AssignDeviceSerializer(serializers.Serializer):
    deviceId = serializers.IntegerField()
