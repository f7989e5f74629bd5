import bleach
from rest_framework import serializers

from fleet.models import Profile


def _clean(v):
    return bleach.clean((v or '').strip(), tags=set(), strip=True)


class ApproveSerializer(serializers.Serializer):
    userId = serializers.IntegerField()
    role = serializers.ChoiceField(choices=Profile.ROLE_CHOICES)


class RejectSerializer(serializers.Serializer):
    userId = serializers.IntegerField()
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=1000)

    def validate_reason(self, v):
        return _clean(v) or None


class UserIdSerializer(serializers.Serializer):
    userId = serializers.IntegerField()


class ProfileUpsertSerializer(serializers.Serializer):
    userId = serializers.IntegerField()
    fullName = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=255)
    phone = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=32)
    managerId = serializers.IntegerField(required=False, allow_null=True)
    regionId = serializers.IntegerField(required=False, allow_null=True)
    isRegionalManager = serializers.BooleanField(required=False, default=False)
    isActive = serializers.BooleanField(required=False, default=True)

    def validate_fullName(self, v):
        return _clean(v)

    def validate_phone(self, v):
        return _clean(v)

    def profile_kwargs(self) -> dict:
        vd = self.validated_data
        return {
            'full_name': vd.get('fullName'),
            'phone': vd.get('phone'),
            'manager_id': vd.get('managerId'),
            'region_id': vd.get('regionId'),
            'is_regional_manager': vd.get('isRegionalManager', False),
            'is_active': vd.get('isActive', True),
        }


class TeamUserCreateSerializer(ProfileUpsertSerializer):
    userId = serializers.IntegerField(required=False)
    email = serializers.EmailField()
    password = serializers.CharField(min_length=6, write_only=True)


class EngineerHospitalSerializer(serializers.Serializer):
    engineerId = serializers.IntegerField()
    hospitalId = serializers.IntegerField()
