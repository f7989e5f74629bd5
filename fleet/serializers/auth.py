import bleach
from rest_framework import serializers


class LoginSerializer(serializers.Serializer):
    username = serializers.CharField(required=False, allow_blank=True)
    email = serializers.CharField(required=False, allow_blank=True)
    password = serializers.CharField()

    def validate(self, attrs):
        username = (attrs.get('username') or attrs.get('email') or '').strip().lower()
        if not username:
            raise serializers.ValidationError({'username': 'Missing credentials'})
        attrs['username'] = username
        return attrs

    def validate_password(self, v):
        if not v:
            raise serializers.ValidationError('Missing credentials')
        return v


class SignupSerializer(serializers.Serializer):
    fullName = serializers.CharField(max_length=255)
    email = serializers.EmailField()
    password = serializers.CharField(min_length=6, write_only=True)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=32)

    def validate_fullName(self, v):
        v = bleach.clean((v or '').strip(), strip=True)
        if not v:
            raise serializers.ValidationError('Missing required fields')
        return v

    def validate_phone(self, v):
        return bleach.clean((v or '').strip(), strip=True)
