from rest_framework import serializers

from fleet.models import Device


class DemoSessionCreateSerializer(serializers.Serializer):
    """Checks the required fields in the order the form presents them."""
    hospitalId = serializers.IntegerField(required=False, allow_null=True)
    ownerId = serializers.IntegerField(required=False, allow_null=True)
    deviceIds = serializers.ListField(child=serializers.IntegerField(), required=False)
    startDate = serializers.DateField(required=False, allow_null=True)
    endDate = serializers.DateField(required=False, allow_null=True)
    demoStatus = serializers.ChoiceField(choices=Device.DEMO_STATUS_CHOICES, required=False,
                                         default=Device.DEMO_IN_USE)

    def validate(self, attrs):
        if not attrs.get('hospitalId'):
            raise serializers.ValidationError({'hospitalId': 'Select a hospital for this demo.'})
        if not attrs.get('ownerId'):
            raise serializers.ValidationError({'ownerId': 'Assign a demo owner.'})
        if 'deviceIds' in attrs and not attrs['deviceIds']:
            raise serializers.ValidationError({'deviceIds': 'Select at least one device serial for this demo.'})
        if not attrs.get('startDate') or not attrs.get('endDate'):
            raise serializers.ValidationError({'startDate': 'Select the demo start and end dates.'})
        if attrs['endDate'] < attrs['startDate']:
            raise serializers.ValidationError({'endDate': 'End date cannot be before the start date.'})
        return attrs


class CandidateQuerySerializer(serializers.Serializer):
    hospitalId = serializers.IntegerField(required=False, allow_null=True)
    modelId = serializers.IntegerField(required=False, allow_null=True)
    serial = serializers.CharField(required=False, allow_blank=True)


class BinSerializer(serializers.Serializer):
    deviceId = serializers.IntegerField()


class SessionQuerySerializer(serializers.Serializer):
    tab = serializers.ChoiceField(choices=['ongoing', 'upcoming', 'past'], required=False, default='ongoing')
    today = serializers.DateField(required=False, allow_null=True)
