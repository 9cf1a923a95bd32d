import bleach
from rest_framework import serializers

from telehealth.realtime.bus import NOTIFICATION_ROLES, NOTIFICATION_TYPES


def _clean(value: str) -> str:
    return bleach.clean(value, tags=[], attributes={}, strip=True).strip()


class NotificationSendSerializer(serializers.Serializer):
    userId = serializers.IntegerField(min_value=0)
    userRole = serializers.ChoiceField(choices=NOTIFICATION_ROLES)
    type = serializers.ChoiceField(choices=NOTIFICATION_TYPES)
    title = serializers.CharField(max_length=200)
    message = serializers.CharField(max_length=2000)
    data = serializers.DictField(required=False, default=dict)

    def validate_title(self, v):
        v = _clean(v)
        if not v:
            raise serializers.ValidationError('Title must not be empty')
        return v

    def validate_message(self, v):
        v = _clean(v)
        if not v:
            raise serializers.ValidationError('Message must not be empty')
        return v


class EmergencyCallSerializer(serializers.Serializer):
    SEVERITY_CHOICES = ('low', 'medium', 'high', 'critical')

    severity = serializers.ChoiceField(choices=SEVERITY_CHOICES)
    symptoms = serializers.CharField(max_length=1000)

    def validate_symptoms(self, v):
        v = _clean(v)
        if not v:
            raise serializers.ValidationError('Symptoms must not be empty')
        return v
