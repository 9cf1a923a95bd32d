from rest_framework import serializers

from telehealth.serializers.notifications import _clean


class PushKeysSerializer(serializers.Serializer):
    p256dh = serializers.CharField(max_length=255)
    auth = serializers.CharField(max_length=255)


class PushSubscriptionSerializer(serializers.Serializer):
    endpoint = serializers.URLField(max_length=500)
    keys = PushKeysSerializer()


class PushSubscribeSerializer(serializers.Serializer):
    subscription = PushSubscriptionSerializer()


class PushUnsubscribeSerializer(serializers.Serializer):
    endpoint = serializers.URLField(max_length=500)


class PushSendSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200)
    body = serializers.CharField(max_length=2000)
    url = serializers.CharField(max_length=500, required=False, default='/')
    tag = serializers.CharField(max_length=100, required=False, default='notification')
    userIds = serializers.ListField(child=serializers.IntegerField(min_value=1), required=False,
                                    allow_empty=False)

    def validate_title(self, v):
        v = _clean(v)
        if not v:
            raise serializers.ValidationError('Title must not be empty')
        return v

    def validate_body(self, v):
        v = _clean(v)
        if not v:
            raise serializers.ValidationError('Body must not be empty')
        return v
