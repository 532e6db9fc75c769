from rest_framework import serializers

from ..models import Setting


class SettingSerializer(serializers.ModelSerializer):
    class Meta:
        model = Setting
        fields = ["key", "value", "updated_at", "updated_by"]
        read_only_fields = ["key", "updated_at", "updated_by"]


class SettingValueSerializer(serializers.Serializer):
    value = serializers.CharField(allow_blank=True, allow_null=True)
