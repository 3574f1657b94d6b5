from __future__ import annotations

from rest_framework import serializers

from modules.configuration.models import SystemConfig


class SystemConfigSerializer(serializers.ModelSerializer):
    class Meta:
        model = SystemConfig
        fields = ["config_key", "config_value", "description", "updated_by", "updated_at"]
        read_only_fields = fields


class UpdateSystemConfigSerializer(serializers.Serializer):
    config_value = serializers.IntegerField(min_value=0, max_value=525600)
