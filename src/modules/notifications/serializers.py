from rest_framework import serializers

from modules.notifications.models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = [
            "id",
            "notification_type",
            "title",
            "message",
            "related_id",
            "related_type",
            "action_url",
            "priority",
            "is_read",
            "read_at",
            "created_at",
        ]
        read_only_fields = fields
