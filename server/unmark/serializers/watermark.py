from rest_framework import serializers
from unmark.models import WatermarkTask


class WatermarkTaskSerializer(serializers.ModelSerializer):
    """Read-only representation of a watermark task for status polling"""

    is_refunded = serializers.ReadOnlyField()

    class Meta:
        model = WatermarkTask
        fields = [
            'id',
            'original_url',
            'status',
            'result_url',
            'error_msg',
            'attempts_made',
            'is_refunded',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def to_representation(self, instance):
        data = super().to_representation(instance)
        if instance.status != WatermarkTask.STATUS_COMPLETED:
            data['result_url'] = None
        return data


class QueueStatusSerializer(serializers.Serializer):
    pending_count = serializers.IntegerField()
    processing_count = serializers.IntegerField()
    queue_position = serializers.IntegerField()
    total_waiting = serializers.IntegerField()
