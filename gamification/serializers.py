from rest_framework import serializers
from .models import EarnedBadge, PointsLedgerEntry


class EarnedBadgeSerializer(serializers.ModelSerializer):
    code = serializers.CharField(source='badge.code', read_only=True)
    name = serializers.CharField(source='badge.name', read_only=True)
    icon_url = serializers.URLField(source='badge.icon_url', read_only=True)

    class Meta:
        model = EarnedBadge
        fields = ['code', 'name', 'icon_url', 'earned_at']


class LedgerEntrySerializer(serializers.ModelSerializer):
    activity_code = serializers.CharField(source='activity_id', read_only=True)

    class Meta:
        model = PointsLedgerEntry
        fields = [
            'id',
            'activity_code',
            'delta_points',
            'source',
            'external_source',
            'external_event_id',
            'event_time',
        ]


class AssignBadgeSerializer(serializers.Serializer):
    user_ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        allow_empty=False,
        max_length=500,
    )
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=2000)
