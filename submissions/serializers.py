from rest_framework import serializers
from .models import Submission
from .state_machine import ACTIONS


class SubmissionSerializer(serializers.ModelSerializer):
    activity_code = serializers.CharField(source='activity_id', read_only=True)
    reviewer_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Submission
        fields = [
            'id',
            'user',
            'activity_code',
            'status',
            'visibility',
            'payload',
            'reviewer_id',
            'review_note',
            'approval_org_timezone',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class ReviewSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=ACTIONS)
    review_note = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=2000)
    point_adjustment = serializers.IntegerField(required=False, allow_null=True)

    def validate(self, attrs):
        if attrs.get("point_adjustment") and attrs["action"] != "approve":
            raise serializers.ValidationError({"point_adjustment": "Only allowed when approving"})
        return attrs


class BulkReviewSerializer(serializers.Serializer):
    submission_ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        allow_empty=False,
        max_length=100,
    )
    action = serializers.ChoiceField(choices=ACTIONS)
    review_note = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=2000)


class RevokeSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=2000)
