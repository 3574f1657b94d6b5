"""Dispute DRF serializers for API input/output."""

from __future__ import annotations

from rest_framework import serializers

from modules.disputes.constants import (
    REASON_MAX_LENGTH,
    TEXT_MAX_LENGTH,
    DisputeType,
    Resolution,
    Ruling,
)
from modules.disputes.models import Dispute

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class OpenDisputeSerializer(serializers.Serializer):
    order_id = serializers.UUIDField()
    dispute_type = serializers.ChoiceField(choices=DisputeType.choices)
    reason = serializers.CharField(max_length=REASON_MAX_LENGTH)
    proof_images = serializers.ListField(
        child=serializers.URLField(), required=False, default=list
    )
    proof_description = serializers.CharField(
        max_length=TEXT_MAX_LENGTH, required=False, default="", allow_blank=True
    )
    seller_id = serializers.CharField(max_length=64, required=False, allow_null=True)


class RespondDisputeSerializer(serializers.Serializer):
    evidence = serializers.ListField(child=serializers.URLField(), allow_empty=False)
    proposal = serializers.CharField(max_length=TEXT_MAX_LENGTH)


class ResolveDisputeSerializer(serializers.Serializer):
    action = serializers.ChoiceField(
        choices=Resolution.choices,
        error_messages={"invalid_choice": "Invalid action. Use 'accept' or 'reject'."},
    )


class RuleDisputeSerializer(serializers.Serializer):
    decision = serializers.ChoiceField(
        choices=Ruling.choices,
        error_messages={"invalid_choice": "Decision must be 'buyer_win' or 'seller_win'."},
    )
    notes = serializers.CharField(
        max_length=TEXT_MAX_LENGTH, required=False, default="", allow_blank=True
    )


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class DisputeSerializer(serializers.ModelSerializer):
    order_number = serializers.CharField(source="order.order_number", read_only=True)

    class Meta:
        model = Dispute
        fields = [
            "id",
            "order_id",
            "order_number",
            "buyer_id",
            "buyer_role",
            "seller_id",
            "seller_role",
            "dispute_type",
            "reason",
            "buyer_proof_images",
            "buyer_proof_description",
            "seller_evidence",
            "seller_proposal",
            "seller_responded_at",
            "status",
            "buyer_accepted",
            "escalation_reason",
            "escalated_at",
            "ruling_decision",
            "ruling_notes",
            "ruled_at",
            "ruling_admin_id",
            "resolved_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
