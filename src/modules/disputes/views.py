"""Dispute API views."""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.core.identity import actor_from_request
from modules.core.pagination import StandardResultsSetPagination
from modules.disputes.dtos import (
    OpenDisputeDTO,
    ResolveDisputeDTO,
    RespondDisputeDTO,
    RuleDisputeDTO,
)
from modules.disputes.filters import DisputeFilter
from modules.disputes.models import Dispute
from modules.disputes.serializers import (
    DisputeSerializer,
    OpenDisputeSerializer,
    RespondDisputeSerializer,
    ResolveDisputeSerializer,
    RuleDisputeSerializer,
)
from modules.disputes.services import build_dispute_service


class DisputeViewSet(GenericViewSet):
    """Buyer, seller and admin endpoints of the dispute protocol."""

    queryset = Dispute.objects.all()
    filterset_class = DisputeFilter
    ordering_fields = ["created_at", "status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_dispute_service()

    def get_throttles(self) -> list[BaseThrottle]:
        self.throttle_scope = "dispute_creation" if self.action == "create" else None
        return super().get_throttles()

    def get_queryset(self):
        return self._service.list_disputes(actor_from_request(self.request))

    def create(self, request: Request) -> Response:
        """POST /api/v1/disputes/"""
        serializer = OpenDisputeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        dto = OpenDisputeDTO(
            dispute_type=data["dispute_type"],
            reason=data["reason"],
            proof_images=data["proof_images"],
            proof_description=data["proof_description"],
            seller_id=data.get("seller_id"),
        )
        dispute = self._service.open_dispute(data["order_id"], dto, actor_from_request(request))
        return Response(DisputeSerializer(dispute).data, status=status.HTTP_201_CREATED)

    def list(self, request: Request) -> Response:
        """GET /api/v1/disputes/

        Buyers see the disputes they opened, sellers the ones raised
        against them, admins all of them.
        """
        queryset = self.filter_queryset(self.get_queryset())
        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, request)
        return paginator.get_paginated_response(DisputeSerializer(page, many=True).data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        dispute = self._service.get_dispute(pk, actor_from_request(request))
        return Response(DisputeSerializer(dispute).data)

    @action(detail=True, methods=["post"])
    def respond(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/disputes/{pk}/respond/ (seller)"""
        serializer = RespondDisputeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = RespondDisputeDTO(**serializer.validated_data)
        dispute = self._service.respond(pk, dto, actor_from_request(request))
        return Response(DisputeSerializer(dispute).data)

    @action(detail=True, methods=["post"])
    def resolve(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/disputes/{pk}/resolve/ (buyer: accept or reject)"""
        serializer = ResolveDisputeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = ResolveDisputeDTO(**serializer.validated_data)
        dispute = self._service.resolve(pk, dto, actor_from_request(request))
        return Response(DisputeSerializer(dispute).data)

    @action(detail=True, methods=["post"])
    def rule(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/disputes/{pk}/rule/ (admin)"""
        serializer = RuleDisputeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = RuleDisputeDTO(**serializer.validated_data)
        dispute = self._service.rule(pk, dto, actor_from_request(request))
        return Response(DisputeSerializer(dispute).data)
