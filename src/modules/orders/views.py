"""Order API views.

Exposes the ``OrderService`` via HTTP using DRF ViewSets.  Domain
exceptions propagate to ``api_exception_handler``, which renders them;
views never catch them.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.core.identity import actor_from_request
from modules.core.pagination import StandardResultsSetPagination
from modules.orders.dtos import (
    AcceptOrderDTO,
    CreateOrderDTO,
    CreateOrderItemDTO,
    RejectOrderDTO,
    UpdateItemStatusDTO,
)
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.serializers import (
    AcceptOrderSerializer,
    CancelOrderSerializer,
    CreateOrderSerializer,
    OrderHistorySerializer,
    OrderListSerializer,
    OrderSerializer,
    RejectOrderSerializer,
    UpdateItemStatusSerializer,
)
from modules.orders.services import build_order_service


class OrderViewSet(GenericViewSet):
    """ViewSet for Order operations.

    Does **not** extend ``ModelViewSet``: all ORM access goes through
    the service/repository layer.
    """

    queryset = Order.objects.all()
    filterset_class = OrderFilter
    search_fields = ["order_number", "items__product_name"]
    ordering_fields = ["created_at", "total_amount", "order_status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_order_service()

    def get_throttles(self) -> list[BaseThrottle]:
        self.throttle_scope = "order_creation" if self.action == "create" else None
        return super().get_throttles()

    def get_queryset(self):
        return self._service.list_orders(actor_from_request(self.request)).distinct()

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/"""
        serializer = CreateOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        dto = CreateOrderDTO(
            items=[
                CreateOrderItemDTO(product_id=item["product_id"], quantity=item["quantity"])
                for item in data["items"]
            ],
            payment_method=data["payment_method"],
            shipping_address=data["shipping_address"],
            notes=data["notes"],
        )
        order = self._service.create_order(dto, actor_from_request(request))
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/

        Only orders the caller placed or sells into; admins see all.
        """
        queryset = self.filter_queryset(self.get_queryset())

        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, request)
        serializer = OrderListSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        order = self._service.get_order(pk, actor_from_request(request))
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["get"])
    def history(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/history/"""
        entries = self._service.order_history(pk, actor_from_request(request))
        return Response(OrderHistorySerializer(entries, many=True).data)

    # ------------------------------------------------------------------
    # Seller actions
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def accept(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/accept/"""
        serializer = AcceptOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = AcceptOrderDTO(**serializer.validated_data)
        order = self._service.accept_order(pk, actor_from_request(request), dto)
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["post"])
    def reject(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/reject/"""
        serializer = RejectOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = RejectOrderDTO(reason=serializer.validated_data["reason"])
        order = self._service.reject_order(pk, actor_from_request(request), dto)
        return Response(OrderSerializer(order).data)

    @action(
        detail=True,
        methods=["post"],
        url_path=r"items/(?P<item_id>[^/.]+)/status",
        url_name="item-status",
    )
    def item_status(
        self, request: Request, pk: str | None = None, item_id: str | None = None
    ) -> Response:
        """POST /api/v1/orders/{pk}/items/{item_id}/status/"""
        serializer = UpdateItemStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = UpdateItemStatusDTO(**serializer.validated_data)
        order = self._service.update_item_status(
            order_id=pk,
            item_id=item_id,
            dto=dto,
            actor=actor_from_request(request),
        )
        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Customer actions
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/cancel/

        Cancels every open item and releases reserved stock.
        """
        serializer = CancelOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = self._service.cancel_order(
            pk,
            actor_from_request(request),
            reason=serializer.validated_data["reason"],
        )
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["post"], url_path="confirm-receipt")
    def confirm_receipt(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/confirm-receipt/"""
        order = self._service.confirm_receipt(pk, actor_from_request(request))
        return Response(OrderSerializer(order).data)
