"""Notification inbox endpoints for the authenticated user."""

from __future__ import annotations

from django.core.exceptions import ValidationError
from django.db.models import QuerySet
from django.utils import timezone
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.core.exceptions import NotFoundError
from modules.core.identity import actor_from_request
from modules.core.pagination import StandardResultsSetPagination
from modules.notifications.models import Notification
from modules.notifications.serializers import NotificationSerializer


class NotificationViewSet(GenericViewSet):
    queryset = Notification.objects.all()

    def _inbox(self) -> QuerySet[Notification]:
        actor = actor_from_request(self.request)
        return Notification.objects.filter(user_id=actor.user_id, user_role=actor.role)

    def get_queryset(self) -> QuerySet[Notification]:
        queryset = self._inbox()
        is_read = self.request.query_params.get("is_read")
        if is_read in ("true", "false"):
            queryset = queryset.filter(is_read=is_read == "true")
        return queryset

    def list(self, request: Request) -> Response:
        """GET /api/v1/notifications/?is_read=false"""
        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(self.get_queryset(), request)
        response = paginator.get_paginated_response(
            NotificationSerializer(page, many=True).data
        )
        response.data["unread_count"] = self._inbox().filter(is_read=False).count()
        return response

    @action(detail=True, methods=["post"])
    def read(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/notifications/{pk}/read/"""
        try:
            notification = self._inbox().filter(pk=pk).first()
        except (ValueError, ValidationError):
            notification = None
        if notification is None:
            raise NotFoundError("Notification not found.")
        notification.mark_as_read()
        return Response(NotificationSerializer(notification).data)

    @action(detail=False, methods=["post"], url_path="read-all")
    def read_all(self, request: Request) -> Response:
        """POST /api/v1/notifications/read-all/"""
        now = timezone.now()
        updated = self._inbox().filter(is_read=False).update(
            is_read=True, read_at=now, updated_at=now
        )
        return Response({"updated": updated})
