"""Admin endpoints for reading and tuning the marketplace timers."""

from __future__ import annotations

from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from modules.configuration.serializers import (
    SystemConfigSerializer,
    UpdateSystemConfigSerializer,
)
from modules.configuration.services import ConfigurationService
from modules.configuration.timing import get_timings
from modules.core.exceptions import AuthorizationError
from modules.core.identity import actor_from_request


class TimingConfigListView(APIView):
    """GET /api/v1/config/timings/"""

    def get(self, request: Request) -> Response:
        actor = actor_from_request(request)
        if not actor.is_admin:
            raise AuthorizationError("Only admins can view marketplace timers.")
        entries = ConfigurationService().list_entries()
        return Response(
            {
                "entries": SystemConfigSerializer(entries, many=True).data,
                "effective": get_timings().model_dump(),
            }
        )


class TimingConfigDetailView(APIView):
    """PUT /api/v1/config/timings/{key}/"""

    def put(self, request: Request, key: str) -> Response:
        serializer = UpdateSystemConfigSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        entry = ConfigurationService().update_value(
            key=key,
            value=serializer.validated_data["config_value"],
            actor=actor_from_request(request),
        )
        return Response(SystemConfigSerializer(entry).data)
