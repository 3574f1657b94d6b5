from __future__ import annotations

from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from modules.core.identity import resolve_role


class MarketplaceTokenObtainPairSerializer(TokenObtainPairSerializer):
    """Adds the ``role`` claim to issued access tokens."""

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        role = resolve_role(user)
        if role is not None:
            token["role"] = role
        return token
