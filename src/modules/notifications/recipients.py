"""Contact lookup for notification recipients.

Marketplace user ids are Django user primary keys; the order core keeps
them as opaque strings.
"""

from __future__ import annotations

from typing import List, Optional

from django.contrib.auth import get_user_model


def email_for(user_id: str) -> Optional[str]:
    User = get_user_model()
    try:
        user = User.objects.filter(pk=user_id, is_active=True).only("email").first()
    except (ValueError, TypeError):
        return None
    if user is None or not user.email:
        return None
    return user.email


def admin_user_ids() -> List[str]:
    User = get_user_model()
    return [
        str(pk)
        for pk in User.objects.filter(is_staff=True, is_active=True)
        .order_by("pk")
        .values_list("pk", flat=True)
    ]
