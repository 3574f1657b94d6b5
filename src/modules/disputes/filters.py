import django_filters

from modules.disputes.constants import DisputeState, DisputeType
from modules.disputes.models import Dispute


class DisputeFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=DisputeState.choices)
    dispute_type = django_filters.ChoiceFilter(choices=DisputeType.choices)
    order = django_filters.UUIDFilter(field_name="order_id")

    class Meta:
        model = Dispute
        fields = ["status", "dispute_type", "order"]
