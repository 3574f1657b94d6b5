import django_filters

from modules.orders.constants import DisputeStatus, OrderStatus, PaymentStatus
from modules.orders.models import Order


class OrderFilter(django_filters.FilterSet):
    order_status = django_filters.ChoiceFilter(choices=OrderStatus.choices)
    payment_status = django_filters.ChoiceFilter(choices=PaymentStatus.choices)
    dispute_status = django_filters.ChoiceFilter(choices=DisputeStatus.choices)
    start_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__gte")
    end_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")
    min_total = django_filters.NumberFilter(
        field_name="total_amount", lookup_expr="gte"
    )
    max_total = django_filters.NumberFilter(
        field_name="total_amount", lookup_expr="lte"
    )

    class Meta:
        model = Order
        fields = ["order_status", "payment_status", "dispute_status"]
