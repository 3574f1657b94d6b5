"""Marketplace timer store: overrides, admin API and effect on the lifecycle."""

from __future__ import annotations

from datetime import timedelta

import pytest

from modules.configuration.constants import ConfigKey
from modules.configuration.exceptions import ConfigChangeNotAllowed, UnknownConfigKey
from modules.configuration.models import SystemConfig
from modules.configuration.services import ConfigurationService
from modules.configuration.timing import TimingConfig, default_values, get_timings
from modules.orders.constants import ItemStatus, OrderStatus

pytestmark = pytest.mark.integration

URL = "/api/v1/config/timings/"


class TestGetTimings:
    def test_defaults(self):
        timings = get_timings()
        assert timings == TimingConfig(
            shipped_to_delivered_minutes=10,
            delivered_to_received_minutes=1440,
            dispute_response_minutes=10,
        )
        assert timings.delivered_to_received == timedelta(days=1)

    def test_settings_provide_defaults(self, settings):
        settings.MARKETPLACE_TIMINGS = {ConfigKey.DISPUTE_RESPONSE_MINUTES: 30}
        SystemConfig.objects.all().delete()

        assert default_values()[ConfigKey.DISPUTE_RESPONSE_MINUTES] == 30
        assert get_timings().dispute_response_minutes == 30

    def test_stored_value_overrides_default(self):
        SystemConfig.objects.update_or_create(
            config_key=ConfigKey.DELIVERED_TO_RECEIVED_MINUTES,
            defaults={"config_value": 60},
        )
        assert get_timings().delivered_to_received_minutes == 60

    def test_seed_is_idempotent_and_keeps_values(self):
        service = ConfigurationService()
        service.seed_defaults()
        SystemConfig.objects.filter(
            config_key=ConfigKey.SHIPPED_TO_DELIVERED_MINUTES
        ).update(config_value=3)

        assert service.seed_defaults() == 0
        assert get_timings().shipped_to_delivered_minutes == 3


class TestUpdateValue:
    def test_admin_updates(self, admin):
        entry = ConfigurationService().update_value(
            ConfigKey.DISPUTE_RESPONSE_MINUTES, 45, admin
        )
        assert entry.config_value == 45
        assert entry.updated_by == admin.user_id
        assert get_timings().dispute_response_minutes == 45

    def test_non_admin_is_refused(self, farmer):
        with pytest.raises(ConfigChangeNotAllowed):
            ConfigurationService().update_value(
                ConfigKey.DISPUTE_RESPONSE_MINUTES, 0, farmer
            )

    def test_unknown_key(self, admin):
        with pytest.raises(UnknownConfigKey):
            ConfigurationService().update_value("ORDER_TTL_MINUTES", 5, admin)

    def test_new_threshold_applies_to_next_delivery(
        self, flow, admin, buyer, farmer, rice
    ):
        ConfigurationService().update_value(
            ConfigKey.SHIPPED_TO_DELIVERED_MINUTES, 0, admin
        )
        order = flow.ship(flow.accept(flow.place(buyer, (rice, 1)), farmer), farmer)

        order = flow.move(order, farmer, ItemStatus.DELIVERED)
        assert order.order_status == OrderStatus.DELIVERED


class TestTimingsAPI:
    def test_admin_lists_entries(self, client_for, admin_user):
        response = client_for(admin_user).get(URL)

        assert response.status_code == 200
        keys = {row["config_key"] for row in response.data["entries"]}
        assert keys == set(ConfigKey.values)
        assert response.data["effective"] == {
            "shipped_to_delivered_minutes": 10,
            "delivered_to_received_minutes": 1440,
            "dispute_response_minutes": 10,
        }

    def test_admin_updates(self, client_for, admin_user):
        response = client_for(admin_user).put(
            f"{URL}{ConfigKey.DELIVERED_TO_RECEIVED_MINUTES}/",
            {"config_value": 120},
            format="json",
        )

        assert response.status_code == 200
        assert response.data["config_value"] == 120
        assert get_timings().delivered_to_received_minutes == 120

    def test_buyer_cannot_read(self, client_for, buyer_user):
        response = client_for(buyer_user).get(URL)
        assert response.status_code == 403
        assert response.data["type"] == "client_error"

    def test_seller_cannot_update(self, client_for, farmer_user):
        response = client_for(farmer_user).put(
            f"{URL}{ConfigKey.SHIPPED_TO_DELIVERED_MINUTES}/",
            {"config_value": 0},
            format="json",
        )
        assert response.status_code == 403
        assert get_timings().shipped_to_delivered_minutes == 10

    def test_unknown_key_is_not_found(self, client_for, admin_user):
        response = client_for(admin_user).put(
            f"{URL}NOT_A_TIMER/", {"config_value": 5}, format="json"
        )
        assert response.status_code == 404
        assert response.data["errors"][0]["code"] == "not_found"

    def test_negative_value_is_a_validation_error(self, client_for, admin_user):
        response = client_for(admin_user).put(
            f"{URL}{ConfigKey.SHIPPED_TO_DELIVERED_MINUTES}/",
            {"config_value": -1},
            format="json",
        )
        assert response.status_code == 400
        assert response.data["type"] == "validation_error"
        assert response.data["errors"][0]["attr"] == "config_value"
