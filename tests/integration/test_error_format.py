"""Integration tests for standardized error responses."""

from uuid import uuid4

import pytest
from pydantic import BaseModel, ValidationError, field_validator

from modules.core.exception_handler import api_exception_handler

pytestmark = pytest.mark.integration


def _assert_envelope(data, error_type):
    assert data["type"] == error_type
    assert isinstance(data["errors"], list)
    assert data["errors"]
    for error in data["errors"]:
        assert set(error) == {"code", "detail", "attr"}


class TestStandardizedErrors:
    def test_auth_error_has_standard_format(self, api_client):
        response = api_client.get("/api/v1/orders/")
        assert response.status_code == 401
        _assert_envelope(response.json(), "client_error")

    def test_malformed_json_has_standard_format(self, client_for, buyer_user):
        response = client_for(buyer_user).post(
            "/api/v1/orders/", data="{", content_type="application/json"
        )
        assert response.status_code == 400
        _assert_envelope(response.json(), "client_error")
        assert response.json()["errors"][0]["code"] == "parse_error"

    def test_field_errors_carry_attr(self, client_for, buyer_user):
        response = client_for(buyer_user).post(
            "/api/v1/disputes/", {"reason": "late"}, format="json"
        )
        assert response.status_code == 400
        data = response.json()
        _assert_envelope(data, "validation_error")
        attrs = {error["attr"] for error in data["errors"]}
        assert {"order_id", "dispute_type"} <= attrs

    def test_domain_not_found_has_standard_format(self, client_for, buyer_user):
        response = client_for(buyer_user).post(f"/api/v1/orders/{uuid4()}/cancel/")
        assert response.status_code == 404
        data = response.json()
        _assert_envelope(data, "client_error")
        assert data["errors"][0]["attr"] is None

    def test_domain_conflict_has_standard_format(self, client_for, flow, buyer, buyer_user, rice):
        order = flow.place(buyer, (rice, 1))
        response = client_for(buyer_user).post(f"/api/v1/orders/{order.id}/confirm-receipt/")
        assert response.status_code == 409
        _assert_envelope(response.json(), "client_error")

    def test_pydantic_errors_are_validation_errors(self):
        class Payload(BaseModel):
            reason: str

            @field_validator("reason")
            @classmethod
            def not_blank(cls, v):
                if not v.strip():
                    raise ValueError("Reason is required.")
                return v

        with pytest.raises(ValidationError) as excinfo:
            Payload(reason=" ")

        response = api_exception_handler(excinfo.value, {})
        assert response.status_code == 400
        assert response.data == {
            "type": "validation_error",
            "errors": [{"code": "invalid", "detail": "Reason is required.", "attr": "reason"}],
        }
