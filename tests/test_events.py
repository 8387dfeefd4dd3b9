import json
from datetime import datetime, timedelta, timezone

import pytest

from payhost.events import (
    EventObject,
    parse_paypal_event,
    parse_square_event,
    parse_stripe_event,
)

STRIPE = {
    "id": "evt_1",
    "created": 1600000000,
    "data": {
        "object": {
            "id": "cs_test_abc",
            "amount_subtotal": 1500,
            "amount_total": 1800,
            "currency": "usd",
            "customer": "cus_1",
            "customer_details": {"email": "buyer@example.com"},
            "subscription": "sub_1",
            "metadata": {"user_id": "7", "plan": "pro", "product_id": "42"},
            "mode": "subscription",
            "payment_status": "paid",
            "total_details": {"amount_discount": 0, "amount_tax": 300},
            "payment_intent": "pi_1",
            "billing_details": {
                "name": "Test Buyer",
                "address": {"city": "Springfield", "postal_code": "00000"},
            },
        }
    },
}


def test_stripe_event_fields():
    event = parse_stripe_event(json.dumps(STRIPE))
    obj = event.data_object
    assert event.id == "evt_1"
    assert event.created.timestamp() == 1600000000
    assert event.created.tzinfo is not None
    assert obj.id == "cs_test_abc"
    assert obj.amount_subtotal == 1500.0
    assert obj.amount_total == 1800.0
    assert obj.customer_details.email == "buyer@example.com"
    assert obj.metadata.product_id == "42"
    assert obj.metadata.user_name == ""
    assert obj.total_details.amount_tax == 300.0
    assert obj.billing_details.name == "Test Buyer"
    assert obj.billing_details.address.city == "Springfield"
    assert obj.billing_details.address.line1 == ""


def test_stripe_bytes_input():
    event = parse_stripe_event(json.dumps(STRIPE).encode())
    assert event.data_object.mode == "subscription"


def test_stripe_missing_fields_are_zero():
    event = parse_stripe_event("{}")
    assert event.created is None
    assert event.data_object == EventObject()


def test_stripe_invalid_created_is_epoch():
    event = parse_stripe_event('{"created": "not a number"}')
    assert event.created == datetime(1970, 1, 1, tzinfo=timezone.utc)


def test_stripe_rejects_bad_json_and_types():
    with pytest.raises(ValueError):
        parse_stripe_event("not json")
    with pytest.raises(ValueError):
        parse_stripe_event("[]")
    with pytest.raises(ValueError):
        parse_stripe_event('{"id": 5}')


SQUARE = {
    "merchant_id": "M1",
    "type": "subscription.updated",
    "event_id": "E1",
    "created_at": "2020-01-02T03:04:05Z",
    "data": {
        "type": "subscription",
        "id": "D1",
        "object": {
            "subscription": {
                "id": "S1",
                "customer_id": "C1",
                "plan_id": "P1",
                "status": "CANCELED",
                "version": 3,
            }
        },
    },
}


def test_square_event_fields():
    event = parse_square_event(json.dumps(SQUARE))
    assert event.merchant_id == "M1"
    assert event.created_at == datetime(2020, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    assert event.data_type == "subscription"
    assert event.subscription.id == "S1"
    assert event.subscription.status == "CANCELED"
    assert event.subscription.version == 3
    assert event.subscription.location_id == ""


def test_square_bad_time_raises():
    with pytest.raises(ValueError):
        parse_square_event('{"created_at": "yesterday"}')


PAYPAL = {
    "id": "WH-1",
    "create_time": "2021-05-06T07:08:09.123+02:00",
    "event_type": "BILLING.SUBSCRIPTION.ACTIVATED",
    "resource_type": "subscription",
    "links": [{"href": "/v1/notifications/webhooks-events/WH-1", "rel": "self", "method": "GET"}],
    "resource": {
        "id": "I-1",
        "plan_id": "P-1",
        "status": "ACTIVE",
        "quantity": "1",
        "auto_renewal": True,
        "subscriber": {
            "email_address": "buyer@example.com",
            "name": {"given_name": "Test", "surname": "Buyer"},
        },
        "billing_info": {
            "failed_payments_count": 0,
            "last_payment": {"amount": {"currency_code": "USD", "value": "10.00"}},
        },
    },
}


def test_paypal_event_fields():
    event = parse_paypal_event(json.dumps(PAYPAL))
    assert event.id == "WH-1"
    assert event.create_time == datetime(
        2021, 5, 6, 7, 8, 9, 123000, tzinfo=timezone(timedelta(hours=2))
    )
    assert event.resource_id == "I-1"
    assert event.auto_renewal is True
    assert event.subscriber_email == "buyer@example.com"
    assert event.subscriber_surname == "Buyer"
    assert event.last_payment_value == "10.00"
    assert event.links[0]["rel"] == "self"
    assert event.links[0]["encType"] == ""
    assert event.next_billing_time is None


def test_paypal_wrong_type_raises():
    with pytest.raises(ValueError):
        parse_paypal_event('{"resource": {"auto_renewal": "yes"}}')