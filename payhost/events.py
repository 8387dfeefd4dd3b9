"""Webhook event payloads from the Stripe, Square and PayPal gateways."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from payhost import log

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_RFC3339 = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})[Tt](\d{2}):(\d{2}):(\d{2})(\.\d+)?([Zz]|[+-]\d{2}:\d{2})"
)


# Field readers with JSON decoding rules: missing or null gives the zero value.


def _load(raw: str | bytes) -> dict[str, Any]:
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("event: expected a JSON object")
    return data


def _obj(d: dict[str, Any], key: str) -> dict[str, Any]:
    value = d.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"event: field {key} is not an object")
    return value


def _str(d: dict[str, Any], key: str) -> str:
    value = d.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"event: field {key} is not a string")
    return value


def _float(d: dict[str, Any], key: str) -> float:
    value = d.get(key)
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"event: field {key} is not a number")
    return float(value)


def _int(d: dict[str, Any], key: str) -> int:
    value = d.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"event: field {key} is not an integer")
    return value


def _bool(d: dict[str, Any], key: str) -> bool:
    value = d.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValueError(f"event: field {key} is not a boolean")
    return value


def _time(d: dict[str, Any], key: str) -> datetime | None:
    value = d.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"event: field {key} is not a time string")
    match = _RFC3339.fullmatch(value)
    if match is None:
        raise ValueError(f"event: field {key} is not an RFC 3339 time: {value!r}")
    year, month, day, hour, minute, second = (int(g) for g in match.groups()[:6])
    fraction, zone = match.group(7), match.group(8)
    micro = int((fraction[1:] + "000000")[:6]) if fraction else 0
    if zone in ("Z", "z"):
        tz = timezone.utc
    else:
        sign = -1 if zone[0] == "-" else 1
        tz = timezone(sign * timedelta(hours=int(zone[1:3]), minutes=int(zone[4:6])))
    return datetime(year, month, day, hour, minute, second, micro, tzinfo=tz)


def _unix_time(d: dict[str, Any], key: str) -> datetime | None:
    if key not in d:
        return None
    value = d[key]
    if isinstance(value, int) and not isinstance(value, bool) and _INT64_MIN <= value <= _INT64_MAX:
        try:
            return datetime.fromtimestamp(value, timezone.utc)
        except (OverflowError, OSError, ValueError) as exc:
            log.error({"Webhook UnmarshallJSON": exc})
            return _EPOCH
    log.error({"Webhook UnmarshallJSON": f"invalid unix time {value!r}"})
    return _EPOCH


# Stripe


@dataclass
class Address:
    city: str = ""
    country: str = ""
    line1: str = ""
    line2: str = ""
    postal_code: str = ""
    state: str = ""


@dataclass
class BillingDetails:
    address: Address = field(default_factory=Address)
    email: str = ""
    name: str = ""


@dataclass
class CustomerDetails:
    email: str = ""


@dataclass
class MetaData:
    user_id: str = ""
    user_name: str = ""
    plan: str = ""
    product_id: str = ""


@dataclass
class TotalDetails:
    amount_discount: float = 0.0
    amount_tax: float = 0.0


@dataclass
class EventObject:
    """The object a Stripe event is about, e.g. a checkout session."""

    id: str = ""
    amount_subtotal: float = 0.0
    amount_total: float = 0.0
    currency: str = ""
    customer: str = ""
    customer_details: CustomerDetails = field(default_factory=CustomerDetails)
    customer_email: str = ""
    subscription: str = ""
    metadata: MetaData = field(default_factory=MetaData)
    mode: str = ""
    payment_status: str = ""
    total_details: TotalDetails = field(default_factory=TotalDetails)
    payment_intent: str = ""
    billing_details: BillingDetails = field(default_factory=BillingDetails)


@dataclass
class StripeEvent:
    """A Stripe webhook event."""

    id: str = ""
    data_object: EventObject = field(default_factory=EventObject)
    created: datetime | None = None
    subscription: str = ""


def _event_object(d: dict[str, Any]) -> EventObject:
    customer = _obj(d, "customer_details")
    meta = _obj(d, "metadata")
    totals = _obj(d, "total_details")
    billing = _obj(d, "billing_details")
    address = _obj(billing, "address")
    return EventObject(
        id=_str(d, "id"),
        amount_subtotal=_float(d, "amount_subtotal"),
        amount_total=_float(d, "amount_total"),
        currency=_str(d, "currency"),
        customer=_str(d, "customer"),
        customer_details=CustomerDetails(email=_str(customer, "email")),
        customer_email=_str(d, "customer_email"),
        subscription=_str(d, "subscription"),
        metadata=MetaData(
            user_id=_str(meta, "user_id"),
            user_name=_str(meta, "user_name"),
            plan=_str(meta, "plan"),
            product_id=_str(meta, "product_id"),
        ),
        mode=_str(d, "mode"),
        payment_status=_str(d, "payment_status"),
        total_details=TotalDetails(
            amount_discount=_float(totals, "amount_discount"),
            amount_tax=_float(totals, "amount_tax"),
        ),
        payment_intent=_str(d, "payment_intent"),
        billing_details=BillingDetails(
            address=Address(
                city=_str(address, "city"),
                country=_str(address, "country"),
                line1=_str(address, "line1"),
                line2=_str(address, "line2"),
                postal_code=_str(address, "postal_code"),
                state=_str(address, "state"),
            ),
            email=_str(billing, "email"),
            name=_str(billing, "name"),
        ),
    )


def parse_stripe_event(raw: str | bytes) -> StripeEvent:
    """Parse a Stripe webhook body.

    An unreadable created time is logged and taken as the Unix epoch.
    """
    d = _load(raw)
    return StripeEvent(
        id=_str(d, "id"),
        data_object=_event_object(_obj(_obj(d, "data"), "object")),
        created=_unix_time(d, "created"),
        subscription=_str(d, "subscription"),
    )


# Square


@dataclass
class SquareSubscription:
    id: str = ""
    created_date: str = ""
    customer_id: str = ""
    location_id: str = ""
    plan_id: str = ""
    start_date: str = ""
    status: str = ""
    tax_percentage: str = ""
    timezone: str = ""
    version: int = 0


@dataclass
class SquareSubscriptionEvent:
    """A Square subscription webhook event."""

    merchant_id: str = ""
    type: str = ""
    event_id: str = ""
    created_at: datetime | None = None
    data_type: str = ""
    data_id: str = ""
    subscription: SquareSubscription = field(default_factory=SquareSubscription)


def parse_square_event(raw: str | bytes) -> SquareSubscriptionEvent:
    """Parse a Square subscription webhook body."""
    d = _load(raw)
    data = _obj(d, "data")
    sub = _obj(_obj(data, "object"), "subscription")
    return SquareSubscriptionEvent(
        merchant_id=_str(d, "merchant_id"),
        type=_str(d, "type"),
        event_id=_str(d, "event_id"),
        created_at=_time(d, "created_at"),
        data_type=_str(data, "type"),
        data_id=_str(data, "id"),
        subscription=SquareSubscription(
            id=_str(sub, "id"),
            created_date=_str(sub, "created_date"),
            customer_id=_str(sub, "customer_id"),
            location_id=_str(sub, "location_id"),
            plan_id=_str(sub, "plan_id"),
            start_date=_str(sub, "start_date"),
            status=_str(sub, "status"),
            tax_percentage=_str(sub, "tax_percentage"),
            timezone=_str(sub, "timezone"),
            version=_int(sub, "version"),
        ),
    )


# PayPal


@dataclass
class PaypalSubscriptionEvent:
    """A PayPal subscription webhook event, with the resource's main fields."""

    id: str = ""
    create_time: datetime | None = None
    resource_type: str = ""
    event_type: str = ""
    summary: str = ""
    event_version: str = ""
    resource_version: str = ""
    links: list[dict[str, str]] = field(default_factory=list)
    resource_id: str = ""
    plan_id: str = ""
    status: str = ""
    quantity: str = ""
    auto_renewal: bool = False
    subscriber_email: str = ""
    subscriber_given_name: str = ""
    subscriber_surname: str = ""
    start_time: datetime | None = None
    status_update_time: datetime | None = None
    next_billing_time: datetime | None = None
    failed_payments_count: int = 0
    last_payment_currency: str = ""
    last_payment_value: str = ""
    resource: dict[str, Any] = field(default_factory=dict)


def _links(d: dict[str, Any], key: str, names: tuple[str, ...]) -> list[dict[str, str]]:
    value = d.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"event: field {key} is not an array")
    result = []
    for entry in value:
        if entry is None:
            entry = {}
        if not isinstance(entry, dict):
            raise ValueError(f"event: entry of {key} is not an object")
        result.append({name: _str(entry, name) for name in names})
    return result


def parse_paypal_event(raw: str | bytes) -> PaypalSubscriptionEvent:
    """Parse a PayPal subscription webhook body."""
    d = _load(raw)
    resource = _obj(d, "resource")
    subscriber = _obj(resource, "subscriber")
    name = _obj(subscriber, "name")
    billing = _obj(resource, "billing_info")
    last_payment = _obj(billing, "last_payment")
    amount = _obj(last_payment, "amount")
    # Validate the remaining typed resource fields.
    _time(resource, "create_time")
    _time(resource, "update_time")
    _time(billing, "final_payment_time")
    _time(last_payment, "time")
    _links(resource, "links", ("href", "rel", "method"))
    return PaypalSubscriptionEvent(
        id=_str(d, "id"),
        create_time=_time(d, "create_time"),
        resource_type=_str(d, "resource_type"),
        event_type=_str(d, "event_type"),
        summary=_str(d, "summary"),
        event_version=_str(d, "event_version"),
        resource_version=_str(d, "resource_version"),
        links=_links(d, "links", ("href", "rel", "method", "encType")),
        resource_id=_str(resource, "id"),
        plan_id=_str(resource, "plan_id"),
        status=_str(resource, "status"),
        quantity=_str(resource, "quantity"),
        auto_renewal=_bool(resource, "auto_renewal"),
        subscriber_email=_str(subscriber, "email_address"),
        subscriber_given_name=_str(name, "given_name"),
        subscriber_surname=_str(name, "surname"),
        start_time=_time(resource, "start_time"),
        status_update_time=_time(resource, "status_update_time"),
        next_billing_time=_time(billing, "next_billing_time"),
        failed_payments_count=_int(billing, "failed_payments_count"),
        last_payment_currency=_str(amount, "currency_code"),
        last_payment_value=_str(amount, "value"),
        resource=resource,
    )