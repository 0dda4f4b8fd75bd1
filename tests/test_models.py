"""Tests for webhook model defaults and helpers."""

import json
from datetime import datetime, timezone

from hookline.models import DeliveryStatus, Webhook, WebhookDelivery, as_utc, load_json


def test_webhook_defaults():
    wh = Webhook(organization_id="org-1", name="Hook", url="https://example.com/hook")
    assert wh.is_active is True
    assert wh.failure_count == 0
    assert wh.event_list == []
    assert wh.header_map == {}
    assert wh.secret is None


def test_webhook_subscribes_to():
    wh = Webhook(url="https://x.com", events=json.dumps(["job.created", "invoice.paid"]))
    assert wh.subscribes_to("job.created")
    assert not wh.subscribes_to("job.updated")


def test_webhook_invalid_json_events():
    wh = Webhook(url="https://x.com", events="bad json")
    assert wh.event_list == []


def test_delivery_defaults():
    d = WebhookDelivery(webhook_id="wh1", organization_id="org-1", event_type="job.created")
    assert d.status == DeliveryStatus.PENDING.value
    assert d.attempt_count == 0
    assert d.next_retry_at is None
    assert d.delivered_at is None


def test_delivery_payload_data():
    d = WebhookDelivery(payload=json.dumps({"job_id": "j-1"}))
    assert d.payload_data == {"job_id": "j-1"}


def test_delivery_is_terminal():
    d = WebhookDelivery(status="failed", next_retry_at=None)
    assert d.is_terminal
    d.next_retry_at = datetime.now(timezone.utc)
    assert not d.is_terminal


def test_as_utc():
    naive = datetime(2026, 1, 1, 12, 0)
    assert as_utc(naive).tzinfo is timezone.utc
    assert as_utc(None) is None


def test_load_json():
    assert load_json('{"a": 1}', {}) == {"a": 1}
    assert load_json(None, []) == []
    assert load_json("{broken", {}) == {}
