"""Tests for the delivery recorder."""

from datetime import datetime, timedelta, timezone

import pytest

from hookline.models import DeliveryStatus, as_utc
from hookline.services.delivery_executor import DeliveryExecutor
from hookline.services.delivery_recorder import (
    AttemptOutcome,
    DeliveryNotFoundError,
    DeliveryRecorder,
    truncate,
)
from hookline.services.retry_policy import RetryPolicy
from hookline.services.webhook_registry import WebhookRegistry

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


async def _webhook(db, **overrides):
    data = {"name": "Hook", "url": "https://example.com/hook", "events": ["job.created"]}
    data.update(overrides)
    return await WebhookRegistry(db).create("org-1", data)


def _failure(n, status_code=500):
    return AttemptOutcome(success=False, attempt_number=n, status_code=status_code, response_body="boom")


def test_truncate():
    assert truncate("x" * 20, 10) == "x" * 10
    assert truncate(None) is None


class TestRecorder:
    @pytest.mark.asyncio
    async def test_create_pending(self, db):
        wh = await _webhook(db)
        d = await DeliveryRecorder(db).create_pending(wh.id, "org-1", "job.created", {"job_id": "j-1"})
        assert d.status == DeliveryStatus.PENDING.value
        assert d.attempt_count == 0
        assert d.payload_data == {"job_id": "j-1"}
        assert d.next_retry_at is None

    @pytest.mark.asyncio
    async def test_success(self, db):
        wh = await _webhook(db)
        recorder = DeliveryRecorder(db)
        d = await recorder.create_pending(wh.id, "org-1", "job.created", {})
        d = await recorder.record_attempt_result(
            d.id, AttemptOutcome(success=True, attempt_number=1, status_code=200, response_body="ok"), now=NOW
        )
        assert d.status == DeliveryStatus.SUCCESS.value
        assert as_utc(d.delivered_at) == NOW
        assert d.next_retry_at is None
        assert d.status_code == 200
        assert d.attempt_count == 1

    @pytest.mark.asyncio
    async def test_first_failure_schedules_retry(self, db):
        wh = await _webhook(db)
        recorder = DeliveryRecorder(db)
        d = await recorder.create_pending(wh.id, "org-1", "job.created", {})
        d = await recorder.record_attempt_result(d.id, _failure(1), now=NOW)
        assert d.status == DeliveryStatus.FAILED.value
        assert d.attempt_count == 1
        assert as_utc(d.next_retry_at) == NOW + timedelta(seconds=60)
        assert d.delivered_at is None

    @pytest.mark.asyncio
    async def test_fifth_failure_is_terminal(self, db):
        wh = await _webhook(db)
        recorder = DeliveryRecorder(db)
        d = await recorder.create_pending(wh.id, "org-1", "job.created", {})
        expected = [60, 300, 900, 3600]
        for n in range(1, 5):
            d = await recorder.record_attempt_result(d.id, _failure(n), now=NOW)
            assert as_utc(d.next_retry_at) == NOW + timedelta(seconds=expected[n - 1])
        d = await recorder.record_attempt_result(d.id, _failure(5), now=NOW)
        assert d.status == DeliveryStatus.FAILED.value
        assert d.next_retry_at is None
        assert d.attempt_count == 5
        assert d.is_terminal

    @pytest.mark.asyncio
    async def test_network_error_has_no_status_code(self, db):
        wh = await _webhook(db)
        recorder = DeliveryRecorder(db)
        d = await recorder.create_pending(wh.id, "org-1", "job.created", {})
        d = await recorder.record_attempt_result(d.id, _failure(1, status_code=500), now=NOW)
        d = await recorder.record_attempt_result(
            d.id, AttemptOutcome(success=False, attempt_number=2, error_message="ConnectError: refused"), now=NOW
        )
        assert d.status_code is None
        assert d.response_body is None
        assert d.error_message == "ConnectError: refused"

    @pytest.mark.asyncio
    async def test_response_body_truncated(self, db):
        wh = await _webhook(db)
        recorder = DeliveryRecorder(db, body_limit=100)
        d = await recorder.create_pending(wh.id, "org-1", "job.created", {})
        d = await recorder.record_attempt_result(
            d.id, AttemptOutcome(success=True, attempt_number=1, status_code=200, response_body="y" * 500)
        )
        assert len(d.response_body) == 100

    @pytest.mark.asyncio
    async def test_default_body_limit(self, db):
        wh = await _webhook(db)
        recorder = DeliveryRecorder(db)
        d = await recorder.create_pending(wh.id, "org-1", "job.created", {})
        d = await recorder.record_attempt_result(
            d.id, AttemptOutcome(success=False, attempt_number=1, status_code=502, response_body="z" * 20_000)
        )
        assert len(d.response_body) == 10_000

    @pytest.mark.asyncio
    async def test_attempt_count_never_decreases(self, db):
        wh = await _webhook(db)
        recorder = DeliveryRecorder(db)
        d = await recorder.create_pending(wh.id, "org-1", "job.created", {})
        await recorder.record_attempt_result(d.id, _failure(2))
        with pytest.raises(ValueError):
            await recorder.record_attempt_result(d.id, _failure(1))

    @pytest.mark.asyncio
    async def test_missing_delivery(self, db):
        with pytest.raises(DeliveryNotFoundError):
            await DeliveryRecorder(db).record_attempt_result("nonexistent", _failure(1))
        assert await DeliveryRecorder(db).get("nonexistent") is None

    @pytest.mark.asyncio
    async def test_recorder_and_executor_share_not_found_error(self, db):
        for call in (
            DeliveryRecorder(db).record_attempt_result("nonexistent", _failure(1)),
            DeliveryExecutor(db).retry_delivery("nonexistent"),
        ):
            with pytest.raises(DeliveryNotFoundError):
                await call

    @pytest.mark.asyncio
    async def test_custom_policy(self, db):
        wh = await _webhook(db)
        recorder = DeliveryRecorder(db, policy=RetryPolicy(max_attempts=1))
        d = await recorder.create_pending(wh.id, "org-1", "job.created", {})
        d = await recorder.record_attempt_result(d.id, _failure(1))
        assert d.is_terminal

    @pytest.mark.asyncio
    async def test_list_for_webhook_newest_first(self, db):
        wh = await _webhook(db)
        other = await _webhook(db, name="Other")
        recorder = DeliveryRecorder(db)
        ids = [(await recorder.create_pending(wh.id, "org-1", "job.created", {"n": n})).id for n in range(3)]
        await recorder.create_pending(other.id, "org-1", "job.created", {})

        history = await recorder.list_for_webhook(wh.id)
        assert [d.id for d in history] == list(reversed(ids))
        assert len(await recorder.list_for_webhook(wh.id, limit=2)) == 2

    @pytest.mark.asyncio
    async def test_list_due_retries(self, db):
        wh = await _webhook(db)
        inactive = await _webhook(db, name="Inactive")
        recorder = DeliveryRecorder(db)

        due = await recorder.create_pending(wh.id, "org-1", "job.created", {})
        await recorder.record_attempt_result(due.id, _failure(1), now=NOW - timedelta(minutes=5))

        not_yet = await recorder.create_pending(wh.id, "org-1", "job.created", {})
        await recorder.record_attempt_result(not_yet.id, _failure(1), now=NOW)

        terminal = await recorder.create_pending(wh.id, "org-1", "job.created", {})
        await recorder.record_attempt_result(terminal.id, _failure(5), now=NOW - timedelta(days=1))

        delivered = await recorder.create_pending(wh.id, "org-1", "job.created", {})
        await recorder.record_attempt_result(
            delivered.id, AttemptOutcome(success=True, attempt_number=1, status_code=200), now=NOW
        )

        paused = await recorder.create_pending(inactive.id, "org-1", "job.created", {})
        await recorder.record_attempt_result(paused.id, _failure(1), now=NOW - timedelta(minutes=5))
        await WebhookRegistry(db).update(inactive.id, {"is_active": False})

        result = await recorder.list_due_retries(now=NOW)
        assert [d.id for d in result] == [due.id]
