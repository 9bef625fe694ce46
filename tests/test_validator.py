# tests/test_validator.py

"""
Tests for barrier validation: single entry, entry-before-exit and barrier checks.
"""

from datetime import timedelta
from unittest.mock import patch

import pytest
from django.db import IntegrityError, OperationalError

from guest_access.exceptions import StorageUnavailable
from guest_access.models import (
    BarrierAccessLog,
    BarrierAction,
    DenialReason,
    GuestAccess,
    GuestAccessStatus,
)
from guest_access.notifications import EventKind
from guest_access.services import cancel_guest_access, validate_at_barrier


def test_entry_grants_and_activates(validator, issue, barrier, t0):
    credential = issue(30, vehicle_number="ABC-123")
    result = validator.validate(credential.access_code, BarrierAction.ENTRY, barrier=barrier,
                                now=t0 + timedelta(minutes=5))

    assert result.granted
    assert result.reason is None
    credential.refresh_from_db()
    assert credential.status == GuestAccessStatus.ACTIVE
    assert credential.entered_at == t0 + timedelta(minutes=5)

    log = BarrierAccessLog.objects.get()
    assert log.guest_access_id == credential.pk
    assert log.user_id is None
    assert log.barrier_id == barrier.pk
    assert log.action == BarrierAction.ENTRY
    assert log.vehicle_number == "ABC-123"


def test_entry_accepts_qr_payload(validator, issue, barrier, t0):
    credential = issue(30)
    result = validator.validate(credential.qr_payload, BarrierAction.ENTRY, barrier=barrier, now=t0)
    assert result.granted


def test_second_entry_is_already_used(validator, issue, barrier, barrier_b, t0):
    credential = issue(30)
    first = validator.validate(credential.access_code, "entry", barrier=barrier, now=t0 + timedelta(minutes=5))
    second = validator.validate(credential.access_code, "entry", barrier=barrier_b, now=t0 + timedelta(minutes=6))

    assert first.granted
    assert not second.granted
    assert second.reason == DenialReason.CODE_ALREADY_USED
    assert BarrierAccessLog.objects.filter(action=BarrierAction.ENTRY).count() == 1


def test_stale_read_loses_entry_race(validator, issue, barrier, barrier_b, t0):
    credential = issue(30)
    # Foto leída por la segunda barrera antes de que la primera escriba
    stale = GuestAccess.objects.get(pk=credential.pk)

    first = validator.validate(credential.access_code, "entry", barrier=barrier, now=t0 + timedelta(minutes=5))
    with patch("guest_access.store.find_live_by_code", return_value=stale):
        second = validator.validate(credential.access_code, "entry", barrier=barrier_b,
                                    now=t0 + timedelta(minutes=5))

    assert first.granted
    assert not second.granted
    assert second.reason == DenialReason.CODE_ALREADY_USED
    assert BarrierAccessLog.objects.count() == 1
    credential.refresh_from_db()
    assert credential.entered_at == t0 + timedelta(minutes=5)


def test_many_entries_grant_exactly_once(validator, issue, barrier, t0):
    credential = issue(30)
    results = [
        validator.validate(credential.access_code, "entry", barrier=barrier, now=t0 + timedelta(minutes=1))
        for _ in range(5)
    ]

    assert sum(r.granted for r in results) == 1
    assert all(r.reason == DenialReason.CODE_ALREADY_USED for r in results if not r.granted)
    assert BarrierAccessLog.objects.count() == 1


def test_unknown_code_is_invalid(validator, barrier, t0, db):
    result = validator.validate("000000", "entry", barrier=barrier, now=t0)
    assert not result.granted
    assert result.reason == DenialReason.CODE_INVALID


def test_exit_before_entry_is_denied(validator, issue, barrier, t0):
    credential = issue(30)
    result = validator.validate(credential.access_code, "exit", barrier=barrier, now=t0 + timedelta(minutes=1))

    assert not result.granted
    assert result.reason == DenialReason.CODE_INVALID
    credential.refresh_from_db()
    assert credential.status == GuestAccessStatus.PENDING
    assert BarrierAccessLog.objects.count() == 0


def test_exit_completes_active_credential(validator, issue, barrier, barrier_b, t0):
    credential = issue(30)
    validator.validate(credential.access_code, "entry", barrier=barrier, now=t0 + timedelta(minutes=5))
    result = validator.validate(credential.access_code, "exit", barrier=barrier_b, now=t0 + timedelta(minutes=50))

    assert result.granted
    credential.refresh_from_db()
    assert credential.status == GuestAccessStatus.COMPLETED
    assert credential.exited_at == t0 + timedelta(minutes=50)
    assert list(credential.access_logs.order_by("created_at").values_list("action", flat=True)) == ["entry", "exit"]


def test_second_exit_is_denied(validator, issue, barrier, t0):
    credential = issue(30)
    validator.validate(credential.access_code, "entry", barrier=barrier, now=t0 + timedelta(minutes=5))
    validator.validate(credential.access_code, "exit", barrier=barrier, now=t0 + timedelta(minutes=10))
    again = validator.validate(credential.access_code, "exit", barrier=barrier, now=t0 + timedelta(minutes=11))

    assert not again.granted
    assert again.reason == DenialReason.CODE_INVALID


def test_stale_read_loses_exit_race(validator, issue, barrier, barrier_b, t0):
    credential = issue(30)
    validator.validate(credential.access_code, "entry", barrier=barrier, now=t0 + timedelta(minutes=5))
    stale = GuestAccess.objects.get(pk=credential.pk)

    first = validator.validate(credential.access_code, "exit", barrier=barrier, now=t0 + timedelta(minutes=20))
    with patch("guest_access.store.find_live_by_code", return_value=stale):
        second = validator.validate(credential.access_code, "exit", barrier=barrier_b,
                                    now=t0 + timedelta(minutes=20))

    assert first.granted
    assert second.reason == DenialReason.CODE_ALREADY_USED
    assert BarrierAccessLog.objects.filter(action=BarrierAction.EXIT).count() == 1


def test_exit_is_allowed_past_expiry(validator, issue, barrier, t0):
    credential = issue(10)
    validator.validate(credential.access_code, "entry", barrier=barrier, now=t0 + timedelta(minutes=5))
    result = validator.validate(credential.access_code, "exit", barrier=barrier, now=t0 + timedelta(minutes=90))
    assert result.granted


def test_expired_pending_entry_is_invalid_without_writing(validator, issue, barrier, t0):
    credential = issue(10)
    result = validator.validate(credential.access_code, "entry", barrier=barrier, now=t0 + timedelta(minutes=10))

    assert result.reason == DenialReason.CODE_INVALID
    credential.refresh_from_db()
    # Marcar expired le corresponde al monitor
    assert credential.status == GuestAccessStatus.PENDING


def test_expired_active_entry_is_invalid(validator, issue, barrier, t0):
    credential = issue(10)
    validator.validate(credential.access_code, "entry", barrier=barrier, now=t0 + timedelta(minutes=5))

    within = validator.validate(credential.access_code, "entry", barrier=barrier, now=t0 + timedelta(minutes=6))
    past = validator.validate(credential.access_code, "entry", barrier=barrier, now=t0 + timedelta(minutes=15))

    assert within.reason == DenialReason.CODE_ALREADY_USED
    assert past.reason == DenialReason.CODE_INVALID
    credential.refresh_from_db()
    assert credential.status == GuestAccessStatus.ACTIVE


def test_inactive_barrier_denies_before_lookup(validator, issue, inactive_barrier, t0):
    credential = issue(30)
    with patch("guest_access.store.find_live_by_code") as lookup:
        result = validator.validate(credential.access_code, "entry", barrier=inactive_barrier, now=t0)

    assert result.reason == DenialReason.BARRIER_INACTIVE
    lookup.assert_not_called()
    credential.refresh_from_db()
    assert credential.status == GuestAccessStatus.PENDING


def test_code_from_other_residential_is_invalid(validator, issue, other_barrier, t0):
    credential = issue(30)
    result = validator.validate(credential.access_code, "entry", barrier=other_barrier, now=t0)

    assert result.reason == DenialReason.CODE_INVALID
    credential.refresh_from_db()
    assert credential.status == GuestAccessStatus.PENDING


def test_cancelled_code_is_invalid(validator, issue, barrier, owner_user, t0):
    credential = issue(30)
    cancel_guest_access(credential.pk, owner_user)
    result = validator.validate(credential.access_code, "entry", barrier=barrier, now=t0)
    assert result.reason == DenialReason.CODE_INVALID


def test_unknown_action_raises(validator, barrier, db):
    with pytest.raises(ValueError):
        validator.validate("123456", "sideways", barrier=barrier)


def test_entry_notifies_creator_once(validator, notifier, issue, owner_user, barrier, t0):
    credential = issue(30)
    validator.validate(credential.access_code, "entry", barrier=barrier, now=t0 + timedelta(minutes=5))

    notifier.send.assert_called_once()
    target, kind, payload = notifier.send.call_args.args
    assert target.pk == owner_user.pk
    assert kind == EventKind.GUEST_ENTERED
    assert payload["credential_id"] == str(credential.pk)
    credential.refresh_from_db()
    assert credential.owner_notified


def test_notifier_failure_does_not_change_grant(validator, notifier, issue, barrier, t0):
    notifier.send.side_effect = RuntimeError("gateway caído")
    credential = issue(30)
    result = validator.validate(credential.access_code, "entry", barrier=barrier, now=t0)

    assert result.granted
    credential.refresh_from_db()
    assert credential.status == GuestAccessStatus.ACTIVE


def test_ledger_failure_does_not_change_grant(validator, issue, barrier, t0):
    credential = issue(30)
    with patch("guest_access.ledger.record", side_effect=StorageUnavailable("bd caída")):
        result = validator.validate(credential.access_code, "entry", barrier=barrier, now=t0)

    assert result.granted
    assert BarrierAccessLog.objects.count() == 0


def test_ledger_integrity_error_does_not_change_grant(validator, driver, issue, barrier, t0):
    credential = issue(30)
    with patch.object(BarrierAccessLog.objects, "create", side_effect=IntegrityError("FOREIGN KEY constraint failed")):
        result = validate_at_barrier(credential.access_code, "entry", barrier=barrier,
                                     validator=validator, driver=driver, now=t0)

    assert result.granted
    driver.open.assert_called_once_with(barrier)
    credential.refresh_from_db()
    assert credential.status == GuestAccessStatus.ACTIVE
    assert BarrierAccessLog.objects.count() == 0


def test_store_failure_on_lookup_is_not_a_denial(validator, issue, barrier, t0):
    credential = issue(30)
    with patch.object(GuestAccess.objects, "select_related", side_effect=OperationalError("database is locked")):
        with pytest.raises(StorageUnavailable):
            validator.validate(credential.access_code, "entry", barrier=barrier, now=t0)

    credential.refresh_from_db()
    assert credential.status == GuestAccessStatus.PENDING


def test_validate_at_barrier_opens_device_only_on_grant(validator, driver, issue, barrier, t0):
    credential = issue(30)
    granted = validate_at_barrier(credential.access_code, "entry", barrier=barrier,
                                  validator=validator, driver=driver, now=t0)
    denied = validate_at_barrier(credential.access_code, "entry", barrier=barrier,
                                 validator=validator, driver=driver, now=t0)

    assert granted.granted and not denied.granted
    driver.open.assert_called_once_with(barrier)


def test_device_failure_keeps_grant(validator, driver, issue, barrier, t0):
    driver.open.side_effect = OSError("sin red")
    credential = issue(30)
    result = validate_at_barrier(credential.access_code, "entry", barrier=barrier,
                                 validator=validator, driver=driver, now=t0)
    assert result.granted


def test_validation_without_barrier_uses_residential(validator, issue, residential, other_residential, t0):
    credential = issue(30)
    elsewhere = validator.validate(credential.access_code, "entry", residential_id=other_residential.pk, now=t0)
    here = validator.validate(credential.access_code, "entry", residential_id=residential.pk, now=t0)

    assert elsewhere.reason == DenialReason.CODE_INVALID
    assert here.granted
    assert BarrierAccessLog.objects.get().barrier_id is None
