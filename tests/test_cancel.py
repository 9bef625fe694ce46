# tests/test_cancel.py

"""
Tests for cancellation, status queries and active-guest listings.
"""

from datetime import timedelta

import pytest

from guest_access.exceptions import CredentialNotFound, NotAllowed
from guest_access.models import GuestAccessStatus
from guest_access.services import (
    cancel_guest_access,
    get_credential_status,
    list_active_guests,
)


def test_creator_cancels_pending(issue, owner_user):
    credential = issue(30)
    outcome = cancel_guest_access(credential.pk, owner_user)

    assert outcome.won
    assert outcome.credential.status == GuestAccessStatus.CANCELLED


def test_chairman_cancels_active(issue, validator, barrier, chairman_user, t0):
    credential = issue(30)
    validator.validate(credential.access_code, "entry", barrier=barrier, now=t0)

    outcome = cancel_guest_access(credential.pk, chairman_user)

    assert outcome.won
    assert outcome.credential.status == GuestAccessStatus.CANCELLED
    # entered_at se conserva
    assert outcome.credential.entered_at == t0


def test_other_owner_cannot_cancel(issue, other_owner_user):
    credential = issue(30)
    with pytest.raises(NotAllowed):
        cancel_guest_access(credential.pk, other_owner_user)


def test_guard_cannot_cancel(issue, guard_user):
    credential = issue(30)
    with pytest.raises(NotAllowed):
        cancel_guest_access(credential.pk, guard_user)


def test_cancel_terminal_is_noop(issue, owner_user, monitor, t0):
    credential = issue(10)
    monitor.sweep(now=t0 + timedelta(minutes=11))

    outcome = cancel_guest_access(credential.pk, owner_user)

    assert not outcome.won
    assert outcome.credential.status == GuestAccessStatus.EXPIRED


def test_cancel_twice_second_loses(issue, owner_user):
    credential = issue(30)
    assert cancel_guest_access(credential.pk, owner_user).won
    assert not cancel_guest_access(credential.pk, owner_user).won


def test_cancel_unknown_credential(owner_user):
    with pytest.raises(CredentialNotFound):
        cancel_guest_access("00000000-0000-0000-0000-000000000000", owner_user)
    with pytest.raises(CredentialNotFound):
        cancel_guest_access("not-a-uuid", owner_user)


def test_status_snapshot(issue, owner_user, t0):
    credential = issue(45, name="Luis")
    snapshot = get_credential_status(credential.pk, by_user=owner_user)

    assert snapshot.id == credential.pk
    assert snapshot.status == GuestAccessStatus.PENDING
    assert snapshot.guest_name == "Luis"
    assert snapshot.expires_at == t0 + timedelta(minutes=45)
    assert snapshot.qr_payload == credential.qr_payload


def test_status_hidden_from_other_owner(issue, other_owner_user):
    credential = issue(30)
    with pytest.raises(NotAllowed):
        get_credential_status(credential.pk, by_user=other_owner_user)


def test_list_active_guests(issue, other_owner_user, owner_user, residential, validator, barrier, t0):
    pending = issue(30)
    active = issue(30)
    validator.validate(active.access_code, "entry", barrier=barrier, now=t0)
    cancelled = issue(30)
    cancel_guest_access(cancelled.pk, owner_user)
    neighbour = issue(30, creator=other_owner_user)

    everyone = set(list_active_guests(residential.pk).values_list("pk", flat=True))
    mine = set(list_active_guests(residential.pk, created_by=owner_user).values_list("pk", flat=True))

    assert everyone == {pending.pk, active.pk, neighbour.pk}
    assert mine == {pending.pk, active.pk}
