# tests/test_issuer.py

"""
Tests for guest pass issuance: durations, permissions and live-code uniqueness.
"""

import base64
from datetime import timedelta
from unittest.mock import patch

import pytest
from django.db import IntegrityError

from guest_access.codes import generate_access_code, normalize_code
from guest_access.conf import GuestAccessConfig
from guest_access.exceptions import CodeSpaceExhausted, InvalidDuration, NotAllowed
from guest_access.models import GuestAccess, GuestAccessStatus
from guest_access.services import CredentialIssuer, GuestInfo


def test_issue_creates_pending_credential(issue, owner_user, residential, t0):
    credential = issue(30, name="Ana", phone="+5255", vehicle_number="ABC-123")

    assert credential.status == GuestAccessStatus.PENDING
    assert credential.created_by_id == owner_user.pk
    assert credential.residential_id == residential.pk
    assert credential.expires_at == t0 + timedelta(minutes=30)
    assert credential.entered_at is None and credential.exited_at is None
    assert len(credential.access_code) == 6 and credential.access_code.isdigit()
    assert credential.qr_payload == f"LOCALHOOD:{credential.access_code}"
    assert not (credential.owner_notified or credential.chairman_notified or credential.overstay_notified)
    assert credential.guest_name == "Ana"
    assert credential.vehicle_number == "ABC-123"


def test_issue_stores_qr_image(issue):
    credential = issue(30)

    prefix = "data:image/png;base64,"
    assert credential.qr_code_url.startswith(prefix)
    png = base64.b64decode(credential.qr_code_url[len(prefix):])
    assert png.startswith(b"\x89PNG")


def test_issue_uses_default_duration(issuer, owner_user, residential, t0):
    credential = issuer.issue(owner_user, residential, now=t0)
    assert credential.duration_minutes == 30
    assert credential.expires_at == t0 + timedelta(minutes=30)


@pytest.mark.parametrize("duration", [0, -5, 241, "30", 12.5, True])
def test_issue_rejects_bad_duration(issuer, owner_user, residential, duration):
    with pytest.raises(InvalidDuration):
        issuer.issue(owner_user, residential, duration_minutes=duration)
    assert GuestAccess.objects.count() == 0


def test_issue_accepts_max_duration(issue):
    assert issue(240).duration_minutes == 240


def test_chairman_can_issue(issuer, chairman_user, residential, t0):
    credential = issuer.issue(chairman_user, residential, now=t0)
    assert credential.created_by_id == chairman_user.pk


def test_guard_cannot_issue(issuer, guard_user, residential):
    with pytest.raises(NotAllowed):
        issuer.issue(guard_user, residential)


def test_owner_cannot_issue_for_other_residential(issuer, owner_user, other_residential):
    with pytest.raises(NotAllowed):
        issuer.issue(owner_user, other_residential)


def test_blocked_owner_cannot_issue(issuer, make_owner_user, residential):
    blocked = make_owner_user(residential, username="moroso", active=False)
    with pytest.raises(NotAllowed):
        issuer.issue(blocked, residential)


def test_code_collision_retries_with_new_code(issue, t0):
    first = issue(30)
    codes = iter([first.access_code, first.access_code, "654321"])

    with patch("guest_access.services.generate_access_code", side_effect=lambda *a: next(codes)):
        second = issue(30)

    assert second.access_code == "654321"
    assert GuestAccess.objects.filter(access_code=first.access_code).count() == 1


def test_code_space_exhausted(owner_user, residential, issue):
    first = issue(30)
    issuer = CredentialIssuer(GuestAccessConfig(code_max_attempts=3))

    with patch("guest_access.services.generate_access_code", return_value=first.access_code) as gen:
        with pytest.raises(CodeSpaceExhausted):
            issuer.issue(owner_user, residential, GuestInfo(name="Otro"))

    assert gen.call_count == 3
    assert GuestAccess.objects.count() == 1


def test_other_integrity_errors_are_not_retried(issuer, owner_user, residential):
    with patch("guest_access.store.create_credential", side_effect=IntegrityError("FOREIGN KEY constraint failed")) as create:
        with pytest.raises(IntegrityError):
            issuer.issue(owner_user, residential)

    assert create.call_count == 1
    assert GuestAccess.objects.count() == 0


def test_terminal_code_can_be_reused(issue, monitor, t0):
    first = issue(10)
    monitor.sweep(now=t0 + timedelta(minutes=11))
    first.refresh_from_db()
    assert first.status == GuestAccessStatus.EXPIRED

    with patch("guest_access.services.generate_access_code", return_value=first.access_code):
        second = issue(30, now=t0 + timedelta(minutes=12))

    assert second.access_code == first.access_code
    assert second.status == GuestAccessStatus.PENDING


def test_generate_access_code_uses_alphabet():
    code = generate_access_code(8, "AB")
    assert len(code) == 8
    assert set(code) <= {"A", "B"}


def test_normalize_code_accepts_qr_payload():
    assert normalize_code(" 123 456 ") == "123456"
    assert normalize_code("LOCALHOOD:123456") == "123456"
    assert normalize_code(None) == ""


def test_config_rejects_tiny_code_space():
    with pytest.raises(ValueError):
        GuestAccessConfig(code_length=3)
    with pytest.raises(ValueError):
        GuestAccessConfig(code_alphabet="1111")


def test_config_caps_code_length_to_column_size():
    assert GuestAccessConfig(code_length=16).code_length == 16
    with pytest.raises(ValueError):
        GuestAccessConfig(code_length=17)
