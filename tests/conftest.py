# tests/conftest.py

"""
Fixtures compartidos: residenciales, usuarios por rol, barreras y los
componentes del motor de pases con dobles para avisos y equipos.
"""

from datetime import datetime, timezone as dt_timezone
from unittest.mock import Mock

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from accounts.models import GuardAccount, OwnerAccount
from core.models import ChairmanProfile, Owner, Residential
from guest_access.conf import GuestAccessConfig
from guest_access.devices import BaseBarrierDriver
from guest_access.models import Barrier
from guest_access.monitor import ExpiryMonitor
from guest_access.notifications import BaseNotifier
from guest_access.services import AccessValidator, CredentialIssuer, GuestInfo

T0 = datetime(2025, 3, 1, 12, 0, tzinfo=dt_timezone.utc)


def _fresh(user):
    # Recarga para no arrastrar accesos inversos cacheados
    return get_user_model().objects.get(pk=user.pk)


@pytest.fixture
def t0():
    return T0


@pytest.fixture
def residential(db):
    return Residential.objects.create(name="Lomas del Bosque", code="LDB")


@pytest.fixture
def other_residential(db):
    return Residential.objects.create(name="Villas del Mar", code="VDM")


@pytest.fixture
def barrier(residential):
    return Barrier.objects.create(residential=residential, name="Pluma norte")


@pytest.fixture
def barrier_b(residential):
    return Barrier.objects.create(residential=residential, name="Pluma sur")


@pytest.fixture
def inactive_barrier(residential):
    return Barrier.objects.create(residential=residential, name="Pluma vieja", is_active=False)


@pytest.fixture
def other_barrier(other_residential):
    return Barrier.objects.create(residential=other_residential, name="Acceso principal")


@pytest.fixture
def make_owner_user(db):
    def _make(residential, username="dueno", phone="+525500000001", active=True):
        User = get_user_model()
        user = User.objects.create_user(username=username, password="x", email=f"{username}@example.com")
        owner = Owner.objects.create(
            residential=residential,
            first_name=username.title(),
            email=f"{username}@example.com",
            phone=phone,
            is_active=active,
        )
        OwnerAccount.objects.create(user=user, owner=owner)
        return _fresh(user)
    return _make


@pytest.fixture
def owner_user(make_owner_user, residential):
    return make_owner_user(residential)


@pytest.fixture
def other_owner_user(make_owner_user, residential):
    return make_owner_user(residential, username="vecino", phone="+525500000002")


@pytest.fixture
def chairman_user(residential):
    User = get_user_model()
    user = User.objects.create_user(username="presidente", password="x", is_staff=True)
    ChairmanProfile.objects.create(user=user, residential=residential, phone="+525500000099")
    return _fresh(user)


@pytest.fixture
def guard_user(residential, barrier):
    User = get_user_model()
    user = User.objects.create_user(username="caseta", password="x")
    GuardAccount.objects.create(user=user, residential=residential, barrier=barrier)
    return _fresh(user)


@pytest.fixture
def config():
    return GuestAccessConfig()


@pytest.fixture
def notifier():
    return Mock(spec=BaseNotifier)


@pytest.fixture
def driver():
    return Mock(spec=BaseBarrierDriver)


@pytest.fixture
def issuer(config):
    return CredentialIssuer(config)


@pytest.fixture
def validator(config, notifier):
    return AccessValidator(config, notifier)


@pytest.fixture
def monitor(config, notifier):
    return ExpiryMonitor(config, notifier)


@pytest.fixture
def issue(issuer, owner_user, residential):
    """Emite un pase del dueño en T0 (o en el `now` indicado)."""
    def _issue(duration_minutes=30, now=T0, creator=None, **guest):
        return issuer.issue(
            creator or owner_user,
            residential,
            GuestInfo(**guest) if guest else None,
            duration_minutes,
            now=now,
        )
    return _issue


@pytest.fixture
def api_client():
    return APIClient()
