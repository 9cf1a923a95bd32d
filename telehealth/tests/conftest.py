import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from telehealth.models import User
from telehealth.realtime.bus import notification_bus
from telehealth.realtime.rooms import room_registry


@pytest.fixture(autouse=True)
def _reset_realtime_state():
    notification_bus.clear()
    room_registry.clear()
    cache.clear()
    yield
    notification_bus.clear()
    room_registry.clear()


@pytest.fixture
def patient(db):
    return User.objects.create_user(username='patient1', password='P@ssw0rd1', role='patient',
                                    first_name='Anna', last_name='Petrova', email='anna@example.com',
                                    phone='+15550001111')


@pytest.fixture
def doctor(db):
    return User.objects.create_user(username='doctor1', password='P@ssw0rd1', role='doctor',
                                    first_name='Ivan', last_name='Sokolov')


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(username='admin1', password='P@ssw0rd1', role='admin')


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def client_for():
    def make(user):
        c = APIClient()
        c.force_authenticate(user=user)
        return c
    return make


@pytest.fixture
def collect():
    """Subscribe a list-appending callback; returns (received, subscribe)."""
    received = []

    def subscribe(user_id, role):
        return notification_bus.subscribe_user(user_id, role, received.append)

    return received, subscribe
