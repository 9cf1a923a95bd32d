import json
from datetime import timedelta
from types import SimpleNamespace

import pytest
from django.utils import timezone
from pywebpush import WebPushException

from telehealth.models import Appointment, AuditEvent, PushSubscription, Reminder
from telehealth.services import push
from telehealth.services.reminders import dispatch_due_reminders

pytestmark = pytest.mark.django_db

SUBSCRIBE_URL = '/api/push/subscribe'
UNSUBSCRIBE_URL = '/api/push/unsubscribe'
SEND_URL = '/api/push/send'

ENDPOINT = 'https://push.example.test/send/abc'


@pytest.fixture
def vapid(settings):
    settings.VAPID_PUBLIC_KEY = 'BPublicKey'
    settings.VAPID_PRIVATE_KEY = 'private-key'
    settings.VAPID_SUBJECT = 'mailto:ops@clinic.test'
    return settings


@pytest.fixture
def sent(monkeypatch):
    """Replace ``webpush``; endpoints listed in ``sent.reject`` fail with that status."""
    calls = []
    reject = {}

    def fake_webpush(subscription_info, data=None, vapid_private_key=None, vapid_claims=None,
                     ttl=0, timeout=None):
        endpoint = subscription_info['endpoint']
        if endpoint in reject:
            raise WebPushException('rejected', response=SimpleNamespace(status_code=reject[endpoint]))
        calls.append({'info': subscription_info, 'data': json.loads(data),
                      'key': vapid_private_key, 'claims': vapid_claims, 'ttl': ttl})

    monkeypatch.setattr(push, 'webpush', fake_webpush)
    return SimpleNamespace(calls=calls, reject=reject)


def subscribe(user, endpoint=ENDPOINT):
    return PushSubscription.objects.create(user=user, endpoint=endpoint, p256dh='p-key', auth='a-key')


def body(endpoint=ENDPOINT, p256dh='p-key', auth='a-key'):
    return {'subscription': {'endpoint': endpoint, 'keys': {'p256dh': p256dh, 'auth': auth}}}


def test_public_key_is_served_without_login(api_client, vapid):
    r = api_client.get(SUBSCRIBE_URL)
    assert r.status_code == 200
    assert r.data == {'ok': True, 'publicKey': 'BPublicKey'}


def test_public_key_unavailable_when_not_configured(api_client, settings):
    settings.VAPID_PUBLIC_KEY = ''
    r = api_client.get(SUBSCRIBE_URL)
    assert r.status_code == 503
    assert r.data['error']['code'] == 'push_not_configured'


def test_subscribe_requires_login(api_client):
    r = api_client.post(SUBSCRIBE_URL, body(), format='json')
    assert r.status_code == 401


def test_subscribe_upserts_by_endpoint(client_for, patient):
    c = client_for(patient)
    r = c.post(SUBSCRIBE_URL, body(), format='json')
    assert r.status_code == 201
    r = c.post(SUBSCRIBE_URL, body(p256dh='p-key-2'), format='json')
    assert r.status_code == 200

    (sub,) = PushSubscription.objects.filter(user=patient)
    assert sub.p256dh == 'p-key-2'
    assert AuditEvent.objects.filter(action='push_subscribe', user=patient).count() == 2


def test_subscribe_rejects_missing_keys(client_for, patient):
    r = client_for(patient).post(SUBSCRIBE_URL, {'subscription': {'endpoint': ENDPOINT}}, format='json')
    assert r.status_code == 400
    assert r.data['ok'] is False
    assert not PushSubscription.objects.exists()


def test_unsubscribe_only_touches_own_subscription(client_for, patient, doctor):
    subscribe(patient)
    subscribe(doctor)

    r = client_for(patient).post(UNSUBSCRIBE_URL, {'endpoint': ENDPOINT}, format='json')
    assert r.data == {'ok': True, 'removed': 1}
    assert not PushSubscription.objects.filter(user=patient).exists()
    assert PushSubscription.objects.filter(user=doctor).exists()

    r = client_for(doctor).delete(SUBSCRIBE_URL, {'endpoint': ENDPOINT}, format='json')
    assert r.data == {'ok': True, 'removed': 1}
    assert not PushSubscription.objects.exists()


def test_send_is_admin_only(client_for, doctor, vapid, sent):
    r = client_for(doctor).post(SEND_URL, {'title': 'Hi', 'body': 'there'}, format='json')
    assert r.status_code == 403
    assert sent.calls == []


def test_send_requires_configuration(client_for, admin_user, settings):
    settings.VAPID_PRIVATE_KEY = ''
    r = client_for(admin_user).post(SEND_URL, {'title': 'Hi', 'body': 'there'}, format='json')
    assert r.status_code == 503


def test_send_to_selected_users(client_for, admin_user, patient, doctor, vapid, sent):
    subscribe(patient)
    subscribe(doctor, endpoint='https://push.example.test/send/doc')

    r = client_for(admin_user).post(
        SEND_URL, {'title': '<b>Clinic</b> news', 'body': 'Closed on Monday', 'userIds': [patient.id]},
        format='json')
    assert r.status_code == 200
    assert r.data == {'ok': True, 'sent': 1, 'failed': 0, 'expired': 0}

    (call,) = sent.calls
    assert call['info'] == {'endpoint': ENDPOINT, 'keys': {'p256dh': 'p-key', 'auth': 'a-key'}}
    assert call['data']['title'] == 'Clinic news'
    assert call['data']['body'] == 'Closed on Monday'
    assert call['key'] == 'private-key'
    assert call['claims'] == {'sub': 'mailto:ops@clinic.test'}
    assert AuditEvent.objects.filter(action='push_send', user=admin_user).exists()


def test_expired_subscriptions_are_removed(patient, doctor, vapid, sent):
    gone = subscribe(patient, endpoint='https://push.example.test/send/gone')
    broken = subscribe(patient, endpoint='https://push.example.test/send/broken')
    subscribe(doctor)
    sent.reject[gone.endpoint] = 410
    sent.reject[broken.endpoint] = 500

    result = push.send_to_users(None, push.push_payload('Hi', 'there'))
    assert result.as_dict() == {'sent': 1, 'failed': 2, 'expired': 1}
    assert not PushSubscription.objects.filter(pk=gone.pk).exists()
    assert PushSubscription.objects.filter(pk=broken.pk).exists()


def test_push_reminder_is_delivered_by_web_push(patient, doctor, collect, vapid, sent):
    received, listen = collect
    listen(patient.id, 'patient')
    subscribe(patient)
    appt = Appointment.objects.create(patient=patient, doctor=doctor,
                                      scheduled_at=timezone.now() + timedelta(hours=20))
    Reminder.objects.create(patient=patient, appointment=appt, reminder_type=Reminder.TYPE_PUSH,
                            message='See you tomorrow', scheduled_for=timezone.now() - timedelta(minutes=1))

    assert dispatch_due_reminders().sent == 1
    assert len(received) == 1
    (call,) = sent.calls
    assert call['data']['body'] == 'See you tomorrow'
    assert call['data']['tag'] == 'appointment-reminder'
    assert call['data']['requireInteraction'] is True


def test_push_reminder_fails_when_no_subscription_accepts(patient, vapid, sent):
    subscribe(patient)
    sent.reject[ENDPOINT] = 410
    r = Reminder.objects.create(patient=patient, reminder_type=Reminder.TYPE_PUSH, message='Soon',
                                scheduled_for=timezone.now() - timedelta(minutes=1))

    result = dispatch_due_reminders()
    assert (result.sent, result.failed) == (0, 1)
    r.refresh_from_db()
    assert r.status == Reminder.STATUS_FAILED
    assert not PushSubscription.objects.exists()


def test_push_reminder_without_subscription_uses_bus_only(patient, vapid, sent):
    Reminder.objects.create(patient=patient, reminder_type=Reminder.TYPE_PUSH, message='Soon',
                            scheduled_for=timezone.now() - timedelta(minutes=1))
    assert dispatch_due_reminders().sent == 1
    assert sent.calls == []
