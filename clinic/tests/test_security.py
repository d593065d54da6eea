import pytest
from django.urls import reverse
from rest_framework.test import APIClient

from clinic.models import AuditEvent, User

pytestmark = pytest.mark.django_db


def login(client, username, password, **extra):
    return client.post(reverse('login_view'), {'username': username, 'password': password, **extra}, format='json')


def test_login_returns_token_and_stored_role():
    client = APIClient()
    User.objects.create_user(username='doc', password='P@ssw0rd1', role='doctor')
    r = login(client, 'doc', 'P@ssw0rd1', role='admin')
    assert r.status_code == 200
    assert r.data['token']
    assert r.data['role'] == 'doctor'
    assert r.data['user']['username'] == 'doc'
    assert User.objects.get(username='doc').role == 'doctor'


def test_token_grants_access():
    client = APIClient()
    User.objects.create_user(username='staff', password='P@ssw0rd1', role='staff')
    token = login(client, 'staff', 'P@ssw0rd1').data['token']
    client.credentials(HTTP_AUTHORIZATION=f'Token {token}')
    r = client.get('/api/patients')
    assert r.status_code == 200
    assert r.data['ok'] is True


def test_wrong_password_is_rejected_and_audited():
    client = APIClient()
    User.objects.create_user(username='staff', password='P@ssw0rd1', role='staff')
    r = login(client, 'staff', 'wrong')
    assert r.status_code == 400
    assert r.data['detail'] == 'Invalid username or password'
    event = AuditEvent.objects.get(action='login')
    assert event.user is None
    assert event.detail['result'] == 'fail'


def test_login_requires_fields():
    r = APIClient().post(reverse('login_view'), {'username': ''}, format='json')
    assert r.status_code == 400
    assert r.data['ok'] is False


@pytest.mark.parametrize('url', [
    '/api/patients',
    '/api/doctors',
    '/api/prescriptions',
    '/api/analytics/summary',
    '/api/check-db-schema',
])
def test_endpoints_require_authentication(url):
    r = APIClient().get(url)
    assert r.status_code in (401, 403)
    assert r.data['ok'] is False


def test_bad_token_is_rejected():
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION='Token not-a-real-token')
    assert client.get('/api/patients').status_code in (401, 403)


def test_superuser_counts_as_admin():
    client = APIClient()
    root = User.objects.create_superuser(username='root', password='P@ssw0rd1', email='root@example.com')
    assert root.role == 'staff'
    client.force_authenticate(user=root)
    assert client.get('/api/check-db-schema').status_code == 200
