import pytest
from rest_framework.test import APIClient

from fleet.models import AuditEvent, Profile

from .helpers import PASSWORD, make_member, make_profile, make_rejected, make_user

pytestmark = pytest.mark.django_db


def login(client, username, password=PASSWORD):
    return client.post('/api/auth/login', {'username': username, 'password': password}, format='json')


def test_login_returns_tokens_role_and_home():
    make_member('mgr@example.com', Profile.ROLE_REGIONAL_MANAGER)
    r = login(APIClient(), 'MGR@example.com')
    assert r.status_code == 200
    assert r.data['token'] and r.data['jwt_access'] and r.data['jwt_refresh']
    assert r.data['role'] == 'REGIONAL_MANAGER'
    assert r.data['home'] == '/manager/dashboard'
    assert AuditEvent.objects.filter(action='login', detail__result='ok').count() == 1


@pytest.mark.parametrize('make, message', [
    (lambda: make_profile('u@example.com'), 'Application under process'),
    (lambda: make_rejected('u@example.com'), 'Application rejected'),
    (lambda: make_member('u@example.com', active=False), 'Account is deactivated'),
    (lambda: make_user('u@example.com'), 'Profile not found'),
])
def test_login_gate_refuses_non_active_profiles(make, message):
    make()
    r = login(APIClient(), 'u@example.com')
    assert r.status_code == 401
    assert r.data['ok'] is False
    assert r.data['error']['message'] == message


def test_wrong_password_is_refused():
    make_member('u@example.com')
    r = login(APIClient(), 'u@example.com', 'nope')
    assert r.status_code == 401
    assert r.data['error']['message'] == 'Invalid login credentials'
    assert AuditEvent.objects.filter(action='login', detail__result='fail').exists()


def test_signup_creates_pending_profile_that_cannot_log_in():
    client = APIClient()
    r = client.post('/api/auth/signup', {
        'fullName': 'Asha <script>x</script>', 'email': 'Asha@Example.com', 'password': 'secret123',
    }, format='json')
    assert r.status_code == 201
    assert r.data['message'] == 'Request submitted. Wait for admin approval.'
    profile = Profile.objects.get(user__username='asha@example.com')
    assert profile.approval_status == Profile.APPROVAL_PENDING
    assert profile.is_active is False
    assert '<script>' not in profile.full_name
    assert login(client, 'asha@example.com', 'secret123').data['error']['message'] == 'Application under process'


def test_signup_rejects_duplicate_email():
    make_member('u@example.com')
    r = APIClient().post('/api/auth/signup', {
        'fullName': 'U', 'email': 'u@example.com', 'password': 'secret123',
    }, format='json')
    assert r.status_code == 400


def test_token_from_login_authenticates_requests():
    make_member('eng@example.com')
    client = APIClient()
    token = login(client, 'eng@example.com').data['token']
    client.credentials(HTTP_AUTHORIZATION=f'Token {token}')
    assert client.get('/api/engineer/dashboard').status_code == 200


def test_jwt_refresh_and_logout():
    make_member('eng@example.com')
    client = APIClient()
    data = login(client, 'eng@example.com').data
    r = client.post('/api/auth/refresh', {'refresh': data['jwt_refresh']}, format='json')
    assert r.status_code == 200
    assert r.data['jwt_access']

    client.credentials(HTTP_AUTHORIZATION=f"Bearer {data['jwt_access']}")
    r = client.post('/api/auth/logout', {'refresh': data['jwt_refresh']}, format='json')
    assert r.status_code == 200
    assert r.data['blacklisted'] == 1
    r = client.post('/api/auth/refresh', {'refresh': data['jwt_refresh']}, format='json')
    assert r.status_code == 401


def test_role_is_not_taken_from_the_request():
    p = make_member('eng@example.com')
    r = APIClient().post('/api/auth/login', {
        'username': 'eng@example.com', 'password': PASSWORD, 'role': 'ADMIN',
    }, format='json')
    assert r.status_code == 200
    assert r.data['role'] == 'FIELD_ENGINEER'
    p.refresh_from_db()
    assert p.role == Profile.ROLE_FIELD_ENGINEER


def test_healthz_is_public():
    r = APIClient().get('/healthz')
    assert r.status_code == 200
    assert r.json() == {'ok': True, 'db': True}
