"""
Pytest fixtures for Fire Force backend tests.

Provides an app on in-memory SQLite with an in-memory local store, the test
client, and login helpers for the fixed office account and salesmen.
"""

import pytest

from fireforce import create_app
from fireforce.extensions import db, services


OFFICE_PASSWORD = "office-secret"
ADMIN_PASSWORD = "admin-secret"
SALESMAN_PASSWORD = "sales-secret"


@pytest.fixture(scope='function')
def app(tmp_path):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret',
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'RECORD_STORE': 'remote',
        'LOCAL_STORE_DIR': None,
        'BACKUP_DIR': str(tmp_path / 'backups'),
        'BCRYPT_ROUNDS': 4,
        'OFFICE_PASSWORD': OFFICE_PASSWORD,
        'ADMIN_PASSWORD': ADMIN_PASSWORD,
        'RESTORE_DEFAULT_PASSWORD': 'reset-me-123',
        'BACKUP_SCHEDULER_ENABLED': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def data_service(app):
    data = services().data
    data.load_all_data()
    return data


def get_auth_token(client, username: str, password: str) -> str:
    """Helper to login and get auth token."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password,
    })
    assert response.status_code == 200, response.get_json()
    return response.get_json()['token']


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def office_headers(client):
    return auth_headers(get_auth_token(client, 'ffoffice1', OFFICE_PASSWORD))


@pytest.fixture(scope='function')
def admin_headers(client):
    return auth_headers(get_auth_token(client, 'itadmin', ADMIN_PASSWORD))


@pytest.fixture(scope='function')
def salesman(client, office_headers):
    response = client.post('/api/users', headers=office_headers, json={
        'username': 'jsmith',
        'name': 'John Smith',
        'email': 'john@example.com',
        'password': SALESMAN_PASSWORD,
    })
    assert response.status_code == 201, response.get_json()
    return response.get_json()['user']


@pytest.fixture(scope='function')
def salesman_headers(client, salesman):
    return auth_headers(get_auth_token(client, salesman['username'], SALESMAN_PASSWORD))
