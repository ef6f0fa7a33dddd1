"""Pytest configuration and fixtures for field project manager tests."""
import pytest
import tempfile
import shutil
import os
from backend.app import create_app
from backend.models import db


@pytest.fixture
def app():
    """Create and configure a test app instance."""
    # Create temporary database and storage for testing
    db_fd, db_path = tempfile.mkstemp(suffix='.db')
    work_dir = tempfile.mkdtemp()

    test_config = {
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f'sqlite:///{db_path}',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'REQUIRE_AUTH': False,
        'STORAGE_PROVIDER': 'local',
        'STORAGE_LOCAL_PATH': os.path.join(work_dir, 'uploads'),
        'STORAGE_PUBLIC_URL': '',
        'MIGRATIONS_DIR': os.path.join(work_dir, 'migrations'),
        'LOG_DIR': os.path.join(work_dir, 'logs'),
    }

    app = create_app(test_config)

    with app.app_context():
        db.create_all()

    yield app

    # Cleanup
    with app.app_context():
        db.session.remove()
        db.engine.dispose()
    os.close(db_fd)
    os.unlink(db_path)
    shutil.rmtree(work_dir, ignore_errors=True)


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture
def runner(app):
    """A test runner for the app's Click commands."""
    return app.test_cli_runner()


@pytest.fixture
def create_project(client):
    """Create a project through the API and return its JSON."""
    def _create(headers=None, **fields):
        payload = {'name': 'Riverside Renovation'}
        payload.update(fields)
        response = client.post('/api/projects', json=payload, headers=headers)
        assert response.status_code == 201, response.get_json()
        return response.get_json()
    return _create


@pytest.fixture
def sign_in(client):
    """Sign up and log in a user; returns (user, auth headers)."""
    def _sign_in(email='admin@example.com', password='secret123', full_name='Site Admin'):
        response = client.post('/api/auth/signup', json={
            'email': email, 'password': password, 'full_name': full_name
        })
        assert response.status_code == 201, response.get_json()
        response = client.post('/api/auth/login', json={'email': email, 'password': password})
        assert response.status_code == 200, response.get_json()
        data = response.get_json()
        return data['user'], {'Authorization': f"Bearer {data['token']}"}
    return _sign_in
