"""Authentication session for the field client.

The token and user returned at sign-in are the only client state written to
disk, as ``auth_token.json`` in the user data directory.
"""
import json
import logging
from pathlib import Path
from appdirs import user_data_dir
from .api_service import ServiceError

SIGNED_IN = 'SIGNED_IN'
SIGNED_OUT = 'SIGNED_OUT'
PASSWORD_RECOVERY = 'PASSWORD_RECOVERY'


class AuthService:
    def __init__(self, api_service, data_dir=None, app_name='field_app', app_author='fieldpm'):
        self.api = api_service
        self.api.auth_service = self
        self.logger = logging.getLogger(self.__class__.__name__)
        self.token = None
        self.user = None
        self.expires_at = None
        self._listeners = []
        self.data_dir = Path(data_dir) if data_dir else Path(user_data_dir(app_name, app_author))
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.token_file = self.data_dir / "auth_token.json"
        self._load_token()

    def _load_token(self):
        if not self.token_file.exists():
            return
        try:
            with open(self.token_file, 'r') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            self.logger.warning(f"Ignoring unreadable session file {self.token_file}: {e}")
            return
        self.token = data.get('token')
        self.user = data.get('user')
        self.expires_at = data.get('expires_at')

    def _save_token(self):
        with open(self.token_file, 'w') as f:
            json.dump({'token': self.token, 'user': self.user, 'expires_at': self.expires_at}, f)

    def _clear_token(self):
        self.token = None
        self.user = None
        self.expires_at = None
        if self.token_file.exists():
            self.token_file.unlink()

    def _emit(self, event):
        session = self.session()
        for callback in list(self._listeners):
            try:
                callback(event, session)
            except Exception as e:
                self.logger.error(f"Auth state listener failed on {event}: {e}", exc_info=True)

    def on_auth_state_change(self, callback):
        """Register ``callback(event, session)``; returns a function that unsubscribes it."""
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)
        return unsubscribe

    def session(self):
        """The locally known session, or None when signed out."""
        if not self.token:
            return None
        return {'token': self.token, 'user': self.user, 'expires_at': self.expires_at}

    def sign_in_with_password(self, email, password):
        """Log in and persist the session.

        Raises:
            ServiceError: on bad credentials or connection failure
        """
        data = self.api.request_json('POST', '/api/auth/login', json={'email': email, 'password': password})
        self.token = data['token']
        self.user = data['user']
        self.expires_at = data.get('expires_at')
        self._save_token()
        self.logger.info(f"Signed in as {self.user.get('email')}")
        self._emit(SIGNED_IN)
        return self.session()

    def sign_up(self, email, password, full_name=''):
        """Register a profile; returns the created profile."""
        profile = self.api.request_json('POST', '/api/auth/signup', json={
            'email': email,
            'password': password,
            'full_name': full_name
        })
        self.logger.info(f"Registered {profile.get('email')}")
        return profile

    def sign_out(self):
        """End the session locally, telling the server when it is reachable."""
        if self.token:
            try:
                self.api.request_json('POST', '/api/auth/logout')
            except ServiceError as e:
                self.logger.warning(f"Server logout failed, clearing local session anyway: {e}")
        self._clear_token()
        self._emit(SIGNED_OUT)

    def reset_password_for_email(self, email):
        """Ask the server to issue a password recovery token."""
        result = self.api.request_json('POST', '/api/auth/reset-password', json={'email': email})
        self._emit(PASSWORD_RECOVERY)
        return result

    def update_password(self, token, password):
        """Complete a password reset with a recovery token."""
        return self.api.request_json('POST', '/api/auth/reset-password/confirm', json={
            'token': token,
            'password': password
        })

    def get_session(self):
        """Confirm the stored session with the server.

        An expired or revoked token is dropped and reported as SIGNED_OUT.
        """
        if not self.token:
            return None
        try:
            data = self.api.request_json('GET', '/api/auth/session')
        except ServiceError as e:
            if e.status_code == 401:
                self.logger.info("Stored session is no longer valid")
                self._clear_token()
                self._emit(SIGNED_OUT)
                return None
            raise
        self.user = data['user']
        self.expires_at = data.get('expires_at')
        self._save_token()
        return self.session()

    def get_headers(self):
        if self.token:
            return {'Authorization': f'Bearer {self.token}'}
        return {}

    def is_authenticated(self):
        return self.token is not None
