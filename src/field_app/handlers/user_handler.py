"""User list handlers."""

import logging
from ..services.api_service import ServiceError
from .. import state

SLICE = 'users'


class UserHandler:
    def __init__(self, app):
        self.app = app
        self.logger = logging.getLogger(self.__class__.__name__)

    def load_users(self, role=None):
        """Fetch profiles into the ``users`` slice."""
        self.app.store.dispatch(state.request(SLICE))
        try:
            users = self.app.profiles.list_profiles(role)
        except ServiceError as e:
            self.logger.error(f"Failed to load users: {e}")
            self.app.store.dispatch(state.failure(SLICE, e))
            return False
        self.app.store.dispatch(state.success(SLICE, users))
        return True

    def display_name(self, user_id):
        user = self.app.store[SLICE].get(user_id)
        if user is None:
            return 'Unknown user'
        return user.get('full_name') or user.get('email')

    def update_profile(self, user_id, data):
        try:
            user = self.app.profiles.update(user_id, data)
        except ServiceError as e:
            self.logger.error(f"Failed to update profile {user_id}: {e}")
            self.app.store.dispatch(state.failure(SLICE, e))
            return None
        self.app.store.dispatch(state.update(SLICE, user))
        return user
