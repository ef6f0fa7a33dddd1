"""User profiles."""
from .entity_service import EntityService


class ProfileService(EntityService):
    resource = 'profiles'

    def list_profiles(self, role=None):
        return self.select(role=role)
