"""Configuration Manager for the field client."""
from pydantic_settings import BaseSettings


class ConfigManager(BaseSettings):
    """Manages client configuration settings using Pydantic BaseSettings."""

    # API settings
    api_base_url: str = 'http://localhost:5000'
    api_timeout: float = 10.0

    # Where the auth session is persisted (user data dir when empty)
    app_name: str = 'field_app'
    app_author: str = 'fieldpm'
    data_dir: str = ''

    # Report preview
    preview_poll_interval: float = 1.0  # seconds

    # Lists
    page_size: int = 200

    class Config:
        env_prefix = 'FIELD_APP_'
        case_sensitive = False

    def get(self, key, default=None):
        """Get a configuration value."""
        return getattr(self, key, default)

    def set(self, key, value):
        """Set a configuration value."""
        setattr(self, key, value)

    def get_all(self):
        """Get all configuration values as dictionary."""
        return self.model_dump()
