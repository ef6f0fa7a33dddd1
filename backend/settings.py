"""Server configuration loaded from the environment."""
from pydantic_settings import BaseSettings


class ServerSettings(BaseSettings):
    """Backend settings using Pydantic BaseSettings.

    Every field can be set through a ``FIELDPM_`` prefixed environment
    variable, e.g. ``FIELDPM_DATABASE_URL``.
    """

    # Database
    database_url: str = 'sqlite:///fieldpm.db'
    migrations_dir: str = 'migrations'

    # Authentication
    require_auth: bool = False
    access_token_days: int = 7
    recovery_token_hours: int = 1
    preview_token_minutes: int = 30

    # Photo storage
    storage_provider: str = 'local'
    storage_access_key: str = ''
    storage_secret_key: str = ''
    storage_bucket: str = 'fieldpm-photos'
    storage_region: str = 'us-east-1'
    storage_local_path: str = './uploads'
    storage_public_url: str = ''
    max_upload_mb: int = 16

    # Logging
    log_dir: str = ''

    class Config:
        env_prefix = 'FIELDPM_'
        case_sensitive = False

    def to_flask_config(self):
        """Map settings onto the upper-case keys Flask config expects."""
        return {
            'SQLALCHEMY_DATABASE_URI': self.database_url,
            'MIGRATIONS_DIR': self.migrations_dir,
            'REQUIRE_AUTH': self.require_auth,
            'ACCESS_TOKEN_DAYS': self.access_token_days,
            'RECOVERY_TOKEN_HOURS': self.recovery_token_hours,
            'PREVIEW_TOKEN_MINUTES': self.preview_token_minutes,
            'STORAGE_PROVIDER': self.storage_provider,
            'STORAGE_ACCESS_KEY': self.storage_access_key,
            'STORAGE_SECRET_KEY': self.storage_secret_key,
            'STORAGE_BUCKET': self.storage_bucket,
            'STORAGE_REGION': self.storage_region,
            'STORAGE_LOCAL_PATH': self.storage_local_path,
            'STORAGE_PUBLIC_URL': self.storage_public_url,
            'MAX_CONTENT_LENGTH': self.max_upload_mb * 1024 * 1024,
            'LOG_DIR': self.log_dir,
        }
