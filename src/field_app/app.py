"""Field client application object.

Wires configuration, the HTTP services, the auth session, the store and the
screen handlers together. Screens hold a reference to a ``FieldApp`` and
talk only to its handlers.
"""
import logging
from .config_manager import ConfigManager
from .logging_config import setup_logging
from .state import Store
from .services.api_service import APIService
from .services.auth_service import AuthService, SIGNED_OUT
from .services.project_service import ProjectService
from .services.photo_service import PhotoService
from .services.report_service import ReportService
from .services.task_service import TaskService
from .services.profile_service import ProfileService
from .handlers.project_handler import ProjectHandler
from .handlers.photo_handler import PhotoHandler
from .handlers.report_handler import ReportHandler
from .handlers.task_handler import TaskHandler
from .handlers.user_handler import UserHandler


class FieldApp:
    """Client-side composition root.

    Attributes:
        config: ConfigManager with ``FIELD_APP_`` settings
        store: Store of per-entity slices
        auth: AuthService holding the persisted session
        status_message: last message meant for the user
    """

    def __init__(self, config=None, api_service=None, data_dir=None):
        self.config = config or ConfigManager()
        self.logger = logging.getLogger(self.__class__.__name__)
        self.status_message = ''

        self.api = api_service or APIService.from_config(self.config)
        self.auth = AuthService(
            self.api,
            data_dir=data_dir or self.config.data_dir or None,
            app_name=self.config.app_name,
            app_author=self.config.app_author
        )
        page_size = self.config.page_size
        self.projects = ProjectService(self.api, page_size)
        self.photos = PhotoService(self.api, page_size)
        self.reports = ReportService(self.api, page_size)
        self.tasks = TaskService(self.api, page_size)
        self.profiles = ProfileService(self.api, page_size)

        self.store = Store()

        self.project_handler = ProjectHandler(self)
        self.photo_handler = PhotoHandler(self)
        self.report_handler = ReportHandler(self)
        self.task_handler = TaskHandler(self)
        self.user_handler = UserHandler(self)

        self.auth.on_auth_state_change(self._on_auth_state_change)

    def _on_auth_state_change(self, event, session):
        self.logger.info(f"Auth state changed: {event}")
        if event == SIGNED_OUT:
            # Nothing fetched under the old session stays visible
            self.store = Store(listeners=self.store.listeners)

    def set_status(self, message):
        self.status_message = message
        self.logger.debug(f"Status: {message}")


def main():
    """Start the client, restore the saved session and load the project list."""
    setup_logging()
    app = FieldApp()
    session = app.auth.get_session()
    if session:
        app.logger.info(f"Restored session for {session['user'].get('email')}")
    app.project_handler.load_projects()
    for project in app.store['projects'].items:
        print(f"{project['status']:<10} {project['name']}")
    if app.store['projects'].error:
        print(f"Error: {app.store['projects'].error}")
    return app


if __name__ == '__main__':
    main()
