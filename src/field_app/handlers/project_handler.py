"""Project list handlers for the field client.

This module backs the project list screen (status tabs, search, sorting)
and the project create, edit and delete actions.
"""

import logging
from shared.enums import ProjectStatus
from shared.timeline import calculate_timeline
from shared.utils import ALL_TAB, filter_projects_by_status, search_projects, sort_projects, status_counts
from shared.validation import Validator, ValidationError
from ..services.api_service import ServiceError
from .. import state

SLICE = 'projects'


class ProjectHandler:
    """Handles project-related screen operations.

    Attributes:
        app: Reference to the main FieldApp instance
        logger: Logger instance for this handler
    """

    def __init__(self, app):
        """Initialize the project handler.

        Args:
            app: The main FieldApp instance
        """
        self.app = app
        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    def slice(self):
        return self.app.store[SLICE]

    def _fail(self, action, error):
        self.logger.error(f"Failed to {action}: {error}")
        self.app.store.dispatch(state.failure(SLICE, error))
        self.app.set_status(f"Failed to {action}: {error}")

    def load_projects(self):
        """Fetch every visible project into the store.

        A failed load leaves the message in the slice's ``error``; calling
        this again is the retry.
        """
        self.app.store.dispatch(state.request(SLICE))
        try:
            projects = self.app.projects.list_projects()
        except ServiceError as e:
            self._fail('load projects', e)
            return False
        self.app.store.dispatch(state.success(SLICE, projects))
        self.app.set_status(f"Loaded {len(projects)} projects")
        return True

    def visible_projects(self, tab=ALL_TAB, query='', sort='newest'):
        """Projects for a status tab, narrowed by the search box and sorted."""
        projects = filter_projects_by_status(self.slice.items, tab)
        projects = search_projects(projects, query)
        return sort_projects(projects, sort)

    def tab_counts(self):
        """Badge counts for the 'all' tab and each status tab."""
        counts = status_counts(self.slice.items)
        for status in ProjectStatus:
            counts.setdefault(status.value, 0)
        return counts

    def create_project(self, data):
        """Validate and create a project; returns the created row or None."""
        try:
            Validator.validate_project_data(data)
        except ValidationError as e:
            self._fail('create project', e)
            return None
        try:
            project = self.app.projects.insert(data)
        except ServiceError as e:
            self._fail('create project', e)
            return None
        self.app.store.dispatch(state.add(SLICE, project))
        self.app.set_status(f"Created project: {project['name']}")
        return project

    def update_project(self, project_id, data):
        try:
            project = self.app.projects.update(project_id, data)
        except ServiceError as e:
            self._fail('update project', e)
            return None
        self.app.store.dispatch(state.update(SLICE, project))
        self.app.set_status(f"Updated project: {project['name']}")
        return project

    def delete_project(self, project_id):
        """Delete a project on the server, then drop it from the list.

        Returns:
            dict or None: the server's cascade summary, None on failure
        """
        try:
            result = self.app.projects.delete(project_id)
        except ServiceError as e:
            self._fail('delete project', e)
            return None
        self.app.store.dispatch(state.remove(SLICE, project_id))
        self.app.set_status("Project deleted")
        return (result or {}).get('summary', {})

    def select_project(self, project_id):
        if self.slice.get(project_id) is None:
            self.app.set_status("Project not found")
            return None
        self.app.store.dispatch(state.select(SLICE, project_id))
        return self.slice.selected

    def timeline(self, project_id, today=None):
        """Percentage and time-left label for a project's progress bar."""
        project = self.slice.get(project_id)
        if project is None:
            return 0, 'N/A'
        return calculate_timeline(project.get('start_date'), project.get('end_date'), today)

    def load_schedule(self, project_id, today=None):
        """Milestone timeline and schedule status from the server."""
        try:
            return self.app.projects.timeline(project_id, today)
        except ServiceError as e:
            self._fail('load project timeline', e)
            return None
