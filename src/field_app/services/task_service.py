"""Project tasks."""
from .entity_service import EntityService


class TaskService(EntityService):
    resource = 'tasks'

    def list_tasks(self, project_id=None, status=None):
        return self.select(project_id=project_id, status=status)
