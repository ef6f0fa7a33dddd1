"""Task list handlers."""

import logging
from shared.enums import TaskStatus
from ..services.api_service import ServiceError
from .. import state

SLICE = 'tasks'


class TaskHandler:
    def __init__(self, app):
        self.app = app
        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    def slice(self):
        return self.app.store[SLICE]

    def _fail(self, action, error):
        self.logger.error(f"Failed to {action}: {error}")
        self.app.store.dispatch(state.failure(SLICE, error))
        self.app.set_status(f"Failed to {action}: {error}")

    def load_tasks(self, project_id=None, status=None):
        self.app.store.dispatch(state.request(SLICE))
        try:
            tasks = self.app.tasks.list_tasks(project_id, status)
        except ServiceError as e:
            self._fail('load tasks', e)
            return False
        self.app.store.dispatch(state.success(SLICE, tasks))
        return True

    def tasks_with_status(self, status):
        return [t for t in self.slice.items if t.get('status') == status]

    def create_task(self, data):
        if not (data.get('title') or '').strip():
            self._fail('create task', 'Task title is required')
            return None
        try:
            task = self.app.tasks.insert(data)
        except ServiceError as e:
            self._fail('create task', e)
            return None
        self.app.store.dispatch(state.add(SLICE, task))
        return task

    def toggle_completed(self, task_id):
        """Flip a task between active and completed."""
        task = self.slice.get(task_id)
        if task is None:
            return None
        new_status = TaskStatus.ACTIVE.value if task.get('status') == TaskStatus.COMPLETED.value \
            else TaskStatus.COMPLETED.value
        try:
            updated = self.app.tasks.update(task_id, {'status': new_status})
        except ServiceError as e:
            self._fail('update task', e)
            return None
        self.app.store.dispatch(state.update(SLICE, updated))
        return updated

    def delete_task(self, task_id):
        try:
            self.app.tasks.delete(task_id)
        except ServiceError as e:
            self._fail('delete task', e)
            return False
        self.app.store.dispatch(state.remove(SLICE, task_id))
        return True
