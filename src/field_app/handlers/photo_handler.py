"""Photo grid handlers for the field client."""

import logging
from shared.utils import (
    filter_photos, group_photos_by_date, toggle_photo_selection,
    select_date_group, is_date_group_selected, decode_annotation_tasks, encode_annotation_tasks
)
from ..services.api_service import ServiceError
from .. import state

SLICE = 'photos'


class PhotoHandler:
    """Backs the photo grid: loading, filters, date sections and selection.

    The current filters and selection live on the handler; photo rows live
    in the store.
    """

    def __init__(self, app):
        self.app = app
        self.logger = logging.getLogger(self.__class__.__name__)
        self.filters = {}
        self.selected = []
        self.project_id = None

    @property
    def slice(self):
        return self.app.store[SLICE]

    def _fail(self, action, error):
        self.logger.error(f"Failed to {action}: {error}")
        self.app.store.dispatch(state.failure(SLICE, error))
        self.app.set_status(f"Failed to {action}: {error}")

    def load_photos(self, project_id=None):
        self.project_id = project_id
        self.app.store.dispatch(state.request(SLICE))
        try:
            photos = self.app.photos.list_photos(project_id)
        except ServiceError as e:
            self._fail('load photos', e)
            return False
        self.app.store.dispatch(state.success(SLICE, photos))
        # Drop selections of photos that are gone
        ids = set(self.slice.ids())
        self.selected = [p for p in self.selected if p['id'] in ids]
        return True

    def set_filters(self, **filters):
        self.filters = {key: value for key, value in filters.items() if value}

    def clear_filters(self):
        self.filters = {}

    def visible_photos(self):
        return filter_photos(self.slice.items, self.filters)

    def sections(self):
        """Visible photos grouped into date sections, newest first."""
        return group_photos_by_date(self.visible_photos())

    def toggle(self, photo):
        self.selected = toggle_photo_selection(self.selected, photo)
        return self.selected

    def select_date(self, date_key, is_selected=True):
        self.selected = select_date_group(self.selected, self.visible_photos(), date_key, is_selected)
        return self.selected

    def is_date_selected(self, date_key):
        return is_date_group_selected(self.selected, self.visible_photos(), date_key)

    def clear_selection(self):
        self.selected = []

    def upload_photo(self, file_path, metadata=None):
        metadata = dict(metadata or {})
        if self.project_id and not metadata.get('project_id'):
            metadata['project_id'] = self.project_id
        try:
            photo = self.app.photos.upload(file_path, metadata)
        except ServiceError as e:
            self._fail('upload photo', e)
            return None
        self.app.store.dispatch(state.add(SLICE, photo))
        self.app.set_status("Photo uploaded")
        return photo

    def update_photo(self, photo_id, data):
        try:
            photo = self.app.photos.update(photo_id, data)
        except ServiceError as e:
            self._fail('update photo', e)
            return None
        self.app.store.dispatch(state.update(SLICE, photo))
        return photo

    def delete_photo(self, photo_id):
        try:
            self.app.photos.delete(photo_id)
        except ServiceError as e:
            self._fail('delete photo', e)
            return False
        self.app.store.dispatch(state.remove(SLICE, photo_id))
        self.selected = [p for p in self.selected if p['id'] != photo_id]
        return True

    def annotation_tasks(self, photo_id):
        photo = self.slice.get(photo_id)
        return decode_annotation_tasks(photo.get('tasks')) if photo else []

    def set_annotation_task_completed(self, photo_id, annotation_id, completed):
        """Tick or untick one annotation task on a photo."""
        tasks = self.annotation_tasks(photo_id)
        for task in tasks:
            if str(task.get('id')) == str(annotation_id):
                task['completed'] = completed
        return self.update_photo(photo_id, {'tasks': encode_annotation_tasks(tasks)})

    def sync_tasks(self, photo_id):
        """Push a photo's annotation tasks into the project task list."""
        try:
            result = self.app.photos.sync_tasks(photo_id)
        except ServiceError as e:
            self._fail('sync photo tasks', e)
            return None
        self.app.set_status(f"Synced tasks: {result['created']} created, {result['updated']} updated")
        return result
