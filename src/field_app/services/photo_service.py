"""Photo rows, uploads and annotation task sync."""
from .entity_service import EntityService


class PhotoService(EntityService):
    resource = 'photos'

    def list_photos(self, project_id=None):
        return self.select(project_id=project_id)

    def grouped(self, project_id=None, **filters):
        """Date sections computed by the server from the grid filters."""
        params = {'project_id': project_id} if project_id else {}
        for key, value in filters.items():
            if value:
                params[key] = ','.join(value) if isinstance(value, (list, tuple, set)) else value
        return self.api.request_json('GET', f'{self.base_path}/grouped', params=params)

    def upload(self, file_path, metadata=None):
        """Upload an image file with its metadata as form fields."""
        data = {}
        for key, value in (metadata or {}).items():
            if value is None:
                continue
            data[key] = ','.join(value) if isinstance(value, (list, tuple)) else str(value)
        return self.api.upload_file(self.base_path, file_path, data=data)

    def sync_tasks(self, photo_id):
        return self.api.request_json('POST', f'{self.base_path}/{photo_id}/tasks/sync')
