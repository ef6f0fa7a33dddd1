"""Project reports."""
from .entity_service import EntityService


class ReportService(EntityService):
    resource = 'reports'

    def list_reports(self, project_id=None, archived=None):
        if archived is not None:
            archived = 'true' if archived else 'false'
        return self.select(project_id=project_id, archived=archived)

    def report_types(self):
        return self.api.request_json('GET', f'{self.base_path}/types')

    def create_preview(self, report_id):
        """Issue a preview token; the reply carries the page path to open."""
        return self.api.request_json('POST', f'{self.base_path}/{report_id}/preview')

    def preview_state(self, token):
        return self.api.request_json('GET', f'{self.base_path}/previews/{token}')

    def preview_url(self, preview):
        """Absolute address of an issued preview page."""
        return f"{self.api.base_url}{preview['url']}"
