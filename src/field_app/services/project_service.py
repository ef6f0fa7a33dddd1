"""Projects, their collaborators, milestones and timeline."""
from .entity_service import EntityService


class ProjectService(EntityService):
    resource = 'projects'

    def list_projects(self, status=None, q=None, sort=None):
        return self.select(status=status, q=q, sort=sort)

    def timeline(self, project_id, today=None):
        params = {'today': today} if today else None
        return self.api.request_json('GET', f'{self.base_path}/{project_id}/timeline', params=params)

    def collaborators(self, project_id):
        return self.api.request_json('GET', f'{self.base_path}/{project_id}/collaborators')

    def add_collaborator(self, project_id, user_id, role='member'):
        return self.api.request_json('POST', f'{self.base_path}/{project_id}/collaborators',
                                     json={'user_id': user_id, 'role': role})

    def remove_collaborator(self, project_id, user_id):
        return self.api.request_json('DELETE', f'{self.base_path}/{project_id}/collaborators/{user_id}')

    def milestones(self, project_id):
        return self.api.request_json('GET', f'{self.base_path}/{project_id}/milestones')

    def add_milestone(self, project_id, data):
        return self.api.request_json('POST', f'{self.base_path}/{project_id}/milestones', json=data)

    def update_milestone(self, milestone_id, data):
        return self.api.request_json('PUT', f'/api/milestones/{milestone_id}', json=data)

    def delete_milestone(self, milestone_id):
        return self.api.request_json('DELETE', f'/api/milestones/{milestone_id}')
