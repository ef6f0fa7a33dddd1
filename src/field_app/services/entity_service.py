"""Table-style data access over the REST API."""
import logging


class EntityService:
    """CRUD calls for one REST resource.

    Subclasses set ``resource`` (the URL segment, which is also the key of
    list responses) and add the resource's extra endpoints.
    """

    resource = None

    def __init__(self, api_service, page_size=200):
        self.api = api_service
        self.page_size = page_size
        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    def base_path(self):
        return f'/api/{self.resource}'

    def select(self, **filters):
        """List rows, following pagination; ``None`` filters are not sent."""
        params = {key: value for key, value in filters.items() if value is not None}
        params['per_page'] = self.page_size
        page = 1
        rows = []
        while True:
            data = self.api.request_json('GET', self.base_path, params={**params, 'page': page})
            rows.extend(data.get(self.resource, []))
            if not data.get('pagination', {}).get('has_next'):
                break
            page += 1
        self.logger.debug(f"Fetched {len(rows)} {self.resource}")
        return rows

    def get(self, row_id):
        return self.api.request_json('GET', f'{self.base_path}/{row_id}')

    def insert(self, data):
        row = self.api.request_json('POST', self.base_path, json=data)
        self.logger.info(f"Created {self.resource} row {row.get('id')}")
        return row

    def update(self, row_id, data):
        return self.api.request_json('PUT', f'{self.base_path}/{row_id}', json=data)

    def delete(self, row_id):
        """Delete a row; returns the server's summary when it sends one."""
        result = self.api.request_json('DELETE', f'{self.base_path}/{row_id}')
        self.logger.info(f"Deleted {self.resource} row {row_id}")
        return result
