"""API service for HTTP client abstraction."""
import requests
import logging


class ServiceError(Exception):
    """A failed backend call, carrying the server's error message."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class APIService:
    """HTTP client for backend API calls with error handling.

    Every call goes out exactly once. A failure surfaces to the caller as is;
    trying again is a user action that re-invokes the same call.
    """

    def __init__(self, base_url='http://localhost:5000', timeout=10.0, auth_service=None, access_token=None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.logger = logging.getLogger(self.__class__.__name__)
        self.auth_service = auth_service
        self.access_token = access_token

    @classmethod
    def from_config(cls, config):
        return cls(
            base_url=config.api_base_url,
            timeout=config.api_timeout,
        )

    def _get_auth_headers(self):
        """Authorization header from the auth service, else the fixed access token."""
        headers = {}
        if self.auth_service:
            headers.update(self.auth_service.get_headers())
        elif self.access_token:
            headers['Authorization'] = f"Bearer {self.access_token}"
        return headers

    def _merge_headers(self, kwargs):
        auth_headers = self._get_auth_headers()
        if not auth_headers:
            return kwargs
        existing_headers = kwargs.get('headers', {})
        if not isinstance(existing_headers, dict):
            existing_headers = {}
        kwargs['headers'] = {**existing_headers, **auth_headers}
        return kwargs

    def _make_request(self, method, url, **kwargs):
        """Send one HTTP request."""
        kwargs = self._merge_headers(kwargs)
        kwargs.setdefault('timeout', self.timeout)
        try:
            response = requests.request(method, url, **kwargs)
        except requests.exceptions.RequestException as e:
            self.logger.error(f"{method} {url} failed: {e}")
            raise
        if response.status_code >= 400:
            self.logger.warning(f"{method} {url} returned {response.status_code} {response.reason}")
        return response

    def get(self, endpoint, **kwargs):
        """GET request with error handling."""
        return self._make_request('GET', f"{self.base_url}{endpoint}", **kwargs)

    def post(self, endpoint, **kwargs):
        """POST request with error handling."""
        return self._make_request('POST', f"{self.base_url}{endpoint}", **kwargs)

    def put(self, endpoint, **kwargs):
        """PUT request with error handling."""
        return self._make_request('PUT', f"{self.base_url}{endpoint}", **kwargs)

    def delete(self, endpoint, **kwargs):
        """DELETE request with error handling."""
        return self._make_request('DELETE', f"{self.base_url}{endpoint}", **kwargs)

    def request_json(self, method, endpoint, **kwargs):
        """Perform a request and decode the JSON body.

        Returns None for empty (204) responses.

        Raises:
            ServiceError: on connection failure or any 4xx/5xx response,
                with the server's ``error`` message when it sent one.
        """
        try:
            response = self._make_request(method, f"{self.base_url}{endpoint}", **kwargs)
        except requests.exceptions.RequestException as e:
            raise ServiceError(f"Connection error: {e}") from e

        if response.status_code >= 400:
            raise ServiceError(self._error_message(response), response.status_code)
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ServiceError(f"Invalid JSON from {endpoint}", response.status_code) from e

    @staticmethod
    def _error_message(response):
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get('error'):
            return body['error']
        return f"Request failed with status {response.status_code}"

    def upload_file(self, endpoint, file_path, data=None, field='file', timeout=60):
        """POST a file as multipart/form-data and decode the JSON reply."""
        try:
            with open(file_path, 'rb') as f:
                files = {field: (str(file_path).replace('\\', '/').split('/')[-1], f)}
                return self.request_json('POST', endpoint, files=files, data=data, timeout=timeout)
        except IOError as e:
            self.logger.error(f"Failed to read file {file_path}: {e}")
            raise ServiceError(f"Could not read {file_path}: {e}") from e
