"""Tests for the client HTTP, auth and entity services."""
import json
from unittest.mock import Mock, patch
import pytest
import requests
from src.field_app.services.api_service import APIService, ServiceError
from src.field_app.services.auth_service import AuthService, SIGNED_IN, SIGNED_OUT, PASSWORD_RECOVERY
from src.field_app.services.project_service import ProjectService
from src.field_app.services.photo_service import PhotoService
from src.field_app.services.report_service import ReportService

REQUEST = 'src.field_app.services.api_service.requests.request'


def make_response(status_code=200, body=None):
    response = Mock()
    response.status_code = status_code
    response.reason = 'reason'
    response.content = b'' if body is None else json.dumps(body).encode()
    if body is None:
        response.json.side_effect = ValueError('no body')
    else:
        response.json.return_value = body
    return response


@pytest.fixture
def api():
    return APIService('http://server:5000/', timeout=4)


class TestAPIService:
    def test_success_passes_timeout_and_url(self, api):
        with patch(REQUEST, return_value=make_response(200, {'ok': True})) as request:
            assert api.request_json('GET', '/api/projects', params={'page': 1}) == {'ok': True}
        request.assert_called_once_with('GET', 'http://server:5000/api/projects', params={'page': 1}, timeout=4)

    @pytest.mark.parametrize("status", [408, 429, 500, 502, 503])
    def test_server_errors_are_sent_once(self, api, status):
        responses = [make_response(status, {'error': 'busy'}), make_response(200, {'ok': 1})]
        with patch(REQUEST, side_effect=responses) as request:
            with pytest.raises(ServiceError, match='busy') as exc:
                api.request_json('GET', '/api/projects')
        assert request.call_count == 1
        assert exc.value.status_code == status

    def test_client_errors_carry_server_message(self, api):
        with patch(REQUEST, return_value=make_response(400, {'error': 'name: required'})) as request:
            with pytest.raises(ServiceError) as exc:
                api.request_json('POST', '/api/projects', json={})
        assert request.call_count == 1
        assert exc.value.message == 'name: required'
        assert exc.value.status_code == 400

    def test_error_without_body(self, api):
        with patch(REQUEST, return_value=make_response(502)):
            with pytest.raises(ServiceError, match='Request failed with status 502'):
                api.request_json('GET', '/api/projects')

    def test_connection_error(self, api):
        with patch(REQUEST, side_effect=requests.exceptions.ConnectionError('refused')) as request:
            with pytest.raises(ServiceError, match='Connection error'):
                api.request_json('GET', '/api/projects')
        assert request.call_count == 1

    def test_timeout_is_not_resent(self, api):
        responses = [requests.exceptions.Timeout('slow'), make_response(201, {'id': 'r1'})]
        with patch(REQUEST, side_effect=responses) as request:
            with pytest.raises(ServiceError, match='slow'):
                api.request_json('POST', '/api/reports', json={'title': 'Walkthrough'})
        assert request.call_count == 1

    def test_project_delete_sends_one_call(self, api):
        responses = [make_response(503, {'error': 'busy'}), make_response(200, {})]
        with patch(REQUEST, side_effect=responses) as request:
            with pytest.raises(ServiceError):
                ProjectService(api).delete('p1')
        request.assert_called_once_with('DELETE', 'http://server:5000/api/projects/p1', timeout=4)

    def test_report_insert_sends_one_call(self, api):
        responses = [make_response(502), make_response(201, {'id': 'r1'})]
        with patch(REQUEST, side_effect=responses) as request:
            with pytest.raises(ServiceError):
                ReportService(api).insert({'title': 'Walkthrough'})
        assert request.call_count == 1

    def test_empty_response(self, api):
        with patch(REQUEST, return_value=make_response(204)):
            assert api.request_json('DELETE', '/api/tasks/1') is None

    def test_access_token_header(self):
        api = APIService('http://server', access_token='abc')
        with patch(REQUEST, return_value=make_response(200, {})) as request:
            api.get('/api/projects', headers={'X-Trace': '1'})
        assert request.call_args.kwargs['headers'] == {'X-Trace': '1', 'Authorization': 'Bearer abc'}

    def test_upload_file(self, api, tmp_path):
        photo = tmp_path / 'wall.jpg'
        photo.write_bytes(b'jpeg')
        with patch(REQUEST, return_value=make_response(201, {'id': 'p1'})) as request:
            assert api.upload_file('/api/photos', photo, data={'caption': 'Wall'}) == {'id': 'p1'}
        kwargs = request.call_args.kwargs
        assert kwargs['files']['file'][0] == 'wall.jpg'
        assert kwargs['data'] == {'caption': 'Wall'}
        assert kwargs['timeout'] == 60

    def test_upload_missing_file(self, api, tmp_path):
        with pytest.raises(ServiceError, match='Could not read'):
            api.upload_file('/api/photos', tmp_path / 'missing.jpg')


class TestAuthService:
    @pytest.fixture
    def api(self):
        api = Mock()
        api.request_json.return_value = {
            'token': 'tok-1', 'user': {'id': 'u1', 'email': 'pat@example.com'}, 'expires_at': '2030-01-01T00:00:00'
        }
        return api

    def test_sign_in_persists_session_and_emits(self, api, tmp_path):
        auth = AuthService(api, data_dir=tmp_path)
        events = []
        auth.on_auth_state_change(lambda event, session: events.append((event, session and session['token'])))

        session = auth.sign_in_with_password('pat@example.com', 'secret1')
        api.request_json.assert_called_once_with(
            'POST', '/api/auth/login', json={'email': 'pat@example.com', 'password': 'secret1'}
        )
        assert session['user']['id'] == 'u1'
        assert events == [(SIGNED_IN, 'tok-1')]
        assert auth.get_headers() == {'Authorization': 'Bearer tok-1'}
        assert api.auth_service is auth

        # A fresh service picks the session up from disk
        restored = AuthService(Mock(), data_dir=tmp_path)
        assert restored.is_authenticated()
        assert restored.user['email'] == 'pat@example.com'

    def test_sign_out_clears_even_when_server_unreachable(self, api, tmp_path):
        auth = AuthService(api, data_dir=tmp_path)
        auth.sign_in_with_password('pat@example.com', 'secret1')
        events = []
        auth.on_auth_state_change(lambda event, session: events.append((event, session)))

        api.request_json.side_effect = ServiceError('Connection error: refused')
        auth.sign_out()
        assert not auth.is_authenticated()
        assert not auth.token_file.exists()
        assert events == [(SIGNED_OUT, None)]

    def test_get_session_drops_revoked_token(self, api, tmp_path):
        auth = AuthService(api, data_dir=tmp_path)
        auth.sign_in_with_password('pat@example.com', 'secret1')
        events = []
        auth.on_auth_state_change(lambda event, session: events.append(event))

        api.request_json.side_effect = ServiceError('Invalid or expired token', 401)
        assert auth.get_session() is None
        assert not auth.is_authenticated()
        assert events == [SIGNED_OUT]

    def test_get_session_propagates_other_errors(self, api, tmp_path):
        auth = AuthService(api, data_dir=tmp_path)
        auth.sign_in_with_password('pat@example.com', 'secret1')
        api.request_json.side_effect = ServiceError('boom', 500)
        with pytest.raises(ServiceError):
            auth.get_session()
        assert auth.is_authenticated()

    def test_get_session_without_token_skips_server(self, tmp_path):
        api = Mock()
        auth = AuthService(api, data_dir=tmp_path)
        assert auth.get_session() is None
        api.request_json.assert_not_called()

    def test_password_recovery(self, tmp_path):
        api = Mock()
        api.request_json.return_value = {'message': 'sent'}
        auth = AuthService(api, data_dir=tmp_path)
        events = []
        unsubscribe = auth.on_auth_state_change(lambda event, session: events.append(event))

        auth.reset_password_for_email('pat@example.com')
        assert events == [PASSWORD_RECOVERY]
        unsubscribe()
        auth.update_password('recovery-token', 'newpass1')
        api.request_json.assert_called_with(
            'POST', '/api/auth/reset-password/confirm', json={'token': 'recovery-token', 'password': 'newpass1'}
        )
        assert events == [PASSWORD_RECOVERY]

    def test_unreadable_session_file_is_ignored(self, tmp_path):
        (tmp_path / 'auth_token.json').write_text('{broken')
        auth = AuthService(Mock(), data_dir=tmp_path)
        assert not auth.is_authenticated()


class TestEntityServices:
    def test_select_follows_pagination(self):
        api = Mock()
        api.request_json.side_effect = [
            {'projects': [{'id': 1}], 'pagination': {'has_next': True}},
            {'projects': [{'id': 2}], 'pagination': {'has_next': False}},
        ]
        service = ProjectService(api, page_size=1)
        assert service.list_projects(status='active') == [{'id': 1}, {'id': 2}]
        first, second = api.request_json.call_args_list
        assert first.kwargs['params'] == {'status': 'active', 'per_page': 1, 'page': 1}
        assert second.kwargs['params'] == {'status': 'active', 'per_page': 1, 'page': 2}

    def test_crud_paths(self):
        api = Mock()
        service = ProjectService(api)
        service.get('p1')
        api.request_json.assert_called_with('GET', '/api/projects/p1')
        service.update('p1', {'name': 'N'})
        api.request_json.assert_called_with('PUT', '/api/projects/p1', json={'name': 'N'})
        service.delete('p1')
        api.request_json.assert_called_with('DELETE', '/api/projects/p1')
        service.add_milestone('p1', {'title': 'Roof'})
        api.request_json.assert_called_with('POST', '/api/projects/p1/milestones', json={'title': 'Roof'})

    def test_photo_grouped_params(self):
        api = Mock()
        PhotoService(api).grouped('p1', tags=['roof', 'gutter'], users=[], start_date='2024-01-01')
        api.request_json.assert_called_once_with('GET', '/api/photos/grouped', params={
            'project_id': 'p1', 'tags': 'roof,gutter', 'start_date': '2024-01-01'
        })

    def test_photo_upload_form_fields(self):
        api = Mock()
        PhotoService(api).upload('/tmp/a.jpg', {'tags': ['a', 'b'], 'progress': 0.5, 'caption': None})
        api.upload_file.assert_called_once_with('/api/photos', '/tmp/a.jpg', data={'tags': 'a,b', 'progress': '0.5'})

    def test_report_archive_filter_and_preview_calls(self):
        api = Mock()
        api.base_url = 'http://server:5000'
        api.request_json.return_value = {'reports': [], 'pagination': {'has_next': False}}
        service = ReportService(api)
        service.list_reports(archived=False)
        assert api.request_json.call_args.kwargs['params']['archived'] == 'false'
        service.create_preview('r9')
        api.request_json.assert_called_with('POST', '/api/reports/r9/preview')
        service.preview_state('tok')
        api.request_json.assert_called_with('GET', '/api/reports/previews/tok')
        page = service.preview_url({'url': '/api/reports/r9/html?preview_token=tok'})
        assert page == 'http://server:5000/api/reports/r9/html?preview_token=tok'
