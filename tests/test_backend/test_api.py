"""Tests for the projects, collaborators and milestones API endpoints."""
import json
import pytest
from backend.models import db, Project, Photo, Task, Report, Milestone, ProjectCollaborator, ReportPhoto


def test_create_and_get_project(client, create_project):
    project = create_project(
        description='Kitchen and bath',
        priority='high',
        city='Springfield',
        zip='12345',
        start_date='2024-01-01',
        end_date='2024-12-31'
    )
    assert project['id']
    assert project['status'] == 'active'
    assert project['priority'] == 'high'
    assert project['start_date'] == '2024-01-01'

    response = client.get(f"/api/projects/{project['id']}")
    assert response.status_code == 200
    data = json.loads(response.data)
    assert data['name'] == 'Riverside Renovation'
    assert data['city'] == 'Springfield'


def test_project_defaults(client, create_project):
    project = create_project()
    assert project['status'] == 'active'
    assert project['priority'] == 'medium'
    assert project['created_by'] is None


def test_create_project_requires_name(client):
    response = client.post('/api/projects', json={'description': 'No name'})
    assert response.status_code == 400
    assert 'name' in response.get_json()['error']


def test_create_project_rejects_reversed_dates(client):
    response = client.post('/api/projects', json={
        'name': 'Backwards', 'start_date': '2024-06-01', 'end_date': '2024-01-01'
    })
    assert response.status_code == 400
    assert 'end_date' in response.get_json()['error']


def test_create_project_rejects_bad_status(client):
    response = client.post('/api/projects', json={'name': 'Odd', 'status': 'draft'})
    assert response.status_code == 400
    assert 'status' in response.get_json()['error']


def test_create_project_requires_json(client):
    response = client.post('/api/projects', data='not json', content_type='text/plain')
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Request body must contain valid JSON'


def test_list_projects_filtered_by_status(client, create_project):
    create_project(name='Alpha', status='active')
    create_project(name='Beta', status='completed')
    create_project(name='Gamma', status='active')
    create_project(name='Delta', status='archived')

    response = client.get('/api/projects?status=active')
    assert response.status_code == 200
    names = sorted(p['name'] for p in response.get_json()['projects'])
    assert names == ['Alpha', 'Gamma']

    response = client.get('/api/projects?status=all')
    assert response.get_json()['pagination']['total'] == 4


def test_list_projects_invalid_status(client):
    response = client.get('/api/projects?status=unknown')
    assert response.status_code == 400


def test_list_projects_search_and_sort(client, create_project):
    create_project(name='Low Roof', priority='low')
    create_project(name='High Deck', priority='high', city='Portland')
    create_project(name='Mid Fence', priority='medium')

    response = client.get('/api/projects?sort=priority')
    names = [p['name'] for p in response.get_json()['projects']]
    assert names == ['High Deck', 'Mid Fence', 'Low Roof']

    response = client.get('/api/projects?q=portland')
    names = [p['name'] for p in response.get_json()['projects']]
    assert names == ['High Deck']

    response = client.get('/api/projects?sort=name')
    names = [p['name'] for p in response.get_json()['projects']]
    assert names == ['High Deck', 'Low Roof', 'Mid Fence']

    response = client.get('/api/projects?sort=sideways')
    assert response.status_code == 400


def test_update_project_is_partial(client, create_project):
    project = create_project(description='Original', city='Salem')
    response = client.put(f"/api/projects/{project['id']}", json={'status': 'completed'})
    assert response.status_code == 200
    data = response.get_json()
    assert data['status'] == 'completed'
    assert data['description'] == 'Original'
    assert data['city'] == 'Salem'


def test_update_project_checks_date_range_against_stored_dates(client, create_project):
    project = create_project(start_date='2024-03-01', end_date='2024-09-01')
    response = client.put(f"/api/projects/{project['id']}", json={'end_date': '2024-01-01'})
    assert response.status_code == 400


def test_get_missing_project_returns_404(client):
    response = client.get('/api/projects/does-not-exist')
    assert response.status_code == 404
    assert response.get_json()['error'] == 'Project not found'

    response = client.put('/api/projects/does-not-exist', json={'name': 'x'})
    assert response.status_code == 404


def test_delete_project_cascades(client, app, create_project):
    project = create_project()
    other = create_project(name='Keep Me')

    photo = client.post('/api/photos', json={'project_id': project['id'], 'url': 'http://x/1.jpg', 'date': '2024-05-01'}).get_json()
    client.post('/api/tasks', json={'title': 'Pour footing', 'project_id': project['id']})
    client.post(f"/api/projects/{project['id']}/milestones", json={'title': 'Framing', 'due_date': '2024-06-01'})
    report = client.post('/api/reports', json={
        'project_id': project['id'],
        'report_type': 'Custom',
        'content': {'notes': 'All good'},
        'photo_ids': [photo['id']]
    })
    assert report.status_code == 201

    response = client.delete(f"/api/projects/{project['id']}")
    assert response.status_code == 200
    summary = response.get_json()['summary']
    assert summary == {
        'projects': 1, 'collaborators': 0, 'milestones': 1,
        'photos': 1, 'tasks': 1, 'reports': 1
    }

    with app.app_context():
        assert db.session.get(Project, project['id']) is None
        assert db.session.get(Project, other['id']) is not None
        assert Photo.query.count() == 0
        assert Task.query.count() == 0
        assert Report.query.count() == 0
        assert Milestone.query.count() == 0
        assert ReportPhoto.query.count() == 0


def test_delete_missing_project_returns_404(client):
    response = client.delete('/api/projects/nope')
    assert response.status_code == 404


def test_project_timeline(client, create_project):
    project = create_project(start_date='2024-01-01', end_date='2024-12-31')

    response = client.get(f"/api/projects/{project['id']}/timeline?today=2024-07-01")
    assert response.status_code == 200
    data = response.get_json()
    assert data['percentage'] == 49
    assert data['time_left'] == '183 days left'
    assert data['schedule']['status'] == 'on_track'
    assert data['milestones'] == []

    data = client.get(f"/api/projects/{project['id']}/timeline?today=2023-12-01").get_json()
    assert (data['percentage'], data['time_left']) == (0, 'Not started')

    data = client.get(f"/api/projects/{project['id']}/timeline?today=2025-02-01").get_json()
    assert (data['percentage'], data['time_left']) == (100, 'Complete')


def test_project_timeline_behind_schedule(client, create_project):
    project = create_project(start_date='2024-01-01', end_date='2024-12-31')
    client.post(f"/api/projects/{project['id']}/milestones", json={'title': 'Demo', 'due_date': '2024-03-01'})
    client.post(f"/api/projects/{project['id']}/milestones", json={'title': 'Finish', 'due_date': '2024-11-01'})

    data = client.get(f"/api/projects/{project['id']}/timeline?today=2024-07-01").get_json()
    assert data['schedule']['status'] == 'behind'
    assert data['schedule']['message'] == 'Behind schedule'
    assert data['schedule']['days'] > 0
    assert [m['title'] for m in data['milestones']] == ['Demo', 'Finish']
    assert 0 < data['milestones'][0]['position'] < data['milestones'][1]['position'] < 100


def test_milestone_crud(client, create_project):
    project = create_project()
    response = client.post(f"/api/projects/{project['id']}/milestones", json={
        'title': 'Inspection', 'due_date': '2024-08-15'
    })
    assert response.status_code == 201
    milestone = response.get_json()
    assert milestone['project_id'] == project['id']
    assert milestone['status'] == 'pending'

    response = client.put(f"/api/milestones/{milestone['id']}", json={'status': 'completed'})
    assert response.status_code == 200
    assert response.get_json()['status'] == 'completed'

    listing = client.get(f"/api/projects/{project['id']}/milestones").get_json()
    assert [m['id'] for m in listing] == [milestone['id']]

    response = client.delete(f"/api/milestones/{milestone['id']}")
    assert response.status_code == 204
    assert client.get(f"/api/projects/{project['id']}/milestones").get_json() == []


def test_milestone_requires_due_date(client, create_project):
    project = create_project()
    response = client.post(f"/api/projects/{project['id']}/milestones", json={'title': 'Undated'})
    assert response.status_code == 400
    assert 'due_date' in response.get_json()['error']


def test_collaborators(client, app, create_project, sign_in):
    user, _ = sign_in('crew@example.com', full_name='Crew Lead')
    project = create_project()

    response = client.post(f"/api/projects/{project['id']}/collaborators", json={'user_id': user['id'], 'role': 'editor'})
    assert response.status_code == 201
    assert response.get_json()['user']['email'] == 'crew@example.com'

    response = client.post(f"/api/projects/{project['id']}/collaborators", json={'user_id': user['id']})
    assert response.status_code == 400

    response = client.post(f"/api/projects/{project['id']}/collaborators", json={'user_id': 'ghost'})
    assert response.status_code == 404

    listing = client.get(f"/api/projects/{project['id']}/collaborators").get_json()
    assert [c['user_id'] for c in listing] == [user['id']]
    assert listing[0]['role'] == 'editor'

    response = client.delete(f"/api/projects/{project['id']}/collaborators/{user['id']}")
    assert response.status_code == 204
    with app.app_context():
        assert ProjectCollaborator.query.count() == 0

    response = client.delete(f"/api/projects/{project['id']}/collaborators/{user['id']}")
    assert response.status_code == 404


def test_member_cannot_create_project(client, sign_in):
    sign_in('owner@example.com')
    _, member_headers = sign_in('member@example.com')

    response = client.post('/api/projects', json={'name': 'Not allowed'}, headers=member_headers)
    assert response.status_code == 403


def test_project_visibility_by_creator(client, app, sign_in, create_project):
    admin, admin_headers = sign_in('owner@example.com')
    manager, manager_headers = sign_in('pm@example.com')
    with app.app_context():
        from backend.models import Profile
        db.session.get(Profile, manager['id']).role = 'project_manager'
        db.session.commit()

    mine = create_project(name='Managed', headers=manager_headers)
    create_project(name='Admin Only', headers=admin_headers)
    assert mine['created_by'] == manager['id']

    names = [p['name'] for p in client.get('/api/projects', headers=manager_headers).get_json()['projects']]
    assert names == ['Managed']

    names = sorted(p['name'] for p in client.get('/api/projects', headers=admin_headers).get_json()['projects'])
    assert names == ['Admin Only', 'Managed']
