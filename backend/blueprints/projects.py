"""Projects blueprint: projects, collaborators, milestones and timeline."""
from flask import Blueprint, request, jsonify
from sqlalchemy import or_, case
from sqlalchemy.exc import IntegrityError
from ..models import db, Project, Profile, ProjectCollaborator, Milestone, Photo
from ..base.generic_crud import GenericCRUD, validate_with, get_json_data
from ..utils import api_error, handle_api_exception, cascade_delete_project
from ..services.storage import remove_photo_files
from .auth import current_user, roles_required
from shared.enums import UserRole, PROJECT_EDITOR_ROLES, PRIORITY_ORDER, ProjectStatus
from shared.schemas import (
    ProjectCreate, ProjectUpdate, ProjectResponse,
    CollaboratorCreate, CollaboratorResponse,
    MilestoneCreate, MilestoneUpdate, MilestoneResponse
)
from shared.timeline import (
    calculate_timeline, calculate_schedule_status, milestone_position, today_position,
    SCHEDULE_MESSAGES
)
from shared.validation import Validator, ValidationError

bp = Blueprint('projects', __name__, url_prefix='/api')


def prepare_project_create(data):
    """Normalize contact fields and stamp the creator."""
    if data.get('contact_phone'):
        data['contact_phone'] = Validator.validate_phone(data['contact_phone'])
    if data.get('zip'):
        data['zip'] = Validator.validate_zip(data['zip'])
    user = current_user()
    if user is not None:
        data['created_by'] = user.id
    return data


def prepare_project_update(data, project):
    if data.get('contact_phone'):
        data['contact_phone'] = Validator.validate_phone(data['contact_phone'])
    if data.get('zip'):
        data['zip'] = Validator.validate_zip(data['zip'])
    start = data.get('start_date', project.start_date)
    end = data.get('end_date', project.end_date)
    if start and end and end < start:
        raise ValidationError('end_date must not be before start_date')
    return data


project_crud = GenericCRUD(
    model=Project,
    create_schema=ProjectCreate,
    update_schema=ProjectUpdate,
    response_schema=ProjectResponse,
    logger_name='projects',
    pre_create_hook=prepare_project_create,
    pre_update_hook=prepare_project_update,
    cascade_delete_func=cascade_delete_project
)

milestone_crud = GenericCRUD(
    model=Milestone,
    create_schema=MilestoneCreate,
    update_schema=MilestoneUpdate,
    response_schema=MilestoneResponse,
    logger_name='milestones'
)


def visible_projects_query():
    """Projects the current user may see: all for admins and anonymous callers."""
    query = Project.query
    user = current_user()
    if user is not None and user.role != UserRole.ADMIN.value:
        query = query.filter(Project.created_by == user.id)
    return query


def build_project_query(args):
    query = visible_projects_query()

    status = args.get('status')
    if status and status != 'all':
        valid = [s.value for s in ProjectStatus]
        if status not in valid:
            raise ValidationError(f"status must be one of: all, {', '.join(valid)}")
        query = query.filter(Project.status == status)

    q = (args.get('q') or '').strip()
    if q:
        pattern = f'%{q}%'
        query = query.filter(or_(
            Project.name.ilike(pattern),
            Project.description.ilike(pattern),
            Project.city.ilike(pattern),
            Project.contact_name.ilike(pattern),
        ))

    sort = args.get('sort', 'newest')
    if sort == 'newest':
        query = query.order_by(Project.created_at.desc())
    elif sort == 'oldest':
        query = query.order_by(Project.created_at.asc())
    elif sort == 'name':
        query = query.order_by(db.func.lower(Project.name))
    elif sort == 'priority':
        weight = case(PRIORITY_ORDER, value=Project.priority, else_=len(PRIORITY_ORDER))
        query = query.order_by(weight, Project.created_at.desc())
    else:
        raise ValidationError('sort must be one of: newest, oldest, name, priority')
    return query


def get_visible_project(project_id):
    """Fetch a project or 404, hiding projects the user may not see."""
    return visible_projects_query().filter(Project.id == project_id).first()


@bp.route('/projects', methods=['GET'])
def get_projects():
    """List projects, filtered by status tab and search text."""
    try:
        query = build_project_query(request.args)
    except ValidationError as e:
        return api_error(str(e), 400)
    page = request.args.get('page', 1, type=int)
    per_page = request.args.get('per_page', 100, type=int)
    return project_crud.get_list(query=query, page=page, per_page=per_page)


@bp.route('/projects/<project_id>', methods=['GET'])
def get_project(project_id):
    """Get single project by ID."""
    project = get_visible_project(project_id)
    if project is None:
        return api_error('Project not found', 404)
    return jsonify(project_crud.serialize(project))


@bp.route('/projects', methods=['POST'])
@roles_required(*PROJECT_EDITOR_ROLES)
def create_project():
    """Create a new project."""
    return project_crud.create()


@bp.route('/projects/<project_id>', methods=['PUT'])
@roles_required(*PROJECT_EDITOR_ROLES)
def update_project(project_id):
    """Partially update a project."""
    return project_crud.update(project_id)


@bp.route('/projects/<project_id>', methods=['DELETE'])
@roles_required(*PROJECT_EDITOR_ROLES)
def delete_project(project_id):
    """Delete a project together with its photos, tasks, reports and milestones."""
    project_crud.get_or_404(project_id)
    urls = [url for (url,) in db.session.query(Photo.url).filter(Photo.project_id == project_id)]
    return project_crud.delete(project_id, after_commit=lambda: remove_photo_files(urls))


@bp.route('/projects/<project_id>/timeline', methods=['GET'])
def get_project_timeline(project_id):
    """Progress through the project's dates plus milestone schedule status."""
    project = get_visible_project(project_id)
    if project is None:
        return api_error('Project not found', 404)

    today = request.args.get('today')
    milestones = [milestone_crud.serialize(m) for m in project.milestones]
    percentage, time_left = calculate_timeline(project.start_date, project.end_date, today)
    status, days = calculate_schedule_status(
        milestones, project.start_date, project.end_date,
        project.status == ProjectStatus.COMPLETED.value, today
    )

    for milestone in milestones:
        milestone['position'] = milestone_position(milestone['due_date'], project.start_date, project.end_date)

    return jsonify({
        'project_id': project.id,
        'start_date': project.start_date.isoformat() if project.start_date else None,
        'end_date': project.end_date.isoformat() if project.end_date else None,
        'percentage': percentage,
        'time_left': time_left,
        'schedule': {
            'status': status,
            'days': days,
            'message': SCHEDULE_MESSAGES[status],
        },
        'today_position': today_position(project.start_date, project.end_date, today),
        'milestones': milestones,
    })


@bp.route('/projects/<project_id>/collaborators', methods=['GET'])
def get_collaborators(project_id):
    """List collaborators with their profiles."""
    if get_visible_project(project_id) is None:
        return api_error('Project not found', 404)
    collaborators = ProjectCollaborator.query.filter_by(project_id=project_id) \
        .order_by(ProjectCollaborator.created_at).all()
    return jsonify([
        CollaboratorResponse.model_validate(c).model_dump(mode='json') for c in collaborators
    ])


@bp.route('/projects/<project_id>/collaborators', methods=['POST'])
@roles_required(*PROJECT_EDITOR_ROLES)
def add_collaborator(project_id):
    """Add a profile to a project."""
    if get_visible_project(project_id) is None:
        return api_error('Project not found', 404)
    try:
        data = validate_with(CollaboratorCreate, get_json_data())
    except ValidationError as e:
        return api_error(str(e), 400)

    if db.session.get(Profile, data['user_id']) is None:
        return api_error('User not found', 404)

    try:
        collaborator = ProjectCollaborator(project_id=project_id, **data)
        db.session.add(collaborator)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return api_error('User is already a collaborator on this project', 400)
    except Exception as e:
        return handle_api_exception(e, 'add collaborator')

    return jsonify(CollaboratorResponse.model_validate(collaborator).model_dump(mode='json')), 201


@bp.route('/projects/<project_id>/collaborators/<user_id>', methods=['DELETE'])
@roles_required(*PROJECT_EDITOR_ROLES)
def remove_collaborator(project_id, user_id):
    """Remove a profile from a project."""
    collaborator = ProjectCollaborator.query.filter_by(project_id=project_id, user_id=user_id).first()
    if collaborator is None:
        return api_error('Collaborator not found', 404)
    try:
        db.session.delete(collaborator)
        db.session.commit()
    except Exception as e:
        return handle_api_exception(e, 'remove collaborator')
    return '', 204


@bp.route('/projects/<project_id>/milestones', methods=['GET'])
def get_milestones(project_id):
    """List project milestones by due date."""
    project = get_visible_project(project_id)
    if project is None:
        return api_error('Project not found', 404)
    return jsonify([milestone_crud.serialize(m) for m in project.milestones])


@bp.route('/projects/<project_id>/milestones', methods=['POST'])
@roles_required(*PROJECT_EDITOR_ROLES)
def create_milestone(project_id):
    """Add a milestone to a project."""
    if get_visible_project(project_id) is None:
        return api_error('Project not found', 404)
    try:
        data = get_json_data()
    except ValidationError as e:
        return api_error(str(e), 400)
    data['project_id'] = project_id
    return milestone_crud.create(data)


@bp.route('/milestones/<milestone_id>', methods=['PUT'])
@roles_required(*PROJECT_EDITOR_ROLES)
def update_milestone(milestone_id):
    return milestone_crud.update(milestone_id)


@bp.route('/milestones/<milestone_id>', methods=['DELETE'])
@roles_required(*PROJECT_EDITOR_ROLES)
def delete_milestone(milestone_id):
    return milestone_crud.delete(milestone_id)
