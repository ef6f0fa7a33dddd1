"""Tasks blueprint."""
from flask import Blueprint, request
from ..models import db, Project, Task
from ..base.generic_crud import GenericCRUD
from ..services.task_sync import write_back_completion
from ..utils import api_error
from .auth import current_user
from shared.enums import TaskStatus
from shared.schemas import TaskCreate, TaskUpdate, TaskResponse
from shared.validation import ValidationError

bp = Blueprint('tasks', __name__, url_prefix='/api')


def prepare_task_create(data):
    project_id = data.get('project_id')
    if project_id and db.session.get(Project, project_id) is None:
        raise ValidationError('project_id: project not found')
    user = current_user()
    if user is not None and not data.get('created_by'):
        data['created_by'] = user.id
    return data


def mirror_photo_completion(task, data):
    if 'status' in data:
        write_back_completion(task)


task_crud = GenericCRUD(
    model=Task,
    create_schema=TaskCreate,
    update_schema=TaskUpdate,
    response_schema=TaskResponse,
    logger_name='tasks',
    pre_create_hook=prepare_task_create,
    post_update_hook=mirror_photo_completion
)


@bp.route('/tasks', methods=['GET'])
def get_tasks():
    """List tasks, optionally by project and status."""
    query = Task.query
    project_id = request.args.get('project_id')
    if project_id:
        query = query.filter(Task.project_id == project_id)
    status = request.args.get('status')
    if status:
        valid = [s.value for s in TaskStatus]
        if status not in valid:
            return api_error(f"status must be one of: {', '.join(valid)}", 400)
        query = query.filter(Task.status == status)
    query = query.order_by(Task.created_at.desc())

    page = request.args.get('page', 1, type=int)
    per_page = request.args.get('per_page', 200, type=int)
    return task_crud.get_list(query=query, page=page, per_page=per_page, max_per_page=500)


@bp.route('/tasks/<task_id>', methods=['GET'])
def get_task(task_id):
    return task_crud.get_detail(task_id)


@bp.route('/tasks', methods=['POST'])
def create_task():
    return task_crud.create()


@bp.route('/tasks/<task_id>', methods=['PUT'])
def update_task(task_id):
    """Update a task; completing a photo task also ticks it on the photo."""
    return task_crud.update(task_id)


@bp.route('/tasks/<task_id>', methods=['DELETE'])
def delete_task(task_id):
    return task_crud.delete(task_id)
