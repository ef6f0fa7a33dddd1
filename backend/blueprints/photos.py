"""Photos blueprint for Flask API."""
from flask import Blueprint, jsonify, request, send_from_directory, abort
import logging
from pydantic import ValidationError as PydanticValidationError
from ..models import db, Photo, Project
from ..base.generic_crud import GenericCRUD, format_pydantic_errors
from ..services.storage import get_photo_storage, remove_photo_files
from ..services.task_sync import sync_photo_tasks, TaskSyncError
from ..utils import api_error, handle_api_exception, parse_list_arg
from .auth import current_user
from shared.models import new_id
from shared.schemas import PhotoCreate, PhotoUpdate, PhotoResponse, PhotoFilterParams, TaskResponse
from shared.utils import filter_photos, group_photos_by_date
from shared.validation import ValidationError

logger = logging.getLogger(__name__)

bp = Blueprint('photos', __name__, url_prefix='/api')


def check_project(data):
    project_id = data.get('project_id')
    if project_id and db.session.get(Project, project_id) is None:
        raise ValidationError('project_id: project not found')
    return data


def check_project_update(data, photo):
    return check_project(data)


photo_crud = GenericCRUD(
    model=Photo,
    create_schema=PhotoCreate,
    update_schema=PhotoUpdate,
    response_schema=PhotoResponse,
    logger_name='photos',
    pre_create_hook=check_project,
    pre_update_hook=check_project_update
)


def photos_query(project_id=None):
    query = Photo.query
    if project_id:
        query = query.filter(Photo.project_id == project_id)
    return query.order_by(Photo.created_at.desc())


@bp.route('/photos', methods=['GET'])
def get_photos():
    """List photos, newest first, optionally for one project."""
    page = request.args.get('page', 1, type=int)
    per_page = request.args.get('per_page', 200, type=int)
    return photo_crud.get_list(
        query=photos_query(request.args.get('project_id')),
        page=page, per_page=per_page, max_per_page=500
    )


@bp.route('/photos/grouped', methods=['GET'])
def get_grouped_photos():
    """Photos filtered by the grid filters and grouped into date sections."""
    try:
        params = PhotoFilterParams(
            project_id=request.args.get('project_id') or None,
            start_date=request.args.get('start_date') or None,
            end_date=request.args.get('end_date') or None,
            tags=parse_list_arg(request.args, 'tags'),
            users=parse_list_arg(request.args, 'users'),
            groups=parse_list_arg(request.args, 'groups'),
            progress_stages=parse_list_arg(request.args, 'progress_stages'),
        )
    except PydanticValidationError as e:
        return api_error(format_pydantic_errors(e), 400)

    photos = [photo_crud.serialize(p) for p in photos_query(params.project_id).all()]
    filtered = filter_photos(photos, params.model_dump())
    sections = group_photos_by_date(filtered)
    return jsonify({'sections': sections, 'count': len(filtered)})


@bp.route('/photos/<photo_id>', methods=['GET'])
def get_photo(photo_id):
    return photo_crud.get_detail(photo_id)


@bp.route('/photos', methods=['POST'])
def create_photo():
    """Create a photo from JSON metadata or a multipart upload.

    Multipart requests carry the image in the ``file`` field and the
    metadata as ordinary form fields.
    """
    if 'file' not in request.files:
        return photo_crud.create()

    upload = request.files['file']
    if not upload.filename:
        return api_error('file: no file selected', 400)

    data = request.form.to_dict()
    data['tags'] = parse_list_arg(request.form, 'tags')
    if 'flagged' in data:
        data['flagged'] = data['flagged'].lower() in ('1', 'true', 'yes', 'on')
    if not data.get('progress'):
        data.pop('progress', None)

    photo_id = new_id()
    storage = get_photo_storage()
    try:
        object_name = storage.object_name_for(photo_id, upload.filename, data.get('project_id'))
    except ValueError as e:
        return api_error(str(e), 400)
    try:
        data['url'] = storage.save(upload.stream, object_name)
    except Exception as e:
        return handle_api_exception(e, 'store photo file')

    data['id'] = photo_id
    response = photo_crud.create(data)
    if response[1] != 201:
        # Row was rejected; drop the orphaned file
        storage.delete(object_name)
    return response


@bp.route('/photos/<photo_id>', methods=['PUT'])
def update_photo(photo_id):
    return photo_crud.update(photo_id)


@bp.route('/photos/<photo_id>', methods=['DELETE'])
def delete_photo(photo_id):
    """Delete a photo row, then its stored file."""
    urls = [photo_crud.get_or_404(photo_id).url]
    return photo_crud.delete(photo_id, after_commit=lambda: remove_photo_files(urls))


@bp.route('/photos/<photo_id>/tasks/sync', methods=['POST'])
def sync_tasks(photo_id):
    """Turn the photo's annotation tasks into project tasks."""
    photo = db.session.get(Photo, photo_id)
    if photo is None:
        return api_error('Photo not found', 404)

    user = current_user()
    try:
        result = sync_photo_tasks(photo, created_by=user.id if user else None)
        db.session.commit()
    except TaskSyncError as e:
        db.session.rollback()
        return api_error(str(e), 400)
    except Exception as e:
        return handle_api_exception(e, 'sync photo tasks')

    return jsonify({
        'created': result['created'],
        'updated': result['updated'],
        'tasks': [TaskResponse.model_validate(t).model_dump(mode='json') for t in result['tasks']],
    })


@bp.route('/photos/files/<path:object_name>', methods=['GET'])
def get_photo_file(object_name):
    """Serve a stored file when photos live on local disk."""
    storage = get_photo_storage()
    if storage.provider_name != 'local':
        abort(404)
    return send_from_directory(storage.container_path, object_name)
