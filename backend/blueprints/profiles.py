"""Profiles blueprint."""
from flask import Blueprint, request
from ..models import Profile
from ..base.generic_crud import GenericCRUD, get_json_data
from ..utils import api_error
from .auth import current_user, serialize_profile
from shared.enums import UserRole
from shared.schemas import SignupRequest, ProfileUpdate, ProfileResponse
from shared.validation import ValidationError

bp = Blueprint('profiles', __name__, url_prefix='/api')

# Profiles are created through signup, never through this CRUD
profile_crud = GenericCRUD(
    model=Profile,
    create_schema=SignupRequest,
    update_schema=ProfileUpdate,
    response_schema=ProfileResponse,
    logger_name='profiles',
    serialize_hook=serialize_profile
)


@bp.route('/profiles', methods=['GET'])
def get_profiles():
    """List profiles by name."""
    query = Profile.query
    role = request.args.get('role')
    if role:
        query = query.filter(Profile.role == role)
    query = query.order_by(Profile.full_name, Profile.email)
    page = request.args.get('page', 1, type=int)
    per_page = request.args.get('per_page', 200, type=int)
    return profile_crud.get_list(query=query, page=page, per_page=per_page)


@bp.route('/profiles/<profile_id>', methods=['GET'])
def get_profile(profile_id):
    return profile_crud.get_detail(profile_id)


@bp.route('/profiles/<profile_id>', methods=['PUT'])
def update_profile(profile_id):
    """Update a profile.

    Signed-in users may edit only their own profile unless they are admins,
    and only admins may change roles.
    """
    user = current_user()
    if user is not None and user.role != UserRole.ADMIN.value:
        if user.id != profile_id:
            return api_error('Insufficient permissions', 403)
        try:
            data = get_json_data()
        except ValidationError as e:
            return api_error(str(e), 400)
        if 'role' in data and data['role'] != user.role:
            return api_error('Only admins can change roles', 403)
    return profile_crud.update(profile_id)
