"""Authentication blueprint: signup, login, sessions and password recovery."""
from datetime import timedelta
from functools import wraps
from flask import Blueprint, request, jsonify, g, current_app
import secrets
import logging
from werkzeug.security import generate_password_hash, check_password_hash
from ..models import db, Profile, AuthSession, ReportPreview
from ..base.generic_crud import validate_with, get_json_data
from ..utils import api_error, handle_api_exception
from ..services.storage import LOCAL_URL_PREFIX
from shared.models import now
from shared.enums import UserRole, SessionKind
from shared.schemas import (
    SignupRequest, LoginRequest, PasswordResetRequest, PasswordResetConfirm, ProfileResponse
)
from shared.validation import ValidationError

bp = Blueprint('auth', __name__, url_prefix='/api')
logger = logging.getLogger(__name__)

# Reachable without a token even when REQUIRE_AUTH is on
PUBLIC_PATHS = (
    '/api/auth/signup',
    '/api/auth/login',
    '/api/auth/reset-password',
    # Preview state; the token in the path is the credential
    '/api/reports/previews/',
)


def serialize_profile(profile):
    return ProfileResponse.model_validate(profile).model_dump(mode='json')


def current_user():
    """Profile attached to the current request, or None when anonymous."""
    return g.get('user')


def bearer_token():
    auth_header = request.headers.get('Authorization', '')
    if auth_header.startswith('Bearer '):
        return auth_header[len('Bearer '):].strip() or None
    return None


def issue_session(profile, kind=SessionKind.ACCESS.value):
    """Create and stage a new session token for a profile."""
    if kind == SessionKind.RECOVERY.value:
        lifetime = timedelta(hours=current_app.config.get('RECOVERY_TOKEN_HOURS', 1))
    else:
        lifetime = timedelta(days=current_app.config.get('ACCESS_TOKEN_DAYS', 7))
    session = AuthSession(
        token=secrets.token_urlsafe(32),
        profile_id=profile.id,
        kind=kind,
        expires_at=now() + lifetime,
    )
    db.session.add(session)
    return session


def lookup_session(token, kind=SessionKind.ACCESS.value):
    """Return the live session for a token, or None if unknown or expired."""
    if not token:
        return None
    session = db.session.get(AuthSession, token)
    if session is None or session.kind != kind:
        return None
    if session.is_expired():
        return None
    return session


def issue_preview(report, user=None):
    """Create and stage a preview token for one report."""
    lifetime = timedelta(minutes=current_app.config.get('PREVIEW_TOKEN_MINUTES', 30))
    preview = ReportPreview(
        token=secrets.token_urlsafe(32),
        report_id=report.id,
        created_by=user.id if user else None,
        expires_at=now() + lifetime,
    )
    db.session.add(preview)
    return preview


def lookup_preview(token):
    """Return the live preview for a token, or None if unknown or expired."""
    if not token:
        return None
    preview = db.session.get(ReportPreview, token)
    if preview is None or preview.is_expired():
        return None
    return preview


def preview_for_request():
    """Preview named by this request's ``preview_token`` argument, if it covers the request.

    A preview opens its report's HTML page and the photo files of the
    report's project, and nothing else.
    """
    token = request.args.get('preview_token')
    if not token or request.method != 'GET':
        return None
    if '..' in request.path.split('/'):
        return None
    preview = lookup_preview(token)
    if preview is None:
        return None
    if request.path == f"/api/reports/{preview.report_id}/html":
        return preview
    if request.path.startswith(f"{LOCAL_URL_PREFIX}{preview.report.project_id}/"):
        return preview
    return None


def roles_required(*roles):
    """Reject requests from an attached user whose role is not listed.

    Anonymous requests pass through; REQUIRE_AUTH decides whether those are
    allowed at all.
    """
    allowed = {r.value if isinstance(r, UserRole) else r for r in roles}

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            user = current_user()
            if user is not None and user.role not in allowed:
                return api_error('Insufficient permissions', 403)
            return view(*args, **kwargs)
        return wrapper
    return decorator


@bp.route('/auth/signup', methods=['POST'])
def signup():
    """Register a new profile."""
    try:
        data = validate_with(SignupRequest, get_json_data())
    except ValidationError as e:
        return api_error(str(e), 400)

    if Profile.query.filter(db.func.lower(Profile.email) == data['email']).first():
        return api_error('User already exists', 400)

    # The first profile administers the installation
    role = UserRole.ADMIN.value if Profile.query.count() == 0 else UserRole.MEMBER.value

    try:
        profile = Profile(
            email=data['email'],
            full_name=data.get('full_name', ''),
            password_hash=generate_password_hash(data['password']),
            role=role
        )
        db.session.add(profile)
        db.session.commit()
        logger.info(f"Registered profile {profile.id} ({profile.role})")
        return jsonify(serialize_profile(profile)), 201
    except Exception as e:
        return handle_api_exception(e, 'register user')


@bp.route('/auth/login', methods=['POST'])
def login():
    """Check credentials and return a bearer token."""
    try:
        data = validate_with(LoginRequest, get_json_data())
    except ValidationError as e:
        return api_error(str(e), 400)

    profile = Profile.query.filter(db.func.lower(Profile.email) == data['email']).first()
    if not profile or not profile.password_hash or not check_password_hash(profile.password_hash, data['password']):
        return api_error('Invalid email or password', 401)

    try:
        session = issue_session(profile)
        db.session.commit()
        return jsonify({
            'token': session.token,
            'expires_at': session.expires_at.isoformat(),
            'user': serialize_profile(profile)
        })
    except Exception as e:
        return handle_api_exception(e, 'log in')


@bp.route('/auth/logout', methods=['POST'])
def logout():
    """Invalidate the bearer token of this request."""
    token = bearer_token()
    if not token:
        return api_error('Token required', 400)

    session = db.session.get(AuthSession, token)
    if session is None:
        return api_error('Invalid token', 400)
    try:
        db.session.delete(session)
        db.session.commit()
        return jsonify({'message': 'Logged out successfully'})
    except Exception as e:
        return handle_api_exception(e, 'log out')


@bp.route('/auth/session', methods=['GET'])
def get_session():
    """Current session and user."""
    user = current_user()
    if user is None:
        return api_error('Not authenticated', 401, 'info')
    session = g.auth_session
    return jsonify({
        'token': session.token,
        'expires_at': session.expires_at.isoformat() if session.expires_at else None,
        'user': serialize_profile(user)
    })


@bp.route('/auth/reset-password', methods=['POST'])
def reset_password():
    """Issue a recovery token for an email address.

    Always answers 200 so the endpoint does not reveal which emails exist.
    """
    try:
        data = validate_with(PasswordResetRequest, get_json_data())
    except ValidationError as e:
        return api_error(str(e), 400)

    profile = Profile.query.filter(db.func.lower(Profile.email) == data['email']).first()
    if profile is not None:
        try:
            session = issue_session(profile, SessionKind.RECOVERY.value)
            db.session.commit()
            logger.info(f"Issued recovery token for profile {profile.id}", extra={
                'extra_fields': {'profile_id': profile.id, 'expires_at': session.expires_at}
            })
        except Exception as e:
            return handle_api_exception(e, 'issue password reset')
    else:
        logger.info("Password reset requested for unknown email")

    return jsonify({'message': 'If the account exists, password reset instructions have been sent'})


@bp.route('/auth/reset-password/confirm', methods=['POST'])
def confirm_reset_password():
    """Set a new password using a recovery token."""
    try:
        data = validate_with(PasswordResetConfirm, get_json_data())
    except ValidationError as e:
        return api_error(str(e), 400)

    session = lookup_session(data['token'], SessionKind.RECOVERY.value)
    if session is None:
        return api_error('Invalid or expired reset token', 400)

    try:
        profile = session.profile
        profile.password_hash = generate_password_hash(data['password'])
        # Existing logins end with the password change
        AuthSession.query.filter_by(profile_id=profile.id).delete(synchronize_session=False)
        db.session.commit()
        logger.info(f"Password reset for profile {profile.id}")
        return jsonify({'message': 'Password updated successfully'})
    except Exception as e:
        return handle_api_exception(e, 'reset password')


def init_auth(app):
    """Initialize authentication for the Flask app."""
    @app.before_request
    def check_auth():
        g.user = None
        g.auth_session = None
        g.preview = None

        if not request.path.startswith('/api'):
            return

        g.preview = preview_for_request()

        token = bearer_token()
        if token:
            session = lookup_session(token)
            if session is None:
                return api_error('Invalid or expired token', 401, 'info')
            g.user = session.profile
            g.auth_session = session
            return

        if g.preview is not None:
            return
        if not app.config.get('REQUIRE_AUTH', False):
            return
        if request.path.startswith(PUBLIC_PATHS):
            return
        return api_error('Authentication required', 401, 'info')
