"""Reports blueprint."""
from flask import Blueprint, request, jsonify, g
from ..models import db, Project, Photo, Report
from ..base.generic_crud import GenericCRUD
from ..services.report_renderer import render_report_html
from ..utils import api_error, handle_api_exception, parse_bool_arg
from .auth import current_user, issue_preview, lookup_preview
from shared.models import now
from shared.enums import ReportType, REPORT_REQUIRED_FIELDS
from shared.schemas import ReportCreate, ReportUpdate, ReportResponse
from shared.validation import Validator, ValidationError

bp = Blueprint('reports', __name__, url_prefix='/api')


def load_photos(photo_ids, project_id):
    """Resolve photo ids, all of which must belong to the report's project."""
    if not photo_ids:
        return []
    photos = Photo.query.filter(Photo.id.in_(photo_ids)).all()
    found = {photo.id for photo in photos}
    missing = [pid for pid in photo_ids if pid not in found]
    if missing:
        raise ValidationError(f"photo_ids: unknown photos {', '.join(missing)}")
    foreign = [photo.id for photo in photos if photo.project_id != project_id]
    if foreign:
        raise ValidationError(f"photo_ids: photos {', '.join(foreign)} belong to another project")
    order = {pid: index for index, pid in enumerate(photo_ids)}
    return sorted(photos, key=lambda photo: order[photo.id])


def prepare_report_create(data):
    if db.session.get(Project, data['project_id']) is None:
        raise ValidationError('project_id: project not found')
    data['photos'] = load_photos(data.pop('photo_ids', []), data['project_id'])
    user = current_user()
    if user is not None and not data.get('generated_by'):
        data['generated_by'] = user.id
    return data


def prepare_report_update(data, report):
    if 'content' in data:
        data['content'] = Validator.validate_report_content(report.report_type, data['content'])
    if 'photo_ids' in data:
        data['photos'] = load_photos(data.pop('photo_ids'), report.project_id)
    return data


report_crud = GenericCRUD(
    model=Report,
    create_schema=ReportCreate,
    update_schema=ReportUpdate,
    response_schema=ReportResponse,
    logger_name='reports',
    pre_create_hook=prepare_report_create,
    pre_update_hook=prepare_report_update
)


@bp.route('/reports', methods=['GET'])
def get_reports():
    """List reports, newest first, optionally for one project."""
    query = Report.query
    project_id = request.args.get('project_id')
    if project_id:
        query = query.filter(Report.project_id == project_id)
    archived = parse_bool_arg(request.args.get('archived'))
    if archived is not None:
        query = query.filter(Report.is_archived == archived)
    report_type = request.args.get('report_type')
    if report_type:
        query = query.filter(Report.report_type == report_type)
    query = query.order_by(Report.generated_at.desc())

    page = request.args.get('page', 1, type=int)
    per_page = request.args.get('per_page', 100, type=int)
    return report_crud.get_list(query=query, page=page, per_page=per_page)


@bp.route('/reports/types', methods=['GET'])
def get_report_types():
    """Available report types and the content fields each requires."""
    return jsonify([
        {'value': report_type.value, 'required_fields': REPORT_REQUIRED_FIELDS[report_type]}
        for report_type in ReportType
    ])


@bp.route('/reports/<report_id>', methods=['GET'])
def get_report(report_id):
    return report_crud.get_detail(report_id)


@bp.route('/reports', methods=['POST'])
def create_report():
    """Create a report; its content must carry the type's required fields."""
    return report_crud.create()


@bp.route('/reports/<report_id>', methods=['PUT'])
def update_report(report_id):
    return report_crud.update(report_id)


@bp.route('/reports/<report_id>', methods=['DELETE'])
def delete_report(report_id):
    return report_crud.delete(report_id)


@bp.route('/reports/<report_id>/html', methods=['GET'])
def get_report_html(report_id):
    """Rendered preview page for a report."""
    report = db.session.get(Report, report_id)
    if report is None:
        return api_error('Report not found', 404)
    preview = g.get('preview')
    if preview is not None and preview.report_id != report.id:
        preview = None
    return render_report_html(report, preview), 200, {'Content-Type': 'text/html; charset=utf-8'}


def serialize_preview(preview):
    return {
        'token': preview.token,
        'report_id': preview.report_id,
        'url': f"/api/reports/{preview.report_id}/html?preview_token={preview.token}",
        'expires_at': preview.expires_at.isoformat() if preview.expires_at else None,
        'closed': preview.closed_at is not None,
    }


@bp.route('/reports/<report_id>/preview', methods=['POST'])
def create_report_preview(report_id):
    """Issue a token that opens the report's preview page in a browser without a login."""
    report = report_crud.get_or_404(report_id)
    try:
        preview = issue_preview(report, current_user())
        db.session.commit()
    except Exception as e:
        return handle_api_exception(e, 'create report preview')
    return jsonify(serialize_preview(preview)), 201


@bp.route('/reports/previews/<token>', methods=['GET'])
def get_report_preview(token):
    """Whether the preview page is still open."""
    preview = lookup_preview(token)
    if preview is None:
        return api_error('Preview not found', 404, 'info')
    return jsonify(serialize_preview(preview))


@bp.route('/reports/previews/<token>/closed', methods=['POST'])
def close_report_preview(token):
    """Close notification sent by the preview page as it goes away."""
    preview = lookup_preview(token)
    if preview is None:
        return api_error('Preview not found', 404, 'info')
    if preview.closed_at is None:
        try:
            preview.closed_at = now()
            db.session.commit()
        except Exception as e:
            return handle_api_exception(e, 'close report preview')
    return '', 204
