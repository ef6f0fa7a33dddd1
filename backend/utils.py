"""Backend utility functions for the field project manager."""
from flask import jsonify, request
from werkzeug.exceptions import HTTPException
from .models import db, Project, Photo, Task, Report, ReportPhoto, Milestone, ProjectCollaborator
import logging


logger = logging.getLogger(__name__)


def api_error(message, status_code=400, log_level='warning', details=None):
    """
    Standardized API error response with consistent logging.

    Args:
        message (str): Error message for the client
        status_code (int): HTTP status code
        log_level (str): Logging level ('debug', 'info', 'warning', 'error', 'critical')
        details (dict, optional): Additional details for logging

    Returns:
        Flask response: JSON error response
    """
    log_func = getattr(logger, log_level, logger.warning)
    if details:
        log_func(f"API Error ({status_code}): {message} - Details: {details}")
    else:
        log_func(f"API Error ({status_code}): {message}")

    return jsonify({'error': message}), status_code


def handle_api_exception(e, operation="operation", status_code=500):
    """
    Handle exceptions in API endpoints with consistent logging and responses.

    The session is rolled back so the failed unit of work does not leak
    into the next request.
    """
    logger.error(f"Exception during {operation}: {str(e)}", exc_info=True)
    db.session.rollback()
    return api_error(f"Failed to {operation}", status_code, 'error')


def register_error_handlers(app):
    """Render HTTP errors as JSON bodies instead of HTML pages."""

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return api_error(e.description or e.name, e.code, 'info' if e.code < 500 else 'error')

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        return handle_api_exception(e, f"handle {request.method} {request.path}")


def parse_bool_arg(value):
    """Interpret a query string flag; None when absent."""
    if value is None or value == '':
        return None
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def parse_list_arg(args, name):
    """Collect a list query parameter given repeated (?tag=a&tag=b) or comma separated."""
    values = []
    for raw in args.getlist(name):
        values.extend(v.strip() for v in raw.split(',') if v.strip())
    return values


def cascade_delete_project(project_id):
    """
    Delete a project and all its child records (collaborators, milestones,
    photos, tasks, reports).

    Args:
        project_id (str): ID of the project to delete

    Returns:
        dict: Summary of deleted records
    """
    summary = {
        'projects': 0,
        'collaborators': 0,
        'milestones': 0,
        'photos': 0,
        'tasks': 0,
        'reports': 0
    }

    try:
        project = db.session.get(Project, project_id)
        if not project:
            return summary

        summary['collaborators'] = ProjectCollaborator.query.filter_by(project_id=project_id).count()
        summary['milestones'] = Milestone.query.filter_by(project_id=project_id).count()
        summary['photos'] = Photo.query.filter_by(project_id=project_id).count()
        summary['tasks'] = Task.query.filter_by(project_id=project_id).count()
        summary['reports'] = Report.query.filter_by(project_id=project_id).count()

        report_ids = db.select(Report.id).where(Report.project_id == project_id)
        ReportPhoto.query.filter(ReportPhoto.report_id.in_(report_ids)).delete(synchronize_session=False)

        # Relationship cascades remove the children in the same flush
        db.session.delete(project)
        summary['projects'] = 1

        logger.info(f"Cascading delete completed for project {project_id}: {summary}")

    except Exception as e:
        logger.error(f"Error in cascade delete of project {project_id}: {e}")
        raise

    return summary
