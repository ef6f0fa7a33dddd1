"""Render reports as standalone HTML preview pages."""
import logging
from urllib.parse import urlencode
from flask import render_template
from shared.enums import ReportType, REPORT_REQUIRED_FIELDS
from shared.timeline import format_date_safe
from .storage import LOCAL_URL_PREFIX

logger = logging.getLogger(__name__)


def humanize_field(name):
    """'issue_description' -> 'Issue Description'."""
    return name.replace('_', ' ').strip().title()


def ordered_content(report_type, content):
    """Content items as (label, value) pairs, required fields first."""
    content = content or {}
    try:
        required = REPORT_REQUIRED_FIELDS[ReportType(report_type)]
    except ValueError:
        logger.warning(f"Rendering report with unknown type '{report_type}'")
        required = []

    keys = [k for k in required if k in content]
    keys += sorted(k for k in content if k not in required)
    return [(humanize_field(k), content[k]) for k in keys]


def preview_url(url, preview):
    """Attach the preview token to photo files served by this backend."""
    if preview is None or not url or not url.startswith(LOCAL_URL_PREFIX):
        return url
    return f"{url}?{urlencode({'preview_token': preview.token})}"


def build_report_context(report, preview=None):
    """Template variables for a report row.

    With a preview, photo files and the close notification are addressed
    through its token so the page works in a browser without a login.
    """
    project = report.project
    return {
        'report': report,
        'title': report.title or report.report_type,
        'report_type': report.report_type,
        'project_name': project.name if project else '',
        'project_location': ', '.join(
            part for part in (project.address1, project.city, project.state) if part
        ) if project else '',
        'generated_on': format_date_safe(report.generated_at),
        'items': ordered_content(report.report_type, report.content),
        'photos': [
            {
                'url': preview_url(photo.url, preview),
                'caption': photo.caption or photo.title or '',
                'date': format_date_safe(photo.date, fallback=''),
            }
            for photo in report.photos
        ],
        'close_url': f"/api/reports/previews/{preview.token}/closed" if preview is not None else None,
    }


def render_report_html(report, preview=None):
    """Render a report to a complete HTML document."""
    html = render_template('report.html', **build_report_context(report, preview))
    logger.debug(f"Rendered report {report.id} ({len(html)} bytes)")
    return html
