"""Report creation, archive and preview handlers."""

import logging
from shared.enums import ReportType
from shared.validation import Validator, ValidationError
from ..services.api_service import ServiceError
from .. import preview
from .. import state

SLICE = 'reports'


class ReportHandler:
    """Backs the report list and the report creation form.

    Required content fields are checked before anything is sent, so a
    form with gaps never reaches the server.
    """

    def __init__(self, app):
        self.app = app
        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    def slice(self):
        return self.app.store[SLICE]

    def _fail(self, action, error):
        self.logger.error(f"Failed to {action}: {error}")
        self.app.store.dispatch(state.failure(SLICE, error))
        self.app.set_status(f"Failed to {action}: {error}")

    def load_reports(self, project_id=None, archived=None):
        self.app.store.dispatch(state.request(SLICE))
        try:
            reports = self.app.reports.list_reports(project_id, archived)
        except ServiceError as e:
            self._fail('load reports', e)
            return False
        self.app.store.dispatch(state.success(SLICE, reports))
        return True

    @staticmethod
    def report_types():
        return [t.value for t in ReportType]

    @staticmethod
    def missing_fields(report_type, content):
        """Required fields of the type still empty in ``content``."""
        return Validator.missing_report_fields(report_type, content)

    def create_report(self, project_id, report_type, content, title='', photo_ids=None):
        """Create a report and append it to the report list.

        Returns:
            dict or None: the created report, None when validation or the
            server call failed (the message is in the slice's ``error``)
        """
        try:
            Validator.validate_report_content(report_type, content)
        except ValidationError as e:
            self._fail('create report', e)
            return None

        payload = {
            'project_id': project_id,
            'report_type': report_type,
            'title': title,
            'content': content,
            'photo_ids': list(photo_ids or []),
        }
        try:
            report = self.app.reports.insert(payload)
        except ServiceError as e:
            self._fail('create report', e)
            return None
        self.app.store.dispatch(state.add(SLICE, report))
        self.app.set_status(f"Created report: {report['title']}")
        return report

    def set_archived(self, report_id, archived=True):
        try:
            report = self.app.reports.update(report_id, {'is_archived': archived})
        except ServiceError as e:
            self._fail('archive report', e)
            return None
        self.app.store.dispatch(state.update(SLICE, report))
        return report

    def delete_report(self, report_id):
        try:
            self.app.reports.delete(report_id)
        except ServiceError as e:
            self._fail('delete report', e)
            return False
        self.app.store.dispatch(state.remove(SLICE, report_id))
        return True

    def preview_report(self, report_id, opener=None):
        """Open the rendered report in the browser, replacing any open preview.

        The browser sends no bearer header, so the page is opened through a
        preview token; polling asks the server whether the page has closed.
        """
        try:
            issued = self.app.reports.create_preview(report_id)
        except ServiceError as e:
            self._fail('preview report', e)
            return None
        token = issued['token']
        return preview.open_preview(
            self.app.reports.preview_url(issued), report_id=report_id,
            poll_interval=self.app.config.preview_poll_interval,
            opener=opener,
            closed_check=lambda: self.preview_closed(token)
        )

    def preview_closed(self, token):
        try:
            return bool(self.app.reports.preview_state(token)['closed'])
        except ServiceError as e:
            if e.status_code == 404:
                # Expired, or deleted along with its report
                return True
            self.logger.warning(f"Could not check preview state: {e}")
            return False
