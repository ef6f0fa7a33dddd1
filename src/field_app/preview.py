"""Report preview window tracking.

Only one preview is live at a time. Opening a report hands its HTML page to
the system browser and starts a timer that polls whether the preview closed:
either its ``closed`` flag or, when one is given, ``closed_check``, which asks
the server whether the page sent its close notification. Once closed, the
module reference is cleared and polling stops. ``notify_closed`` drops the
current preview immediately.
"""
import logging
import threading
import webbrowser

logger = logging.getLogger(__name__)

POLL_INTERVAL = 1.0

_current_preview = None
_lock = threading.Lock()


class PreviewWindow:
    """A report preview shown in the browser."""

    def __init__(self, url, report_id=None, poll_interval=POLL_INTERVAL, opener=None, closed_check=None):
        self.url = url
        self.report_id = report_id
        self.poll_interval = poll_interval
        self.closed = False
        self.closed_check = closed_check
        self._opener = opener or webbrowser.open
        self._timer = None

    def open(self):
        opened = self._opener(self.url, new=1)
        if opened is False:
            logger.warning(f"No browser accepted preview of report {self.report_id}")
        self._schedule_poll()
        return self

    def close(self):
        self.closed = True

    def refresh_closed(self):
        """Ask ``closed_check`` whether the page went away; returns the closed state."""
        if not self.closed and self.closed_check is not None and self.closed_check():
            logger.debug(f"Preview of report {self.report_id} reported closed")
            self.close()
        return self.closed

    def _schedule_poll(self):
        self._timer = threading.Timer(self.poll_interval, _poll, args=(self,))
        self._timer.daemon = True
        self._timer.start()

    def cancel_poll(self):
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None


def _poll(window):
    global _current_preview
    # The check may go over the network, so it runs outside the lock
    window.refresh_closed()
    with _lock:
        if window.closed:
            if _current_preview is window:
                _current_preview = None
            window._timer = None
            logger.debug(f"Preview of report {window.report_id} closed")
            return
        if _current_preview is not window:
            window._timer = None
            return
    window._schedule_poll()


def open_preview(url, report_id=None, poll_interval=POLL_INTERVAL, opener=None, closed_check=None):
    """Show ``url`` as the current preview, closing any previous one."""
    global _current_preview
    with _lock:
        previous = _current_preview
        if previous is not None:
            previous.close()
            previous.cancel_poll()
        window = PreviewWindow(url, report_id, poll_interval, opener, closed_check)
        _current_preview = window
    logger.info(f"Opening report preview for report {report_id}")
    return window.open()


def current_preview():
    return _current_preview


def notify_closed():
    """The preview reported that it closed; drop it without waiting for the timer."""
    global _current_preview
    with _lock:
        window = _current_preview
        _current_preview = None
    if window is not None:
        window.close()
        window.cancel_poll()
