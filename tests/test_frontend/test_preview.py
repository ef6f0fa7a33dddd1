"""Tests for report preview tracking."""
from unittest.mock import Mock
import pytest
from src.field_app import preview


@pytest.fixture(autouse=True)
def no_preview():
    preview.notify_closed()
    yield
    preview.notify_closed()


def test_open_preview_uses_opener_and_tracks_window():
    opener = Mock(return_value=True)
    window = preview.open_preview('http://localhost:5000/api/reports/r1/html', report_id='r1',
                                  poll_interval=60, opener=opener)
    opener.assert_called_once_with('http://localhost:5000/api/reports/r1/html', new=1)
    assert preview.current_preview() is window
    assert window.report_id == 'r1'
    assert not window.closed


def test_opening_second_preview_closes_first():
    opener = Mock(return_value=True)
    first = preview.open_preview('http://x/1', poll_interval=60, opener=opener)
    second = preview.open_preview('http://x/2', poll_interval=60, opener=opener)
    assert first.closed
    assert first._timer is None
    assert preview.current_preview() is second
    assert opener.call_count == 2


def test_notify_closed_clears_reference():
    window = preview.open_preview('http://x/1', poll_interval=60, opener=Mock())
    preview.notify_closed()
    assert preview.current_preview() is None
    assert window.closed
    assert window._timer is None


def test_poll_clears_reference_once_closed():
    window = preview.open_preview('http://x/1', poll_interval=60, opener=Mock())
    window.cancel_poll()

    preview._poll(window)
    # Still open: polling continues
    assert preview.current_preview() is window
    assert window._timer is not None
    window.cancel_poll()

    window.close()
    preview._poll(window)
    assert preview.current_preview() is None
    assert window._timer is None


def test_poll_stops_for_replaced_window():
    old = preview.PreviewWindow('http://x/old', poll_interval=60, opener=Mock())
    current = preview.open_preview('http://x/new', poll_interval=60, opener=Mock())
    preview._poll(old)
    assert old._timer is None
    assert preview.current_preview() is current


def test_browser_refusal_is_not_fatal():
    window = preview.open_preview('http://x/1', poll_interval=60, opener=Mock(return_value=False))
    assert preview.current_preview() is window


def test_poll_notices_page_closed_elsewhere():
    answers = iter([False, True])
    closed_check = Mock(side_effect=lambda: next(answers))
    window = preview.open_preview('http://x/1', poll_interval=60, opener=Mock(), closed_check=closed_check)
    window.cancel_poll()

    preview._poll(window)
    assert preview.current_preview() is window
    assert not window.closed
    window.cancel_poll()

    preview._poll(window)
    assert window.closed
    assert preview.current_preview() is None
    assert closed_check.call_count == 2


def test_closed_window_is_not_rechecked():
    closed_check = Mock(return_value=False)
    window = preview.PreviewWindow('http://x/1', poll_interval=60, opener=Mock(), closed_check=closed_check)
    window.close()
    assert window.refresh_closed()
    closed_check.assert_not_called()
