"""Project timeline and milestone schedule calculations.

All calculations work at day granularity. Dates may be given as ``date``
objects or ISO ``YYYY-MM-DD`` strings; ``today`` defaults to the current
date in the application timezone.
"""
import math
import logging
from datetime import timedelta

from shared.enums import MilestoneStatus, ScheduleStatus
from shared.models import today as app_today
from shared.utils import parse_date

logger = logging.getLogger(__name__)

NOT_AVAILABLE = 'N/A'
NOT_STARTED = 'Not started'
COMPLETE = 'Complete'
DUE_TODAY = 'Due today'

SCHEDULE_MESSAGES = {
    ScheduleStatus.COMPLETED.value: 'Project Completed',
    ScheduleStatus.AHEAD.value: 'Ahead of schedule',
    ScheduleStatus.ON_TRACK.value: 'On track',
    ScheduleStatus.BEHIND.value: 'Behind schedule',
}


def calculate_timeline(start_date, end_date, today=None):
    """Progress through a project's date range.

    Returns:
        tuple: (percentage, time_left) where percentage is an int 0..100 and
        time_left is a display string.
    """
    start = parse_date(start_date)
    end = parse_date(end_date)
    if start is None or end is None:
        return 0, NOT_AVAILABLE

    today = parse_date(today) or app_today()
    total = (end - start).days
    elapsed = (today - start).days

    if elapsed < 0:
        return 0, NOT_STARTED
    if elapsed > total:
        return 100, COMPLETE

    # A single-day project is fully elapsed on its only day
    if total <= 0:
        return 100, DUE_TODAY

    percentage = math.floor(elapsed / total * 100)
    days_left = math.ceil(total - elapsed)
    if days_left <= 0:
        return percentage, DUE_TODAY
    return percentage, f'{days_left} days left'


def project_span(start_date, end_date, milestones=None):
    """Resolve the (start, end, total_days) a schedule is measured against.

    Falls back to the earliest and latest milestone due dates, and finally to
    a 30 day window from today.
    """
    start = parse_date(start_date)
    end = parse_date(end_date)
    if start is None or end is None:
        due_dates = sorted(d for d in (parse_date(m.get('due_date')) for m in milestones or []) if d)
        if due_dates:
            start, end = due_dates[0], due_dates[-1]
        else:
            start = app_today()
            end = start + timedelta(days=30)
    total = (end - start).days or 1
    return start, end, total


def calculate_schedule_status(milestones, start_date=None, end_date=None, project_completed=False, today=None):
    """Compare milestone completion against today.

    Behind when any milestone due before today is not completed; ahead when
    every past-due milestone is done and some future milestone is already
    completed; otherwise on track. The day count is the share of affected
    milestones applied to the project length.

    Returns:
        tuple: (status, days)
    """
    if project_completed:
        return ScheduleStatus.COMPLETED.value, 0
    has_range = parse_date(start_date) is not None and parse_date(end_date) is not None
    if not has_range or not milestones:
        return ScheduleStatus.ON_TRACK.value, 0

    today = parse_date(today) or app_today()
    _, _, total = project_span(start_date, end_date, milestones)

    past_due = []
    completed_future = []
    for milestone in milestones:
        due = parse_date(milestone.get('due_date'))
        if due is None:
            logger.warning(f"Milestone {milestone.get('id')} has no valid due date")
            continue
        done = milestone.get('status') == MilestoneStatus.COMPLETED.value
        if due < today:
            past_due.append(done)
        elif done:
            completed_future.append(milestone)

    incomplete = past_due.count(False)
    if incomplete:
        return ScheduleStatus.BEHIND.value, abs(round(-incomplete / len(milestones) * total))
    if completed_future:
        return ScheduleStatus.AHEAD.value, abs(round(len(completed_future) / len(milestones) * total))
    return ScheduleStatus.ON_TRACK.value, 0


def milestone_position(due_date, start_date, end_date):
    """Percentage offset of a milestone on the project timeline, clamped to 0..100."""
    due = parse_date(due_date)
    start = parse_date(start_date)
    end = parse_date(end_date)
    if due is None or start is None or end is None:
        return 0
    total = (end - start).days
    if total <= 0:
        return 0
    position = (due - start).days / total * 100
    return max(0, min(100, position))


def today_position(start_date, end_date, today=None):
    """Percentage offset of today on the project timeline."""
    start = parse_date(start_date)
    end = parse_date(end_date)
    if start is None or end is None:
        return 50
    today = parse_date(today) or app_today()
    if today < start:
        return 0
    if today > end:
        return 100
    total = (end - start).days
    if total <= 0:
        return 0
    return (today - start).days / total * 100


def format_date_safe(value, fmt='%b %d, %Y', fallback=NOT_AVAILABLE):
    """Format a date for display, returning the fallback for missing or bad input."""
    day = parse_date(value)
    if day is None:
        return fallback
    return day.strftime(fmt)
