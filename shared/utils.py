"""Shared utility functions for the field project manager.

Pure data transformations used by both the backend API and the client
handlers: photo grid filtering, grouping and selection, photo annotation
task encoding, and project list tabs, search and sorting.

Photos and projects are handled as plain dictionaries (the JSON shape
returned by the API).
"""

import json
import logging
from datetime import date, datetime

from shared.enums import PRIORITY_ORDER

logger = logging.getLogger(__name__)

UNKNOWN_DATE = 'Unknown Date'

# Upper bounds (exclusive) for each progress stage label
PROGRESS_STAGES = (
    (0.05, 'Starting'),
    (0.25, 'Early Progress'),
    (0.5, 'In Progress'),
    (0.75, 'Well Underway'),
    (0.95, 'Nearly Complete'),
)
COMPLETE_STAGE = 'Complete'
PROGRESS_STAGE_NAMES = [name for _, name in PROGRESS_STAGES] + [COMPLETE_STAGE]

ALL_TAB = 'all'
PROJECT_SORT_KEYS = ('newest', 'oldest', 'name', 'priority')
PROJECT_SEARCH_FIELDS = ('name', 'description', 'city', 'contact_name')


def parse_date(value):
    """Parse a YYYY-MM-DD string (or date/datetime) into a date.

    Returns None for empty or unparseable values.
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def progress_stage(progress):
    """Map a 0..1 completion fraction to its progress stage label."""
    for upper, name in PROGRESS_STAGES:
        if progress < upper:
            return name
    return COMPLETE_STAGE


def photo_date_key(photo):
    """Section key of a photo on the grid."""
    return photo.get('date') or UNKNOWN_DATE


def filter_photos(photos, filters=None):
    """Apply grid filters to a list of photos.

    Supported filter keys: start_date, end_date, tags, users, groups,
    progress_stages. Empty or missing filters are ignored. Input order is
    preserved.
    """
    filters = filters or {}
    start = parse_date(filters.get('start_date'))
    end = parse_date(filters.get('end_date'))
    tags = set(filters.get('tags') or [])
    users = set(filters.get('users') or [])
    groups = set(filters.get('groups') or [])
    stages = set(filters.get('progress_stages') or [])

    result = []
    for photo in photos:
        if start or end:
            photo_day = parse_date(photo.get('date'))
            if photo_day is None:
                continue
            if start and photo_day < start:
                continue
            if end and photo_day > end:
                continue
        if tags and not tags.intersection(photo.get('tags') or []):
            continue
        if stages:
            progress = photo.get('progress')
            if progress is None or progress_stage(progress) not in stages:
                continue
        if users and photo.get('assigned_to') not in users:
            continue
        if groups and photo.get('group') not in groups:
            continue
        result.append(photo)
    return result


def group_photos_by_date(photos):
    """Group photos into date sections, newest first.

    Returns a list of ``{'date': key, 'data': [photos]}``. Photos without a
    date land in the 'Unknown Date' section. Keys that do not parse as a
    date sort after every real date, in first-seen order.
    """
    sections = {}
    for photo in photos:
        sections.setdefault(photo_date_key(photo), []).append(photo)

    dated = []
    undated = []
    for key, items in sections.items():
        day = parse_date(key)
        section = {'date': key, 'data': items}
        if day is None:
            undated.append(section)
        else:
            dated.append((day, section))

    dated.sort(key=lambda pair: pair[0], reverse=True)
    return [section for _, section in dated] + undated


def toggle_photo_selection(selected, photo):
    """Add the photo to the selection, or remove it if already selected."""
    if any(p['id'] == photo['id'] for p in selected):
        return [p for p in selected if p['id'] != photo['id']]
    return list(selected) + [photo]


def select_date_group(selected, photos, date_key, is_selected):
    """Select or deselect every photo of a date section.

    ``photos`` is the currently visible (filtered) photo list.
    """
    if not is_selected:
        return [p for p in selected if photo_date_key(p) != date_key]

    new_selection = list(selected)
    chosen = {p['id'] for p in new_selection}
    for photo in photos:
        if photo_date_key(photo) == date_key and photo['id'] not in chosen:
            new_selection.append(photo)
            chosen.add(photo['id'])
    return new_selection


def is_date_group_selected(selected, photos, date_key):
    """True when every visible photo of the date section is selected."""
    chosen = {p['id'] for p in selected}
    return all(p['id'] in chosen for p in photos if photo_date_key(p) == date_key)


def decode_annotation_tasks(raw):
    """Decode a photo's embedded annotation task list.

    Accepts the stored JSON text or an already-decoded list. Invalid JSON or
    a non-list payload decodes to an empty list.
    """
    if not raw:
        return []
    if isinstance(raw, list):
        return raw
    try:
        tasks = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring malformed photo task list: {str(raw)[:100]}")
        return []
    if not isinstance(tasks, list):
        return []
    return [t for t in tasks if isinstance(t, dict)]


def encode_annotation_tasks(tasks):
    """Encode annotation tasks to the JSON text stored on a photo."""
    normalized = []
    for task in tasks or []:
        normalized.append({
            'id': str(task.get('id')),
            'text': task.get('text', ''),
            'completed': bool(task.get('completed', False)),
            'priority': task.get('priority') or 'medium',
        })
    return json.dumps(normalized)


def filter_projects_by_status(projects, tab):
    """Projects visible on a status tab; 'all' shows everything."""
    if not tab or tab == ALL_TAB:
        return list(projects)
    return [p for p in projects if p.get('status') == tab]


def search_projects(projects, query):
    """Case-insensitive substring search over the common project text fields."""
    query = (query or '').strip().lower()
    if not query:
        return list(projects)
    return [
        p for p in projects
        if any(query in (p.get(field) or '').lower() for field in PROJECT_SEARCH_FIELDS)
    ]


def sort_projects(projects, key='newest'):
    """Sort projects by 'newest', 'oldest', 'name' or 'priority' (high first)."""
    if key == 'name':
        return sorted(projects, key=lambda p: (p.get('name') or '').lower())
    if key == 'priority':
        return sorted(projects, key=lambda p: PRIORITY_ORDER.get(p.get('priority'), len(PRIORITY_ORDER)))
    if key == 'oldest':
        return sorted(projects, key=lambda p: p.get('created_at') or '')
    if key == 'newest':
        return sorted(projects, key=lambda p: p.get('created_at') or '', reverse=True)
    raise ValueError(f"Unknown sort key: {key}")


def status_counts(projects):
    """Number of projects per status, plus the 'all' total."""
    counts = {ALL_TAB: 0}
    for project in projects:
        counts[ALL_TAB] += 1
        status = project.get('status')
        counts[status] = counts.get(status, 0) + 1
    return counts
