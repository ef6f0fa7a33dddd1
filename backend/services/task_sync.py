"""Keep photo annotation tasks and project tasks in step.

A photo carries its annotation tasks as embedded JSON. Syncing turns each
annotation into a project task (matched on photo id plus annotation id);
completing such a task later writes the completion flag back into the photo.
"""
import logging
from ..models import db, Photo, Task
from shared.enums import TaskStatus, PriorityLevel
from shared.utils import decode_annotation_tasks, encode_annotation_tasks

logger = logging.getLogger(__name__)

PHOTO_TASK_CATEGORY = 'photo-task'


class TaskSyncError(Exception):
    """Raised when a photo's tasks cannot be synced."""
    pass


def _status_for(annotation):
    return TaskStatus.COMPLETED.value if annotation.get('completed') else TaskStatus.ACTIVE.value


def _priority_for(annotation):
    priority = str(annotation.get('priority') or '').lower()
    valid = [p.value for p in PriorityLevel]
    return priority if priority in valid else PriorityLevel.MEDIUM.value


def sync_photo_tasks(photo, created_by=None):
    """Create or update project tasks for every annotation task on a photo.

    The caller commits.

    Returns:
        dict: {'created': n, 'updated': n, 'tasks': [Task, ...]}
    """
    if photo.project_id is None:
        raise TaskSyncError(f"Photo {photo.id} is not attached to a project")

    annotations = decode_annotation_tasks(photo.tasks)
    summary = {'created': 0, 'updated': 0, 'tasks': []}
    if not annotations:
        logger.debug(f"No annotation tasks to sync for photo {photo.id}")
        return summary

    existing = {
        task.annotation_task_id: task
        for task in Task.query.filter_by(photo_id=photo.id).filter(Task.annotation_task_id.isnot(None))
    }

    for annotation in annotations:
        annotation_id = str(annotation.get('id') or '')
        if not annotation_id:
            logger.warning(f"Skipping annotation task without id on photo {photo.id}")
            continue

        task = existing.get(annotation_id)
        if task is not None:
            task.title = annotation.get('text') or task.title
            task.status = _status_for(annotation)
            task.priority = _priority_for(annotation)
            summary['updated'] += 1
        else:
            task = Task(
                title=annotation.get('text') or 'Untitled task',
                description=f"Task from photo: {photo.title or 'Untitled'}",
                status=_status_for(annotation),
                priority=_priority_for(annotation),
                category=PHOTO_TASK_CATEGORY,
                project_id=photo.project_id,
                created_by=created_by,
                photo_id=photo.id,
                photo_url=photo.url,
                annotation_task_id=annotation_id,
            )
            db.session.add(task)
            existing[annotation_id] = task
            summary['created'] += 1
        summary['tasks'].append(task)

    logger.info(f"Synced tasks for photo {photo.id}: {summary['created']} created, {summary['updated']} updated")
    return summary


def write_back_completion(task):
    """Mirror a photo task's completion state into the photo's annotation list.

    Returns True when the photo was changed. The caller commits.
    """
    if not task.photo_id or not task.annotation_task_id:
        return False
    photo = db.session.get(Photo, task.photo_id)
    if photo is None:
        logger.warning(f"Task {task.id} references missing photo {task.photo_id}")
        return False

    completed = task.status == TaskStatus.COMPLETED.value
    annotations = decode_annotation_tasks(photo.tasks)
    changed = False
    for annotation in annotations:
        if str(annotation.get('id')) == task.annotation_task_id and bool(annotation.get('completed')) != completed:
            annotation['completed'] = completed
            changed = True
    if changed:
        photo.tasks = encode_annotation_tasks(annotations)
        logger.info(f"Wrote completion of task {task.id} back to photo {photo.id}")
    return changed


def sync_all_photos(project_id=None):
    """Sync annotation tasks for every photo (optionally of one project).

    Returns:
        dict: totals {'photos': n, 'created': n, 'updated': n}
    """
    query = Photo.query.filter(Photo.project_id.isnot(None))
    if project_id:
        query = query.filter(Photo.project_id == project_id)

    totals = {'photos': 0, 'created': 0, 'updated': 0}
    for photo in query.order_by(Photo.created_at):
        result = sync_photo_tasks(photo)
        totals['photos'] += 1
        totals['created'] += result['created']
        totals['updated'] += result['updated']
    return totals
