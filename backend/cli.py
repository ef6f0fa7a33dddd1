import click
import logging
import re
from pathlib import Path
from flask import current_app
from flask.cli import AppGroup, with_appcontext
from sqlalchemy import inspect
from .models import db, Project, Task
from .services.migration_runner import MigrationRunner, MigrationError
from .services.task_sync import sync_all_photos, TaskSyncError
from .services.user_migration import migrate_legacy_users, LegacyUsersMissing
from shared.enums import TaskStatus

logger = logging.getLogger(__name__)

PRD_TASK_CATEGORY = 'prd'
# "- item", "* item", "+ item" or "1. item", optionally with a [ ]/[x] checkbox
BULLET_PATTERN = re.compile(r'^\s*(?:[-*+]|\d+[.)])\s+(?:\[(?P<done>[ xX])\]\s+)?(?P<text>.+?)\s*$')


@click.command('init-db')
@with_appcontext
def init_db_command():
    """Create any missing tables."""
    logger.info("Starting database initialization")
    db.create_all()
    logger.info("Database tables created successfully")
    click.echo('Initialized the database.')


@click.command('migrate')
@click.option('--dir', 'migrations_dir', default=None, help='Directory of .sql files (defaults to MIGRATIONS_DIR)')
@with_appcontext
def migrate_command(migrations_dir):
    """Apply pending .sql migrations in filename order."""
    migrations_dir = migrations_dir or current_app.config['MIGRATIONS_DIR']
    runner = MigrationRunner(current_app.config['SQLALCHEMY_DATABASE_URI'], migrations_dir)
    try:
        applied = runner.run()
    except FileNotFoundError as e:
        raise click.ClickException(str(e))
    except MigrationError as e:
        raise click.ClickException(str(e))

    if not applied:
        click.echo('No pending migrations.')
        return
    for name in applied:
        click.echo(f'Applied {name}')
    click.echo(f'{len(applied)} migration(s) applied.')


@click.command('list-tables')
@with_appcontext
def list_tables_command():
    """Print the name of every table in the database."""
    names = sorted(inspect(db.engine).get_table_names())
    if not names:
        click.echo('No tables found.')
        return
    for name in names:
        click.echo(name)


@click.command('migrate-legacy-users')
@with_appcontext
def migrate_legacy_users_command():
    """Copy rows from the legacy users table into profiles."""
    try:
        summary = migrate_legacy_users()
    except LegacyUsersMissing as e:
        raise click.ClickException(str(e))

    click.echo(f"Found {summary['users']} legacy users, {summary['profiles_before']} profiles.")
    for user_id, reason in summary['skipped']:
        click.echo(f'Skipped {user_id}: {reason}')
    for user_id in summary['migrated']:
        click.echo(f'Migrated {user_id}')
    click.echo(f"Profiles table now has {summary['profiles_before'] + len(summary['migrated'])} records "
               f"(added {len(summary['migrated'])}).")


tasks_cli = AppGroup('tasks', help='Project task utilities.')


@tasks_cli.command('list')
@click.option('--project', 'project_id', default=None, help='Only tasks of this project id')
def list_tasks_command(project_id):
    """List tasks, newest first."""
    query = Task.query
    if project_id:
        query = query.filter(Task.project_id == project_id)
    tasks = query.order_by(Task.created_at.desc()).all()
    if not tasks:
        click.echo('No tasks found.')
        return
    for task in tasks:
        mark = 'x' if task.status == TaskStatus.COMPLETED.value else ' '
        click.echo(f'[{mark}] {task.id}  {task.priority:<6}  {task.title}')


@tasks_cli.command('generate')
@click.option('--project', 'project_id', default=None, help='Only photos of this project id')
def generate_tasks_command(project_id):
    """Turn photo annotation tasks into project tasks."""
    try:
        totals = sync_all_photos(project_id)
        db.session.commit()
    except TaskSyncError as e:
        db.session.rollback()
        raise click.ClickException(str(e))
    click.echo(f"Synced {totals['photos']} photo(s): {totals['created']} created, {totals['updated']} updated.")


def parse_prd(text):
    """Pull task titles out of a markdown document.

    Returns:
        list: (title, completed) pairs, one per bullet or numbered item
    """
    items = []
    for line in text.splitlines():
        match = BULLET_PATTERN.match(line)
        if match:
            items.append((match.group('text'), (match.group('done') or ' ').lower() == 'x'))
    return items


@tasks_cli.command('parse-prd')
@click.argument('prd_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--project', 'project_id', required=True, help='Project id the tasks belong to')
def parse_prd_command(prd_file, project_id):
    """Create one task per markdown bullet of PRD_FILE."""
    if db.session.get(Project, project_id) is None:
        raise click.ClickException(f'Project {project_id} not found')

    items = parse_prd(prd_file.read_text(encoding='utf-8'))
    for title, completed in items:
        db.session.add(Task(
            title=title[:300],
            description=f'From {prd_file.name}',
            status=TaskStatus.COMPLETED.value if completed else TaskStatus.ACTIVE.value,
            category=PRD_TASK_CATEGORY,
            project_id=project_id,
        ))
    db.session.commit()
    logger.info(f"Created {len(items)} tasks from {prd_file} for project {project_id}")
    click.echo(f'Created {len(items)} task(s) from {prd_file.name}.')
