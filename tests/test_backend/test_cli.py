"""Tests for the flask CLI commands."""
from pathlib import Path
import pytest
from sqlalchemy import create_engine, inspect, text
from backend.cli import parse_prd
from backend.models import db, Profile, Task
from backend.services.migration_runner import MigrationRunner, split_statements

REPO_MIGRATIONS = Path(__file__).resolve().parents[2] / 'migrations'


def table_names(app):
    with app.app_context():
        return set(inspect(db.engine).get_table_names())


def test_init_db(runner):
    result = runner.invoke(args=['init-db'])
    assert result.exit_code == 0
    assert 'Initialized the database.' in result.output


def test_list_tables(runner):
    result = runner.invoke(args=['list-tables'])
    assert result.exit_code == 0
    names = result.output.split()
    assert 'projects' in names
    assert names == sorted(names)


def test_migrate_applies_each_file_once(app, runner, tmp_path):
    (tmp_path / '001_gauges.sql').write_text(
        "-- moisture readings\nCREATE TABLE gauges (id INTEGER PRIMARY KEY, reading REAL);\n"
        "INSERT INTO gauges (reading) VALUES (0.5);\n"
    )
    (tmp_path / '002_gauge_notes.sql').write_text("ALTER TABLE gauges ADD COLUMN note TEXT;")
    (tmp_path / 'README.txt').write_text('not a migration')

    result = runner.invoke(args=['migrate', '--dir', str(tmp_path)])
    assert result.exit_code == 0, result.output
    assert 'Applied 001_gauges.sql' in result.output
    assert 'Applied 002_gauge_notes.sql' in result.output
    assert '2 migration(s) applied.' in result.output

    result = runner.invoke(args=['migrate', '--dir', str(tmp_path)])
    assert result.exit_code == 0
    assert 'No pending migrations.' in result.output

    with app.app_context():
        rows = db.session.execute(text('SELECT reading FROM gauges')).all()
        assert len(rows) == 1


def test_migrate_rolls_back_failing_file(app, runner, tmp_path):
    (tmp_path / '001_ok.sql').write_text('CREATE TABLE first_table (id INTEGER PRIMARY KEY);')
    (tmp_path / '002_broken.sql').write_text(
        'CREATE TABLE half_done (id INTEGER PRIMARY KEY);\nTHIS IS NOT SQL;'
    )
    (tmp_path / '003_later.sql').write_text('CREATE TABLE later_table (id INTEGER PRIMARY KEY);')

    result = runner.invoke(args=['migrate', '--dir', str(tmp_path)])
    assert result.exit_code != 0
    assert 'Migration 002_broken.sql failed' in result.output

    names = table_names(app)
    assert 'first_table' in names
    assert 'half_done' not in names
    assert 'later_table' not in names

    with app.app_context():
        recorded = [row[0] for row in db.session.execute(text('SELECT name FROM migrations'))]
    assert recorded == ['001_ok.sql']


def test_migrate_missing_directory(runner, tmp_path):
    result = runner.invoke(args=['migrate', '--dir', str(tmp_path / 'nowhere')])
    assert result.exit_code != 0
    assert 'Migrations directory not found' in result.output


def test_shipped_migrations_build_schema(tmp_path):
    uri = f"sqlite:///{tmp_path / 'fresh.db'}"
    applied = MigrationRunner(uri, REPO_MIGRATIONS).run()
    assert applied == [
        '001_initial_schema.sql', '002_report_photos.sql', '003_indexes.sql', '004_report_previews.sql'
    ]
    fresh = create_engine(uri)
    assert 'report_previews' in inspect(fresh).get_table_names()
    fresh.dispose()
    assert MigrationRunner(uri, REPO_MIGRATIONS).run() == []


def test_split_statements_drops_comments():
    sql = "-- header\nCREATE TABLE a (id INT);\n\n-- trailing\n;SELECT 1"
    assert split_statements(sql) == ['CREATE TABLE a (id INT)', 'SELECT 1']


def test_migrate_legacy_users(app, runner, sign_in):
    existing, _ = sign_in('kept@example.com')
    with app.app_context():
        db.session.execute(text(
            "CREATE TABLE users (id VARCHAR(36) PRIMARY KEY, email VARCHAR(120), full_name VARCHAR(200), "
            "role VARCHAR(30), created_at VARCHAR(40))"
        ))
        db.session.execute(text("INSERT INTO users VALUES (:id, :email, :name, :role, :created)"), [
            {'id': 'legacy-1', 'email': 'old@example.com', 'name': 'Old Timer',
             'role': 'project_manager', 'created': '2023-01-05T10:00:00'},
            {'id': 'legacy-2', 'email': 'KEPT@example.com', 'name': 'Dupe', 'role': 'member', 'created': None},
            {'id': 'legacy-3', 'email': None, 'name': 'Nobody', 'role': 'member', 'created': None},
            {'id': existing['id'], 'email': 'other@example.com', 'name': 'Same Id', 'role': 'admin', 'created': None},
            {'id': 'legacy-5', 'email': 'odd@example.com', 'name': 'Odd Role', 'role': 'wizard', 'created': 'soon'},
        ])
        db.session.commit()

    result = runner.invoke(args=['migrate-legacy-users'])
    assert result.exit_code == 0, result.output
    assert 'Migrated legacy-1' in result.output
    assert 'Migrated legacy-5' in result.output
    assert 'Skipped legacy-2' in result.output
    assert 'Skipped legacy-3' in result.output
    assert f"Skipped {existing['id']}" in result.output
    assert 'Profiles table now has 3 records (added 2).' in result.output

    with app.app_context():
        old = db.session.get(Profile, 'legacy-1')
        assert old.email == 'old@example.com'
        assert old.role == 'project_manager'
        assert old.created_at.year == 2023
        assert db.session.get(Profile, 'legacy-5').role == 'member'

    # Running again adds nothing
    result = runner.invoke(args=['migrate-legacy-users'])
    assert 'added 0' in result.output


def test_migrate_legacy_users_without_table(runner):
    result = runner.invoke(args=['migrate-legacy-users'])
    assert result.exit_code != 0
    assert "No legacy 'users' table found" in result.output


def test_tasks_list(runner, client):
    result = runner.invoke(args=['tasks', 'list'])
    assert 'No tasks found.' in result.output

    client.post('/api/tasks', json={'title': 'Hang drywall', 'status': 'completed'})
    result = runner.invoke(args=['tasks', 'list'])
    assert result.exit_code == 0
    assert '[x]' in result.output
    assert 'Hang drywall' in result.output


def test_tasks_generate_from_photos(app, runner, client, create_project):
    project = create_project()
    client.post('/api/photos', json={
        'project_id': project['id'],
        'url': 'http://x/1.jpg',
        'tasks': [{'id': 'a', 'text': 'Seal window'}, {'id': 'b', 'text': 'Patch siding', 'completed': True}],
    })

    result = runner.invoke(args=['tasks', 'generate', '--project', project['id']])
    assert result.exit_code == 0, result.output
    assert 'Synced 1 photo(s): 2 created, 0 updated.' in result.output

    result = runner.invoke(args=['tasks', 'generate'])
    assert 'Synced 1 photo(s): 0 created, 2 updated.' in result.output

    with app.app_context():
        assert Task.query.filter_by(category='photo-task').count() == 2


def test_parse_prd():
    prd_text = "# Plan\n- Demo cabinets\n* [x] Order tile\n  + [ ] Check grout\n1. Install sink\n2) Caulk\nProse line\n"
    assert parse_prd(prd_text) == [
        ('Demo cabinets', False),
        ('Order tile', True),
        ('Check grout', False),
        ('Install sink', False),
        ('Caulk', False),
    ]


def test_tasks_parse_prd(app, runner, create_project, tmp_path):
    project = create_project()
    prd = tmp_path / 'kitchen.md'
    prd.write_text("# Kitchen\n- Demo cabinets\n- [x] Order tile\nNotes here\n")

    result = runner.invoke(args=['tasks', 'parse-prd', str(prd), '--project', project['id']])
    assert result.exit_code == 0, result.output
    assert 'Created 2 task(s) from kitchen.md.' in result.output

    with app.app_context():
        tasks = {t.title: t for t in Task.query.filter_by(project_id=project['id'])}
        assert set(tasks) == {'Demo cabinets', 'Order tile'}
        assert tasks['Order tile'].status == 'completed'
        assert tasks['Demo cabinets'].category == 'prd'
        assert tasks['Demo cabinets'].description == 'From kitchen.md'


def test_tasks_parse_prd_unknown_project(runner, tmp_path):
    prd = tmp_path / 'plan.md'
    prd.write_text('- Something\n')
    result = runner.invoke(args=['tasks', 'parse-prd', str(prd), '--project', 'missing'])
    assert result.exit_code != 0
    assert 'Project missing not found' in result.output
