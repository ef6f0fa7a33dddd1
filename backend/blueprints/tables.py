"""Schema introspection blueprint."""
from flask import Blueprint, jsonify
import logging
from sqlalchemy import inspect, select, MetaData, Table
from ..models import db
from ..utils import api_error, handle_api_exception
from .auth import current_user
from shared.enums import UserRole

bp = Blueprint('tables', __name__, url_prefix='/api')
logger = logging.getLogger(__name__)

SAMPLE_ROWS = 5
REDACTED = '***'
# Never echoed back in sample rows
SENSITIVE_COLUMNS = {'password_hash', 'token'}


def _admin_only():
    user = current_user()
    if user is not None and user.role != UserRole.ADMIN.value:
        return api_error('Insufficient permissions', 403)
    return None


def _json_value(value):
    if hasattr(value, 'isoformat'):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray)):
        return f'<{len(value)} bytes>'
    return value


@bp.route('/tables', methods=['GET'])
def list_tables():
    """Names of every table in the database."""
    denied = _admin_only()
    if denied:
        return denied
    names = sorted(inspect(db.engine).get_table_names())
    return jsonify([{'table_name': name} for name in names])


@bp.route('/tables/<table_name>', methods=['GET'])
def describe_table(table_name):
    """Columns of a table plus a few sample rows."""
    denied = _admin_only()
    if denied:
        return denied

    inspector = inspect(db.engine)
    if table_name not in inspector.get_table_names():
        return api_error(f'Table {table_name} not found', 404)

    try:
        columns = [
            {
                'column_name': column['name'],
                'data_type': str(column['type']),
                'is_nullable': bool(column.get('nullable', True)),
                'column_default': None if column.get('default') is None else str(column['default']),
            }
            for column in inspector.get_columns(table_name)
        ]
    except Exception as e:
        return handle_api_exception(e, f'describe table {table_name}')

    sample_data = []
    try:
        table = Table(table_name, MetaData(), autoload_with=db.engine)
        with db.engine.connect() as conn:
            for row in conn.execute(select(table).limit(SAMPLE_ROWS)).mappings():
                sample_data.append({
                    key: REDACTED if key in SENSITIVE_COLUMNS else _json_value(value)
                    for key, value in row.items()
                })
    except Exception as e:
        logger.warning(f"Could not fetch sample data for {table_name}: {e}")

    return jsonify({
        'table_name': table_name,
        'columns': columns,
        'sample_data': sample_data,
    })
