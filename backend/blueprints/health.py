"""Health check blueprint."""
from flask import Blueprint, jsonify
import logging
from sqlalchemy import text
from ..models import db
from shared.models import now

bp = Blueprint('health', __name__)
logger = logging.getLogger(__name__)


def database_connected():
    try:
        with db.engine.connect() as conn:
            conn.execute(text('SELECT 1'))
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False


@bp.route('/health', methods=['GET'])
def health():
    """Liveness plus database connectivity."""
    connected = database_connected()
    return jsonify({
        'status': 'ok' if connected else 'degraded',
        'timestamp': now().isoformat(),
        'database': 'connected' if connected else 'not connected'
    }), 200 if connected else 500


@bp.route('/api/test-connection', methods=['POST'])
def test_connection():
    """Create, fill, read back and drop a scratch table."""
    try:
        with db.engine.begin() as conn:
            conn.execute(text(
                "CREATE TABLE IF NOT EXISTS connection_test (id INTEGER PRIMARY KEY, name TEXT NOT NULL)"
            ))
            conn.execute(text("DELETE FROM connection_test"))
            conn.execute(text("INSERT INTO connection_test (id, name) VALUES (1, 'Test connection')"))
            rows = [dict(row) for row in conn.execute(text("SELECT * FROM connection_test")).mappings()]
            conn.execute(text("DROP TABLE connection_test"))
    except Exception as e:
        logger.error(f"Database connection test failed: {e}", exc_info=True)
        return jsonify({'success': False, 'error': 'Database connection test failed'}), 500

    return jsonify({
        'success': True,
        'message': 'Database connection test successful',
        'test_data': rows
    })
