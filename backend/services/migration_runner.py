"""Apply plain ``.sql`` migration files, each exactly once."""

import logging
from pathlib import Path
from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

MIGRATIONS_TABLE_DDL = """
CREATE TABLE IF NOT EXISTS migrations (
    id INTEGER PRIMARY KEY,
    name VARCHAR(255) NOT NULL UNIQUE,
    executed_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
)
"""


class MigrationError(Exception):
    """Raised when a migration file fails; earlier files stay applied."""

    def __init__(self, name, original):
        super().__init__(f"Migration {name} failed: {original}")
        self.name = name
        self.original = original


def split_statements(sql):
    """Split a script on ``;`` dropping blank pieces and comment-only lines."""
    statements = []
    for chunk in sql.split(';'):
        lines = [line for line in chunk.splitlines() if not line.strip().startswith('--')]
        statement = '\n'.join(lines).strip()
        if statement:
            statements.append(statement)
    return statements


def _transactional_sqlite(engine):
    # pysqlite autocommits DDL; take over BEGIN so a whole file can roll back
    @event.listens_for(engine, "connect")
    def disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def emit_begin(conn):
        conn.exec_driver_sql("BEGIN")


class MigrationRunner:
    """Runs the ``*.sql`` files of a directory in filename order.

    Applied files are recorded by name in the ``migrations`` table, which is
    created on first use. Each file runs inside its own transaction.
    """

    def __init__(self, db_uri, migrations_dir):
        """Initialize the runner.

        Args:
            db_uri: Database URI for SQLAlchemy
            migrations_dir: Directory holding the ``.sql`` files
        """
        self.migrations_dir = Path(migrations_dir)
        self.engine = create_engine(db_uri)
        if self.engine.dialect.name == 'sqlite':
            _transactional_sqlite(self.engine)

    def ensure_table(self):
        with self.engine.begin() as conn:
            conn.execute(text(MIGRATIONS_TABLE_DDL))

    def applied(self):
        """Names of migrations already recorded."""
        self.ensure_table()
        with self.engine.connect() as conn:
            return {row[0] for row in conn.execute(text("SELECT name FROM migrations"))}

    def pending(self):
        """Migration files not yet applied, in the order they will run."""
        if not self.migrations_dir.is_dir():
            raise FileNotFoundError(f"Migrations directory not found: {self.migrations_dir}")
        done = self.applied()
        return [path for path in sorted(self.migrations_dir.glob('*.sql')) if path.name not in done]

    def apply(self, path):
        statements = split_statements(path.read_text(encoding='utf-8'))
        logger.info(f"Applying migration {path.name} ({len(statements)} statements)")
        try:
            with self.engine.begin() as conn:
                for statement in statements:
                    conn.execute(text(statement))
                conn.execute(text("INSERT INTO migrations (name) VALUES (:name)"), {'name': path.name})
        except SQLAlchemyError as e:
            logger.error(f"Migration {path.name} failed and was rolled back: {e}")
            raise MigrationError(path.name, e) from e

    def run(self):
        """Apply every pending migration; stops at the first failure.

        Returns:
            list: names of the files applied by this run
        """
        applied = []
        try:
            for path in self.pending():
                self.apply(path)
                applied.append(path.name)
        finally:
            self.engine.dispose()
        logger.info(f"Migration run complete: {len(applied)} applied")
        return applied
