"""Database engine and helpers.

This module configures the SQLModel/SQLAlchemy engine from
`settings.DATABASE_URL` (a local SQLite file by default, PostgreSQL in
deployment) and provides small helpers used by the application, the
migration runner and tests.

Beyond the tables declared in `models`, the schema carries two pieces
SQLModel cannot express: the `updated_at` maintenance triggers on
`challenge_submissions`/`challenge_attempts` and the
`challenge_leaderboard` view. `install_triggers_and_views()` creates them
idempotently for the active dialect.
"""

import logging

from sqlalchemy import event, func
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine, select

from . import models
from .config import settings

logger = logging.getLogger("aiclub.db")

TRIGGER_TABLES = ("challenge_submissions", "challenge_attempts")

DEFAULT_QUOTES = [
    ("The only limit to our realization of tomorrow is our doubts of today.", "Franklin D. Roosevelt", True),
    ("Don't watch the clock; do what it does. Keep going.", "Sam Levenson", True),
    ("The future belongs to those who believe in the beauty of their dreams.", "Eleanor Roosevelt", True),
    ("Be yourself; everyone else is already taken.", "Oscar Wilde", True),
    ("The secret of getting ahead is getting started.", "Mark Twain", True),
    ("Not all those who wander are lost.", "J.R.R. Tolkien", False),
]

LEADERBOARD_VIEW_SELECT = """
SELECT
    u.id AS id,
    u.full_name AS name,
    u.image AS image,
    COALESCE(SUM(ca.best_score), 0) AS total_score,
    COUNT(DISTINCT ca.challenge_id) AS challenges_completed,
    u.points + COALESCE(SUM(ca.best_score), 0) AS total_points
FROM users u
LEFT JOIN challenge_attempts ca ON u.id = ca.user_id
GROUP BY u.id, u.full_name, u.image, u.points
"""


def _sqlite_statements():
    stmts = []
    for table in TRIGGER_TABLES:
        # %f yields milliseconds; pad to the microsecond width SQLAlchemy stores.
        stmts.append(
            f"""
            CREATE TRIGGER IF NOT EXISTS update_{table}_updated_at
            AFTER UPDATE ON {table}
            FOR EACH ROW WHEN NEW.updated_at IS OLD.updated_at
            BEGIN
                UPDATE {table}
                SET updated_at = strftime('%Y-%m-%d %H:%M:%f000', 'now')
                WHERE id = NEW.id;
            END
            """
        )
    stmts.append(f"CREATE VIEW IF NOT EXISTS challenge_leaderboard AS {LEADERBOARD_VIEW_SELECT}")
    return stmts


def _postgresql_statements():
    stmts = [
        """
        CREATE OR REPLACE FUNCTION update_updated_at_column()
        RETURNS TRIGGER AS $$
        BEGIN
            IF NEW.updated_at IS NOT DISTINCT FROM OLD.updated_at THEN
                NEW.updated_at = NOW();
            END IF;
            RETURN NEW;
        END;
        $$ language 'plpgsql'
        """
    ]
    for table in TRIGGER_TABLES:
        stmts.append(f"DROP TRIGGER IF EXISTS update_{table}_updated_at ON {table}")
        stmts.append(
            f"""
            CREATE TRIGGER update_{table}_updated_at BEFORE UPDATE ON {table}
                FOR EACH ROW EXECUTE FUNCTION update_updated_at_column()
            """
        )
    stmts.append(f"CREATE OR REPLACE VIEW challenge_leaderboard AS {LEADERBOARD_VIEW_SELECT}")
    return stmts


def build_engine(url: str) -> Engine:
    """Create an engine for `url`.

    SQLite connections get `PRAGMA foreign_keys=ON` so that foreign keys
    and `ON DELETE CASCADE` behave the same way they do on PostgreSQL.
    """
    if url.startswith("sqlite"):
        eng = create_engine(url, echo=False, connect_args={"check_same_thread": False})

        @event.listens_for(eng, "connect")
        def _enable_sqlite_foreign_keys(dbapi_connection, _record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return eng
    return create_engine(url, echo=False, pool_pre_ping=True, pool_size=5)


engine = build_engine(settings.DATABASE_URL)


def install_triggers_and_views(bind: Engine = None):
    """Create the `updated_at` triggers and the leaderboard view.

    Every statement is idempotent, so this is safe to run on each start.
    """
    bind = bind or engine
    dialect = bind.dialect.name
    if dialect == "sqlite":
        stmts = _sqlite_statements()
    elif dialect == "postgresql":
        stmts = _postgresql_statements()
    else:
        raise RuntimeError(f"unsupported database dialect: {dialect}")
    with bind.begin() as conn:
        for stmt in stmts:
            conn.exec_driver_sql(stmt)


def seed_default_quotes(bind: Engine = None) -> int:
    """Insert the default quotes when the `quotes` table is empty.

    Returns the number of rows inserted.
    """
    bind = bind or engine
    with Session(bind) as session:
        existing = session.exec(select(func.count()).select_from(models.Quote)).one()
        if existing:
            return 0
        for text, author, visible in DEFAULT_QUOTES:
            session.add(models.Quote(text=text, author=author, visible=visible))
        session.commit()
    logger.info("seeded %d default quotes", len(DEFAULT_QUOTES))
    return len(DEFAULT_QUOTES)


def create_db_and_tables(bind: Engine = None):
    """Create tables, triggers, the leaderboard view and seed data.

    Intended for local development, tests and container start-up; the
    statements are idempotent against an already-migrated database.
    """
    bind = bind or engine
    SQLModel.metadata.create_all(bind)
    install_triggers_and_views(bind)
    seed_default_quotes(bind)


def drop_db_and_tables(bind: Engine = None):
    """Drop the leaderboard view and all tables (tests only)."""
    bind = bind or engine
    with bind.begin() as conn:
        conn.exec_driver_sql("DROP VIEW IF EXISTS challenge_leaderboard")
    SQLModel.metadata.drop_all(bind)


def check_connection(bind: Engine = None) -> bool:
    """Return True when the database answers `SELECT 1`."""
    bind = bind or engine
    try:
        with bind.connect() as conn:
            conn.exec_driver_sql("SELECT 1")
        return True
    except Exception:
        logger.exception("database health check failed")
        return False


def get_session():
    """Yield a database `Session` for FastAPI dependency injection.

    The generator yields a session and ensures it is closed when the
    request scope finishes.
    """
    with Session(engine) as session:
        yield session
