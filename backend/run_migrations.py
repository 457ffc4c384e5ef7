"""Create the database schema: tables, updated_at triggers, the
challenge_leaderboard view and the default quotes.

Uses `DATABASE_URL` (or the POSTGRES_* variables) like the app does.
Every step is idempotent, so re-running against a live database is safe.
"""
import logging

from aiclub.config import settings
from aiclub.database import create_db_and_tables, engine


def run():
    """Apply the schema to the configured database."""
    print("Using database:", engine.url.render_as_string(hide_password=True))
    create_db_and_tables()
    print("Schema ready (env=%s)." % settings.ENV)


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    run()
