import json
import logging
import os
import sqlite3

from flask import current_app, g

logger = logging.getLogger(__name__)

SCHEMA_PATH = os.path.join(os.path.dirname(__file__), 'schema.sql')


def _load_schema_and_initialize(db):
    """Run the bundled schema.sql (idempotent: every statement is IF NOT EXISTS)."""
    with open(SCHEMA_PATH, 'r', encoding='utf-8') as f:
        db.executescript(f.read())


def get_db():
    db = getattr(g, '_database', None)
    if db is None:
        db_path = current_app.config['DATABASE_PATH']
        db_dir = os.path.dirname(db_path)
        if db_dir and db_path != ':memory:' and not os.path.exists(db_dir):
            os.makedirs(db_dir, exist_ok=True)

        db = g._database = sqlite3.connect(db_path)
        db.row_factory = sqlite3.Row
        db.execute('PRAGMA foreign_keys = ON')

        # Simple check: if users table missing, initialize schema
        cur = db.execute("SELECT name FROM sqlite_master WHERE type='table' AND name='users'")
        if not cur.fetchone():
            logger.info('Initializing database schema at %s', db_path)
            _load_schema_and_initialize(db)

    return db


def close_connection(exception):
    db = g.pop('_database', None)
    if db is not None:
        db.close()


def init_db_command():
    """Create any missing tables."""
    db = get_db()
    _load_schema_and_initialize(db)
    db.commit()
    print('Initialized the database.')


def to_json(value) -> str:
    return json.dumps(value, ensure_ascii=False)


def from_json(value, default):
    if not value:
        return default
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        logger.warning('Could not decode JSON column value: %r', value)
        return default
