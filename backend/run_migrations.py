"""Simple migration runner for SQLite using the SQL files in migrations/.

Usage: python run_migrations.py [up|down]
"""
from pathlib import Path
import sqlite3
import sys

from sqlalchemy.engine import make_url

from imdaz.config import settings

BASE = Path(__file__).parent
MIGRATIONS_DIR = BASE / "migrations"


def migration_files(direction: str):
    """Return the SQL files for `direction` in the order they must run."""
    if direction not in ("up", "down"):
        raise ValueError(f"unknown direction: {direction}")
    files = sorted(MIGRATIONS_DIR.glob(f"*.{direction}.sql"))
    return list(reversed(files)) if direction == "down" else files


def database_path(url: str = None) -> str:
    parsed = make_url(url or settings.DATABASE_URL)
    if parsed.get_backend_name() != "sqlite":
        raise ValueError("run_migrations.py only supports sqlite databases")
    return parsed.database or ":memory:"


def run(direction: str = "up", db_path: str = None):
    """Execute the migration files against the SQLite database.

    `up` applies every `migrations/*.up.sql` file in lexical order and
    `down` reverts them with the `*.down.sql` files in reverse order.
    """
    db_path = db_path or database_path()
    print("Using database:", db_path)
    conn = sqlite3.connect(db_path)
    try:
        conn.execute("PRAGMA foreign_keys=ON")
        cur = conn.cursor()
        for m in migration_files(direction):
            print("Applying:", m.name)
            cur.executescript(m.read_text(encoding="utf-8"))
        conn.commit()
    finally:
        conn.close()
    print("Migrations applied." if direction == "up" else "Migrations reverted.")


if __name__ == '__main__':
    run(sys.argv[1] if len(sys.argv) > 1 else "up")
