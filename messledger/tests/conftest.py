import os
_default_test_secret = "test-jwt-secret-for-pytest-only-0000000000000000"
if len(os.environ.get("JWT_SECRET", "")) < 32:
    os.environ["JWT_SECRET"] = _default_test_secret

import subprocess
import tempfile
from pathlib import Path

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url

TEST_DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"sqlite:///{Path(tempfile.gettempdir()) / 'messledger_test.db'}",
)
os.environ["DATABASE_URL"] = TEST_DATABASE_URL

from messledger import database
from messledger import models  # noqa: F401,E402

ROLE_PINS = {"admin": "1234", "manager": "5678", "cook": "9999"}
for _role, _pin in ROLE_PINS.items():
    os.environ[f"{_role.upper()}_PIN"] = _pin


def _is_postgres(database_url: str) -> bool:
    return make_url(database_url).drivername.startswith("postgresql")


def _ensure_database_exists(database_url: str) -> None:
    url = make_url(database_url)

    if not _is_postgres(database_url):
        return

    db_name = url.database
    admin_url = url.set(database="postgres")
    admin_engine = create_engine(admin_url, isolation_level="AUTOCOMMIT")

    try:
        with admin_engine.connect() as conn:
            exists = conn.execute(
                text("SELECT 1 FROM pg_database WHERE datname = :name"),
                {"name": db_name},
            ).scalar()
            if not exists:
                safe_db_name = db_name.replace('"', '""')
                conn.execute(text(f'CREATE DATABASE "{safe_db_name}"'))
    finally:
        admin_engine.dispose()


@pytest.fixture(scope="session", autouse=True)
def _prepare_test_database() -> None:
    _ensure_database_exists(TEST_DATABASE_URL)

    database.configure_database()

    if _is_postgres(TEST_DATABASE_URL):
        env = os.environ.copy()
        env["DATABASE_URL"] = TEST_DATABASE_URL

        subprocess.run(
            ["alembic", "upgrade", "head"],
            check=True,
            cwd=Path(__file__).resolve().parents[2],
            env=env,
        )
    else:
        database.Base.metadata.drop_all(bind=database.engine)
        database.Base.metadata.create_all(bind=database.engine)


def _wipe_tables() -> None:
    with database.engine.begin() as conn:
        if _is_postgres(TEST_DATABASE_URL):
            table_names = [t.name for t in database.Base.metadata.sorted_tables]
            quoted = ", ".join([f'"public"."{name}"' for name in table_names])
            conn.execute(text(f"TRUNCATE TABLE {quoted} RESTART IDENTITY CASCADE"))
            return

        for table in reversed(database.Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture(scope="function", autouse=True)
def _truncate_tables_between_tests():
    _wipe_tables()
    yield
    _wipe_tables()
