import os

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker


def _require_env(name: str) -> str:
    value = os.environ.get(name)
    if not value:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value


def _connect_args(db_url: str) -> dict:
    # Sessions are opened in the threadpool and used from the event loop.
    if db_url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


DASHBOARD_DB_URL = _require_env("DASHBOARD_DB_URL")

engine_dashboard = create_engine(
    DASHBOARD_DB_URL,
    pool_pre_ping=True,
    connect_args=_connect_args(DASHBOARD_DB_URL),
    future=True,
)

SessionLocalDashboard = sessionmaker(
    bind=engine_dashboard,
    autoflush=False,
    autocommit=False,
    expire_on_commit=False,
    future=True,
)
