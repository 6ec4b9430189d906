from collections.abc import Generator

from .session import SessionLocalDashboard


def get_dashboard_db() -> Generator:
    db = SessionLocalDashboard()
    try:
        yield db
    finally:
        db.close()
