# backend/marketplace/tasks/session_scope.py
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session

from ..database import SessionLocal


@contextmanager
def session_scope() -> Iterator[Session]:
    """Provide transactional scope for use in tasks."""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
