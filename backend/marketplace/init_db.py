"""Create every table directly from the models (local SQLite development)."""

import logging

from marketplace import models  # noqa: F401
from marketplace.database import Base, engine

logger = logging.getLogger(__name__)


def init_db() -> None:
    Base.metadata.create_all(bind=engine)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    logger.info("Creating database tables...")
    init_db()
    logger.info("Tables created successfully")
