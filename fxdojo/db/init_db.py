"""Create or drop every table straight from the ORM metadata.

Alembic owns the schema in deployed environments; this is for local
bootstrapping (`python -m fxdojo.db.init_db`).
"""
import argparse

from fxdojo.core.logging import configure_logging, get_logger
from fxdojo.db.base import Base
from fxdojo.db.session import engine
import fxdojo.models  # noqa: F401  registers every model on Base.metadata

logger = get_logger(__name__)


def create_database() -> None:
    Base.metadata.create_all(bind=engine)
    logger.info("database tables created", tables=len(Base.metadata.tables))


def drop_database() -> None:
    Base.metadata.drop_all(bind=engine)
    logger.info("database tables dropped")


def main() -> None:
    parser = argparse.ArgumentParser(description="Create fxdojo tables")
    parser.add_argument("--drop", action="store_true", help="drop all tables first")
    args = parser.parse_args()

    configure_logging()
    if args.drop:
        drop_database()
    create_database()


if __name__ == "__main__":
    main()
