import os
import sys
import logging

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import inspect

from imagery.config.settings import Settings
from imagery.database import Base, make_engine
import imagery.models  # noqa: F401

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

def init_db():
    """Create the tables directly, without migrations (local development only)"""
    settings = Settings()
    try:
        engine = make_engine(settings.database_url)
        logger.info(f"Connecting to database on {engine.url.host or 'local file'}")

        Base.metadata.create_all(bind=engine)

        inspector = inspect(engine)
        logger.info("Tables:")
        for table_name in inspector.get_table_names():
            logger.info(f"- {table_name}")

        logger.info("Database initialized")

    except Exception as e:
        logger.error(f"Error initializing database: {str(e)}")
        raise

if __name__ == "__main__":
    init_db()
