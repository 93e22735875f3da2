import os
import sys
import logging
from dotenv import load_dotenv
from alembic import command
from alembic.config import Config

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.append(ROOT)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

def run_migrations():
    try:
        load_dotenv()

        logger.info("Running migrations...")
        alembic_cfg = Config(os.path.join(ROOT, "alembic.ini"))
        alembic_cfg.set_main_option("script_location", os.path.join(ROOT, "alembic"))
        command.upgrade(alembic_cfg, "head")

        logger.info("Migrations applied")

    except Exception as e:
        logger.error(f"Error applying migrations: {str(e)}")
        raise

if __name__ == "__main__":
    run_migrations()
