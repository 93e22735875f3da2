import logging

from imagery.config.settings import Settings
from imagery.main import create_app

settings = Settings()

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = create_app(settings)
