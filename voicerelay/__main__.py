import uvicorn

from .app import create_app
from .config import Settings
from .logging_config import get_logger, setup_logging


def main() -> None:
    settings = Settings.from_env()
    # Logging first so app construction is captured.
    setup_logging(log_level=settings.log_level, log_file=settings.log_file)
    logger = get_logger(__name__)

    app = create_app(settings)
    logger.info("Starting voicerelay on %s:%s", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
