import uvicorn

from payments_service.app import create_app
from payments_service.config import Settings
from payments_service.log import JsonLogger


def main() -> None:
    settings = Settings.from_env()
    logger = JsonLogger(
        service_name=settings.service_name,
        version=settings.service_version,
        environment=settings.environment,
        level=settings.log_level,
    )
    app = create_app(settings, logger=logger)
    logger.log("INFO", "Payments service started",
               port=settings.port,
               environment=settings.environment)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
