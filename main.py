#!/usr/bin/env python
import logging
import sys

from controller.config import ConfigurationError, StationConfig
from web.app import create_app

logger = logging.getLogger("print_station")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s",
    )


def main() -> int:
    try:
        config = StationConfig.from_env()
    except ConfigurationError as e:
        configure_logging("INFO")
        logger.error("ERROR: %s", e)
        return 1

    configure_logging(config.log_level)
    logger.info("Printer backend starting for: %s", config.printer_id)

    app = create_app(config)
    logger.info("Printer backend API running on http://localhost:%s", config.port)
    app.run(host="0.0.0.0", port=config.port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
