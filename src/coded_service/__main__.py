"""Entrypoint: python -m coded_service"""
from __future__ import annotations

import logging

import uvicorn

from coded_service.api.middleware.correlation_id import CorrelationIdFilter
from coded_service.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(correlation_id)s]: %(message)s"


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    for handler in logging.getLogger().handlers:
        handler.addFilter(CorrelationIdFilter())


def main() -> None:
    configure_logging(settings.LOG_LEVEL)
    uvicorn.run(
        "coded_service.app:create_app",
        factory=True,
        host="0.0.0.0",
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
        log_config=None,
    )


if __name__ == "__main__":
    main()
