"""Run the proxy server: ``python -m pagewise.insights``."""

from __future__ import annotations

import logging

from aiohttp import web

from .api import create_app
from .core.config import get_settings
from .logging_config import setup_logging


def main() -> None:
    settings = get_settings()
    setup_logging(settings.log_level)
    logging.getLogger("pagewise.insights").info(
        "Proxy listening on http://%s:%s", settings.host, settings.port
    )
    web.run_app(create_app(settings), host=settings.host, port=settings.port, print=None)


if __name__ == "__main__":
    main()
