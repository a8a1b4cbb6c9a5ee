"""Command that serves the route-planning API."""

from __future__ import annotations

import argparse
import logging
import os
import time

from dotenv import load_dotenv
from flask import Flask, g, request

from .api import create_app, initialize_planner
from .data_loader import LoaderError

logger = logging.getLogger(__name__)

DEFAULT_PORT = "8087"


def install_request_logger(app: Flask) -> Flask:
    """Log each request as ``METHOD URI STATUS DURATIONms``."""

    @app.before_request
    def _start_timer() -> None:
        g.request_started = time.perf_counter()

    @app.after_request
    def _log_request(response):
        started = g.get("request_started", time.perf_counter())
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        uri = request.path
        if request.query_string:
            uri += "?" + request.query_string.decode("latin-1")
        logger.info("%s %s %d %dms", request.method, uri, response.status_code, elapsed_ms)
        return response

    return app


def main(argv: list[str] | None = None) -> int:
    """Initialize the planner and serve the API; returns an exit status."""
    parser = argparse.ArgumentParser(description="Serve the bus route planning API.")
    parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    load_dotenv()

    try:
        initialize_planner()
    except (LoaderError, OSError, ValueError) as exc:
        logger.error("Failed to initialize route planner: %s", exc)
        return 1
    logger.info("Route planner initialized successfully")

    port = os.environ.get("PORT", DEFAULT_PORT)
    logger.info("Starting server on 0.0.0.0:%s", port)

    app = install_request_logger(create_app())
    app.run(host="0.0.0.0", port=int(port))
    return 0