"""Entry points for the API, the stage workers and the reconciliation sweep."""

import logging
import sys

import uvicorn
from ddtrace import patch_all

from howhappy.config import AppConfig, load_config
from howhappy.container import Container
from howhappy.logging import setup_logging

logger = logging.getLogger(__name__)


def _bootstrap(service: str) -> AppConfig:
    config = load_config()
    setup_logging(config.log_level, service=f"howhappy-{service}", tracing=config.tracing_enabled)
    if config.tracing_enabled:
        patch_all()
    logger.info("Starting service", extra={"service": service})
    return config


def run_api() -> None:
    """Serves the HTTP API."""
    _bootstrap("api")
    uvicorn.run("howhappy.main:app", host="0.0.0.0", port=8000, log_config=None)


def run_transcriber() -> None:
    """Starts the transcription worker."""
    container = Container.from_config(_bootstrap("transcriber"))
    container.open()
    try:
        container.transcription_worker().start()
    finally:
        container.close()


def run_analyzer() -> None:
    """Starts the analysis worker."""
    container = Container.from_config(_bootstrap("analyzer"))
    container.open()
    try:
        container.analysis_worker().start()
    finally:
        container.close()


def run_reconciler() -> None:
    """Re-enqueues stalled responses once and exits non-zero if any failed."""
    container = Container.from_config(_bootstrap("reconciler"))
    container.open()
    try:
        report = container.pipeline.requeue_stalled()
    finally:
        container.close()
    sys.exit(1 if report.failed else 0)
