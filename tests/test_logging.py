"""Tests for logging.py."""

import logging

import structlog

from dynmetrics.logging import bind_context, configure_logging


def test_configure_logging_renders_json():
    previous = structlog.get_config()
    try:
        configure_logging(logging.INFO)
        logger = bind_context(podname="pod-1")
        logger.warning("metric_schema_mismatch", metric="orders_total")
    finally:
        structlog.configure(**previous)

    assert structlog.get_config()["processors"] == previous["processors"]
