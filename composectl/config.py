"""Constants and environment-driven defaults for composectl.

The fake client's reported version can be overridden with
``COMPOSECTL_FAKE_VERSION`` and the starting log level with
``COMPOSECTL_LOG_LEVEL``; everything else is fixed.
"""

from __future__ import annotations

import logging
import os

# Ingestion queue shared by all producers of one event bus.
EVENT_QUEUE_SIZE = 100

# Delivery buffer of a single event subscriber.
SUBSCRIBER_QUEUE_SIZE = 10

# Project name used when there is no working directory to derive one from.
FALLBACK_PROJECT_NAME = "fakedc"

# A "known good" compose version that won't produce compatibility warnings.
DEFAULT_VERSION = "v1.29.2"

FAKE_BUILD = "composectl-fake"

DOTENV_FILENAME = ".env"


def get_default_version() -> str:
    """Return the version the fake client reports when none is configured.

    Resolution order:
    1. ``COMPOSECTL_FAKE_VERSION`` environment variable
    2. :data:`DEFAULT_VERSION`
    """
    return os.environ.get("COMPOSECTL_FAKE_VERSION") or DEFAULT_VERSION


def get_log_level() -> int:
    """Return the starting level of the ``composectl`` logger.

    Reads ``COMPOSECTL_LOG_LEVEL`` (a level name such as ``INFO`` or
    ``debug``); unknown or missing values mean WARNING.
    """
    name = os.environ.get("COMPOSECTL_LOG_LEVEL", "").strip().upper()
    level = logging.getLevelName(name) if name else logging.WARNING
    return level if isinstance(level, int) else logging.WARNING
