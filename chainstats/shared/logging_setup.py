#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import logging
from typing import Optional

from .colored_logging import setup_colored_logging


def get_logger(name: str) -> logging.Logger:
    """Return a named logger, installing the colored root handler on first use."""
    logger = logging.getLogger(name)
    if not logging.getLogger().handlers:
        setup_colored_logging(level=logging.INFO)
    return logger


def configure_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """Apply the configured level name (DEBUG..CRITICAL) and return the runner logger."""
    setup_colored_logging(level=getattr(logging, level.upper()), log_file=log_file)
    return logging.getLogger("chainstats")
