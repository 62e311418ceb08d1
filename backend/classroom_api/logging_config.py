"""Logging configuration for the API process."""

from __future__ import annotations

import logging
from logging import Logger

from .settings import settings


def configure_logging() -> Logger:
	"""Configure root logging once and return the package logger."""
	logging.basicConfig(
		level=getattr(logging, settings.log_level.upper(), logging.INFO),
		format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
	)
	logging.getLogger("passlib").setLevel(logging.ERROR)
	return logging.getLogger("classroom_api")
