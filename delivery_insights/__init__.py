"""Anomaly, pacing and health analytics for daily campaign delivery."""

from loguru import logger

__version__ = "0.1.0"

# Silent as a library; setup_logging() turns it on
logger.disable("delivery_insights")
