"""Environment-driven settings for the bill splitter."""

import logging
import os

# Model access
ANTHROPIC_API_KEY = os.environ.get("ANTHROPIC_API_KEY", "")
MODEL = os.getenv("SPLITBILL_MODEL", "claude-sonnet-4-20250514")
MAX_TOKENS = int(os.getenv("SPLITBILL_MAX_TOKENS", "4096"))

# Retry policy for transient API failures
MAX_RETRIES = int(os.getenv("SPLITBILL_MAX_RETRIES", "3"))
RETRY_BASE_DELAY = float(os.getenv("SPLITBILL_RETRY_BASE_DELAY", "2.0"))
RETRY_MULTIPLIER = float(os.getenv("SPLITBILL_RETRY_MULTIPLIER", "2.0"))
RETRY_MAX_DELAY = float(os.getenv("SPLITBILL_RETRY_MAX_DELAY", "16.0"))

# Upload handling
MAX_UPLOAD_BYTES = int(os.getenv("SPLITBILL_MAX_UPLOAD_BYTES", str(20 * 1024 * 1024)))
PDF_DPI = int(os.getenv("SPLITBILL_PDF_DPI", "200"))
PDF_MAX_PAGES = int(os.getenv("SPLITBILL_PDF_MAX_PAGES", "3"))

# Scale correction thresholds
MIN_PLAUSIBLE_AMOUNT = float(os.getenv("SPLITBILL_MIN_PLAUSIBLE_AMOUNT", "1000"))
SCALE_RATIO_TOLERANCE = float(os.getenv("SPLITBILL_SCALE_RATIO_TOLERANCE", "0.02"))
MAX_TAX_RATE_PERCENT = float(os.getenv("SPLITBILL_MAX_TAX_RATE_PERCENT", "25"))

LOG_LEVEL = os.getenv("SPLITBILL_LOG_LEVEL", "INFO").upper()

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


def configure_logging(level: str = None) -> None:
    """Configure root logging for the app.

    Args:
        level: Level name, or None to use SPLITBILL_LOG_LEVEL.
    """
    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
    )
