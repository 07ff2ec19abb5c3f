import logging
import os
from typing import Optional


def configure_logging(level: Optional[str] = None) -> None:
    """Configure logging defaults for the subscription core."""
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
