import logging
import sys

from app.utils.logging_redaction import install_redaction_filter


def setup_logging(level: str = "INFO") -> None:
    """
    Configure centralized application logging.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    install_redaction_filter()

    # Reduce noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
