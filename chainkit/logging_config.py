## Logging setup shared by all modules
import logging

from chainkit.settings import settings


def setup_logging(name: str) -> logging.Logger:
    """Configures the root handler once and returns a named logger."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - [%(levelname)s] - %(message)s",
        datefmt="%H:%M:%S",
    )
    return logging.getLogger(name)
