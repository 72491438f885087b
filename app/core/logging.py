"""
Process-wide log setup for the gateway.

HTTP client libraries log full request URLs at INFO, so they are held at
WARNING regardless of the gateway's own level.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
QUIET_LOGGERS = ("httpx", "httpcore", "botocore", "boto3", "urllib3")


def configure_logging(level: str = "INFO") -> None:
    """Install the gateway log format on stdout at ``level``."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, stream=sys.stdout)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


__all__ = ["LOG_FORMAT", "QUIET_LOGGERS", "configure_logging"]
