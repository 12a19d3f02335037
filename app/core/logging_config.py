"""
Process-wide logging setup.

Stdout only; gunicorn and the hosting platform capture it. Module code
just calls `logging.getLogger(__name__)`.
"""
import logging

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=_FORMAT,
    )
