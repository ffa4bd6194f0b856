"""
core/logging_config.py
──────────────────────
One-shot logging setup for the API process.

Library modules only ever call ``logging.getLogger(__name__)``; handlers
and formats are attached here, once, from the application lifespan.
"""

import logging

_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """
    Attach a single stream handler to the root logger.

    Args:
        level: Log level name (``"DEBUG"``, ``"INFO"``, ...).
    """
    logging.basicConfig(level=level.upper(), format=_FORMAT, force=True)
    # TensorFlow logs every retrace at INFO; keep it out of the app log.
    logging.getLogger("tensorflow").setLevel(logging.WARNING)
