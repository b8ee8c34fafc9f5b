"""Nearby creature notifier daemon."""

import logging

__version__ = "0.1.0"

# Silent until the application configures logging
logging.getLogger(__name__).addHandler(logging.NullHandler())
