"""Helpers shared by the wallet sync scripts."""

import logging
import os

logger = logging.getLogger(__name__)


def setup_logging(debug=False, log_level='info'):
    """Configure logging for the application.

    Logs go to the console, and also to LOG_FILE when that variable is set.
    """
    if debug:
        level = logging.DEBUG
    else:
        level = getattr(logging, log_level.upper(), logging.INFO)

    format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    handlers = [logging.StreamHandler()]
    log_file = os.getenv('LOG_FILE')
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(level=level, format=format, handlers=handlers, force=True)

    # httpx logs every request at INFO
    logging.getLogger('httpx').setLevel(logging.DEBUG if debug else logging.WARNING)

    return log_file
