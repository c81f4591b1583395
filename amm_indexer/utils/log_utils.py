import logging

from amm_indexer.utils.shortname import ShortNameFilter

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(shortname)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

def configure_logging(level=logging.INFO):
    """Console logging for the API and CLI processes (Celery configures its own)."""
    handler = logging.StreamHandler()
    handler.addFilter(ShortNameFilter())
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    logging.basicConfig(level=level, handlers=[handler], force=True)
