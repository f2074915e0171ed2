import logging

from tqdm import tqdm

from . import handler, formatter

__all__ = ['TqdmLoggingHandler', 'handler', 'formatter']


class TqdmLoggingHandler(logging.Handler):
    """Route log records through `tqdm.write` so they do not break progress bars."""
    def __init__(self, level=logging.NOTSET):
        super().__init__(level)
        self.setFormatter(formatter)

    def emit(self, record):
        try:
            msg = self.format(record)
            tqdm.write(msg)
            self.flush()
        except Exception:
            self.handleError(record)
