# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Logging setup and per-resolution log context.

The reference currently being resolved is kept in a context variable and
stamped onto every record by :class:`ReferenceContextFilter`, so log lines
emitted deep inside fetchers or the tree builder can be traced back to the
``uses:`` string that triggered them.
"""

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from logging.handlers import RotatingFileHandler
from typing import Iterator, Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(reference)s] %(message)s"
JSON_FORMAT = (
    '{"time": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", '
    '"reference": "%(reference)s", "document": "%(document)s", "message": "%(message)s"}'
)

reference_var: ContextVar[str] = ContextVar("reference", default="")
document_var: ContextVar[str] = ContextVar("document", default="")


class ReferenceContext:
    """Static helpers to set and clear the per-resolution context variables."""

    @staticmethod
    def set(reference: str, document: str = "") -> None:
        reference_var.set(reference)
        document_var.set(document)

    @staticmethod
    def clear() -> None:
        reference_var.set("")
        document_var.set("")

    @staticmethod
    @contextmanager
    def bind(reference: str, document: str = "") -> Iterator[None]:
        ref_token = reference_var.set(reference)
        doc_token = document_var.set(document)
        try:
            yield
        finally:
            reference_var.reset(ref_token)
            document_var.reset(doc_token)


class ReferenceContextFilter(logging.Filter):
    """Injects ``reference`` and ``document`` attributes into every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.reference = reference_var.get()
        record.document = document_var.get()
        return True


def configure_logging(
    level: str = "WARNING",
    logfile: Optional[str] = None,
    max_bytes: Optional[int] = None,
    backup_count: Optional[int] = None,
    json: bool = False,
) -> logging.Logger:
    """Configure the ``actionref`` logger hierarchy and return its root logger.

    Calling this twice replaces the handlers installed by the first call.
    """
    logger = logging.getLogger("actionref")
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if logfile:
        handler: logging.Handler = RotatingFileHandler(
            logfile, maxBytes=max_bytes or 0, backupCount=backup_count or 0
        )
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(JSON_FORMAT if json else LOG_FORMAT))
    handler.addFilter(ReferenceContextFilter())
    logger.addHandler(handler)
    logger.propagate = False
    return logger
