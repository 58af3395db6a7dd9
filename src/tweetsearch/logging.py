"""Logging setup.

Records go through a single `RichHandler`. Each record is stamped with the current search
run and upstream job ids, and fields passed as `extra={...}` are appended as `key=value`.
"""

from __future__ import annotations

import contextlib
import contextvars
import logging
from collections.abc import Iterator

from rich.console import Console
from rich.logging import RichHandler

_run_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("tweetsearch_run_id", default="-")
_job_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("tweetsearch_job_id", default="-")

# Attributes every LogRecord has; anything else came in through `extra`.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
    "run_id",
    "job_id",
}


class _ContextFilter(logging.Filter):
    """Inject run and job ids into log records."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        record.run_id = _run_id_var.get()  # type: ignore[attr-defined]
        record.job_id = _job_id_var.get()  # type: ignore[attr-defined]
        return True


class _ExtraFormatter(logging.Formatter):
    """Formatter that renders `extra` fields after the message."""

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        fields = {k: v for k, v in vars(record).items() if k not in _RECORD_ATTRS and not k.startswith("_")}
        if not fields:
            return text
        return text + " " + " ".join(f"{k}={v}" for k, v in sorted(fields.items()))


@contextlib.contextmanager
def run_context(*, run_id: str, job_id: str | None = None) -> Iterator[None]:
    """Bind the ids of one search run for everything logged inside the block.

    Args:
        run_id: Run identifier, one per search request.
        job_id: Upstream job identifier, if already known.
    """

    token_run = _run_id_var.set(run_id)
    token_job = _job_id_var.set(job_id or "-")
    try:
        yield
    finally:
        _run_id_var.reset(token_run)
        _job_id_var.reset(token_job)


def set_job_id(job_id: str) -> None:
    """Record the upstream job id once submission has returned one."""

    _job_id_var.set(job_id)


def configure_logging(level: str = "INFO") -> None:
    """Configure application logging.

    Safe to call more than once; the previous handler is replaced.

    Args:
        level: Logging level name.
    """

    # stdout carries CLI output
    handler = RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False, markup=False)
    handler.addFilter(_ContextFilter())
    handler.setFormatter(_ExtraFormatter("run=%(run_id)s job=%(job_id)s %(name)s: %(message)s"))

    root = logging.getLogger()
    root.setLevel(level.upper())
    for old in [h for h in root.handlers if isinstance(h, RichHandler)]:
        root.removeHandler(old)
    root.addHandler(handler)

    # httpx logs every request at INFO; polling makes that noisy.
    logging.getLogger("httpx").setLevel(max(logging.WARNING, root.level))


def get_logger(name: str) -> logging.Logger:
    """Get a module logger."""

    return logging.getLogger(name)
