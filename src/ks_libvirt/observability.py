"""Structured logging helpers shared by every pipeline stage.

Purpose
    Keep every log emission predictable and contextual: each record carries the
    identifier of the kickstart run that produced it plus a small dictionary of
    stage-specific fields.

Contents
    - ``RUN_ID``: context variable storing the active run identifier.
    - ``get_logger``: returns the shared package logger (quiet by default).
    - ``bind_run_id``: binds or clears the active run identifier.
    - ``log_debug`` / ``log_info`` / ``log_warning`` / ``log_error``: emit
      structured entries via a single private emitter.
    - ``make_event``: convenience builder for structured event payloads.
    - ``enable_console_logging``: attach a stream handler for CLI use.

System Integration
    Used by the loader, the resolvers, the rewriter and the composition root.
    The library stays silent until a host application (or the CLI) attaches a
    handler.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Any, Final, Mapping

RUN_ID: ContextVar[str | None] = ContextVar("ks_libvirt_run_id", default=None)
"""Identifier of the kickstart run currently being prepared."""

_LOGGER: Final[logging.Logger] = logging.getLogger("ks_libvirt")
_LOGGER.addHandler(logging.NullHandler())

_CONSOLE_FORMAT: Final[str] = "%(levelname)s %(message)s %(context)s"
_CONSOLE_HANDLER: logging.Handler | None = None


def get_logger() -> logging.Logger:
    """Expose the package logger so applications may attach handlers."""

    return _LOGGER


def bind_run_id(run_id: str | None) -> None:
    """Bind or clear the active run identifier.

    Examples
    --------
    >>> bind_run_id('run-1')
    >>> RUN_ID.get()
    'run-1'
    >>> bind_run_id(None)
    >>> RUN_ID.get() is None
    True
    """

    RUN_ID.set(run_id)


def enable_console_logging(level: int = logging.WARNING) -> logging.Handler:
    """Attach a stderr handler to the package logger and return it.

    Why
        The CLI maps the ``verbose``/``quiet`` keys onto a log level; library users
        keep full control and never get a handler they did not ask for.
    """

    global _CONSOLE_HANDLER
    if _CONSOLE_HANDLER is not None:
        _LOGGER.removeHandler(_CONSOLE_HANDLER)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT, defaults={"context": {}}))
    _LOGGER.addHandler(handler)
    _LOGGER.setLevel(level)
    _CONSOLE_HANDLER = handler
    return handler


def log_debug(message: str, **fields: Any) -> None:
    """Emit a structured debug log entry that includes the run context."""

    _emit(logging.DEBUG, message, fields)


def log_info(message: str, **fields: Any) -> None:
    """Emit a structured info log entry that includes the run context."""

    _emit(logging.INFO, message, fields)


def log_warning(message: str, **fields: Any) -> None:
    """Emit a structured warning log entry that includes the run context."""

    _emit(logging.WARNING, message, fields)


def log_error(message: str, **fields: Any) -> None:
    """Emit a structured error log entry that includes the run context."""

    _emit(logging.ERROR, message, fields)


def make_event(
    stage: str,
    ref: str | None,
    payload: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Build a structured logging payload for pipeline events.

    Inputs
        stage: Pipeline stage emitting the event (``loader``, ``urls``...).
        ref: Document reference or URL the event is about, if any.
        payload: Optional mapping with extra diagnostic detail.

    Examples
    --------
    >>> make_event('loader', 'main.ks', {'lines': 3})
    {'stage': 'loader', 'ref': 'main.ks', 'lines': 3}
    """

    event: dict[str, Any] = {"stage": stage, "ref": ref}
    if payload:
        event |= dict(payload)
    return event


def _emit(level: int, message: str, fields: Mapping[str, Any]) -> None:
    """Send a log entry through the shared logger with contextual metadata."""

    context = {"run_id": RUN_ID.get()}
    context.update(fields)
    _LOGGER.log(level, message, extra={"context": context})
