"""Thin facade over Pydantic Logfire.

Everything here is a no-op until ``configure()`` has run with
``logfire.enabled`` set and the ``logfire`` package importable, so the
core can open spans unconditionally.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from mosaic.config import Settings

_logfire = None
_configured = False


def is_available() -> bool:
    return _logfire is not None and _configured


def configure(settings: Settings) -> None:
    """Initialize logfire from the ``logfire`` settings block."""
    global _logfire, _configured

    if not settings.logfire.enabled:
        return

    try:
        import logfire as lf
    except ImportError:
        return

    kwargs: dict[str, Any] = {
        "service_name": settings.logfire.service_name,
        "send_to_logfire": "if-token-present",
    }
    if settings.logfire.environment:
        kwargs["environment"] = settings.logfire.environment
    if settings.logfire.console:
        kwargs["console"] = lf.ConsoleOptions()

    lf.configure(**kwargs)
    _logfire = lf
    _configured = True


def instrument_app(app) -> None:
    """Instrument a FastAPI app in place when logfire is on."""
    if is_available():
        _logfire.instrument_fastapi(app)


def instrument_sqlalchemy(engine) -> None:
    """Instrument a SQLAlchemy engine."""
    if is_available():
        _logfire.instrument_sqlalchemy(engine=engine)


@contextmanager
def span(name: str, **attrs: Any):
    """Open a logfire span, or yield None when logfire is off."""
    if is_available():
        with _logfire.span(name, **attrs) as s:
            yield s
    else:
        yield None


def exception(msg: str, **kwargs: Any) -> bool:
    """Log an exception via logfire. Returns False when logfire is off."""
    if is_available():
        _logfire.exception(msg, **kwargs)
        return True
    return False
