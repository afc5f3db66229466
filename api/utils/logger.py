from __future__ import annotations

import copy
import logging
import os
import sys
import time
import uuid
from contextvars import ContextVar
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from api.config import settings
from progression.errors import EngineError, PersistenceFailure

REQUEST_ID: ContextVar[str] = ContextVar("request_id", default="-")
LEARNER_ID: ContextVar[str] = ContextVar("learner_id", default="-")

APP_LOGGER = "uvicorn"
# Engine and store modules log through logging.getLogger(__name__); they share the app handlers.
LIBRARY_LOGGERS = ("progression", "infra")


class RequestContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003 (shadow built-in name)
        record.request_id = REQUEST_ID.get("-")
        record.learner_id = LEARNER_ID.get("-")
        return True


class ColorFormatter(logging.Formatter):
    """
    Console-only ANSI formatter. Level names are colored; request and learner ids are dimmed.
    Disabled when NO_COLOR is set or stdout is not a TTY.
    """

    _RESET = "\x1b[0m"
    _DIM = "\x1b[2m"
    _LEVEL_COLORS: dict[int, str] = {
        logging.DEBUG: "\x1b[36m",
        logging.INFO: "\x1b[32m",
        logging.WARNING: "\x1b[33m",
        logging.ERROR: "\x1b[31m",
        logging.CRITICAL: "\x1b[35m",
    }

    def __init__(self, *args, enable_color: bool = True, **kwargs):
        super().__init__(*args, **kwargs)
        self.enable_color = enable_color

    def _dim(self, value) -> str:
        return f"{self._DIM}{value}{self._RESET}"

    def format(self, record: logging.LogRecord) -> str:
        if not self.enable_color:
            return super().format(record)
        r = copy.copy(record)
        r.levelname = f"{self._LEVEL_COLORS.get(r.levelno, '')}{r.levelname}{self._RESET}"
        r.request_id = self._dim(getattr(r, "request_id", "-"))
        r.learner_id = self._dim(getattr(r, "learner_id", "-"))
        return super().format(r)


def _color_enabled(stream) -> bool:
    if os.getenv("NO_COLOR"):
        return False
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def configure_logging(
    *,
    log_dir: str | Path | None = None,
    log_file: str = "progression.log",
    level: str | None = None,
) -> logging.Logger:
    """
    Rotating file log under settings.log_dir, plus stdout when LOG_CONSOLE=1.
    The app logger and the engine loggers share the handlers. Idempotent.
    """
    logger = logging.getLogger(APP_LOGGER)
    if getattr(logger, "_configured", False):
        return logger

    level_name = (level or settings.log_level or "INFO").upper()
    numeric_level = logging.getLevelNamesMapping().get(level_name, logging.INFO)
    directory = Path(log_dir or settings.log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    file_path = directory / log_file

    fmt = (
        "%(asctime)s %(levelname)-8s %(name)s "
        "request_id=%(request_id)s learner=%(learner_id)s src=%(filename)s:%(lineno)d "
        "%(message)s"
    )
    datefmt = "%Y-%m-%d %H:%M:%S"
    context_filter = RequestContextFilter()

    fh = RotatingFileHandler(str(file_path), maxBytes=10 * 1024 * 1024, backupCount=5, encoding="utf-8")
    fh.setFormatter(logging.Formatter(fmt=fmt, datefmt=datefmt))
    handlers: list[logging.Handler] = [fh]
    if os.getenv("LOG_CONSOLE", "").lower() in ("1", "true", "yes"):
        ch = logging.StreamHandler(sys.stdout)
        ch.setFormatter(ColorFormatter(fmt=fmt, datefmt=datefmt, enable_color=_color_enabled(sys.stdout)))
        handlers.append(ch)

    for h in handlers:
        h.setLevel(numeric_level)
        h.addFilter(context_filter)

    for name in (APP_LOGGER, *LIBRARY_LOGGERS):
        lg = logging.getLogger(name)
        lg.setLevel(numeric_level)
        lg.propagate = False
        for h in handlers:
            lg.addHandler(h)

    logger._configured = True  # type: ignore[attr-defined]
    logger.debug("logging configured file=%s level=%s", file_path, level_name)
    return logger


def set_request_context(request_id: Optional[str] = None, learner_id: Optional[str] = None) -> str:
    rid = request_id or uuid.uuid4().hex
    REQUEST_ID.set(rid)
    LEARNER_ID.set((learner_id or "").strip() or "-")
    return rid


def clear_request_context() -> None:
    REQUEST_ID.set("-")
    LEARNER_ID.set("-")


class log_request:
    """
    Times an engine operation:
      with log_request(logger, "set_day_completion day=2"):
          ...
    Rule violations (locked day, bad score) are logged as warnings; store failures and
    anything unexpected get a stack trace.
    """

    def __init__(self, logger: logging.Logger, name: str):
        self.logger = logger
        self.name = name
        self.start = 0.0

    def __enter__(self):
        self.start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, tb):
        dur_ms = int((time.perf_counter() - self.start) * 1000)
        if exc is None:
            self.logger.info("%s ok duration_ms=%s", self.name, dur_ms)
        elif isinstance(exc, EngineError) and not isinstance(exc, PersistenceFailure):
            self.logger.warning("%s rejected code=%s duration_ms=%s", self.name, exc.code, dur_ms)
        else:
            self.logger.exception("%s failed duration_ms=%s", self.name, dur_ms)
        return False
