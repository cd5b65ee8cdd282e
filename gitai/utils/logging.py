"""
Structured Logging

Every log line carries the same queryable fields: module, action, msg,
plus arbitrary context (task, profile, provider, attempt, ...).

Logs go to stderr. stdout belongs to the generated text (commit messages,
PR bodies) so it can be piped straight into git.

USAGE
=====
from gitai.utils.logging import log, get_logger, configure_logging

configure_logging()  # once, in the CLI entry point

logger = get_logger()
log.info(logger, "llm.invoker", "invoke_start", "Invoking LLM",
         task="commit", profile="smart-main")

log.error(logger, "llm.invoker", "attempt_failed", "Provider call failed",
          error=str(e), attempt=2)

ACTION NAMING
=============
Consistent suffixes for queryable actions:
  *_start    : beginning of an operation
  *_done     : successful completion
  *_failed   : error/failure
  *_skipped  : intentionally skipped
  *_fallback : falling back to alternative path

ENVIRONMENT
===========
  GIT_AI_LOG_FORMAT: "pretty" (default) or "json"
  GIT_AI_LOG_LEVEL:  "WARNING" (default), "DEBUG", "INFO", "ERROR"
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Optional


class StructuredFormatter(logging.Formatter):
    """JSON (or pretty) formatter for structured records."""

    def __init__(self, pretty: bool = False):
        super().__init__()
        self.pretty = pretty

    def format(self, record: logging.LogRecord) -> str:
        msg = record.getMessage()

        # Structured log (emitted via StructuredLogger)
        if hasattr(record, "_structured") and record._structured:
            data = {
                "ts": _timestamp(),
                "level": record.levelname,
                "module": record._module,
                "action": record._action,
                "msg": msg,
            }
            for key, value in record._extra.items():
                if value is not None:
                    data[key] = value

            if self.pretty:
                return self._pretty(data)
            return json.dumps(data, default=str, separators=(",", ":"))

        # Third-party log, wrapped so JSON consumers can still parse it
        if self.pretty:
            return msg
        return json.dumps(
            {
                "ts": _timestamp(),
                "level": record.levelname,
                "module": record.name,
                "action": "log",
                "msg": msg,
            },
            default=str,
            separators=(",", ":"),
        )

    def _pretty(self, data: dict) -> str:
        """Human-readable format for terminals."""
        ts = data["ts"][11:23]  # HH:MM:SS.mmm
        lvl = data["level"][0]  # I/W/E/D
        mod = data["module"].upper()[:12].ljust(12)
        act = data["action"]
        msg = data["msg"]

        skip = {"ts", "level", "module", "action", "msg"}
        ctx = " ".join(f"{k}={v}" for k, v in data.items() if k not in skip)

        return f"{ts} {lvl} [{mod}] {act}: {msg}" + (f" | {ctx}" if ctx else "")


def _timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


class StructuredLogger:
    """
    Centralized structured logging.

    All methods accept a stdlib logging.Logger, module name, action name,
    message, and arbitrary context fields. None-valued fields are dropped.
    """

    def _log(
        self,
        logger: logging.Logger,
        level: int,
        module: str,
        action: str,
        msg: str,
        **kwargs,
    ) -> None:
        """Emit a structured log."""
        extra = {
            "_structured": True,
            "_module": module,
            "_action": action,
            "_extra": {k: v for k, v in kwargs.items() if v is not None},
        }
        logger.log(level, msg, extra=extra)

    def info(
        self,
        logger: logging.Logger,
        module: str,
        action: str,
        msg: str,
        **kwargs,
    ) -> None:
        """Log INFO level."""
        self._log(logger, logging.INFO, module, action, msg, **kwargs)

    def warning(
        self,
        logger: logging.Logger,
        module: str,
        action: str,
        msg: str,
        **kwargs,
    ) -> None:
        """Log WARNING level."""
        self._log(logger, logging.WARNING, module, action, msg, **kwargs)

    def error(
        self,
        logger: logging.Logger,
        module: str,
        action: str,
        msg: str,
        error: Optional[str] = None,
        error_type: Optional[str] = None,
        **kwargs,
    ) -> None:
        """Log ERROR level."""
        self._log(
            logger, logging.ERROR, module, action, msg,
            error=error, error_type=error_type, **kwargs,
        )

    def debug(
        self,
        logger: logging.Logger,
        module: str,
        action: str,
        msg: str,
        **kwargs,
    ) -> None:
        """Log DEBUG level."""
        self._log(logger, logging.DEBUG, module, action, msg, **kwargs)


# Singleton instance, import this everywhere
log = StructuredLogger()

_logger = None


def get_logger() -> logging.Logger:
    """Get the package logger."""
    global _logger
    if _logger is None:
        _logger = logging.getLogger("git-ai")
    return _logger


def configure_logging() -> None:
    """Configure root logger with structured formatter.

    This is the CLI's startup hook: the command entry point calls it once,
    before the first invocation. Library modules only call get_logger(),
    so embedding applications keep their own logging setup. Calling it
    again replaces the handler rather than adding a second one.
    """
    pretty = os.environ.get("GIT_AI_LOG_FORMAT", "pretty") != "json"
    level_name = os.environ.get("GIT_AI_LOG_LEVEL", "WARNING").upper()
    level = getattr(logging, level_name, logging.WARNING)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(StructuredFormatter(pretty=pretty))

    logging.basicConfig(
        level=level,
        handlers=[handler],
        force=True,
    )

    # LangChain provider packages are extremely chatty at DEBUG
    logging.getLogger("langchain").setLevel(logging.WARNING)
    logging.getLogger("langchain_core").setLevel(logging.WARNING)
    logging.getLogger("langchain_openai").setLevel(logging.WARNING)
    logging.getLogger("langchain_anthropic").setLevel(logging.WARNING)
    logging.getLogger("langchain_google_genai").setLevel(logging.WARNING)
    logging.getLogger("langchain_ollama").setLevel(logging.WARNING)

    # Provider SDKs and HTTP clients
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("anthropic").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    logging.getLogger("asyncio").setLevel(logging.WARNING)
