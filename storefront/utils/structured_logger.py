"""
Structured JSON logger for support-chat events.

Every entry is one line of JSON so chat traffic can be grepped and replayed:
- timestamp (ISO 8601, UTC)
- level
- event_type (quick_command, tool_call, fallback, queue_drain, request, ...)
- message (human-readable)
- context (session token, tool name, counts, latency)
"""

import json
import logging
import sys
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class LogLevel(str, Enum):
    """Log levels matching Python logging."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class StructuredLogger:
    """
    JSON structured logger.

    Wraps a stdlib logger whose only handler writes the raw JSON line, so
    records never get a second textual prefix.
    """

    def __init__(self, name: str = "support", log_level: str = "INFO"):
        self.name = name
        self.logger = logging.getLogger(f"events.{name}")
        self.logger.setLevel(getattr(logging, log_level))
        self.logger.propagate = False

        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setLevel(getattr(logging, log_level))
            handler.setFormatter(logging.Formatter('%(message)s'))
            self.logger.addHandler(handler)

    def _log(
        self,
        level: LogLevel,
        event_type: str,
        message: str,
        context: Optional[Dict[str, Any]] = None
    ):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level.value,
            "logger": self.name,
            "event_type": event_type,
            "message": message,
        }
        if context:
            log_entry["context"] = context

        log_line = json.dumps(log_entry, default=str)

        if level == LogLevel.DEBUG:
            self.logger.debug(log_line)
        elif level == LogLevel.INFO:
            self.logger.info(log_line)
        elif level == LogLevel.WARNING:
            self.logger.warning(log_line)
        else:
            self.logger.error(log_line)

    def debug(self, event_type: str, message: str, context: Optional[Dict[str, Any]] = None):
        self._log(LogLevel.DEBUG, event_type, message, context)

    def info(self, event_type: str, message: str, context: Optional[Dict[str, Any]] = None):
        self._log(LogLevel.INFO, event_type, message, context)

    def warning(self, event_type: str, message: str, context: Optional[Dict[str, Any]] = None):
        self._log(LogLevel.WARNING, event_type, message, context)

    def error(self, event_type: str, message: str, context: Optional[Dict[str, Any]] = None):
        self._log(LogLevel.ERROR, event_type, message, context)

    # Specialized helpers for the chat loop

    def log_tool_call(self, tool_name: str, args: Dict[str, Any], latency_ms: float, ok: bool):
        """Log one executed tool call."""
        self.info(
            "tool_call",
            f"Executed {tool_name}",
            {
                "tool": tool_name,
                "args": args,
                "latency_ms": round(latency_ms, 2),
                "ok": ok,
            }
        )

    def log_request(self, endpoint: str, method: str = "POST", params: Optional[Dict[str, Any]] = None):
        """Log an incoming API request."""
        self.info(
            "request",
            f"{method} {endpoint}",
            {
                "endpoint": endpoint,
                "method": method,
                "params": params or {},
            }
        )
