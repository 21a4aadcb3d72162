# sandboxfs/logging.py
import json
import logging
import os
import re
import sys
from typing import Any, Dict

PII_RE = re.compile(r"([\w\.-]+)@([\w\.-]+)")  # naive email redaction
MAX_LOGGED_CHARS = 200


def configure_logging(level: str | None = None):
    # stdout carries the stdio protocol; logs go to stderr
    logging.basicConfig(
        level=level or os.getenv("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        stream=sys.stderr,
    )


def redact_str(s: str) -> str:
    s = PII_RE.sub("[redacted-email]", s)
    if len(s) > MAX_LOGGED_CHARS:
        s = f"{s[:MAX_LOGGED_CHARS]}...[{len(s) - MAX_LOGGED_CHARS} more chars]"
    return s


def _redact_value(v: Any) -> Any:
    if isinstance(v, str):
        return redact_str(v)
    if isinstance(v, dict):
        return {k: _redact_value(x) for k, x in v.items()}
    if isinstance(v, list):
        return [_redact_value(x) for x in v]
    return v


def redact_args(args: Dict[str, Any]) -> Dict[str, Any]:
    safe = json.loads(json.dumps(args, default=str))  # deep copy via JSON
    return {k: _redact_value(v) for k, v in safe.items()}


def log_tool_call(logger: logging.Logger, name: str, args: Dict[str, Any]):
    logger.info("tool_call %s %s", name, redact_args(args))
