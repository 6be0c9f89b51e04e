from __future__ import annotations

import logging
import re
from typing import Any
from urllib.parse import urlsplit, urlunsplit

_ENDPOINT_URL_RE = re.compile(r"(?:https?|wss?)://[^\s\"'<>]+", re.IGNORECASE)
_KEY_ASSIGNMENT_RE = re.compile(r"(?i)(api[-_]?key\s*[:=]\s*)([^\s,;\"'&]+)")
_KEY_QUERY_RE = re.compile(r"(?i)([?&](?:api[-_]?key)=)([^&#\s]+)")
_MASKED_SCHEMES = {"http", "https", "ws", "wss"}
_URL_TRAILERS = ".,);]}"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}


def mask_url(url: str) -> str:
    """Drop query and fragment from an RPC url; provider keys ride in the query string."""
    stripped = url.rstrip(_URL_TRAILERS)
    trailing = url[len(stripped):]

    parts = urlsplit(stripped)
    if parts.scheme.lower() not in _MASKED_SCHEMES or not parts.netloc:
        return url
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", "")) + trailing


def _redact_text(text: str) -> str:
    text = _ENDPOINT_URL_RE.sub(lambda match: mask_url(match.group(0)), text)
    text = _KEY_QUERY_RE.sub(r"\1***", text)
    return _KEY_ASSIGNMENT_RE.sub(r"\1***", text)


def redact(value: Any) -> Any:
    """Mask endpoint credentials in strings, recursing into containers."""
    if isinstance(value, str):
        return _redact_text(value)
    if isinstance(value, dict):
        return {key: redact(child) for key, child in value.items()}
    if isinstance(value, list):
        return [redact(item) for item in value]
    if isinstance(value, tuple):
        return tuple(redact(item) for item in value)
    return value


def log_event(
    logger: logging.Logger,
    *,
    level: str,
    event: str,
    message: str,
    **fields: Any,
) -> None:
    extra = redact({"event": event, **fields})
    if level == "exception":
        logger.exception(redact(message), extra=extra)
        return

    logger.log(_LEVELS.get(level, logging.INFO), redact(message), extra=extra)
