# sales_tracker/secure_logger.py
"""
Secure Logging Helpers

Masks sensitive data before it reaches any handler:
- Values stored under sensitive-sounding keys (password, token, hash, ...)
- key=value / key: value fragments inside free text
- bcrypt hashes and JWT-looking tokens anywhere in a message

Usage:
    from sales_tracker.secure_logger import configure_logging, log_auth_event

    configure_logging()
    log_auth_event(logger, "Login successful", username, success=True)
"""

import logging
import re
from typing import Any, Iterable, Optional

from .config import config

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

SENSITIVE_KEYS = (
    'password', 'pwd', 'pass', 'secret', 'token', 'key', 'auth',
    'credential', 'session', 'cookie', 'authorization', 'bearer',
    'api_key', 'apikey', 'private', 'confidential', 'hash',
)

# Patterns with a capture group mask only the captured value
_KEY_VALUE_PATTERNS = [
    re.compile(r"password\s*[:=]\s*['\"]?([^'\"\s,}]+)", re.IGNORECASE),
    re.compile(r"token\s*[:=]\s*['\"]?([^'\"\s,}]+)", re.IGNORECASE),
    re.compile(r"key\s*[:=]\s*['\"]?([^'\"\s,}]+)", re.IGNORECASE),
    re.compile(r"secret\s*[:=]\s*['\"]?([^'\"\s,}]+)", re.IGNORECASE),
    re.compile(r"auth\s*[:=]\s*['\"]?([^'\"\s,}]+)", re.IGNORECASE),
]
_WHOLE_MATCH_PATTERNS = [
    re.compile(r"\$2[aby]\$\d+\$[./A-Za-z0-9]{53}"),
    re.compile(r"eyJ[A-Za-z0-9\-_=]+\.[A-Za-z0-9\-_=]+\.?[A-Za-z0-9\-_.+/=]*"),
]

MASK = '***MASKED***'


# ==================== MASKING ====================

def mask_value(value: Any) -> str:
    """Mask a value, keeping a couple of characters at each end"""
    if value is None:
        return '***NULL***'

    text = str(value)
    if len(text) <= 2:
        return '***'
    if len(text) <= 6:
        return text[0] + '***' + text[-1]
    return text[:2] + '***' + text[-2:]


def is_sensitive_key(key: Any) -> bool:
    lowered = str(key).lower()
    return any(word in lowered for word in SENSITIVE_KEYS)


def _mask_captured(match: "re.Match") -> str:
    whole = match.group(0)
    start = match.start(1) - match.start(0)
    end = match.end(1) - match.start(0)
    return whole[:start] + mask_value(match.group(1)) + whole[end:]


def mask_sensitive_string(text: str) -> str:
    """Mask secrets embedded in free text"""
    for pattern in _KEY_VALUE_PATTERNS:
        text = pattern.sub(_mask_captured, text)
    for pattern in _WHOLE_MATCH_PATTERNS:
        text = pattern.sub(MASK, text)
    return text


def mask_sensitive_data(data: Any) -> Any:
    """Recursively mask strings, mappings and sequences"""
    if isinstance(data, str):
        return mask_sensitive_string(data)

    if isinstance(data, dict):
        return {
            key: mask_value(value) if is_sensitive_key(key) else mask_sensitive_data(value)
            for key, value in data.items()
        }

    if isinstance(data, (list, tuple)):
        return type(data)(mask_sensitive_data(item) for item in data)

    return data


# ==================== LOGGING INTEGRATION ====================

class SensitiveDataFilter(logging.Filter):
    """Rewrites msg and args of every record passing through a handler"""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = mask_sensitive_string(record.msg)

        if record.args:
            if isinstance(record.args, dict):
                record.args = mask_sensitive_data(record.args)
            else:
                record.args = tuple(mask_sensitive_data(arg) for arg in record.args)

        return True


def install_filter(handlers: Iterable[logging.Handler]) -> None:
    for handler in handlers:
        if not any(isinstance(f, SensitiveDataFilter) for f in handler.filters):
            handler.addFilter(SensitiveDataFilter())


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Configure root logging once and attach the masking filter.

    Console output can be silenced with ENABLE_CONSOLE_LOGS=false;
    the level defaults to LOG_LEVEL from config.
    """
    level_name = (level or config.get_app_setting("LOG_LEVEL", "INFO")).upper()
    root = logging.getLogger()

    if not root.handlers:
        logging.basicConfig(level=level_name, format=LOG_FORMAT)
    else:
        root.setLevel(level_name)

    if not config.is_feature_enabled("CONSOLE_LOGS"):
        root.setLevel(logging.CRITICAL + 1)

    install_filter(root.handlers)
    return root


def log_auth_event(logger: logging.Logger, message: str,
                   username: Optional[str] = None, success: bool = False) -> None:
    """Authentication audit line with the username masked"""
    status = '✅' if success else '❌'
    masked = mask_value(username) if username else 'unknown'
    logger.info(f"🔐 [AUTH] {status} {message} (user: {masked})")


__all__ = [
    'SENSITIVE_KEYS',
    'mask_value',
    'is_sensitive_key',
    'mask_sensitive_string',
    'mask_sensitive_data',
    'SensitiveDataFilter',
    'install_filter',
    'configure_logging',
    'log_auth_event',
]
