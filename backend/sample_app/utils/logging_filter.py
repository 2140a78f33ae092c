"""
Secure logging filter to prevent sensitive information exposure
"""

import re
import logging
from typing import List


class SensitiveDataFilter(logging.Filter):
    """
    Logging filter that masks sensitive information in log records

    Prevents admin keys, tokens and passwords from reaching log output
    """

    SENSITIVE_PATTERNS: List[str] = [
        r'(x-admin-key)["\']?\s*[:=]\s*["\']?[^\s"\',]{4,}',
        r'(admin[_-]?key)["\']?\s*[:=]\s*["\']?[^\s"\',]{4,}',
        r'(api[_-]?key)["\']?\s*[:=]\s*["\']?[\w-]{10,}',
        r'(password)["\']?\s*[:=]\s*["\']?[\w-]{8,}',
        r'(token)["\']?\s*[:=]\s*["\']?[\w-]{10,}',
        r'(bearer\s+)[\w-]{10,}',
    ]

    def __init__(self):
        super().__init__()
        self.compiled_patterns = [
            re.compile(pattern, re.IGNORECASE)
            for pattern in self.SENSITIVE_PATTERNS
        ]

    def filter(self, record: logging.LogRecord) -> bool:
        """
        Mask sensitive values in the message, its arguments and exception text

        Always returns True; records are rewritten, never dropped.
        """
        if record.msg:
            record.msg = self._sanitize_string(str(record.msg))

        if record.args:
            if isinstance(record.args, dict):
                record.args = {
                    key: self._sanitize_string(value) if isinstance(value, str) else value
                    for key, value in record.args.items()
                }
            else:
                record.args = tuple(
                    self._sanitize_string(arg) if isinstance(arg, str) else arg
                    for arg in record.args
                )

        if record.exc_text:
            record.exc_text = self._sanitize_string(record.exc_text)

        return True

    def _sanitize_string(self, text: str) -> str:
        sanitized = text
        for pattern in self.compiled_patterns:
            sanitized = pattern.sub(r'\1=***REDACTED***', sanitized)
        return sanitized


def setup_secure_logging() -> None:
    """
    Configure secure logging with sensitive data filtering

    Call once during application startup, after logging.basicConfig
    """
    sensitive_filter = SensitiveDataFilter()

    root_logger = logging.getLogger()
    for handler in root_logger.handlers:
        handler.addFilter(sensitive_filter)

    sensitive_loggers = [
        'sample_app.main',
        'sample_app.api.middleware',
        'sample_app.api.v1.sample',
        'uvicorn',
        'uvicorn.access',
        'uvicorn.error'
    ]

    for logger_name in sensitive_loggers:
        logging.getLogger(logger_name).addFilter(sensitive_filter)

    logging.getLogger(__name__).info("Secure logging filter configured")
