"""
Secure logging filter to keep platform credentials out of log output
"""

import re
import logging
from typing import List


class SensitiveDataFilter(logging.Filter):
    """
    Logging filter that masks credentials in log records

    Covers OpenNebula passwords, bearer tokens and the secret fields of a
    kubeconfig (tokens, client keys and certificates)
    """

    SENSITIVE_PATTERNS: List[str] = [
        r'(password)["\']?\s*[:=]\s*["\']?[^\s"\',)]+',
        r'(token)["\']?\s*[:=]\s*["\']?[\w.~+/=-]{8,}',
        r'(bearer\s+)[\w.~+/=-]{8,}',
        r'(client-key-data)["\']?\s*[:=]\s*["\']?[\w+/=]{8,}',
        r'(client-certificate-data)["\']?\s*[:=]\s*["\']?[\w+/=]{8,}',
        r'(certificate-authority-data)["\']?\s*[:=]\s*["\']?[\w+/=]{8,}',
    ]

    def __init__(self):
        super().__init__()
        self.compiled_patterns = [
            re.compile(pattern, re.IGNORECASE)
            for pattern in self.SENSITIVE_PATTERNS
        ]

    def filter(self, record: logging.LogRecord) -> bool:
        """
        Mask sensitive information in the record; never drops the record
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


def setup_secure_logging(level: str = "INFO") -> None:
    """
    Configure root logging with sensitive data filtering

    Called once at application startup
    """
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    sensitive_filter = SensitiveDataFilter()

    root_logger = logging.getLogger()
    for handler in root_logger.handlers:
        handler.addFilter(sensitive_filter)

    for logger_name in ('elastic_manager', 'uvicorn', 'uvicorn.access', 'uvicorn.error'):
        logging.getLogger(logger_name).addFilter(sensitive_filter)

    logging.getLogger(__name__).info("Secure logging filter configured")
