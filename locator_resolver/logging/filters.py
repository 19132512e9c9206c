"""
Logging filters for locator_resolver.

Locators frequently carry credentials (userinfo, signed CDN tokens, API
keys). The filter here masks them before a record reaches any handler.
"""

import logging
import re
from typing import List, Pattern, Tuple


class LocatorCredentialFilter(logging.Filter):
    """Mask credentials embedded in locators."""

    def __init__(self) -> None:
        super().__init__()

        self.rules: List[Tuple[Pattern[str], str]] = [
            # URLs with credentials
            (re.compile(r"(https?://[^/\s:@]+):([^@/\s]+)@", re.IGNORECASE), r"\1:***MASKED***@"),
            # Signed or keyed query parameters
            (
                re.compile(
                    r"([?&](?:api[_-]?key|key|token|access_token|signature|sig|x-amz-signature)=)"
                    r"([^&#\s]+)",
                    re.IGNORECASE,
                ),
                r"\1***MASKED***",
            ),
        ]

    def mask(self, message: str) -> str:
        for pattern, replacement in self.rules:
            message = pattern.sub(replacement, message)
        return message

    def filter(self, record: logging.LogRecord) -> bool:
        """Rewrite the record message with credentials masked."""
        message = record.getMessage()
        masked = self.mask(message)
        if masked != message:
            record.msg = masked
            record.args = ()
        return True
