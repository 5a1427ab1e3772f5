"""
Scope and Redundancy Filters for PageTrainer

Predicates deciding whether a URL or response is worth analyzing.
Options are read on every call so changes to the scan configuration
take effect immediately.
"""

import re
from typing import Optional
from urllib.parse import urlparse
import logging

from pagetrainer.scanner.core.options import ScanConfig
from pagetrainer.scanner.core.requester import Response

logger = logging.getLogger(__name__)


class ScopeFilter:
    """Stateless URL and response filter."""

    def __init__(self, options: ScanConfig):
        self.options = options

    def is_redundant_path(self, url: str) -> bool:
        """Check URL against the crawler-trap patterns."""
        for pattern in self.options.redundant_patterns:
            if re.search(pattern, url, re.IGNORECASE):
                return True
        return False

    def should_skip_resource(self, response: Response) -> bool:
        """Check a response against the exclusion criteria."""
        return self.skip_reason(response) is not None

    def url_skip_reason(self, url: str) -> Optional[str]:
        """Name of the URL based exclusion criterion that matches, if any."""
        for pattern in self.options.exclude_patterns:
            if re.search(pattern, url, re.IGNORECASE):
                return f"excluded pattern {pattern!r}"

        path = urlparse(url).path.lower()
        for ext in self.options.exclude_extensions:
            if path.endswith(ext.lower()):
                return f"excluded extension {ext}"

        return None

    def is_excluded_url(self, url: str) -> bool:
        return self.url_skip_reason(url) is not None

    def skip_reason(self, response: Response) -> Optional[str]:
        """Name of the exclusion criterion the response matches, if any."""
        reason = self.url_skip_reason(response.url)
        if reason:
            return reason

        content_type = response.content_type.split(';', 1)[0].strip()
        if content_type:
            if content_type in self.options.denied_content_types:
                return f"denied content type {content_type}"
            allowed = self.options.allowed_content_types
            if allowed and content_type not in allowed:
                return f"content type {content_type} not allowed"

        max_size = self.options.max_response_size
        if max_size and len(response.body.encode('utf-8', errors='ignore')) > max_size:
            return f"body larger than {max_size} bytes"

        return None
