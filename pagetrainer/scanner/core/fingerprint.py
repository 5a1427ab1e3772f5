"""
Platform Fingerprinting for PageTrainer

Tags pages with the server-side platforms and frameworks their
responses give away.
"""

import re
from typing import List, Dict
import logging

from pagetrainer.scanner.core.page import Page

logger = logging.getLogger(__name__)


class PlatformFingerprinter:
    """Detects platforms from page bodies, headers and cookies."""

    # Body patterns
    BODY_PATTERNS = {
        'WordPress': [r'wp-content', r'wp-includes'],
        'Drupal': [r'drupal\.js', r'/sites/default/'],
        'Joomla': [r'/media/jui/', r'joomla'],
        'Laravel': [r'laravel'],
        'Django': [r'csrfmiddlewaretoken'],
        'ASP.NET': [r'__viewstate', r'__eventvalidation'],
        'Rails': [r'authenticity_token', r'csrf-param'],
    }

    # Header name -> patterns
    HEADER_PATTERNS = {
        'server': {
            'Apache': r'apache',
            'Nginx': r'nginx',
            'IIS': r'microsoft-iis',
        },
        'x-powered-by': {
            'PHP': r'php',
            'ASP.NET': r'asp\.net',
            'Express': r'express',
        },
    }

    # Session cookie name -> platform
    COOKIE_NAMES = {
        'phpsessid': 'PHP',
        'jsessionid': 'Java',
        'asp.net_sessionid': 'ASP.NET',
        'laravel_session': 'Laravel',
        'sessionid': 'Django',
        'rack.session': 'Rack',
    }

    def fingerprint(self, page: Page) -> List[str]:
        """
        Detect platforms and record them on the page.

        Returns:
            Platforms detected, in detection order
        """
        platforms: List[str] = list(page.platforms)

        def add(name: str):
            if name not in platforms:
                platforms.append(name)

        body = page.body.lower()
        for platform, patterns in self.BODY_PATTERNS.items():
            if any(re.search(p, body) for p in patterns):
                add(platform)

        headers: Dict[str, str] = {k.lower(): v.lower() for k, v in page.response_headers.items()}
        for header, patterns in self.HEADER_PATTERNS.items():
            value = headers.get(header, '')
            for platform, pattern in patterns.items():
                if value and re.search(pattern, value):
                    add(platform)

        for cookie in page.cookies:
            platform = self.COOKIE_NAMES.get(cookie.name.lower())
            if platform:
                add(platform)

        if page.url.lower().split('?', 1)[0].endswith('.php'):
            add('PHP')

        page.platforms = platforms
        logger.debug(f"Platforms for {page.url}: {platforms}")
        return platforms
