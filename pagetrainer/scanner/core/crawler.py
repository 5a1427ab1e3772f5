"""
Async Crawler for PageTrainer

Owns the crawl frontier (page queue) and the audit loop:
- Seeds the queue with the entry page
- Announces each page it starts auditing
- Probes the page's forms and links with trainable requests
- Follows in-scope links to new pages
- Enforces page and link count limits
"""

import asyncio
from collections import deque
from typing import Set, List, Optional, Callable, Deque
from urllib.parse import urlparse, urlencode, urlunparse
from dataclasses import dataclass
import logging

from pagetrainer.scanner.core.requester import AsyncRequester, RequestMethod
from pagetrainer.scanner.core.parser import ResponseParser, normalize_url, extract_urls
from pagetrainer.scanner.core.filters import ScopeFilter
from pagetrainer.scanner.core.elements import Form, Link
from pagetrainer.scanner.core.options import ScanConfig
from pagetrainer.scanner.core.page import Page

logger = logging.getLogger(__name__)


@dataclass
class CrawlStats:
    """Crawling statistics."""
    pages_queued: int = 0
    pages_audited: int = 0
    urls_skipped: int = 0
    urls_failed: int = 0
    probes_sent: int = 0


class AsyncCrawler:
    """
    Crawl frontier and audit loop.

    Pages are audited one at a time in FIFO order. Probes for a page run
    concurrently; whatever the trainer learns from them comes back through
    push_to_page_queue().
    """

    def __init__(
            self,
            requester: AsyncRequester,
            options: ScanConfig,
    ):
        self.requester = requester
        self.options = options

        self._queue: Deque[Page] = deque()
        self._visited: Set[str] = set()
        self._on_audit_page: List[Callable[[Page], None]] = []
        self._base_domain = ''
        self.filter = ScopeFilter(options)

        # Called once a page's probes have finished, before the next page
        self.after_audit: Optional[Callable[[], object]] = None

        self.stats = CrawlStats()

    def on_audit_page(self, callback: Callable[[Page], None]):
        """Register a callback invoked with each page as its audit starts."""
        self._on_audit_page.append(callback)

    def push_to_page_queue(self, page: Page):
        """Accept a new page into the frontier."""
        self._queue.append(page)
        self.stats.pages_queued += 1

    @property
    def queue_size(self) -> int:
        return len(self._queue)

    def link_count_limit_reached(self) -> bool:
        """Check whether the crawl-wide link budget is exhausted."""
        limit = self.options.link_count_limit
        return bool(limit) and len(self._visited) >= limit

    async def crawl(self, start_url: str) -> CrawlStats:
        """
        Crawl and audit starting from the given URL.

        Args:
            start_url: Entry URL

        Returns:
            Crawl statistics
        """
        self._base_domain = urlparse(start_url).netloc
        self.stats = CrawlStats()

        await self._fetch_page(start_url)

        while self._queue:
            if self.stats.pages_audited >= self.options.max_pages:
                logger.info(f"Page limit ({self.options.max_pages}) reached.")
                break

            page = self._queue.popleft()
            try:
                await self._audit(page)
            except Exception as e:
                logger.error(f"Error auditing {page.url}: {e}")

        return self.stats

    async def _audit(self, page: Page):
        self.stats.pages_audited += 1
        logger.info(f"Auditing: {page.url} ({self.queue_size} queued)")

        for callback in self._on_audit_page:
            callback(page)

        probes = [self._submit_form(form) for form in page.forms]
        probes += [self._submit_link(link) for link in page.links]
        await asyncio.gather(*probes)

        if self.after_audit is not None:
            await self.after_audit()

        if page.body:
            for url in extract_urls(page.get_document(), page.url):
                if self._should_crawl(url):
                    await self._fetch_page(url)

    async def _submit_form(self, form: Form):
        method = RequestMethod.POST if form.method.upper() == 'POST' else RequestMethod.GET
        self.stats.probes_sent += 1
        await self.requester.request(form.action, method, data=form.inputs, train=True)

    async def _submit_link(self, link: Link):
        self.stats.probes_sent += 1
        url = urlunparse(urlparse(link.url)._replace(query=urlencode(link.parameters)))
        await self.requester.get(url, train=True)

    async def _fetch_page(self, url: str):
        """Fetch a URL and queue it as a page if it is worth auditing."""
        url = normalize_url(url)
        if url in self._visited or self.link_count_limit_reached():
            return
        self._visited.add(url)

        response = await self.requester.get(url, allow_redirects=True)
        if response.error:
            self.stats.urls_failed += 1
            return

        parser = ResponseParser(response)
        if not parser.text():
            self.stats.urls_skipped += 1
            return

        self.push_to_page_queue(parser.page())

    def _should_crawl(self, url: str) -> bool:
        """Check if URL is in scope and not yet visited."""
        parsed = urlparse(url)

        if parsed.scheme not in ('http', 'https'):
            return False
        if parsed.netloc != self._base_domain:
            return False
        if normalize_url(url) in self._visited:
            return False
        if self.filter.is_redundant_path(url) or self.filter.is_excluded_url(url):
            self.stats.urls_skipped += 1
            return False

        return True
