"""
PageTrainer Engine

Wires the requester, crawler and trainer together and runs a
discovery scan.
"""

import logging
from typing import List, Dict, Optional, Callable, Any
from datetime import datetime
import traceback

from pagetrainer.scanner.core.options import ScanConfig
from pagetrainer.scanner.core.requester import AsyncRequester
from pagetrainer.scanner.core.crawler import AsyncCrawler
from pagetrainer.scanner.core.trainer import Trainer
from pagetrainer.scanner.core.fingerprint import PlatformFingerprinter
from pagetrainer.scanner.core.page import Page

logger = logging.getLogger(__name__)


class TrainingEngine:
    """
    Discovery scan orchestrator.

    The crawler announces each page it audits to the trainer, probes the
    page with trainable requests, and the trainer feeds pages with newly
    revealed elements back into the crawler's queue.
    """

    def __init__(
            self,
            config: Optional[ScanConfig] = None,
            page_callback: Optional[Callable[[Page], None]] = None
    ):
        """
        Initialize the engine.

        Args:
            config: Scan configuration
            page_callback: Called with every page the trainer emits
        """
        self.config = config or ScanConfig()
        self.page_callback = page_callback

        self.requester: Optional[AsyncRequester] = None
        self.crawler: Optional[AsyncCrawler] = None
        self.trainer: Optional[Trainer] = None

        self.trained_pages: List[Page] = []
        self._start_time: Optional[datetime] = None

    def _initialize(self):
        self.requester = AsyncRequester(
            timeout=self.config.timeout,
            max_concurrent=self.config.concurrent_requests,
            delay=self.config.delay,
            verify_ssl=self.config.verify_ssl,
            custom_headers=self.config.custom_headers,
            cookies=self.config.cookies,
            proxy=self.config.proxy
        )

        self.crawler = AsyncCrawler(self.requester, self.config)

        self.trainer = Trainer(
            self.config,
            frontier=self.crawler,
            requester=self.requester,
            limit_reached=self.crawler.link_count_limit_reached,
            fingerprinter=PlatformFingerprinter()
        )

        # Get set up using the page being audited as the seed page
        self.crawler.on_audit_page(self.trainer.set_seed)
        self.crawler.after_audit = self.trainer.redirects.drain

        self.trainer.on_new_page(self.trained_pages.append)
        if self.page_callback:
            self.trainer.on_new_page(self.page_callback)

    async def scan(self, target_url: str) -> Dict[str, Any]:
        """
        Run a discovery scan.

        Args:
            target_url: Entry URL

        Returns:
            Scan results dictionary
        """
        self.config.url = self.config.url or target_url
        self._start_time = datetime.utcnow()
        self.trained_pages = []

        self._initialize()

        try:
            await self.requester.start()
            stats = await self.crawler.crawl(target_url)
            return self._build_results('completed', stats=vars(stats))

        except Exception as e:
            logger.error(f"Scan error: {e}\n{traceback.format_exc()}")
            return self._build_results('failed', error=str(e))

        finally:
            await self.requester.close()

    def _build_results(self, status: str, stats: Optional[Dict] = None, error: Optional[str] = None) -> Dict[str, Any]:
        duration = (datetime.utcnow() - self._start_time).total_seconds() if self._start_time else 0

        return {
            'status': status,
            'target': self.config.url,
            'duration': duration,
            'error': error,
            'crawl': stats or {},
            'requests': self.requester.get_stats() if self.requester else {},
            'trained_pages': [
                {
                    'url': page.url,
                    'forms': len(page.forms),
                    'links': len(page.links),
                    'cookies': len(page.cookies),
                    'platforms': page.platforms,
                }
                for page in self.trained_pages
            ],
        }
