"""
Trainer for PageTrainer

Analyzes trainable HTTP responses looking for new auditable elements.
When a response reveals forms, links or cookies that were not known
before, a new page holding just those elements is built, announced to
observers and pushed to the crawl frontier.
"""

import logging
import traceback
from typing import List, Dict, Optional, Callable, Any
from dataclasses import dataclass
from enum import Enum

from pagetrainer.scanner.core.options import ScanConfig
from pagetrainer.scanner.core.requester import AsyncRequester, Response
from pagetrainer.scanner.core.parser import ResponseParser
from pagetrainer.scanner.core.elements import ElementKind
from pagetrainer.scanner.core.element_db import ElementDB
from pagetrainer.scanner.core.filters import ScopeFilter
from pagetrainer.scanner.core.fingerprint import PlatformFingerprinter
from pagetrainer.scanner.core.redirects import RedirectChaser
from pagetrainer.scanner.core.page import Page

logger = logging.getLogger(__name__)

MAX_TRAININGS_PER_URL = 25


class TrainingOutcome(Enum):
    """What happened to a pushed response."""
    TRAINED = 'trained'
    NO_CHANGE = 'no_change'
    NOT_SEEDED = 'not_seeded'
    LIMIT_REACHED = 'limit_reached'
    NOT_TEXT = 'not_text'
    MAX_TRAININGS = 'max_trainings'
    REDUNDANT = 'redundant'
    EXCLUDED = 'excluded'
    FAILED = 'failed'


SKIP_MESSAGES = {
    TrainingOutcome.NOT_SEEDED: 'No seed page assigned yet',
    TrainingOutcome.LIMIT_REACHED: 'Link count limit reached',
    TrainingOutcome.NOT_TEXT: 'Response is not textual',
    TrainingOutcome.MAX_TRAININGS: 'Reached maximum trainings',
    TrainingOutcome.REDUNDANT: 'Matched redundancy filters',
    TrainingOutcome.EXCLUDED: 'Matched exclusion criteria',
    TrainingOutcome.NO_CHANGE: 'Page has not changed',
}


@dataclass
class TrainingResult:
    """Result of pushing one response. Truthy only when a page was emitted."""
    outcome: TrainingOutcome
    url: Optional[str] = None
    page: Optional[Page] = None
    error: Optional[Exception] = None

    @property
    def trained(self) -> bool:
        return self.outcome is TrainingOutcome.TRAINED

    @property
    def message(self) -> str:
        if self.outcome is TrainingOutcome.FAILED:
            return f"Training failed: {self.error}"
        return SKIP_MESSAGES.get(self.outcome, self.outcome.value)

    def __bool__(self) -> bool:
        return self.trained


class Trainer:
    """
    Incremental discovery engine.

    All state (seed page, training counters, element registry, dirty
    flag) is owned here and only mutated from push(), which runs to
    completion without awaiting. Responses are therefore processed one
    at a time even when their requests ran concurrently.
    """

    def __init__(
            self,
            options: ScanConfig,
            frontier: Any,
            requester: Optional[AsyncRequester] = None,
            limit_reached: Optional[Callable[[], bool]] = None,
            fingerprinter: Optional[PlatformFingerprinter] = None
    ):
        """
        Initialize the trainer.

        Args:
            options: Scan options, read at call time
            frontier: Object exposing push_to_page_queue(page)
            requester: Requester used to chase redirects
            limit_reached: Crawl-wide resource limit check
            fingerprinter: Platform fingerprinter for emitted pages
        """
        self.options = options
        self.frontier = frontier
        self.limit_reached = limit_reached or (lambda: False)
        self.fingerprinter = fingerprinter or PlatformFingerprinter()
        self.filter = ScopeFilter(options)

        self._db = ElementDB()
        self._page: Optional[Page] = None
        self._parser: Optional[ResponseParser] = None
        self._updated = False
        self._trainings_per_url: Dict[str, int] = {}
        self._on_new_page: List[Callable[[Page], None]] = []

        self.redirects: Optional[RedirectChaser] = None
        if requester is not None:
            self.redirects = RedirectChaser(requester, self.push, self._reference_url)
            requester.add_on_complete(self.handle_response)

    @property
    def page(self) -> Optional[Page]:
        return self._page

    @property
    def max_trainings_per_url(self) -> int:
        return self.options.max_trainings_per_url or MAX_TRAININGS_PER_URL

    def set_seed(self, page: Page):
        """Set the page currently being audited and register its elements."""
        self._db.init_from_page(page)
        self._page = page.deep_clone()
        self._updated = False

    init = set_seed

    def on_new_page(self, callback: Callable[[Page], None]):
        """Register an observer for every emitted page."""
        self._on_new_page.append(callback)
        return callback

    def trainings_for(self, url: str) -> int:
        return self._trainings_per_url.get(url, 0)

    def handle_response(self, response: Response):
        """Completion handler for the requester."""
        request = getattr(response, 'request', None)
        if request is None or not request.train:
            return

        if self.redirects is not None and self.redirects.is_chaseable(response):
            self.redirects.follow(response)
            return

        self.push(response)

    def push(self, response: Response) -> TrainingResult:
        """
        Pass a response on for analysis.

        If the response contains new elements a new page is created with
        them and pushed to the frontier. Never raises.
        """
        try:
            return self._push(response)
        except Exception as e:
            request_id = getattr(getattr(response, 'request', None), 'id', None)
            url = getattr(response, 'url', None)
            logger.error(f"Training failed for request #{request_id} ({url}): {e}")
            logger.debug(traceback.format_exc())
            return TrainingResult(TrainingOutcome.FAILED, url=url, error=e)

    def _push(self, response: Response) -> TrainingResult:
        if self._page is None:
            logger.debug(SKIP_MESSAGES[TrainingOutcome.NOT_SEEDED])
            return TrainingResult(TrainingOutcome.NOT_SEEDED, url=response.url)

        if self.limit_reached():
            logger.info(f"{SKIP_MESSAGES[TrainingOutcome.LIMIT_REACHED]}, skipping analysis.")
            return TrainingResult(TrainingOutcome.LIMIT_REACHED, url=response.url)

        self._parser = ResponseParser(response)
        url = self._parser.url

        if not self._parser.text():
            return TrainingResult(TrainingOutcome.NOT_TEXT, url=url)

        outcome = None
        if self.trainings_for(url) >= self.max_trainings_per_url:
            outcome = TrainingOutcome.MAX_TRAININGS
        elif self.filter.is_redundant_path(url):
            outcome = TrainingOutcome.REDUNDANT
        elif self.filter.should_skip_resource(response):
            outcome = TrainingOutcome.EXCLUDED

        if outcome is not None:
            message = SKIP_MESSAGES[outcome]
            if outcome is TrainingOutcome.MAX_TRAININGS:
                message += f" ({self.max_trainings_per_url})"
            logger.info(f"{message}, skipping: {url}")
            return TrainingResult(outcome, url=url)

        page = self._analyze(response)
        if page is None:
            return TrainingResult(TrainingOutcome.NO_CHANGE, url=url)
        return TrainingResult(TrainingOutcome.TRAINED, url=url, page=page)

    def _analyze(self, response: Response) -> Optional[Page]:
        """Analyze a response looking for new links, forms and cookies."""
        logger.debug(f"Started for response with request ID: #{response.request.id}")

        parser = self._parser
        self._updated = False

        page_data = self._page.to_dict()
        page_data['cookies'] = self._find_new(ElementKind.COOKIES)

        # Same body, same URL and no new cookies, nothing to gain from
        # diffing forms and links
        if response.body == self._page.body and not self._updated and self._page.url == parser.url:
            logger.debug("Page hasn't changed.")
            return None

        page_data['forms'] = self._find_new(ElementKind.FORMS)
        page_data['links'] = self._find_new(ElementKind.LINKS)

        if not self._updated:
            logger.debug('No new elements.')
            return None

        page_data['url'] = parser.url
        page_data['query_vars'] = parser.link_vars(parser.url)
        page_data['code'] = response.status
        page_data['method'] = response.request.method.upper()
        page_data['body'] = response.body
        page_data['document'] = parser.document
        page_data['response_headers'] = dict(response.headers)
        page_data['platforms'] = []

        self._trainings_per_url[parser.url] = self.trainings_for(parser.url) + 1

        page = Page.from_dict(page_data)

        if self.options.fingerprint:
            try:
                self.fingerprinter.fingerprint(page)
            except Exception as e:
                logger.warning(f"Fingerprinting failed for {page.url}: {e}")

        for callback in self._on_new_page:
            try:
                callback(page)
            except Exception as e:
                logger.error(f"New page observer {callback!r} failed: {e}")

        # Counter and registry are already committed; a failing frontier
        # loses these elements
        self.frontier.push_to_page_queue(page)

        self._updated = False
        logger.debug('Training complete.')
        return page

    def _find_new(self, kind: ElementKind) -> list:
        elements, count = self._db.update(kind, self._parser.elements(kind))
        if count == 0:
            return []

        self._updated = True
        logger.info(f"Found {count} new {kind.value} ({self._db.count(kind)} known).")
        return elements

    def _reference_url(self) -> Optional[str]:
        return self._page.url if self._page else self.options.url
