"""
Shared fixtures for the PageTrainer test suite.

No test touches the network: the requester is replaced by an in-memory
double that serves canned responses and fires completion handlers the
way AsyncRequester does.
"""

from typing import Dict, List, Optional

import pytest

from pagetrainer.scanner.core.options import ScanConfig
from pagetrainer.scanner.core.requester import Request, Response, RequestMethod
from pagetrainer.scanner.core.parser import ResponseParser
from pagetrainer.scanner.core.trainer import Trainer

SEED_URL = "http://test.com/page"

SEED_BODY = """
<html><body>
  <form action="/login" method="post">
    <input name="user"><input name="pass" type="password">
  </form>
  <a href="/item?id=1">item</a>
  <a href="/about">about</a>
</body></html>
"""


def build_response(
    url: str = SEED_URL,
    body: str = SEED_BODY,
    status: int = 200,
    headers: Optional[Dict[str, str]] = None,
    set_cookies: Optional[List[str]] = None,
    method: str = "GET",
    train: bool = True,
) -> Response:
    if headers is None:
        headers = {"Content-Type": "text/html; charset=utf-8"}
    return Response(
        url=url,
        status=status,
        headers=headers,
        body=body,
        request=Request(url=url, method=method, train=train),
        set_cookies=list(set_cookies or []),
    )


def build_page(url: str = SEED_URL, body: str = SEED_BODY, **kwargs):
    return ResponseParser(build_response(url, body, **kwargs)).page()


def form_body(action: str, *names: str, extra: str = "") -> str:
    inputs = "".join(f'<input name="{name}">' for name in names)
    return f'<html><body><form action="{action}">{inputs}</form>{extra}</body></html>'


class Frontier:
    """Records every page handed to it."""

    def __init__(self):
        self.pages = []

    def push_to_page_queue(self, page):
        self.pages.append(page)


class FakeRequester:
    """In-memory stand-in for AsyncRequester."""

    def __init__(self, responses: Optional[Dict[str, Response]] = None):
        self.responses = responses or {}
        self.requests: List[tuple] = []
        self._on_complete = []

    def add_on_complete(self, handler):
        self._on_complete.append(handler)

    def complete(self, response: Response):
        for handler in self._on_complete:
            handler(response)

    async def request(self, url, method=RequestMethod.GET, data=None, headers=None,
                      allow_redirects=False, train=False, use_cache=True):
        self.requests.append((method.value, url, data, train))
        canned = self.responses.get(url)
        if canned is None:
            response = build_response(url, body="", status=404, train=train)
        else:
            response = build_response(
                url,
                body=canned.body,
                status=canned.status,
                headers=canned.headers,
                set_cookies=canned.set_cookies,
                method=method.value,
                train=train,
            )
        self.complete(response)
        return response

    async def get(self, url, **kwargs):
        return await self.request(url, RequestMethod.GET, **kwargs)

    @property
    def requested_urls(self) -> List[str]:
        return [url for _, url, _, _ in self.requests]


@pytest.fixture
def options():
    return ScanConfig(url=SEED_URL, fingerprint=False)


@pytest.fixture
def frontier():
    return Frontier()


@pytest.fixture
def trainer(options, frontier):
    return Trainer(options, frontier=frontier)


@pytest.fixture
def seeded_trainer(trainer):
    trainer.set_seed(build_page())
    return trainer
