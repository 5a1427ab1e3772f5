"""
Async HTTP Requester for PageTrainer

Async HTTP client with:
- Connection pooling
- Rate limiting
- Retry logic
- Completion handlers for response observers
- Trainable request marking
"""

import asyncio
import aiohttp
from aiohttp._cookie_helpers import parse_set_cookie_headers
import hashlib
import itertools
import time
from typing import Dict, Optional, Any, List, Callable, Tuple
from http.cookies import Morsel
from urllib.parse import urlparse
from dataclasses import dataclass, field
from enum import Enum
import ssl
import logging

logger = logging.getLogger(__name__)

# Body size cap (10MB)
MAX_BODY_SIZE = 10 * 1024 * 1024


class RequestMethod(Enum):
    """HTTP request methods."""
    GET = 'GET'
    POST = 'POST'


_request_ids = itertools.count(1)


@dataclass
class Request:
    """The request that produced a response."""
    url: str
    method: str = 'GET'
    train: bool = False
    id: int = field(default_factory=lambda: next(_request_ids))
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[str] = None


@dataclass
class Response:
    """
    Represents an HTTP response with the request that produced it.
    """
    url: str
    status: int
    headers: Dict[str, str]
    body: str
    elapsed: float = 0.0
    request: Request = None
    set_cookies: List[str] = field(default_factory=list)
    error: Optional[str] = None

    def __post_init__(self):
        if self.request is None:
            self.request = Request(url=self.url)

    @property
    def is_success(self) -> bool:
        """Check if request was successful (2xx status)."""
        return 200 <= self.status < 300

    @property
    def is_redirect(self) -> bool:
        """Check if response is a redirect (3xx status)."""
        return 300 <= self.status < 400

    @property
    def content_type(self) -> str:
        """Get Content-Type header value."""
        return self.get_header('Content-Type').lower()

    @property
    def location(self) -> Optional[str]:
        """Raw Location header, if any."""
        return self.get_header('Location') or None

    def cookie_morsels(self) -> List[Tuple[str, Morsel]]:
        """Set-Cookie headers parsed the way aiohttp's own cookie jar parses them."""
        return parse_set_cookie_headers(self.set_cookies)

    def get_header(self, name: str, default: str = '') -> str:
        """Get header value (case-insensitive)."""
        for key, value in self.headers.items():
            if key.lower() == name.lower():
                return value
        return default


class AsyncRequester:
    """
    Async HTTP requester.

    Features:
    - Async requests with aiohttp
    - Connection pooling
    - Rate limiting with semaphore
    - Automatic retry with backoff
    - Completion handlers invoked for every finished request
    - Response caching for non-trainable requests
    """

    DEFAULT_HEADERS = {
        'User-Agent': 'PageTrainer/1.0',
        'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
        'Accept-Language': 'en-US,en;q=0.5',
        'Accept-Encoding': 'gzip, deflate',
        'Connection': 'keep-alive',
    }

    def __init__(
            self,
            timeout: int = 30,
            max_concurrent: int = 10,
            delay: float = 0.5,
            max_retries: int = 3,
            verify_ssl: bool = True,
            custom_headers: Optional[Dict[str, str]] = None,
            cookies: Optional[Dict[str, str]] = None,
            proxy: Optional[str] = None
    ):
        """
        Initialize the async requester.

        Args:
            timeout: Request timeout in seconds
            max_concurrent: Maximum concurrent requests
            delay: Delay between requests in seconds
            max_retries: Maximum retry attempts
            verify_ssl: Whether to verify SSL certificates
            custom_headers: Custom headers to include in all requests
            cookies: Cookies to include in all requests
            proxy: Proxy URL for all requests
        """
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.max_concurrent = max_concurrent
        self.delay = delay
        self.max_retries = max_retries
        self.verify_ssl = verify_ssl
        self.proxy = proxy

        self.headers = self.DEFAULT_HEADERS.copy()
        if custom_headers:
            self.headers.update(custom_headers)

        self.cookies = cookies or {}

        # Rate limiting
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._last_request_time: Dict[str, float] = {}

        self._session: Optional[aiohttp.ClientSession] = None

        self._response_cache: Dict[str, Response] = {}
        self._on_complete: List[Callable[[Response], None]] = []

        self.stats = {
            'requests_made': 0,
            'requests_successful': 0,
            'requests_failed': 0,
            'total_bytes': 0,
            'cache_hits': 0
        }

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def start(self):
        """Initialize the aiohttp session."""
        if self._session is None or self._session.closed:
            ssl_context = ssl.create_default_context()
            if not self.verify_ssl:
                ssl_context.check_hostname = False
                ssl_context.verify_mode = ssl.CERT_NONE

            connector = aiohttp.TCPConnector(
                limit=self.max_concurrent * 2,
                limit_per_host=self.max_concurrent,
                ssl=ssl_context,
                enable_cleanup_closed=True
            )

            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=self.timeout,
                headers=self.headers,
                cookie_jar=aiohttp.CookieJar(unsafe=True)
            )

            for name, value in self.cookies.items():
                self._session.cookie_jar.update_cookies({name: value})

            self._semaphore = asyncio.Semaphore(self.max_concurrent)

    async def close(self):
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    def add_on_complete(self, handler: Callable[[Response], None]):
        """Register a handler called with every completed response."""
        self._on_complete.append(handler)

    def _notify(self, response: Response):
        for handler in self._on_complete:
            try:
                handler(response)
            except Exception as e:
                logger.error(f"Completion handler failed for {response.url}: {e}")

    def _get_cache_key(self, url: str, method: str, data: Optional[Dict] = None) -> str:
        key_data = f"{method}:{url}:{str(data)}"
        return hashlib.md5(key_data.encode()).hexdigest()

    async def _rate_limit(self, domain: str):
        if domain in self._last_request_time:
            elapsed = time.time() - self._last_request_time[domain]
            if elapsed < self.delay:
                await asyncio.sleep(self.delay - elapsed)
        self._last_request_time[domain] = time.time()

    async def request(
            self,
            url: str,
            method: RequestMethod = RequestMethod.GET,
            data: Optional[Dict[str, Any]] = None,
            headers: Optional[Dict[str, str]] = None,
            allow_redirects: bool = False,
            train: bool = False,
            use_cache: bool = True
    ) -> Response:
        """
        Make an HTTP request.

        Trainable requests are never served from the cache so the
        completion handlers always see a fresh response.

        Args:
            url: Target URL
            method: HTTP method
            data: Request body data (query parameters for GET)
            headers: Additional headers
            allow_redirects: Follow redirects
            train: Mark the response as eligible for training
            use_cache: Use response cache

        Returns:
            Response object
        """
        if self._session is None:
            await self.start()

        use_cache = use_cache and not train
        cache_key = self._get_cache_key(url, method.value, data)
        if use_cache and cache_key in self._response_cache:
            self.stats['cache_hits'] += 1
            return self._response_cache[cache_key]

        domain = urlparse(url).netloc

        request_headers = self.headers.copy()
        if headers:
            request_headers.update(headers)

        request = Request(
            url=url,
            method=method.value,
            train=train,
            headers=request_headers,
            body=str(data) if data else None
        )

        response = None
        last_error = None

        for attempt in range(self.max_retries):
            try:
                async with self._semaphore:
                    await self._rate_limit(domain)

                    start_time = time.time()

                    async with self._session.request(
                            method.value,
                            url,
                            data=data if method != RequestMethod.GET else None,
                            params=data if method == RequestMethod.GET else None,
                            headers=request_headers,
                            allow_redirects=allow_redirects,
                            proxy=self.proxy
                    ) as resp:
                        elapsed = time.time() - start_time

                        body = await resp.text(errors='ignore')
                        if len(body) > MAX_BODY_SIZE:
                            body = body[:MAX_BODY_SIZE]

                        response = Response(
                            url=str(resp.url),
                            status=resp.status,
                            headers=dict(resp.headers),
                            body=body,
                            elapsed=elapsed,
                            request=request,
                            set_cookies=resp.headers.getall('Set-Cookie', [])
                        )

                self.stats['requests_made'] += 1
                self.stats['requests_successful'] += 1
                self.stats['total_bytes'] += len(body)

                if use_cache and response.is_success:
                    self._response_cache[cache_key] = response

                self._notify(response)
                return response

            except asyncio.TimeoutError:
                last_error = "Request timed out"
                logger.warning(f"Timeout on {url} (attempt {attempt + 1}/{self.max_retries})")

            except aiohttp.ClientError as e:
                last_error = str(e)
                logger.warning(f"Client error on {url}: {e} (attempt {attempt + 1}/{self.max_retries})")

            except Exception as e:
                last_error = str(e)
                logger.error(f"Unexpected error on {url}: {e}")
                break

            # Exponential backoff
            if attempt < self.max_retries - 1:
                await asyncio.sleep(2 ** attempt)

        self.stats['requests_made'] += 1
        self.stats['requests_failed'] += 1

        response = Response(
            url=url,
            status=0,
            headers={},
            body='',
            request=request,
            error=last_error
        )
        self._notify(response)
        return response

    async def get(self, url: str, **kwargs) -> Response:
        """Make GET request."""
        return await self.request(url, RequestMethod.GET, **kwargs)

    async def post(self, url: str, data: Dict = None, **kwargs) -> Response:
        """Make POST request."""
        return await self.request(url, RequestMethod.POST, data=data, **kwargs)

    def get_stats(self) -> Dict[str, int]:
        """Get request statistics."""
        return self.stats.copy()
