"""
Response Parser for PageTrainer

Turns an HTTP response into structured auditable data:
- Forms and input fields
- Links with query parameters
- Cookies from Set-Cookie headers
- The parsed document
"""

from typing import List, Dict, Optional, Set
from urllib.parse import urljoin, urlparse, urldefrag, parse_qsl
from bs4 import BeautifulSoup
import logging

from pagetrainer.scanner.core.requester import Response
from pagetrainer.scanner.core.elements import Form, FormField, Link, Cookie, ElementKind
from pagetrainer.scanner.core.page import Page, parse_document

logger = logging.getLogger(__name__)

TEXT_CONTENT_TYPES = ('text/', 'application/xhtml', 'application/xml', 'application/json',
                      'application/javascript')


def normalize_url(url: str) -> str:
    """Normalize URL for use as a counter or queue key."""
    url, _ = urldefrag(url)
    parsed = urlparse(url)

    path = parsed.path or '/'
    normalized = f"{parsed.scheme.lower()}://{parsed.netloc.lower()}{path}"
    if parsed.query:
        normalized += f"?{parsed.query}"

    return normalized


def to_absolute(location: str, reference_url: str) -> str:
    """
    Resolve a possibly relative location against a reference URL.

    Raises:
        ValueError: if the result is not an absolute HTTP(S) URL
    """
    absolute = urljoin(reference_url, location.strip())
    parsed = urlparse(absolute)
    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        raise ValueError(f"Cannot resolve {location!r} against {reference_url!r}")
    return absolute


class ResponseParser:
    """
    Parser for a single HTTP response.

    Element extraction is lazy and cached so the trainer only pays for
    the collections it actually diffs.
    """

    def __init__(self, response: Response):
        """
        Initialize parser with a response.

        Args:
            response: Response to parse
        """
        self.response = response
        self.url = normalize_url(response.url)
        self._document: Optional[BeautifulSoup] = None
        self._cache: Dict[ElementKind, list] = {}

    def text(self) -> bool:
        """Check whether the response body is textual and parseable."""
        if self.response.error or not self.response.body:
            return False

        content_type = self.response.content_type
        if content_type:
            return content_type.startswith(TEXT_CONTENT_TYPES)

        # No content type, sniff for binary data
        return '\x00' not in self.response.body[:1024]

    @property
    def document(self) -> BeautifulSoup:
        if self._document is None:
            self._document = parse_document(self.response.body)
        return self._document

    @property
    def forms(self) -> List[Form]:
        if ElementKind.FORMS not in self._cache:
            self._cache[ElementKind.FORMS] = self._extract_forms()
        return self._cache[ElementKind.FORMS]

    @property
    def links(self) -> List[Link]:
        if ElementKind.LINKS not in self._cache:
            self._cache[ElementKind.LINKS] = self._extract_links()
        return self._cache[ElementKind.LINKS]

    @property
    def cookies(self) -> List[Cookie]:
        if ElementKind.COOKIES not in self._cache:
            self._cache[ElementKind.COOKIES] = self._extract_cookies()
        return self._cache[ElementKind.COOKIES]

    def elements(self, kind: ElementKind) -> list:
        """Elements of the given kind."""
        if kind is ElementKind.FORMS:
            return self.forms
        if kind is ElementKind.LINKS:
            return self.links
        return self.cookies

    def link_vars(self, url: Optional[str] = None) -> Dict[str, str]:
        """Query variables of a URL, defaulting to the response URL."""
        query = urlparse(url or self.url).query
        return dict(parse_qsl(query, keep_blank_values=True))

    def page(self) -> Page:
        """Build a page from the response."""
        return Page(
            url=self.url,
            body=self.response.body,
            code=self.response.status,
            method=self.response.request.method.upper(),
            response_headers=dict(self.response.headers),
            query_vars=self.link_vars(),
            forms=self.forms,
            links=self.links,
            cookies=self.cookies,
            document=self.document
        )

    def _extract_forms(self) -> List[Form]:
        forms = []

        for form_tag in self.document.find_all('form'):
            action = form_tag.get('action', '')
            action = urljoin(self.url, action) if action else self.url
            action = normalize_url(action)

            method = (form_tag.get('method') or 'GET').upper()
            enctype = form_tag.get('enctype', 'application/x-www-form-urlencoded')

            fields = []

            for input_tag in form_tag.find_all('input'):
                name = input_tag.get('name', '')
                if not name:
                    continue
                fields.append(FormField(
                    name=name,
                    field_type=input_tag.get('type', 'text').lower(),
                    value=input_tag.get('value', ''),
                    required=input_tag.has_attr('required')
                ))

            for textarea in form_tag.find_all('textarea'):
                name = textarea.get('name', '')
                if name:
                    fields.append(FormField(
                        name=name,
                        field_type='textarea',
                        value=textarea.string or '',
                        required=textarea.has_attr('required')
                    ))

            for select in form_tag.find_all('select'):
                name = select.get('name', '')
                if name:
                    first_option = select.find('option')
                    value = first_option.get('value', '') if first_option else ''
                    fields.append(FormField(
                        name=name,
                        field_type='select',
                        value=value,
                        required=select.has_attr('required')
                    ))

            forms.append(Form(
                url=self.url,
                action=action,
                method=method,
                fields=fields,
                enctype=enctype
            ))

        return forms

    def _extract_links(self) -> List[Link]:
        """Links that carry query parameters, the response URL included."""
        links = []
        seen_urls: Set[str] = set()

        candidates = [self.url]
        for tag in self.document.find_all(['a', 'area', 'link'], href=True):
            candidates.append(tag['href'].strip())
        for tag in self.document.find_all(['frame', 'iframe'], src=True):
            candidates.append(tag['src'].strip())

        for href in candidates:
            # Skip empty, javascript, and mailto links
            if not href or href.startswith(('javascript:', 'mailto:', 'tel:', '#')):
                continue

            full_url = normalize_url(urljoin(self.url, href))
            if urlparse(full_url).scheme not in ('http', 'https'):
                continue

            if full_url in seen_urls:
                continue
            seen_urls.add(full_url)

            link = Link.from_url(full_url)
            if not link.has_parameters:
                continue
            links.append(link)

        return links

    def _extract_cookies(self) -> List[Cookie]:
        cookies = []

        for name, morsel in self.response.cookie_morsels():
            cookies.append(Cookie(
                url=self.url,
                name=name,
                value=morsel.value,
                path=morsel['path'] or None,
                domain=morsel['domain'] or None,
                secure=bool(morsel['secure']),
                http_only=bool(morsel['httponly'])
            ))

        return cookies

    def discovered_urls(self) -> List[str]:
        """Every in-document URL, parameterised or not, for crawling."""
        return extract_urls(self.document, self.url)


def extract_urls(document: BeautifulSoup, base_url: str) -> List[str]:
    """Absolute, normalized HTTP(S) anchor URLs of a document."""
    urls = []
    seen: Set[str] = set()

    for a_tag in document.find_all('a', href=True):
        href = a_tag['href'].strip()
        if not href or href.startswith(('javascript:', 'mailto:', 'tel:', '#')):
            continue

        full_url = normalize_url(urljoin(base_url, href))
        if urlparse(full_url).scheme in ('http', 'https') and full_url not in seen:
            seen.add(full_url)
            urls.append(full_url)

    return urls
