"""
Auditable Elements for PageTrainer

Structured representations of the things a page exposes for probing:
- Forms and their input fields
- Links carrying query parameters
- Cookies set by the server

Every element has a structural fingerprint used for deduplication,
independent of the values it carries.
"""

from typing import List, Dict, Optional, Tuple
from dataclasses import dataclass, field
from enum import Enum
from urllib.parse import urlparse, urlunparse, parse_qsl


class ElementScope(Enum):
    """Controls how an element is treated by later probing."""
    SHARED = 'shared'   # audited once per scan, wherever it appears
    PAGE = 'page'       # belongs to the page that revealed it


class ElementKind(Enum):
    """The three element collections a page carries."""
    COOKIES = 'cookies'
    FORMS = 'forms'
    LINKS = 'links'


@dataclass
class Element:
    """Base class for auditable elements."""
    url: str
    scope: ElementScope = field(default=ElementScope.SHARED, kw_only=True)

    @property
    def fingerprint(self) -> Tuple:
        raise NotImplementedError

    def override_instance_scope(self):
        """Tie this element to the page instance that revealed it."""
        self.scope = ElementScope.PAGE


@dataclass
class FormField:
    """Represents an HTML form field."""
    name: str
    field_type: str
    value: str = ''
    required: bool = False


@dataclass
class Form(Element):
    """Represents an HTML form."""
    action: str = ''
    method: str = 'GET'
    fields: List[FormField] = field(default_factory=list)
    enctype: str = 'application/x-www-form-urlencoded'

    @property
    def input_names(self) -> Tuple[str, ...]:
        return tuple(sorted({f.name for f in self.fields if f.name}))

    @property
    def inputs(self) -> Dict[str, str]:
        """Field name to default value, as it would be submitted."""
        return {f.name: f.value for f in self.fields if f.name}

    @property
    def fingerprint(self) -> Tuple:
        return ('form', self.action, self.method.upper(), self.input_names)


@dataclass
class Link(Element):
    """Represents a link with its query parameters."""
    parameters: Dict[str, str] = field(default_factory=dict)

    @property
    def action(self) -> str:
        """The link URL without query string or fragment."""
        parsed = urlparse(self.url)
        return urlunparse(parsed._replace(query='', fragment=''))

    @property
    def has_parameters(self) -> bool:
        return bool(self.parameters)

    @property
    def fingerprint(self) -> Tuple:
        return ('link', self.action, tuple(sorted(self.parameters)))

    @classmethod
    def from_url(cls, url: str) -> 'Link':
        params = dict(parse_qsl(urlparse(url).query, keep_blank_values=True))
        return cls(url=url, parameters=params)


@dataclass
class Cookie(Element):
    """Represents a cookie set by the server."""
    name: str = ''
    value: str = ''
    path: Optional[str] = None
    domain: Optional[str] = None
    secure: bool = False
    http_only: bool = False

    @property
    def fingerprint(self) -> Tuple:
        return ('cookie', self.name)
