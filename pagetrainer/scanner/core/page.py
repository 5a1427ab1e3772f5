"""
Page snapshot for PageTrainer

A page is everything known about one HTTP resource at a point in time:
the response that produced it and the elements it exposes.
"""

import copy
from typing import List, Dict, Optional, Any
from dataclasses import dataclass, field, fields
from bs4 import BeautifulSoup

from pagetrainer.scanner.core.elements import Form, Link, Cookie


def parse_document(body: str) -> BeautifulSoup:
    """Parse a body into a document, preferring lxml."""
    try:
        return BeautifulSoup(body, 'lxml')
    except Exception:
        # Fallback to html.parser if lxml is unavailable
        return BeautifulSoup(body, 'html.parser')


@dataclass
class Page:
    """Represents a page and its auditable elements."""
    url: str
    body: str = ''
    code: int = 200
    method: str = 'GET'
    response_headers: Dict[str, str] = field(default_factory=dict)
    query_vars: Dict[str, str] = field(default_factory=dict)
    forms: List[Form] = field(default_factory=list)
    links: List[Link] = field(default_factory=list)
    cookies: List[Cookie] = field(default_factory=list)
    document: Optional[BeautifulSoup] = field(default=None, repr=False, compare=False)
    platforms: List[str] = field(default_factory=list)

    def get_document(self) -> BeautifulSoup:
        """Return the parsed document, parsing the body on first use."""
        if self.document is None:
            self.document = parse_document(self.body)
        return self.document

    def to_dict(self) -> Dict[str, Any]:
        """Shallow attribute mapping, suitable for building a new page."""
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Page':
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def deep_clone(self) -> 'Page':
        """
        Fully independent copy.

        The document handle is not copied; the clone re-parses its own
        body when the document is first requested.
        """
        data = self.to_dict()
        data['document'] = None
        return Page.from_dict(copy.deepcopy(data))
