"""
Element Fingerprint Registry for PageTrainer

Scan-wide record of every structurally distinct element seen so far,
one fingerprint set per element kind.
"""

from typing import List, Dict, Set, Tuple, Iterable
import logging

from pagetrainer.scanner.core.elements import ElementKind, Element
from pagetrainer.scanner.core.page import Page

logger = logging.getLogger(__name__)


class ElementDB:
    """
    Deduplicating store of element fingerprints.

    Size grows with the number of distinct fingerprints, never with the
    number of update calls.
    """

    def __init__(self):
        self._seen: Dict[ElementKind, Set[Tuple]] = {kind: set() for kind in ElementKind}

    def update(self, kind: ElementKind, elements: Iterable[Element]) -> Tuple[List[Element], int]:
        """
        Register elements of one kind and return the ones not seen before.

        New elements get their scope overridden so they are audited as
        part of the page that revealed them.

        Returns:
            Tuple of (new elements, number of new elements)
        """
        seen = self._seen[kind]
        new_elements = []

        for element in elements:
            fingerprint = element.fingerprint
            if fingerprint in seen:
                continue
            seen.add(fingerprint)
            element.override_instance_scope()
            new_elements.append(element)

        return new_elements, len(new_elements)

    def init_from_page(self, page: Page):
        """Mark every element of a page as known, without emitting anything."""
        self._seen[ElementKind.COOKIES].update(c.fingerprint for c in page.cookies)
        self._seen[ElementKind.FORMS].update(f.fingerprint for f in page.forms)
        self._seen[ElementKind.LINKS].update(l.fingerprint for l in page.links)

    def count(self, kind: ElementKind) -> int:
        return len(self._seen[kind])
