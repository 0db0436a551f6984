"""
HTML extraction helpers: attribute values, anchors and link containment.
"""

import logging
from typing import Callable, Iterable, List, Sequence

from bs4 import BeautifulSoup, Tag


def parse_document(html_content: str) -> BeautifulSoup:
    """Parse HTML into a document tree."""
    return BeautifulSoup(html_content, 'lxml')


def find_all(*tag_names: str) -> Callable[[Tag], List[Tag]]:
    """
    Build a finder that returns the descendants of an element whose tag name
    is one of ``tag_names``.

    The element itself is not included. With no tag names the finder always
    returns an empty list.
    """
    wanted = [name.lower() for name in tag_names if name]

    def finder(element: Tag) -> List[Tag]:
        if not wanted:
            return []
        return element.find_all(wanted)

    return finder


def find_all_anchors(document: Tag) -> List[Tag]:
    """Return every ``<a>`` element of the document."""
    return document.find_all('a')


def find_attribute_values(document: Tag, attr_name: str, *tag_names: str) -> List[str]:
    """
    Collect the values of ``attr_name`` on elements named ``tag_names``.

    With no tag names every element carrying the attribute is considered.
    Values are returned in document order; multi-valued attributes such as
    ``class`` are joined with a space.
    """
    if not attr_name:
        return []

    names: Sequence[str] = [name.lower() for name in tag_names if name]
    elements = document.find_all(names or True, attrs={attr_name: True})

    values = []
    for element in elements:
        value = element.get(attr_name)
        if isinstance(value, list):
            value = ' '.join(value)
        values.append(value)
    return values


def search_links(anchors: Iterable[Tag], contains_tags: Sequence[str]) -> List[str]:
    """
    Return the ``href`` of each anchor that passes the containment filter.

    When ``contains_tags`` is non-empty an anchor is kept only if it has at
    least one descendant with one of those tag names.
    """
    containment = find_all(*contains_tags)
    links = []
    for anchor in anchors:
        if contains_tags and not containment(anchor):
            continue
        href = anchor.get('href')
        if href is not None:
            links.append(href)
    return links


class ContentParser:
    """
    Extractor bound to one set of search and record constraints.
    """

    def __init__(self, record_attr: str = '', record_tags: Sequence[str] = (),
                 contains_tags: Sequence[str] = ()):
        self.record_attr = record_attr
        self.record_tags = list(record_tags)
        self.contains_tags = list(contains_tags)
        self.logger = logging.getLogger(__name__)

    def record_values(self, document: Tag) -> List[str]:
        """Attribute values to record for a page."""
        return find_attribute_values(document, self.record_attr, *self.record_tags)

    def candidate_links(self, document: Tag) -> List[str]:
        """Raw hrefs of the anchors that pass the containment filter."""
        anchors = find_all_anchors(document)
        links = search_links(anchors, self.contains_tags)
        self.logger.debug(f"{len(links)} of {len(anchors)} anchors passed containment")
        return links
