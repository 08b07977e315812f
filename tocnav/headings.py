"""Find numbered section headings among the rendered text."""

from __future__ import annotations

import math
import re

from .content_index import ContentIndex
from .tree import Element

# "3. ", "3.2.1. " at the start of the text.
HEADING_PATTERN = re.compile(r"^\d+(?:\.\d+)*\.\s+")


def is_heading_text(text: str) -> bool:
    return HEADING_PATTERN.match(text.lstrip()) is not None


class HeadingLocator:
    """Section-heading queries over a :class:`ContentIndex`."""

    def __init__(self, index: ContentIndex) -> None:
        self.index = index

    def is_heading(self, element: Element) -> bool:
        return self.index.config.is_text(element) and is_heading_text(element.text_content)

    def headings(self) -> list[Element]:
        """Currently mounted headings, in scan order."""

        return self.index.query_all(self.is_heading)

    def find_nearest_preceding_heading(self, node: Element) -> Element | None:
        """Return the closest heading at or above *node*.

        Among headings whose top is not below the node's, the one with the
        smallest vertical distance wins; the first scanned wins ties. ``None``
        when no heading lies above, for example inside front matter.
        """

        node_top = node.bounding_top
        closest: Element | None = None
        smallest = math.inf
        for heading in self.headings():
            heading_top = heading.bounding_top
            if heading_top > node_top:
                continue
            distance = node_top - heading_top
            if distance < smallest:
                smallest = distance
                closest = heading
        return closest

    def section_for(self, node: Element) -> str | None:
        """Return the title of the section containing *node*."""

        heading = self.find_nearest_preceding_heading(node)
        if heading is None:
            return None
        return heading.text_content.strip() or None
