"""Element association for plugins.

Elements are ``xml.etree.ElementTree`` trees. Lookups use ElementPath
selectors (``".//button"``, ``"./item[@id='a']"``) unless a custom query
utility is injected.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Any

from .protocols import ElementQuery


def etree_query(selector: str, context: Any) -> list[Any]:
    """Return elements below ``context`` matching an ElementPath ``selector``."""
    if context is None:
        return []
    return list(context.iterfind(selector))


@dataclass(slots=True)
class ElementContext:
    """A wrapped element handle plus the query utility scoped to it."""

    element: Any
    query_fn: ElementQuery = field(default=etree_query, repr=False)

    def query(self, selector: str) -> list[Any]:
        """Look up ``selector`` inside this element."""
        return list(self.query_fn(selector, self.element))


def wrap_element(element: Any, query: ElementQuery | None = None) -> ElementContext | None:
    """Wrap an element handle into an :class:`ElementContext`.

    Args:
        element: An element, markup to parse, an existing context, or ``None``.
        query: Optional query utility replacing :func:`etree_query`.

    Returns:
        The context, or ``None`` when no element was given.
    """
    if element is None:
        return None
    if isinstance(element, ElementContext):
        return element
    if isinstance(element, (str, bytes)):
        element = ET.fromstring(element)
    return ElementContext(element=element, query_fn=query or etree_query)
