# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Live document tree owned by the host page.

The engine does not own this tree. The host (browser bridge, test, CLI)
mutates it through ``append_child``/``insert_html``/``remove`` and changes the
location with ``navigate``; the engine reads it with XPath and writes only its
marker attribute and its own control elements.

Structural changes (children added or removed) are delivered synchronously to
every observer as a list of ``Mutation`` records. Attribute writes and
``navigate`` are not structural and notify nobody, matching childList/subtree
observation in a browser.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field

import lxml.html
from lxml import etree

from feedclip.sanitizer import absolute_http_url, clean_block, clean_inline

logger = logging.getLogger(__name__)

Element = lxml.html.HtmlElement


@dataclass(frozen=True, slots=True)
class Mutation:
    """One structural change under the document body."""

    target: Element
    added: tuple[Element, ...] = ()
    removed: tuple[Element, ...] = ()


MutationCallback = Callable[[list[Mutation]], None]


@dataclass(eq=False)
class Observation:
    """Handle for one registered mutation observer."""

    _document: LiveDocument = field(repr=False)
    callback: MutationCallback
    active: bool = True

    def disconnect(self) -> None:
        if not self.active:
            return
        self.active = False
        self._document._observers.remove(self)


class LiveDocument:
    """An lxml HTML tree plus the page location, with mutation observation."""

    def __init__(self, root: Element, url: str) -> None:
        self._root = root
        self._url = url
        self._observers: list[Observation] = []

    @classmethod
    def from_html(cls, html: str, url: str) -> LiveDocument:
        return cls(lxml.html.document_fromstring(html or "<html><body></body></html>"), url)

    # --- location -------------------------------------------------------

    @property
    def url(self) -> str:
        return self._url

    def navigate(self, url: str) -> None:
        """History-API style location change; the view re-renders separately."""
        logger.debug("location %s -> %s", self._url, url)
        self._url = url

    # --- structure ------------------------------------------------------

    @property
    def root(self) -> Element:
        return self._root

    @property
    def body(self) -> Element:
        body = self._root.find("body")
        if body is None:
            body = etree.SubElement(self._root, "body")
        return body

    @property
    def title(self) -> str:
        node = self._root.find(".//title")
        return clean_inline(node.text_content()) if node is not None else ""

    def query(self, xpath: str, scope: Element | None = None) -> Element | None:
        """First element matching *xpath* under *scope* (document root by default)."""
        found = self.query_all(xpath, scope)
        return found[0] if found else None

    def query_all(self, xpath: str, scope: Element | None = None) -> list[Element]:
        base = self._root if scope is None else scope
        return [node for node in base.xpath(xpath) if isinstance(node, etree.ElementBase)]

    def meta_content(self, key: str) -> str:
        """``content`` of ``<meta name=key>`` or ``<meta property=key>``."""
        for node in self._root.iter("meta"):
            if node.get("name") == key or node.get("property") == key:
                value = clean_inline(node.get("content"))
                if value:
                    return value
        return ""

    def link_href(self, rel: str) -> str:
        for node in self._root.iter("link"):
            if rel in (node.get("rel") or "").lower().split():
                value = self.absolute_url(node.get("href"))
                if value:
                    return value
        return ""

    def absolute_url(self, href: str | None) -> str:
        """Resolve an href against the location; "" unless absolute http(s)."""
        return absolute_http_url(href, base=self._url)

    def contains(self, node: Element) -> bool:
        return any(ancestor is self._root for ancestor in _self_and_ancestors(node))

    # --- mutation -------------------------------------------------------

    def append_child(self, parent: Element, child: Element) -> Element:
        parent.append(child)
        self._notify(Mutation(target=parent, added=(child,)))
        return child

    def insert_html(self, parent: Element, markup: str) -> list[Element]:
        """Parse *markup* as a fragment and append its elements to *parent*."""
        nodes = [n for n in lxml.html.fragments_fromstring(markup) if isinstance(n, etree.ElementBase)]
        for node in nodes:
            parent.append(node)
        if nodes:
            self._notify(Mutation(target=parent, added=tuple(nodes)))
        return nodes

    def remove(self, node: Element) -> bool:
        """Detach *node*; returns False when it was already detached."""
        parent = node.getparent()
        if parent is None:
            return False
        # drop_tree keeps the tail text in place
        node.drop_tree()
        self._notify(Mutation(target=parent, removed=(node,)))
        return True

    def observe(self, callback: MutationCallback) -> Observation:
        observation = Observation(self, callback)
        self._observers.append(observation)
        return observation

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def _notify(self, mutation: Mutation) -> None:
        for observation in list(self._observers):
            if observation.active:
                observation.callback([mutation])

    def to_html(self) -> str:
        return lxml.html.tostring(self._root, encoding="unicode")


# --- read helpers shared by extraction strategies ---------------------------


def _self_and_ancestors(node: Element) -> Iterator[Element]:
    yield node
    yield from node.iterancestors()


def closest(node: Element, tag: str) -> Element | None:
    """Nearest element (self included) with the given tag name."""
    for candidate in _self_and_ancestors(node):
        if isinstance(candidate.tag, str) and candidate.tag.lower() == tag:
            return candidate
    return None


def text_of(node: Element | None) -> str:
    """innerText-like text: block structure kept as lines, spaces collapsed."""
    if node is None:
        return ""
    parts: list[str] = []
    _collect_text(node, parts, is_root=True)
    return clean_block("".join(parts))


_BLOCK_TAGS = frozenset({"p", "div", "li", "h1", "h2", "h3", "h4", "h5", "h6", "blockquote", "pre", "section"})
_SKIPPED_TAGS = frozenset({"script", "style", "template", "noscript"})


def _flow(text: str) -> str:
    # formatting whitespace between tags renders as one space
    return " " if text.isspace() else text


def _line_break(parts: list[str]) -> None:
    """Start a new line unless the text so far already ends one."""
    for part in reversed(parts):
        if part.strip(" "):
            if not part.rstrip(" ").endswith("\n"):
                parts.append("\n")
            return


def _collect_text(el: Element, parts: list[str], *, is_root: bool = False) -> None:
    tag = el.tag
    if isinstance(tag, str) and tag not in _SKIPPED_TAGS:
        block = not is_root and tag in _BLOCK_TAGS
        if tag == "br":
            parts.append("\n")
        elif block:
            _line_break(parts)
        if el.text:
            parts.append(_flow(el.text))
        for child in el:
            _collect_text(child, parts)
        if block:
            _line_break(parts)
    if not is_root and el.tail:
        parts.append(_flow(el.tail))


def has_class(name: str) -> str:
    """XPath predicate body matching a whole CSS class token."""
    return f"contains(concat(' ', normalize-space(@class), ' '), ' {name} ')"
