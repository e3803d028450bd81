"""CSS-selector-based HTML helpers on top of BeautifulSoup.

Compiled rule selectors come in two flavours (see
:class:`~animesearch.domain.rules.CompiledSelector`): ``css`` for a whole
document and ``scoped_css`` for a container element.  The helpers below pick
the right one for the root they are handed.
"""

from __future__ import annotations

from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from animesearch.domain.rules import CompiledSelector

LINK_ATTRIBUTES = ("href", "data-href")


def parse_html(html: str) -> BeautifulSoup:
    """Parse an HTML string into a BeautifulSoup tree.

    Uses the ``lxml`` parser, the same libxml2 HTML parser the reference
    XPath evaluator sees.  Multi-valued attributes stay raw strings so that
    ``[class="a b"]`` compares the attribute exactly as XPath does.
    """
    return BeautifulSoup(html, "lxml", multi_valued_attributes=None)


def select_all(root: BeautifulSoup | Tag, selector: CompiledSelector) -> list[Tag]:
    """Select all matches in document order."""
    return root.select(_css_for(root, selector))


def select_first(root: BeautifulSoup | Tag, selector: CompiledSelector) -> Tag | None:
    return root.select_one(_css_for(root, selector))


def element_text(element: Tag) -> str:
    """Visible text of *element* with runs of whitespace collapsed."""
    return " ".join(element.get_text(" ").split())


def element_attribute(element: Tag, attribute: str) -> str:
    """Whitespace-trimmed value of *attribute* (or ``""``)."""
    return " ".join(str(element.get(attribute) or "").split())


def element_link(element: Tag, attribute: str | None = None) -> str:
    """Return the first non-empty link attribute of *element*.

    An explicit *attribute* (from a trailing ``/@attr`` step) is tried
    before the usual ``href`` / ``data-href``.
    """
    candidates = (attribute, *LINK_ATTRIBUTES) if attribute else LINK_ATTRIBUTES
    for attr in candidates:
        value = element.get(attr)
        if value and str(value).strip():
            return str(value).strip()
    return ""


def first_anchor_href(element: Tag) -> str:
    """``href`` of the first ``a[href]`` below *element* (or ``""``)."""
    anchor = element.select_one("a[href]")
    if anchor is None:
        return ""
    return str(anchor.get("href") or "").strip()


def resolve_url(href: str, base_url: str) -> str:
    """Resolve *href* against *base_url* (absolute links pass through)."""
    return urljoin(base_url, href)


def _css_for(root: BeautifulSoup | Tag, selector: CompiledSelector) -> str:
    if isinstance(root, BeautifulSoup):
        return selector.css
    return selector.scoped_css
