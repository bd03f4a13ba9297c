"""Convert rendered HTML into an ordered, deduplicated text blob.

Fragments are gathered in priority order (title, meta, headings, links,
images, form controls) before a depth-first walk of the body so that the
densest signals lead the blob and survive downstream truncation.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator
from urllib.parse import urljoin

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PageElement, PreformattedString

MIN_FRAGMENT_LENGTH = 2
FRAGMENT_SEPARATOR = "\n\n"

SKIP_TAGS = frozenset(
    {
        "script",
        "style",
        "noscript",
        "template",
        "svg",
        "iframe",
        "meta",
        "link",
        "head",
        "nav",
        "header",
        "footer",
        "object",
        "embed",
        "video",
        "audio",
        "canvas",
    }
)

TEXT_ATTRIBUTES = (
    "alt",
    "title",
    "placeholder",
    "aria-label",
    "value",
    "content",
    "aria-describedby",
    "aria-labelledby",
)

FORM_ATTRIBUTES = ("placeholder", "value", "title", "aria-label")

_WHITESPACE = re.compile(r"\s+")


def normalize_whitespace(value: object) -> str:
    if isinstance(value, list):
        value = " ".join(str(item) for item in value)
    return _WHITESPACE.sub(" ", str(value or "")).strip()


def unique_in_order(fragments: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for fragment in fragments:
        if fragment not in seen:
            seen.add(fragment)
            result.append(fragment)
    return result


def extract_text(html: str) -> str:
    """Return the labelled, deduplicated text of ``html``.

    Raises ``ValueError`` when ``html`` is not a non-empty string.
    """

    if not html or not isinstance(html, str):
        raise ValueError("html must be a non-empty string")

    soup = BeautifulSoup(html, "lxml")
    collected = [*_structured_fragments(soup)]

    root = soup.body or soup
    collected.extend(_walk(root))
    collected.extend(_extra_meta(soup))

    normalized = (normalize_whitespace(fragment) for fragment in collected)
    kept = (f for f in normalized if len(f) >= MIN_FRAGMENT_LENGTH)
    return FRAGMENT_SEPARATOR.join(unique_in_order(kept))


def _meta_content(soup: BeautifulSoup, **attrs: str) -> str:
    tag = soup.find("meta", attrs=attrs)
    if isinstance(tag, Tag):
        return normalize_whitespace(tag.get("content"))
    return ""


def _structured_fragments(soup: BeautifulSoup) -> Iterator[str]:
    title_tag = soup.find("title")
    if isinstance(title_tag, Tag):
        title = normalize_whitespace(title_tag.get_text())
        if title:
            yield f"TITLE: {title}"

    description = _meta_content(soup, name="description") or _meta_content(
        soup, property="og:description"
    )
    if description:
        yield f"META DESCRIPTION: {description}"

    keywords = _meta_content(soup, name="keywords")
    if keywords:
        yield f"KEYWORDS: {keywords}"

    for level in range(1, 7):
        for heading in soup.find_all(f"h{level}"):
            text = normalize_whitespace(heading.get_text(" "))
            if text:
                yield f"H{level}: {text}"

    for anchor in soup.find_all("a"):
        text = normalize_whitespace(anchor.get_text(" "))
        if text:
            yield f"LINK: {text}"
        title = normalize_whitespace(anchor.get("title"))
        if title:
            yield f"LINK_TITLE: {title}"

    for image in soup.find_all("img"):
        alt = normalize_whitespace(image.get("alt"))
        if alt:
            yield f"IMG_ALT: {alt}"
        title = normalize_whitespace(image.get("title"))
        if title:
            yield f"IMG_TITLE: {title}"

    for control in soup.find_all(["input", "textarea", "button"]):
        name = control.name.upper()
        for attribute in FORM_ATTRIBUTES:
            value = normalize_whitespace(control.get(attribute))
            if value:
                yield f"{name}_{attribute.upper()}: {value}"
        if control.name == "button":
            text = normalize_whitespace(control.get_text(" "))
            if text:
                yield f"BUTTON: {text}"


def _walk(root: Tag | BeautifulSoup) -> Iterator[str]:
    # explicit stack of child iterators; deeply nested markup must not recurse
    stack: list[Iterator[PageElement]] = [iter(root.children)]
    while stack:
        child = next(stack[-1], None)
        if child is None:
            stack.pop()
            continue
        if isinstance(child, PreformattedString):
            # comments, doctypes, CDATA and processing instructions
            continue
        if isinstance(child, NavigableString):
            text = normalize_whitespace(child)
            if text:
                yield text
            continue
        if not isinstance(child, Tag) or child.name in SKIP_TAGS:
            continue
        for attribute in TEXT_ATTRIBUTES:
            value = normalize_whitespace(child.get(attribute))
            if value:
                yield value
        stack.append(iter(child.children))


def _extra_meta(soup: BeautifulSoup) -> Iterator[str]:
    for tag in soup.find_all("meta"):
        name = tag.get("name") or tag.get("property") or ""
        content = normalize_whitespace(tag.get("content"))
        if content and name and name not in ("description", "keywords"):
            yield f"META[{name}]: {content}"


def extract_links(html: str, base_url: str) -> list[str]:
    """Return absolute ``href`` targets of ``<a>`` tags in document order.

    Hrefs that cannot be resolved against ``base_url`` are dropped.
    """

    if not html:
        return []
    soup = BeautifulSoup(html, "lxml")
    links: list[str] = []
    for anchor in soup.find_all("a", href=True):
        href = normalize_whitespace(anchor["href"])
        if not href:
            continue
        try:
            links.append(urljoin(base_url, href))
        except ValueError:
            continue
    return unique_in_order(links)
