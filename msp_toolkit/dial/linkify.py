"""
Click-to-dial linkification of HTML using lxml.

Turns plain-text phone numbers into ``tel:`` anchors so softphone handlers
can dial them from ticket and contact pages. New anchors copy the look of a
reference link on the page so they blend in with the PSA's own links.
"""

import html
import logging
from dataclasses import dataclass

import lxml.html
from lxml import etree

from msp_toolkit.dial.phone import find_phone_numbers

logger = logging.getLogger(__name__)

SKIP_TAGS = frozenset(
    {
        "a",
        "button",
        "input",
        "textarea",
        "select",
        "code",
        "pre",
        "kbd",
        "samp",
        "script",
        "style",
        "noscript",
    }
)
TELIFIED_ATTR = "data-telified"
DEFAULT_REFERENCE_TEXT = "Site Configuration"


@dataclass
class LinkifyResult:
    html: str
    links_created: int
    styled_existing: int = 0


@dataclass(frozen=True)
class LinkAppearance:
    """class and style attributes copied from a reference anchor."""

    css_class: str = ""
    style: str = ""

    def apply(self, anchor: etree._Element) -> None:
        if self.css_class:
            anchor.set("class", self.css_class)
        if self.style:
            anchor.set("style", self.style)

    def __bool__(self) -> bool:
        return bool(self.css_class or self.style)


def _is_element(node) -> bool:
    return isinstance(node.tag, str)


def _in_skipped_context(element: etree._Element | None) -> bool:
    """True if element or any ancestor is a tag whose text must not be touched."""
    while element is not None:
        if _is_element(element):
            if element.tag.lower() in SKIP_TAGS:
                return True
            if element.get("contenteditable") is not None:
                return True
        element = element.getparent()
    return False


def find_reference_appearance(root: etree._Element, reference_text: str | None) -> LinkAppearance:
    """Find the first anchor whose text equals reference_text and capture its look."""
    if not reference_text:
        return LinkAppearance()
    for anchor in root.iter("a"):
        if anchor.text_content().strip() == reference_text:
            return LinkAppearance(anchor.get("class") or "", anchor.get("style") or "")
    return LinkAppearance()


def _build_anchors(
    text: str, appearance: LinkAppearance
) -> tuple[str, list[etree._Element]] | None:
    """
    Split text around phone numbers.

    Returns the leading text and a list of anchors whose tails carry the text
    that follows each number, or None if the text has nothing to link.
    """
    matches = find_phone_numbers(text)
    if not matches:
        return None

    leading = text[: matches[0].start]
    anchors = []
    for i, match in enumerate(matches):
        anchor = lxml.html.Element("a", href=match.href)
        anchor.text = match.raw
        appearance.apply(anchor)
        anchor.set(TELIFIED_ATTR, "true")
        next_start = matches[i + 1].start if i + 1 < len(matches) else len(text)
        anchor.tail = text[match.end : next_start] or None
        anchors.append(anchor)
    return leading, anchors


def linkify_tree(root: etree._Element, reference_text: str | None = DEFAULT_REFERENCE_TEXT) -> tuple[int, int]:
    """
    Linkify phone numbers in a parsed tree in place.

    Returns:
        (links created, previously telified links restyled)
    """
    appearance = find_reference_appearance(root, reference_text)
    created = 0

    # Snapshot first: anchors inserted below must not be revisited
    for node in list(root.iter()):
        if _is_element(node) and node.text and not _in_skipped_context(node):
            split = _build_anchors(node.text, appearance)
            if split is not None:
                leading, anchors = split
                node.text = leading or None
                for offset, anchor in enumerate(anchors):
                    node.insert(offset, anchor)
                created += len(anchors)

        parent = node.getparent()
        if node.tail and parent is not None and not _in_skipped_context(parent):
            split = _build_anchors(node.tail, appearance)
            if split is not None:
                leading, anchors = split
                node.tail = leading or None
                position = parent.index(node) + 1
                for offset, anchor in enumerate(anchors):
                    parent.insert(position + offset, anchor)
                created += len(anchors)

    restyled = 0
    if appearance:
        for anchor in root.iter("a"):
            if anchor.get(TELIFIED_ATTR) == "true":
                appearance.apply(anchor)
                restyled += 1
        restyled -= created

    return created, restyled


def linkify_html(html_text: str, reference_text: str | None = DEFAULT_REFERENCE_TEXT) -> LinkifyResult:
    """
    Wrap phone numbers in an HTML document or fragment with tel: links.

    Text inside links, form controls, code blocks, scripts and editable
    regions is left alone, which also makes the operation idempotent.

    Args:
        html_text: Full document or fragment
        reference_text: Text of an existing link whose class/style new links copy;
            None disables styling

    Returns:
        LinkifyResult with the rewritten HTML and counts
    """
    if not html_text.strip():
        return LinkifyResult(html_text, 0)

    is_document = "<html" in html_text[:1024].lower()
    if is_document:
        root = lxml.html.document_fromstring(html_text)
        created, restyled = linkify_tree(root, reference_text)
        output = lxml.html.tostring(root, encoding="unicode", doctype="<!DOCTYPE html>")
    else:
        root = lxml.html.fragment_fromstring(html_text, create_parent="div")
        created, restyled = linkify_tree(root, reference_text)
        output = html.escape(root.text or "", quote=False) + "".join(
            lxml.html.tostring(child, encoding="unicode") for child in root
        )

    logger.debug(f"Linkified {created} phone number(s)")
    return LinkifyResult(output, created, max(restyled, 0))
