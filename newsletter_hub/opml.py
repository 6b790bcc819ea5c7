"""OPML reader and writer for newsletter feed subscriptions."""

import xml.etree.ElementTree as ET
from dataclasses import dataclass


class OPMLParseError(ValueError):
    """Raised when an uploaded document is not usable OPML."""


@dataclass
class OPMLSubscription:
    """A feed subscription listed in an OPML file."""
    url: str
    title: str | None


def parse_opml(xml_content: str | bytes) -> list[OPMLSubscription]:
    """
    Parse OPML XML content into feed subscriptions.

    Nested folder outlines (as exported by Feedly and most readers) are
    flattened; only outlines carrying an xmlUrl become subscriptions.
    Duplicate URLs are listed once, in document order.

    Raises:
        OPMLParseError: If XML is invalid or not OPML format
    """
    try:
        root = ET.fromstring(xml_content)
    except ET.ParseError as e:
        raise OPMLParseError(f"Invalid XML: {e}") from e

    if root.tag.lower() != "opml":
        raise OPMLParseError(f"Not an OPML document (root element: {root.tag})")

    body = root.find("body")
    if body is None:
        raise OPMLParseError("OPML document missing <body> element")

    subscriptions: list[OPMLSubscription] = []
    seen: set[str] = set()
    for outline in body.iter("outline"):
        xml_url = (outline.get("xmlUrl") or outline.get("xmlurl") or "").strip()
        if not xml_url or xml_url.lower() in seen:
            continue
        seen.add(xml_url.lower())
        title = outline.get("title") or outline.get("text")
        subscriptions.append(OPMLSubscription(
            url=xml_url,
            title=title.strip() if title and title.strip() else None,
        ))

    return subscriptions


def generate_opml(
    subscriptions: list[OPMLSubscription],
    title: str = "Newsletter Hub Subscriptions"
) -> str:
    """Generate an OPML 2.0 document listing the given subscriptions."""
    root = ET.Element("opml", version="2.0")

    head = ET.SubElement(root, "head")
    ET.SubElement(head, "title").text = title

    body = ET.SubElement(root, "body")
    for sub in subscriptions:
        label = sub.title or sub.url
        ET.SubElement(body, "outline", type="rss", text=label, title=label, xmlUrl=sub.url)

    return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(root, encoding="unicode")
