"""RSS 2.0 writer for the public feed of published articles."""

import xml.etree.ElementTree as ET
from datetime import datetime
from email.utils import format_datetime

from .database.models import DBArticle


def generate_rss(
    articles: list[DBArticle],
    base_url: str,
    title: str = "Newsletter Hub",
    description: str = "Published articles from your newsletters",
) -> str:
    """
    Generate an RSS 2.0 document for the given articles.

    Item links point at the original source when known, otherwise at the
    article's API resource. Item guids are the article ids.
    """
    base_url = base_url.rstrip("/")

    root = ET.Element("rss", version="2.0")
    channel = ET.SubElement(root, "channel")
    ET.SubElement(channel, "title").text = title
    ET.SubElement(channel, "link").text = base_url
    ET.SubElement(channel, "description").text = description

    for article in articles:
        item = ET.SubElement(channel, "item")
        ET.SubElement(item, "title").text = article.title
        ET.SubElement(item, "link").text = article.link or f"{base_url}/api/articles/{article.id}"
        ET.SubElement(item, "description").text = article.content
        ET.SubElement(item, "guid", isPermaLink="false").text = f"article-{article.id}"
        stamp: datetime = article.published_at or article.created_at
        ET.SubElement(item, "pubDate").text = format_datetime(stamp)
        if article.thumbnail_url:
            ET.SubElement(item, "enclosure", url=article.thumbnail_url, type="image/jpeg", length="0")

    return '<?xml version="1.0" encoding="UTF-8"?>\n' + ET.tostring(root, encoding="unicode")
