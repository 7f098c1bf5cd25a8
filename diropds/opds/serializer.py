from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from datetime import datetime
from typing import Dict, List, Optional, Union

from diropds.opds.clock import format_timestamp
from diropds.opds.errors import SerializationError
from diropds.opds.feed import FeedAuthor, FeedDocument, FeedEntry, FeedLink
from diropds.opds.metadata import FeedKind

ATOM_NS = "http://www.w3.org/2005/Atom"
OPDS_NS = "http://opds-spec.org/2010/catalog"
DC_NS = "http://purl.org/dc/terms/"
NS = {
    "atom": ATOM_NS,
    "opds": OPDS_NS,
    "dc": DC_NS,
}

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'

# Characters outside the XML 1.0 Char production, lone surrogates included.
_INVALID_XML_CHARS_RE = re.compile(r"[^\t\n\r\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")


def _checked(value: str, document_id: str) -> str:
    match = _INVALID_XML_CHARS_RE.search(value)
    if match:
        raise SerializationError(
            f"Feed {document_id} contains a character that cannot be encoded in XML: {match.group(0)!r}",
            path=document_id,
        )
    return value


def _text_element(parent: ET.Element, tag: str, value: str, document_id: str) -> ET.Element:
    node = ET.SubElement(parent, tag)
    node.text = _checked(value, document_id)
    return node


def _link_element(parent: ET.Element, link: FeedLink, document_id: str) -> ET.Element:
    attributes: Dict[str, str] = {"rel": link.rel}
    if link.title is not None:
        attributes["title"] = link.title
    attributes["href"] = link.href
    attributes["type"] = link.type
    node = ET.SubElement(parent, "link")
    for key, value in attributes.items():
        node.set(key, _checked(value, document_id))
    return node


def build_element(document: FeedDocument, kind: FeedKind) -> ET.Element:
    doc_id = document.id
    root = ET.Element("feed", {"xmlns": ATOM_NS})
    if kind is FeedKind.ACQUISITION:
        root.set("xmlns:dc", DC_NS)
        root.set("xmlns:opds", OPDS_NS)

    _text_element(root, "id", document.id, doc_id)
    _text_element(root, "title", document.title, doc_id)
    author = ET.SubElement(root, "author")
    _text_element(author, "name", document.author.name, doc_id)
    if document.author.email:
        _text_element(author, "email", document.author.email, doc_id)
    if document.author.uri:
        _text_element(author, "uri", document.author.uri, doc_id)
    _text_element(root, "updated", format_timestamp(document.updated), doc_id)
    for link in document.links:
        _link_element(root, link, doc_id)

    for entry in document.entries:
        node = ET.SubElement(root, "entry")
        _text_element(node, "id", entry.id, doc_id)
        _text_element(node, "title", entry.title, doc_id)
        _text_element(node, "updated", format_timestamp(entry.updated), doc_id)
        _text_element(node, "published", format_timestamp(entry.published), doc_id)
        _link_element(node, entry.link, doc_id)
    return root


def render_feed(document: FeedDocument, kind: FeedKind) -> bytes:
    """Serialize ``document`` as an indented UTF-8 Atom/OPDS feed."""

    root = build_element(document, kind)
    ET.indent(root, space="  ")
    try:
        body = ET.tostring(root, encoding="unicode")
        return (XML_DECLARATION + body + "\n").encode("utf-8")
    except (UnicodeEncodeError, ValueError) as exc:
        raise SerializationError(f"Unable to encode feed {document.id}: {exc}", path=document.id) from exc


def _parse_timestamp(value: Optional[str], document_id: str) -> datetime:
    try:
        return datetime.fromisoformat((value or "").strip())
    except ValueError as exc:
        raise SerializationError(f"Invalid timestamp {value!r} in feed {document_id}", path=document_id) from exc


def _parse_link(node: ET.Element) -> FeedLink:
    return FeedLink(
        href=node.attrib.get("href", ""),
        rel=node.attrib.get("rel", ""),
        type=node.attrib.get("type", ""),
        title=node.attrib.get("title"),
    )


def parse_feed(payload: Union[bytes, str]) -> FeedDocument:
    """Read a feed produced by :func:`render_feed` back into a document."""

    try:
        root = ET.fromstring(payload)
    except ET.ParseError as exc:
        raise SerializationError(f"Unable to parse OPDS feed: {exc}") from exc

    feed_id = root.findtext("atom:id", default="", namespaces=NS)
    author_node = root.find("atom:author", NS)
    author = FeedAuthor()
    if author_node is not None:
        author = FeedAuthor(
            name=author_node.findtext("atom:name", default="", namespaces=NS),
            email=author_node.findtext("atom:email", default=None, namespaces=NS),
            uri=author_node.findtext("atom:uri", default=None, namespaces=NS),
        )

    entries: List[FeedEntry] = []
    for node in root.findall("atom:entry", NS):
        link_node = node.find("atom:link", NS)
        if link_node is None:
            raise SerializationError(f"Entry without link in feed {feed_id}", path=feed_id)
        entries.append(
            FeedEntry(
                id=node.findtext("atom:id", default="", namespaces=NS),
                title=node.findtext("atom:title", default="", namespaces=NS),
                updated=_parse_timestamp(node.findtext("atom:updated", namespaces=NS), feed_id),
                published=_parse_timestamp(node.findtext("atom:published", namespaces=NS), feed_id),
                link=_parse_link(link_node),
            )
        )

    return FeedDocument(
        id=feed_id,
        title=root.findtext("atom:title", default="", namespaces=NS),
        updated=_parse_timestamp(root.findtext("atom:updated", namespaces=NS), feed_id),
        author=author,
        links=tuple(_parse_link(node) for node in root.findall("atom:link", NS)),
        entries=tuple(entries),
    )
